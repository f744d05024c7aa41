"""Importing the folders, notes and tags of another note database."""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from contextlib import closing
from dataclasses import replace
from os import PathLike

from .listing import node_tag_tree
from .models import (
    NodeData,
    NodeTagTreeData,
    NodeType,
    SpecialNodeId,
    TagData,
    join_path,
    split_path,
)
from .store import _SELECT_NODE, NoteStore, _node_from_row

SQLITE_MAGIC = "SQLite format 3"
INVALID_FILE_TITLE = "Invalid file"
INVALID_FILE_MESSAGE = "Please select a valid notes export file"


def is_sqlite_file(file_name: str | PathLike[str]) -> bool:
    """True if the file starts with the SQLite database header.

    Raises OSError if the file cannot be read.
    """
    with open(file_name, "rb") as handle:
        header = handle.read(16)
    return header.decode("utf-8", errors="replace").startswith(SQLITE_MAGIC)


def _read_nodes(outside: sqlite3.Connection, node_type: NodeType) -> list[NodeData]:
    rows = outside.execute(
        _SELECT_NODE + " WHERE node_type = :node_type", {"node_type": int(node_type)}
    )
    return [_node_from_row(row) for row in rows]


def _import_tags(store: NoteStore, outside: sqlite3.Connection) -> dict[int, int]:
    tags = sorted(
        (
            TagData(
                id=int(row["id"]),
                name=row["name"],
                color=row["color"],
                relative_position=int(row["relative_position"]),
                child_notes_count=int(row["child_notes_count"]),
            )
            for row in outside.execute(
                "SELECT id, name, color, relative_position, child_notes_count FROM tag_table"
            )
        ),
        key=lambda tag: tag.relative_position,
    )
    tag_map: dict[int, int] = {}
    for tag in tags:
        existing = store.connection.execute(
            "SELECT id FROM tag_table WHERE name = :name AND color = :color",
            {"name": tag.name, "color": tag.color},
        ).fetchone()
        tag_map[tag.id] = int(existing[0]) if existing else store.add_tag(tag)
    return tag_map


def _import_folders(store: NoteStore, outside: sqlite3.Connection) -> dict[int, int]:
    special = (
        SpecialNodeId.ROOT_FOLDER,
        SpecialNodeId.TRASH_FOLDER,
        SpecialNodeId.DEFAULT_NOTES_FOLDER,
    )
    folder_map = {int(folder_id): int(folder_id) for folder_id in special}
    folders = {node.id: node for node in sorted(
        _read_nodes(outside, NodeType.FOLDER), key=lambda node: node.id
    )}
    pending: set[int] = set()

    def match(folder_id: int) -> None:
        if folder_id not in folders or folder_id in folder_map or folder_id in pending:
            return
        node = folders[folder_id]
        if node.parent_id in folder_map:
            new_parent = folder_map[node.parent_id]
            existing = store.connection.execute(
                "SELECT id FROM node_table "
                "WHERE title = :title AND node_type = :node_type AND parent_id = :parent_id",
                {
                    "title": node.full_title,
                    "node_type": int(NodeType.FOLDER),
                    "parent_id": new_parent,
                },
            ).fetchone()
            if existing:
                folder_map[folder_id] = int(existing[0])
            else:
                folder_map[folder_id] = store.add_node(
                    replace(node, parent_id=new_parent, child_notes_count=0)
                )
            return
        pending.add(folder_id)
        try:
            for ancestor in split_path(node.absolute_path):
                if ancestor != folder_id:
                    match(ancestor)
        finally:
            pending.discard(folder_id)
        if node.parent_id in folder_map:
            match(folder_id)

    root = int(SpecialNodeId.ROOT_FOLDER)
    if root in folders:
        children: dict[int, list[int]] = defaultdict(list)
        for node in folders.values():
            if node.id != root:
                children[node.parent_id].append(node.id)
        for ids in children.values():
            ids.sort(key=lambda child: (folders[child].relative_position, child))
        visited: set[int] = set()
        stack = [root]
        while stack:
            folder_id = stack.pop()
            if folder_id in visited:
                continue
            visited.add(folder_id)
            match(folder_id)
            stack.extend(reversed(children.get(folder_id, [])))
    else:
        for folder_id in folders:
            match(folder_id)
    return folder_map


def _import_notes(
    store: NoteStore, outside: sqlite3.Connection, folder_map: dict[int, int]
) -> dict[int, int]:
    parents: dict[int, list] = {}
    for folder_id in folder_map.values():
        if folder_id in parents:
            continue
        try:
            parent = store.get_node(folder_id)
        except KeyError:
            continue
        parents[folder_id] = [
            parent.absolute_path,
            store.next_available_position(folder_id, NodeType.NOTE),
        ]

    notes = _read_nodes(outside, NodeType.NOTE)
    note_map: dict[int, int] = {}
    with store.transaction():
        node_id = store.next_node_id()
        for note in notes:
            parent_id = folder_map.get(note.parent_id)
            if parent_id is None or parent_id not in parents:
                continue
            parent_path, position = parents[parent_id]
            store.add_node_precomputed(
                replace(
                    note,
                    id=node_id,
                    relative_position=position,
                    absolute_path=join_path(parent_path, node_id),
                    parent_id=parent_id,
                    child_notes_count=0,
                    tag_ids=set(),
                    parent_name="",
                )
            )
            parents[parent_id][1] = position + 1
            note_map[note.id] = node_id
            node_id += 1
        store.set_next_node_id(node_id + 1)
    return note_map


def _import_tag_relations(
    store: NoteStore,
    outside: sqlite3.Connection,
    tag_map: dict[int, int],
    note_map: dict[int, int],
) -> None:
    relations = [
        (int(row[0]), int(row[1]))
        for row in outside.execute("SELECT tag_id, node_id FROM tag_relationship")
    ]
    with store.transaction():
        for tag_id, note_id in relations:
            if tag_id in tag_map and note_id in note_map:
                store.add_note_to_tag(note_map[note_id], tag_map[tag_id])


def import_notes(store: NoteStore, file_name: str | PathLike[str]) -> NodeTagTreeData:
    """Merge another note database into ``store``.

    Tags with the same name and color, and folders with the same title under
    the same parent, are reused; notes are always added. Files that are not
    SQLite databases are reported through ``show_error_message`` and raise
    ValueError. Returns the refreshed folder and tag tree.
    """
    if not is_sqlite_file(file_name):
        store.signals.show_error_message.emit(INVALID_FILE_TITLE, INVALID_FILE_MESSAGE)
        raise ValueError(f"{file_name} is not a notes database")
    with closing(sqlite3.connect(str(file_name))) as outside:
        outside.row_factory = sqlite3.Row
        tag_map = _import_tags(store, outside)
        folder_map = _import_folders(store, outside)
        note_map = _import_notes(store, outside, folder_map)
        _import_tag_relations(store, outside, tag_map, note_map)
    store.counter.recalculate_all()
    return node_tag_tree(store)