"""Restoring, exporting and moving note databases, and bringing in older data."""

from __future__ import annotations

import os
import shutil
import sqlite3
from contextlib import closing
from dataclasses import replace
from os import PathLike
from typing import Iterable

from .importer import INVALID_FILE_MESSAGE, INVALID_FILE_TITLE, is_sqlite_file
from .listing import node_tag_tree
from .models import (
    NodeData,
    NodeTagTreeData,
    NodeType,
    SpecialNodeId,
    join_path,
    ms_to_datetime,
)
from .store import NoteStore


def _place_notes(
    store: NoteStore,
    notes: Iterable[NodeData],
    folder: NodeData,
    parent_name: str,
    node_id: int,
) -> tuple[list[NodeData], int]:
    """Insert ``notes`` at the end of ``folder`` starting at ``node_id``.

    Returns the notes as stored and the first id left unused.
    """
    position = store.next_available_position(folder.id, NodeType.NOTE)
    placed = []
    for note in notes:
        stored = replace(
            note,
            id=node_id,
            relative_position=position,
            absolute_path=join_path(folder.absolute_path, node_id),
            node_type=NodeType.NOTE,
            parent_id=folder.id,
            parent_name=parent_name,
            is_temp_note=False,
        )
        store.add_node_precomputed(stored)
        placed.append(stored)
        node_id += 1
        position += 1
    return placed, node_id


def _migrate_into(
    store: NoteStore, notes: Iterable[NodeData], folder_id: int, parent_name: str
) -> list[NodeData]:
    folder = store.get_node(folder_id)
    with store.transaction():
        placed, node_id = _place_notes(
            store, notes, folder, parent_name, store.next_node_id()
        )
        store.set_next_node_id(node_id + 1)
    store.counter.recalculate_all()
    return placed


def restore_notes(store: NoteStore, file_name: str | PathLike[str]) -> NodeTagTreeData:
    """Replace the store's database with the database in ``file_name``.

    A file that is not a notes database is reported through
    ``show_error_message`` and raises ValueError; the store is left as it was.
    Returns the refreshed folder and tag tree.
    """
    if not is_sqlite_file(file_name):
        store.signals.show_error_message.emit(INVALID_FILE_TITLE, INVALID_FILE_MESSAGE)
        raise ValueError(f"{file_name} is not a notes database")
    path = store.path
    store.close()
    if os.path.exists(path):
        os.remove(path)
    shutil.copyfile(file_name, path)
    store.open(path, False)
    store.counter.recalculate_all()
    return node_tag_tree(store)


def export_notes(store: NoteStore, file_name: str | PathLike[str]) -> None:
    """Copy the store's database file to ``file_name``, replacing any file there.

    The database is locked for writing while the copy is made.
    """
    connection = store.connection
    connection.execute("BEGIN IMMEDIATE")
    try:
        if os.path.exists(file_name):
            os.remove(file_name)
        shutil.copyfile(store.path, file_name)
    finally:
        connection.execute("ROLLBACK")


def migrate_notes(store: NoteStore, notes: Iterable[NodeData]) -> list[NodeData]:
    """Add ``notes`` to the default notes folder; return them as stored."""
    return _migrate_into(store, notes, SpecialNodeId.DEFAULT_NOTES_FOLDER, "Notes")


def migrate_trash(store: NoteStore, notes: Iterable[NodeData]) -> list[NodeData]:
    """Add ``notes`` to the trash folder; return them as stored."""
    return _migrate_into(store, notes, SpecialNodeId.TRASH_FOLDER, "Trash")


def _read_old_notes(old: sqlite3.Connection) -> tuple[list[NodeData], list[NodeData]]:
    notes = [
        NodeData(
            id=int(note_id),
            creation_date_time=ms_to_datetime(created or 0),
            last_modification_date_time=ms_to_datetime(modified or 0),
            content=content or "",
            full_title=title or "",
        )
        for note_id, created, modified, content, title in old.execute(
            'SELECT "id", "creation_date", "modification_date", "content", "full_title" '
            'FROM "active_notes"'
        )
    ]
    trash = [
        NodeData(
            id=int(note_id),
            creation_date_time=ms_to_datetime(created or 0),
            last_modification_date_time=ms_to_datetime(modified or 0),
            deletion_date_time=ms_to_datetime(deleted or 0),
            content=content or "",
            full_title=title or "",
        )
        for note_id, created, modified, deleted, content, title in old.execute(
            'SELECT "id", "creation_date", "modification_date", "deletion_date", '
            '"content", "full_title" FROM "deleted_notes"'
        )
    ]
    return notes, trash


def migrate_from_v1_5_0(
    store: NoteStore, file_name: str | PathLike[str]
) -> tuple[list[NodeData], list[NodeData]]:
    """Bring in the active and deleted notes of an old-format database.

    Active notes go to the default notes folder, deleted ones to the trash.
    Returns both lists as stored. Raises FileNotFoundError if the file is
    missing and sqlite3.Error if it lacks the old tables.
    """
    if not os.path.exists(file_name):
        raise FileNotFoundError(str(file_name))
    with closing(sqlite3.connect(str(file_name))) as old:
        notes, trash = _read_old_notes(old)

    notes_folder = store.get_node(SpecialNodeId.DEFAULT_NOTES_FOLDER)
    trash_folder = store.get_node(SpecialNodeId.TRASH_FOLDER)
    with store.transaction():
        node_id = store.next_node_id()
        placed_notes, node_id = _place_notes(store, notes, notes_folder, "Notes", node_id)
        placed_trash, node_id = _place_notes(store, trash, trash_folder, "Trash", node_id)
        store.set_next_node_id(node_id + 1)
    store.counter.recalculate_all()
    return placed_notes, placed_trash


def change_database_path(store: NoteStore, new_path: str | PathLike[str]) -> None:
    """Move the store's database file to ``new_path`` and reopen it there.

    Raises FileExistsError if ``new_path`` is already taken.
    """
    if os.path.exists(new_path):
        raise FileExistsError(str(new_path))
    old_path = store.path
    store.close()
    os.rename(old_path, new_path)
    store.open(new_path, False)