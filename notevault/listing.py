"""Building the note lists shown by the list view: folders, tags and searches."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable

from .models import (
    PATH_SEPARATOR,
    ListViewInfo,
    NodeData,
    NodeTagTreeData,
    NodeType,
    SpecialNodeId,
)
from .store import _SELECT_NODE, NoteStore, _node_from_row

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def _newest_first(notes: Iterable[NodeData]) -> list[NodeData]:
    return sorted(
        notes,
        key=lambda note: note.last_modification_date_time or _OLDEST,
        reverse=True,
    )


def _parent_title(store: NoteStore, parent_id: int, cache: dict[int, str]) -> str:
    if parent_id not in cache:
        try:
            cache[parent_id] = store.get_node(parent_id).full_title
        except KeyError:
            cache[parent_id] = ""
    return cache[parent_id]


def _query_notes(
    store: NoteStore, where: str, params: dict, with_parent_name: bool
) -> list[NodeData]:
    titles: dict[int, str] = {}
    notes = []
    for row in store.connection.execute(f"{_SELECT_NODE} WHERE {where}", params):
        node = _node_from_row(row)
        node.tag_ids = store.get_tags_for_note(node.id)
        if with_parent_name:
            node.parent_name = _parent_title(store, node.parent_id, titles)
        notes.append(node)
    return notes


def _notes_with_all_tags(store: NoteStore, tag_ids: Iterable[int]) -> list[NodeData] | None:
    """Notes carrying every tag in ``tag_ids``; None when no tag is given."""
    id_sets = [
        {
            int(row[0])
            for row in store.connection.execute(
                "SELECT node_id FROM tag_relationship WHERE tag_id = :tag_id",
                {"tag_id": tag_id},
            )
        }
        for tag_id in tag_ids
    ]
    if not id_sets:
        return None
    note_ids = set.intersection(*id_sets)
    notes = []
    for note_id in sorted(note_ids):
        try:
            node = store.get_node(note_id)
        except KeyError:
            continue
        if node.is_note:
            notes.append(node)
    return notes


def node_tag_tree(store: NoteStore) -> NodeTagTreeData:
    """All folders and tags; also sent through ``nodes_tag_tree_received``."""
    data = NodeTagTreeData(
        node_tree_data=store.get_all_folders(),
        tag_tree_data=store.get_all_tags(),
    )
    store.signals.nodes_tag_tree_received.emit(data)
    return data


def notes_in_folder(
    store: NoteStore,
    parent_id: int,
    recursive: bool,
    new_note: bool = False,
    scroll_to_id: int = SpecialNodeId.INVALID,
) -> tuple[list[NodeData], ListViewInfo]:
    """Notes of a folder, newest first, with the matching list-view state.

    The root folder lists every note outside the trash. The result is also
    sent through ``notes_list_received``.
    """
    note_type = int(NodeType.NOTE)
    if parent_id == SpecialNodeId.ROOT_FOLDER:
        notes = _query_notes(
            store,
            "node_type = :node_type AND parent_id != :parent_id",
            {"node_type": note_type, "parent_id": int(SpecialNodeId.TRASH_FOLDER)},
            with_parent_name=True,
        )
    elif not recursive:
        notes = _query_notes(
            store,
            "parent_id = :parent_id AND node_type = :node_type",
            {"parent_id": parent_id, "node_type": note_type},
            with_parent_name=False,
        )
    else:
        prefix = store.get_node_absolute_path(parent_id) + PATH_SEPARATOR
        notes = _query_notes(
            store,
            "absolute_path LIKE :prefix || '%' AND node_type = :node_type",
            {"prefix": prefix, "node_type": note_type},
            with_parent_name=False,
        )
    info = ListViewInfo(
        is_in_search=False,
        is_in_tag=False,
        parent_folder_id=parent_id,
        current_notes_id={int(SpecialNodeId.INVALID)},
        need_create_new_note=new_note,
        scroll_to_id=scroll_to_id,
    )
    notes = _newest_first(notes)
    store.signals.notes_list_received.emit(notes, info)
    return notes, info


def notes_in_tags(
    store: NoteStore,
    tag_ids: Iterable[int],
    new_note: bool = False,
    scroll_to_id: int = SpecialNodeId.INVALID,
) -> tuple[list[NodeData], ListViewInfo]:
    """Notes carrying all of ``tag_ids``, newest first, with the list-view state.

    The result is also sent through ``notes_list_received``.
    """
    tag_set = set(tag_ids)
    info = ListViewInfo(
        is_in_search=False,
        is_in_tag=True,
        current_tag_list=tag_set,
        current_notes_id={int(SpecialNodeId.INVALID)},
        need_create_new_note=new_note,
        scroll_to_id=scroll_to_id,
    )
    found = _notes_with_all_tags(store, tag_set)
    notes = [] if found is None else _newest_first(found)
    store.signals.notes_list_received.emit(notes, info)
    return notes, info


def search_notes(
    store: NoteStore, keyword: str, info: ListViewInfo
) -> tuple[list[NodeData], ListViewInfo]:
    """Notes in the current view whose content contains ``keyword``.

    Folder views match case-insensitively (SQL LIKE); tag views match
    exactly. The result is also sent through ``notes_list_received``.
    """
    note_type = int(NodeType.NOTE)
    if not info.is_in_tag and info.parent_folder_id == SpecialNodeId.ROOT_FOLDER:
        notes = _query_notes(
            store,
            "node_type = :node_type AND parent_id != :parent_id "
            "AND content LIKE '%' || :keyword || '%'",
            {
                "node_type": note_type,
                "parent_id": int(SpecialNodeId.TRASH_FOLDER),
                "keyword": keyword,
            },
            with_parent_name=True,
        )
    elif not info.is_in_tag:
        notes = _query_notes(
            store,
            "node_type = :node_type AND parent_id = :parent_id "
            "AND content LIKE '%' || :keyword || '%'",
            {
                "node_type": note_type,
                "parent_id": info.parent_folder_id,
                "keyword": keyword,
            },
            with_parent_name=True,
        )
    else:
        found = _notes_with_all_tags(store, info.current_tag_list)
        if found is None:
            store.signals.notes_list_received.emit([], info)
            return [], info
        notes = [note for note in found if keyword in note.content]
    result_info = replace(info, is_in_search=True)
    notes = _newest_first(notes)
    store.signals.notes_list_received.emit(notes, result_info)
    return notes, result_info


def clear_search(store: NoteStore, info: ListViewInfo) -> tuple[list[NodeData], ListViewInfo]:
    """List the notes of the view a search was started from."""
    if info.is_in_tag:
        return notes_in_tags(
            store, info.current_tag_list, info.need_create_new_note, info.scroll_to_id
        )
    return notes_in_folder(
        store,
        info.parent_folder_id,
        info.parent_folder_id == SpecialNodeId.ROOT_FOLDER,
        info.need_create_new_note,
        info.scroll_to_id,
    )