"""Keeping the cached child-note counts of folders and tags up to date."""

from __future__ import annotations

import sqlite3

from .events import StoreSignals
from .models import NodeType, SpecialNodeId


class ChildNoteCounter:
    """Maintains the ``child_notes_count`` columns of folders and tags.

    Every change is announced through the ``child_notes_count_updated_tag``
    and ``child_notes_count_updated_folder`` signals.
    """

    def __init__(self, connection: sqlite3.Connection, signals: StoreSignals) -> None:
        self.connection = connection
        self.signals = signals

    def _scalar(self, sql: str, params: dict) -> object | None:
        row = self.connection.execute(sql, params).fetchone()
        return None if row is None else row[0]

    def _count_tag_notes(self, tag_id: int) -> int:
        return int(
            self._scalar(
                "SELECT count(*) FROM tag_relationship WHERE tag_id = :id", {"id": tag_id}
            )
            or 0
        )

    def _count_folder_notes(self, folder_id: int) -> int:
        return int(
            self._scalar(
                "SELECT count(*) FROM node_table "
                "WHERE node_type = :node_type AND parent_id = :parent_id",
                {"node_type": int(NodeType.NOTE), "parent_id": folder_id},
            )
            or 0
        )

    def _folder_path(self, folder_id: int) -> str:
        rows = self.connection.execute(
            "SELECT absolute_path FROM node_table WHERE id = :id", {"id": folder_id}
        ).fetchall()
        if not rows or rows[-1][0] is None:
            return ""
        return str(rows[-1][0])

    def _store_tag(self, tag_id: int, count: int) -> int:
        self.connection.execute(
            "UPDATE tag_table SET child_notes_count = :count WHERE id = :id",
            {"count": count, "id": tag_id},
        )
        self.signals.child_notes_count_updated_tag.emit(tag_id, count)
        return count

    def _store_folder(self, folder_id: int, path: str, count: int) -> int:
        self.connection.execute(
            "UPDATE node_table SET child_notes_count = :count WHERE id = :id",
            {"count": count, "id": folder_id},
        )
        self.signals.child_notes_count_updated_folder.emit(folder_id, path, count)
        return count

    def _read_folder(self, folder_id: int) -> tuple[int, str]:
        row = self.connection.execute(
            "SELECT child_notes_count, absolute_path FROM node_table WHERE id = :id",
            {"id": folder_id},
        ).fetchone()
        if row is None:
            return 0, ""
        return int(row[0] or 0), "" if row[1] is None else str(row[1])

    def _read_tag(self, tag_id: int) -> int:
        return int(
            self._scalar(
                "SELECT child_notes_count FROM tag_table WHERE id = :id", {"id": tag_id}
            )
            or 0
        )

    def recalculate_all(self) -> None:
        """Recount every tag, every folder and the all-notes total."""
        tag_ids = sorted(
            {row[0] for row in self.connection.execute("SELECT id FROM tag_table")}
        )
        for tag_id in tag_ids:
            self._store_tag(tag_id, self._count_tag_notes(tag_id))

        folders = {
            folder_id: "" if path is None else str(path)
            for folder_id, path in self.connection.execute(
                "SELECT id, absolute_path FROM node_table WHERE node_type = :node_type",
                {"node_type": int(NodeType.FOLDER)},
            )
            if folder_id != SpecialNodeId.ROOT_FOLDER
        }
        for folder_id in sorted(folders):
            self._store_folder(folder_id, folders[folder_id], self._count_folder_notes(folder_id))

        self.recalculate_all_notes()

    def recalculate_folder(self, folder_id: int) -> int:
        """Recount the notes directly inside a folder and return the count."""
        count = self._count_folder_notes(folder_id)
        return self._store_folder(folder_id, self._folder_path(folder_id), count)

    def recalculate_tag(self, tag_id: int) -> int:
        """Recount the notes carrying a tag and return the count."""
        return self._store_tag(tag_id, self._count_tag_notes(tag_id))

    def recalculate_all_notes(self) -> int:
        """Store on the root folder the number of notes outside the trash."""
        count = int(
            self._scalar(
                "SELECT count(*) FROM node_table "
                "WHERE node_type = :node_type AND parent_id != :parent_id",
                {
                    "node_type": int(NodeType.NOTE),
                    "parent_id": int(SpecialNodeId.TRASH_FOLDER),
                },
            )
            or 0
        )
        root = int(SpecialNodeId.ROOT_FOLDER)
        return self._store_folder(root, self._folder_path(root), count)

    def increase_tag(self, tag_id: int) -> int:
        """Add one to a tag's count and return the new value."""
        return self._store_tag(tag_id, self._read_tag(tag_id) + 1)

    def decrease_tag(self, tag_id: int) -> int:
        """Take one from a tag's count, never below zero, and return it."""
        return self._store_tag(tag_id, max(self._read_tag(tag_id) - 1, 0))

    def increase_folder(self, folder_id: int) -> int:
        """Add one to a folder's count and return the new value."""
        count, path = self._read_folder(folder_id)
        return self._store_folder(folder_id, path, count + 1)

    def decrease_folder(self, folder_id: int) -> int:
        """Take one from a folder's count, never below zero, and return it."""
        count, path = self._read_folder(folder_id)
        return self._store_folder(folder_id, path, max(count - 1, 0))