"""SQLite-backed storage of notes, folders and tags."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from os import PathLike

from .counts import ChildNoteCounter
from .events import StoreSignals
from .models import (
    NodeData,
    NodeType,
    SpecialNodeId,
    TagData,
    datetime_to_ms,
    join_path,
    ms_to_datetime,
)

_SCHEMA = (
    """CREATE TABLE "node_table" (
        "id" INTEGER NOT NULL,
        "title" TEXT,
        "creation_date" INTEGER NOT NULL DEFAULT 0,
        "modification_date" INTEGER NOT NULL DEFAULT 0,
        "deletion_date" INTEGER NOT NULL DEFAULT 0,
        "content" TEXT,
        "node_type" INTEGER NOT NULL,
        "parent_id" INTEGER NOT NULL,
        "relative_position" INTEGER NOT NULL,
        "scrollbar_position" INTEGER NOT NULL,
        "absolute_path" TEXT NOT NULL,
        "is_pinned_note" INTEGER NOT NULL DEFAULT 0,
        "relative_position_an" INTEGER NOT NULL,
        "child_notes_count" INTEGER NOT NULL
    )""",
    """CREATE TABLE "tag_relationship" (
        "node_id" INTEGER NOT NULL,
        "tag_id" INTEGER NOT NULL,
        UNIQUE(node_id, tag_id)
    )""",
    """CREATE TABLE "tag_table" (
        "id" INTEGER NOT NULL,
        "name" TEXT NOT NULL,
        "color" TEXT NOT NULL,
        "child_notes_count" INTEGER NOT NULL,
        "relative_position" INTEGER NOT NULL
    )""",
    """CREATE TABLE "metadata" (
        "key" TEXT NOT NULL,
        "value" INTEGER NOT NULL
    )""",
)

_SELECT_NODE = (
    "SELECT id, title, creation_date, modification_date, deletion_date, content, "
    "node_type, parent_id, relative_position, scrollbar_position, absolute_path, "
    "is_pinned_note, relative_position_an, child_notes_count FROM node_table"
)

_INSERT_NODE = (
    'INSERT INTO "node_table" ("id", "title", "creation_date", "modification_date", '
    '"deletion_date", "content", "node_type", "parent_id", "relative_position", '
    '"scrollbar_position", "absolute_path", "is_pinned_note", "relative_position_an", '
    '"child_notes_count") VALUES (:id, :title, :creation_date, :modification_date, '
    ":deletion_date, :content, :node_type, :parent_id, :relative_position, "
    ":scrollbar_position, :absolute_path, :is_pinned_note, :relative_position_an, "
    ":child_notes_count)"
)

_NO_DELETION_DATE = -1


def _now_ms() -> int:
    return int(datetime_to_ms(datetime.now(timezone.utc)))


def _clean(text: str) -> str:
    """Text as written by ``add_node``: quotes doubled, NUL characters dropped."""
    return text.replace("'", "''").replace("\x00", "")


def _node_from_row(row: sqlite3.Row) -> NodeData:
    deletion = row["deletion_date"]
    return NodeData(
        id=int(row["id"]),
        full_title=row["title"] or "",
        creation_date_time=ms_to_datetime(row["creation_date"] or 0),
        last_modification_date_time=ms_to_datetime(row["modification_date"] or 0),
        deletion_date_time=(
            None if deletion is None or deletion == _NO_DELETION_DATE else ms_to_datetime(deletion)
        ),
        content=row["content"] or "",
        node_type=NodeType(int(row["node_type"])),
        parent_id=int(row["parent_id"]),
        relative_position=int(row["relative_position"]),
        scroll_bar_position=int(row["scrollbar_position"]),
        absolute_path=row["absolute_path"] or "",
        is_pinned_note=bool(row["is_pinned_note"]),
        relative_pos_an=int(row["relative_position_an"]),
        child_notes_count=int(row["child_notes_count"]),
    )


class NoteStore:
    """A note database: a tree of folders and notes plus tags on notes."""

    def __init__(self, path: str | PathLike[str], create: bool = False) -> None:
        self.signals = StoreSignals()
        self.path = str(path)
        self._connection: sqlite3.Connection | None = None
        self._depth = 0
        self.counter: ChildNoteCounter
        self.open(path, create)

    # -- connection handling -------------------------------------------------

    @property
    def connection(self) -> sqlite3.Connection:
        if self._connection is None:
            raise RuntimeError("store is not open")
        return self._connection

    def open(self, path: str | PathLike[str], create: bool = False) -> None:
        """Open the database at ``path``, creating its tables when asked."""
        self.close()
        self.path = str(path)
        connection = sqlite3.connect(self.path, isolation_level=None)
        connection.row_factory = sqlite3.Row
        self._connection = connection
        self._depth = 0
        self.counter = ChildNoteCounter(connection, self.signals)
        if create:
            self._create_tables()
        self.counter.recalculate_all()

    def close(self) -> None:
        """Close the database connection, if one is open."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            self._depth = 0

    def __enter__(self) -> NoteStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[NoteStore]:
        """Group changes; commit on success, roll back on an exception."""
        connection = self.connection
        if self._depth:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return
        connection.execute("BEGIN")
        self._depth = 1
        try:
            yield self
        except BaseException:
            connection.execute("ROLLBACK")
            raise
        else:
            connection.execute("COMMIT")
        finally:
            self._depth = 0

    def _create_tables(self) -> None:
        with self.transaction():
            for statement in _SCHEMA:
                self.connection.execute(statement)
            self.connection.executemany(
                'INSERT INTO "metadata" ("key", "value") VALUES (?, ?)',
                [("next_node_id", 0), ("next_tag_id", 0)],
            )
            now = datetime.now(timezone.utc)
            for title, parent in (
                ("/", SpecialNodeId.INVALID),
                ("Trash", SpecialNodeId.ROOT_FOLDER),
                ("Notes", SpecialNodeId.ROOT_FOLDER),
            ):
                self.add_node(
                    NodeData(
                        node_type=NodeType.FOLDER,
                        creation_date_time=now,
                        last_modification_date_time=now,
                        full_title=title,
                        parent_id=int(parent),
                    )
                )

    # -- reading ---------------------------------------------------------------

    def node_exists(self, node_id: int) -> bool:
        """True if a node with ``node_id`` is stored."""
        row = self.connection.execute(
            "SELECT EXISTS(SELECT 1 FROM node_table WHERE id = :id LIMIT 1)", {"id": node_id}
        ).fetchone()
        return row[0] == 1

    def get_all_folders(self) -> list[NodeData]:
        """Every folder, the root and trash included."""
        rows = self.connection.execute(
            _SELECT_NODE + " WHERE node_type = :node_type",
            {"node_type": int(NodeType.FOLDER)},
        )
        return [_node_from_row(row) for row in rows]

    def get_all_tags(self) -> list[TagData]:
        """Every tag."""
        rows = self.connection.execute(
            "SELECT id, name, color, relative_position, child_notes_count FROM tag_table"
        )
        return [
            TagData(
                id=int(row["id"]),
                name=row["name"],
                color=row["color"],
                relative_position=int(row["relative_position"]),
                child_notes_count=int(row["child_notes_count"]),
            )
            for row in rows
        ]

    def get_tags_for_note(self, note_id: int) -> set[int]:
        """Ids of the tags attached to a note."""
        rows = self.connection.execute(
            "SELECT tag_id FROM tag_relationship WHERE node_id = :node_id", {"node_id": note_id}
        )
        return {int(row[0]) for row in rows}

    def next_available_position(self, parent_id: int, node_type: NodeType) -> int:
        """One past the highest relative position among a parent's children."""
        if parent_id == SpecialNodeId.INVALID:
            return 0
        row = self.connection.execute(
            "SELECT max(relative_position) FROM node_table "
            "WHERE parent_id = :parent_id AND node_type = :node_type",
            {"parent_id": parent_id, "node_type": int(node_type)},
        ).fetchone()
        return 0 if row[0] is None else max(int(row[0]) + 1, 0)

    def get_node_absolute_path(self, node_id: int) -> str:
        """The absolute path of a node, or an empty string if it is unknown."""
        rows = self.connection.execute(
            "SELECT absolute_path FROM node_table WHERE id = :id", {"id": node_id}
        ).fetchall()
        if not rows or rows[-1][0] is None:
            return ""
        return str(rows[-1][0])

    def get_node(self, node_id: int) -> NodeData:
        """Load a node; notes come with their tags and parent's title.

        Raises KeyError if there is no such node.
        """
        row = self.connection.execute(
            _SELECT_NODE + " WHERE id = :id LIMIT 1", {"id": node_id}
        ).fetchone()
        if row is None:
            raise KeyError(f"no node with id {node_id}")
        node = _node_from_row(row)
        if node.is_note:
            node.tag_ids = self.get_tags_for_note(node.id)
            parent = self.connection.execute(
                "SELECT title FROM node_table WHERE id = :id LIMIT 1", {"id": node.parent_id}
            ).fetchone()
            node.parent_name = "" if parent is None or parent[0] is None else parent[0]
        return node

    def get_folder_list(self) -> dict[int, str]:
        """Titles of all folders except the root, keyed and ordered by id."""
        rows = self.connection.execute(
            "SELECT id, title FROM node_table WHERE id > 0 AND node_type = :node_type",
            {"node_type": int(NodeType.FOLDER)},
        )
        return dict(sorted((int(row[0]), row[1] or "") for row in rows))

    def get_child_notes_count_folder(self, folder_id: int) -> NodeData:
        """A folder record holding only its id, path and cached note count."""
        row = self.connection.execute(
            "SELECT child_notes_count, absolute_path FROM node_table WHERE id = :id",
            {"id": folder_id},
        ).fetchone()
        count, path = (0, "") if row is None else (int(row[0]), row[1] or "")
        return NodeData(
            id=folder_id,
            node_type=NodeType.FOLDER,
            child_notes_count=count,
            absolute_path=path,
        )

    # -- ids -------------------------------------------------------------------

    def _metadata(self, key: str) -> int:
        rows = self.connection.execute(
            "SELECT value FROM metadata WHERE key = :key", {"key": key}
        ).fetchall()
        return int(rows[-1][0]) if rows else 0

    def _set_metadata(self, key: str, value: int) -> None:
        self.connection.execute(
            'UPDATE "metadata" SET "value" = :value WHERE "key" = :key',
            {"value": value, "key": key},
        )

    def next_node_id(self) -> int:
        """The id the next added node will get."""
        return self._metadata("next_node_id")

    def next_tag_id(self) -> int:
        """The id the next added tag will get."""
        return self._metadata("next_tag_id")

    def set_next_node_id(self, value: int) -> None:
        """Set the id the next added node will get."""
        self._set_metadata("next_node_id", value)

    # -- writing nodes ---------------------------------------------------------

    def _insert_node(self, node: NodeData, node_id: int, position: int, path: str) -> None:
        created = datetime_to_ms(node.creation_date_time) or 0
        modified = (
            created
            if node.last_modification_date_time is None
            else datetime_to_ms(node.last_modification_date_time)
        )
        deleted = (
            _NO_DELETION_DATE
            if node.deletion_date_time is None
            else datetime_to_ms(node.deletion_date_time)
        )
        self.connection.execute(
            _INSERT_NODE,
            {
                "id": node_id,
                "title": _clean(node.full_title),
                "creation_date": created,
                "modification_date": modified,
                "deletion_date": deleted,
                "content": _clean(node.content),
                "node_type": int(node.node_type),
                "parent_id": node.parent_id,
                "relative_position": position,
                "scrollbar_position": node.scroll_bar_position,
                "absolute_path": path,
                "is_pinned_note": 1 if node.is_pinned_note else 0,
                "relative_position_an": node.relative_pos_an,
                "child_notes_count": node.child_notes_count,
            },
        )

    def add_node(self, node: NodeData) -> int:
        """Add a node under its parent with a fresh id and position; return the id."""
        position = self.next_available_position(node.parent_id, node.node_type)
        node_id = self.next_node_id()
        parent_path = (
            "" if node.parent_id == SpecialNodeId.INVALID
            else self.get_node_absolute_path(node.parent_id)
        )
        self._insert_node(node, node_id, position, join_path(parent_path, node_id))
        self.set_next_node_id(node_id + 1)
        if node.is_note:
            self.counter.increase_folder(node.parent_id)
            self.counter.increase_folder(SpecialNodeId.ROOT_FOLDER)
        return node_id

    def add_node_precomputed(self, node: NodeData) -> int:
        """Insert a node with its own id, position and path; return the id."""
        self._insert_node(node, node.id, node.relative_position, node.absolute_path)
        return node.id

    def rename_node(self, node_id: int, new_name: str) -> None:
        """Change the title of a node."""
        self.connection.execute(
            'UPDATE "node_table" SET "title" = :title WHERE "id" = :id',
            {"title": new_name, "id": node_id},
        )

    def update_note_content(self, note: NodeData) -> bool:
        """Store a note's text, title, date and scroll position.

        Returns True if exactly one note was updated; raises ValueError
        for a note without an id.
        """
        if note.id == SpecialNodeId.INVALID:
            raise ValueError("invalid note id")
        cursor = self.connection.execute(
            "UPDATE node_table SET modification_date = :modification_date, content = :content, "
            "title = :title, scrollbar_position = :scrollbar_position "
            "WHERE id = :id AND node_type = :node_type",
            {
                "modification_date": datetime_to_ms(note.last_modification_date_time) or 0,
                "content": note.content.replace("\x00", ""),
                "title": note.full_title.replace("\x00", ""),
                "scrollbar_position": note.scroll_bar_position,
                "id": note.id,
                "node_type": int(NodeType.NOTE),
            },
        )
        return cursor.rowcount == 1

    def save_note(self, note: NodeData) -> int:
        """Update a stored note or add a new one; return its id."""
        if not note.is_note:
            raise ValueError("only notes can be saved")
        if self.node_exists(note.id):
            self.update_note_content(note)
            return note.id
        return self.add_node(note)

    def remove_note(self, note: NodeData) -> None:
        """Move a note to the trash, or delete it for good if it is there already."""
        if note.parent_id == SpecialNodeId.TRASH_FOLDER:
            self.connection.execute(
                'DELETE FROM "node_table" WHERE id = :id AND node_type = :node_type',
                {"id": note.id, "node_type": int(NodeType.NOTE)},
            )
            self.connection.execute(
                'DELETE FROM "tag_relationship" WHERE node_id = :id', {"id": note.id}
            )
            if note.is_note:
                self.counter.decrease_folder(SpecialNodeId.TRASH_FOLDER)
        else:
            self.move_node(note.id, self.get_node(SpecialNodeId.TRASH_FOLDER))

    def move_folder_to_trash(self, node: NodeData) -> None:
        """Trash every note below a folder, then delete the folder and its subfolders."""
        prefix = node.absolute_path + "/"
        note_ids = sorted(
            int(row[0])
            for row in self.connection.execute(
                "SELECT id FROM node_table "
                "WHERE absolute_path LIKE :prefix || '%' AND node_type = :node_type",
                {"prefix": prefix, "node_type": int(NodeType.NOTE)},
            )
        )
        trash = self.get_node(SpecialNodeId.TRASH_FOLDER)
        for note_id in note_ids:
            self.move_node(note_id, trash)
        self.connection.execute(
            'DELETE FROM "node_table" '
            "WHERE absolute_path LIKE :prefix || '%' AND node_type = :node_type",
            {"prefix": prefix, "node_type": int(NodeType.FOLDER)},
        )
        self.connection.execute(
            'DELETE FROM "node_table" WHERE absolute_path LIKE :path AND node_type = :node_type',
            {"path": node.absolute_path, "node_type": int(NodeType.FOLDER)},
        )

    def move_node(self, node_id: int, target: NodeData) -> None:
        """Move a node, and for a folder everything below it, into ``target``."""
        if not target.is_folder:
            raise ValueError(f"move target {target.id} is not a folder")
        node = self.get_node(node_id)
        to_trash = target.id == SpecialNodeId.TRASH_FOLDER
        new_path = join_path(target.absolute_path, node_id)
        if to_trash:
            self.connection.execute(
                "UPDATE node_table SET parent_id = :parent_id, absolute_path = :path, "
                "is_pinned_note = 0, deletion_date = :deletion_date WHERE id = :id",
                {"parent_id": target.id, "path": new_path,
                 "deletion_date": _now_ms(), "id": node_id},
            )
        else:
            self.connection.execute(
                "UPDATE node_table SET parent_id = :parent_id, absolute_path = :path "
                "WHERE id = :id",
                {"parent_id": target.id, "path": new_path, "id": node_id},
            )

        if node.is_folder:
            old_path = node.absolute_path
            children = {
                int(row[0]): row[1]
                for row in self.connection.execute(
                    "SELECT id, absolute_path FROM node_table "
                    "WHERE absolute_path LIKE :prefix || '%'",
                    {"prefix": old_path + "/"},
                )
                if int(row[0]) != node.id
            }
            for child_id in sorted(children):
                child_path = children[child_id].replace(old_path, new_path, 1)
                if to_trash:
                    self.connection.execute(
                        "UPDATE node_table SET absolute_path = :path, is_pinned_note = 0, "
                        "deletion_date = :deletion_date WHERE id = :id",
                        {"path": child_path, "deletion_date": _now_ms(), "id": child_id},
                    )
                else:
                    self.connection.execute(
                        "UPDATE node_table SET absolute_path = :path WHERE id = :id",
                        {"path": child_path, "id": child_id},
                    )
            self.counter.recalculate_all()
            return

        self.counter.decrease_folder(node.parent_id)
        from_trash = node.parent_id == SpecialNodeId.TRASH_FOLDER
        if not from_trash and to_trash:
            self.counter.decrease_folder(SpecialNodeId.ROOT_FOLDER)
            for tag_id in sorted(self.get_tags_for_note(node.id)):
                self.counter.decrease_tag(tag_id)
        elif from_trash and not to_trash:
            self.counter.increase_folder(SpecialNodeId.ROOT_FOLDER)
            for tag_id in sorted(self.get_tags_for_note(node.id)):
                self.counter.increase_tag(tag_id)
        self.counter.increase_folder(target.id)

    def update_rel_pos_node(self, node_id: int, rel_pos: int) -> None:
        """Set a node's position among its siblings."""
        self.connection.execute(
            "UPDATE node_table SET relative_position = :pos WHERE id = :id",
            {"pos": rel_pos, "id": node_id},
        )

    def update_rel_pos_pinned_note(self, node_id: int, rel_pos: int) -> None:
        """Set a note's position among its siblings."""
        self.connection.execute(
            "UPDATE node_table SET relative_position = :pos "
            "WHERE id = :id AND node_type = :node_type",
            {"pos": rel_pos, "id": node_id, "node_type": int(NodeType.NOTE)},
        )

    def update_rel_pos_pinned_note_an(self, node_id: int, rel_pos: int) -> None:
        """Set a note's position in the all-notes list."""
        self.connection.execute(
            "UPDATE node_table SET relative_position_an = :pos "
            "WHERE id = :id AND node_type = :node_type",
            {"pos": rel_pos, "id": node_id, "node_type": int(NodeType.NOTE)},
        )

    def set_note_is_pinned(self, note_id: int, is_pinned: bool) -> None:
        """Pin or unpin a note."""
        self.connection.execute(
            "UPDATE node_table SET is_pinned_note = :pinned "
            "WHERE id = :id AND node_type = :node_type",
            {"pinned": 1 if is_pinned else 0, "id": note_id, "node_type": int(NodeType.NOTE)},
        )

    # -- tags --------------------------------------------------------------------

    def add_tag(self, tag: TagData) -> int:
        """Add a tag at the end of the tag list; return its new id."""
        row = self.connection.execute("SELECT max(relative_position) FROM tag_table").fetchone()
        position = 0 if row[0] is None else max(int(row[0]) + 1, 0)
        tag_id = self.next_tag_id()
        self.connection.execute(
            'INSERT INTO "tag_table" ("id", "name", "color", "relative_position", '
            '"child_notes_count") VALUES (:id, :name, :color, :pos, :count)',
            {"id": tag_id, "name": tag.name, "color": tag.color,
             "pos": position, "count": tag.child_notes_count},
        )
        self._set_metadata("next_tag_id", tag_id + 1)
        self.signals.tag_added.emit(replace(tag, id=tag_id))
        return tag_id

    def add_note_to_tag(self, note_id: int, tag_id: int) -> None:
        """Attach a tag to a note."""
        self.connection.execute(
            'INSERT OR IGNORE INTO "tag_relationship" ("node_id", "tag_id") '
            "VALUES (:note_id, :tag_id)",
            {"note_id": note_id, "tag_id": tag_id},
        )
        self.counter.recalculate_tag(tag_id)

    def remove_note_from_tag(self, note_id: int, tag_id: int) -> None:
        """Detach a tag from a note."""
        self.connection.execute(
            'DELETE FROM "tag_relationship" WHERE node_id = :note_id AND tag_id = :tag_id',
            {"note_id": note_id, "tag_id": tag_id},
        )
        self.counter.decrease_tag(tag_id)

    def rename_tag(self, tag_id: int, new_name: str) -> None:
        """Change the name of a tag."""
        self.connection.execute(
            'UPDATE "tag_table" SET "name" = :name WHERE "id" = :id',
            {"name": new_name, "id": tag_id},
        )
        self.signals.tag_renamed.emit(tag_id, new_name)

    def change_tag_color(self, tag_id: int, color: str) -> None:
        """Change the color of a tag."""
        self.connection.execute(
            'UPDATE "tag_table" SET "color" = :color WHERE "id" = :id',
            {"color": color, "id": tag_id},
        )
        self.signals.tag_color_changed.emit(tag_id, color)

    def remove_tag(self, tag_id: int) -> None:
        """Delete a tag and detach it from every note."""
        self.connection.execute('DELETE FROM "tag_table" WHERE id = :id', {"id": tag_id})
        self.connection.execute(
            'DELETE FROM "tag_relationship" WHERE tag_id = :id', {"id": tag_id}
        )
        self.signals.tag_removed.emit(tag_id)

    def update_rel_pos_tag(self, tag_id: int, rel_pos: int) -> None:
        """Set a tag's position in the tag list."""
        self.connection.execute(
            "UPDATE tag_table SET relative_position = :pos WHERE id = :id",
            {"pos": rel_pos, "id": tag_id},
        )