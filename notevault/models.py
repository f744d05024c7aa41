"""Data types shared by the note store: nodes, tags and list-view state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import IntEnum

PATH_SEPARATOR = "/"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class NodeType(IntEnum):
    """Kind of a node in the note tree."""

    NOTE = 0
    FOLDER = 1


class SpecialNodeId(IntEnum):
    """Node ids with a fixed meaning in every database."""

    INVALID = -1
    ROOT_FOLDER = 0
    TRASH_FOLDER = 1
    DEFAULT_NOTES_FOLDER = 2


def join_path(parent_path: str, node_id: int) -> str:
    """Return the absolute path of a node placed under ``parent_path``."""
    return f"{parent_path}{PATH_SEPARATOR}{node_id}"


def split_path(path: str) -> list[int]:
    """Return the node ids that make up an absolute path, root first."""
    return [int(part) for part in path.split(PATH_SEPARATOR) if part]


def datetime_to_ms(value: datetime | None) -> int | None:
    """Milliseconds since the epoch; naive values are taken as local time."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.astimezone()
    return (value - _EPOCH) // timedelta(milliseconds=1)


def ms_to_datetime(ms: int) -> datetime:
    """Timezone-aware UTC datetime for milliseconds since the epoch."""
    return _EPOCH + timedelta(milliseconds=int(ms))


@dataclass
class NodeData:
    """A note or folder as stored in the node table."""

    id: int = SpecialNodeId.INVALID
    full_title: str = ""
    creation_date_time: datetime | None = None
    last_modification_date_time: datetime | None = None
    deletion_date_time: datetime | None = None
    content: str = ""
    node_type: NodeType = NodeType.NOTE
    parent_id: int = SpecialNodeId.INVALID
    relative_position: int = 0
    scroll_bar_position: int = 0
    absolute_path: str = ""
    is_pinned_note: bool = False
    relative_pos_an: int = 0
    child_notes_count: int = 0
    tag_ids: set[int] = field(default_factory=set)
    parent_name: str = ""
    is_temp_note: bool = False

    @property
    def is_note(self) -> bool:
        return self.node_type == NodeType.NOTE

    @property
    def is_folder(self) -> bool:
        return self.node_type == NodeType.FOLDER


@dataclass
class TagData:
    """A tag that notes can be attached to."""

    id: int = SpecialNodeId.INVALID
    name: str = ""
    color: str = ""
    relative_position: int = 0
    child_notes_count: int = 0


@dataclass
class ListViewInfo:
    """Describes which notes a list view is showing."""

    is_in_search: bool = False
    is_in_tag: bool = False
    current_tag_list: set[int] = field(default_factory=set)
    parent_folder_id: int = SpecialNodeId.ROOT_FOLDER
    current_notes_id: set[int] = field(default_factory=set)
    need_create_new_note: bool = False
    scroll_to_id: int = SpecialNodeId.INVALID


@dataclass
class NodeTagTreeData:
    """All folders and tags, as needed to build the sidebar trees."""

    node_tree_data: list[NodeData] = field(default_factory=list)
    tag_tree_data: list[TagData] = field(default_factory=list)