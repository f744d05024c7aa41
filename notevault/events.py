"""Minimal signal objects used to notify listeners of store changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable


class Signal:
    """A list of callbacks that are called, in connection order, on emit."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> None:
        """Register ``callback`` to be called on every emit."""
        self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., Any]) -> None:
        """Remove ``callback``; raise ValueError if it was not connected."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            raise ValueError("callback is not connected") from None

    def emit(self, *args: Any) -> None:
        """Call every connected callback with ``args``."""
        for callback in list(self._callbacks):
            callback(*args)

    def __len__(self) -> int:
        return len(self._callbacks)


@dataclass
class StoreSignals:
    """The notifications a note store sends out."""

    notes_list_received: Signal = field(default_factory=Signal)
    nodes_tag_tree_received: Signal = field(default_factory=Signal)
    tag_added: Signal = field(default_factory=Signal)
    tag_removed: Signal = field(default_factory=Signal)
    tag_renamed: Signal = field(default_factory=Signal)
    tag_color_changed: Signal = field(default_factory=Signal)
    show_error_message: Signal = field(default_factory=Signal)
    child_notes_count_updated_tag: Signal = field(default_factory=Signal)
    child_notes_count_updated_folder: Signal = field(default_factory=Signal)