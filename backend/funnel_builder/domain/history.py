# funnel_builder/domain/history.py
from __future__ import annotations

from typing import Generic, List, Optional, TypeVar

T = TypeVar("T")

DEFAULT_HISTORY_LIMIT = 50


class History(Generic[T]):
    """
    Linear undo/redo over whole-document snapshots.

    The index always points at the snapshot that matches the live document.
    Pushing after an undo discards the redo branch; only the newest `limit`
    snapshots are kept.
    """

    def __init__(self, initial: T, limit: int = DEFAULT_HISTORY_LIMIT):
        if limit < 1:
            raise ValueError("History limit must be at least 1")

        self.limit = limit
        self._entries: List[T] = [initial]
        self._index = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> T:
        return self._entries[self._index]

    def push(self, snapshot: T) -> None:
        entries = self._entries[: self._index + 1]
        entries.append(snapshot)

        if len(entries) > self.limit:
            entries = entries[-self.limit :]

        self._entries = entries
        self._index = len(entries) - 1

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._entries) - 1

    def undo(self) -> Optional[T]:
        if not self.can_undo():
            return None
        self._index -= 1
        return self._entries[self._index]

    def redo(self) -> Optional[T]:
        if not self.can_redo():
            return None
        self._index += 1
        return self._entries[self._index]

    def reset(self, snapshot: T) -> None:
        self._entries = [snapshot]
        self._index = 0
