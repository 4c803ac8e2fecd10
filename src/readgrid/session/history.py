"""Navigation history as a bounded jump-list."""

from __future__ import annotations

from dataclasses import dataclass


DEFAULT_HISTORY_SIZE = 20


@dataclass(frozen=True, slots=True)
class Location:
    chapter_id: str
    offset: int


@dataclass(frozen=True, slots=True)
class NavigationEntry:
    origin: Location
    destination: Location


class JumpList:
    """Back/forward breadcrumbs with branch truncation.

    ``cursor`` points one past the entry ``back`` would return; pushing after
    moving back discards every entry at or beyond the cursor.
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: list[NavigationEntry] = []
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> tuple[NavigationEntry, ...]:
        return tuple(self._entries)

    def can_go_back(self) -> bool:
        return self._cursor > 0

    def can_go_forward(self) -> bool:
        return self._cursor < len(self._entries)

    def push(self, entry: NavigationEntry) -> None:
        del self._entries[self._cursor :]
        self._entries.append(entry)
        overflow = len(self._entries) - self._capacity
        if overflow > 0:
            del self._entries[:overflow]
        self._cursor = len(self._entries)

    def back(self) -> Location | None:
        if not self.can_go_back():
            return None
        self._cursor -= 1
        return self._entries[self._cursor].origin

    def forward(self) -> Location | None:
        if not self.can_go_forward():
            return None
        entry = self._entries[self._cursor]
        self._cursor += 1
        return entry.destination

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = 0
