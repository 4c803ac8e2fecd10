"""Decoded input events and the synchronous queue that feeds the session."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Union


@dataclass(frozen=True, slots=True)
class KeyEvent:
    """``key`` is a lowercase name such as ``"j"``, ``"pagedown"`` or ``"+"``."""

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False

    @property
    def chord(self) -> str:
        parts = [name for name, held in (("ctrl", self.ctrl), ("alt", self.alt), ("shift", self.shift)) if held]
        return "+".join([*parts, self.key])


class MouseKind(str, Enum):
    PRESS = "press"
    RELEASE = "release"
    DRAG = "drag"
    WHEEL = "wheel"


@dataclass(frozen=True, slots=True)
class MouseEvent:
    """Screen coordinates are zero-based terminal rows and columns."""

    kind: MouseKind
    row: int
    column: int
    delta: int = 0
    timestamp_ms: int | None = None


@dataclass(frozen=True, slots=True)
class ResizeEvent:
    columns: int
    rows: int


@dataclass(frozen=True, slots=True)
class TickEvent:
    """Timer heartbeat driving wheel flushes and drag auto-scroll."""

    timestamp_ms: int


Event = Union[KeyEvent, MouseEvent, ResizeEvent, TickEvent]


class EventQueue:
    """FIFO of pending events; each one is handled fully before the next."""

    def __init__(self) -> None:
        self._events: deque[Event] = deque()

    def __len__(self) -> int:
        return len(self._events)

    def put(self, event: Event) -> None:
        self._events.append(event)

    def extend(self, events: list[Event]) -> None:
        self._events.extend(events)

    def get(self) -> Event | None:
        if not self._events:
            return None
        return self._events.popleft()

    def drain(self):
        while self._events:
            yield self._events.popleft()
