"""Wheel coalescing and repeating auto-scroll timers driven by tick events."""

from __future__ import annotations

from dataclasses import dataclass


DEFAULT_WHEEL_WINDOW_MS = 100
DEFAULT_AUTOSCROLL_INTERVAL_MS = 50


@dataclass(slots=True)
class WheelBatcher:
    """Accumulate wheel deltas that arrive within ``window_ms`` of the first one."""

    window_ms: int = DEFAULT_WHEEL_WINDOW_MS
    pending: int = 0
    started_at: int | None = None

    def add(self, delta: int, now_ms: int) -> None:
        if self.started_at is None:
            self.started_at = now_ms
        self.pending += delta

    def due(self, now_ms: int) -> bool:
        return self.started_at is not None and now_ms - self.started_at >= self.window_ms

    def flush(self, now_ms: int | None = None, *, force: bool = False) -> int:
        """Return the net delta once the window elapsed (or when forced), else 0."""

        if self.started_at is None:
            return 0
        if not force and (now_ms is None or not self.due(now_ms)):
            return 0
        delta = self.pending
        self.pending = 0
        self.started_at = None
        return delta


@dataclass(slots=True)
class RepeatingTimer:
    """Fires every ``interval_ms`` while started; cancelled by :meth:`stop`."""

    interval_ms: int = DEFAULT_AUTOSCROLL_INTERVAL_MS
    next_fire: int | None = None
    direction: int = 0

    @property
    def running(self) -> bool:
        return self.next_fire is not None

    def start(self, now_ms: int, direction: int) -> None:
        if self.running and direction == self.direction:
            return
        self.direction = direction
        self.next_fire = now_ms + self.interval_ms

    def stop(self) -> None:
        self.next_fire = None
        self.direction = 0

    def fires(self, now_ms: int) -> int:
        """Number of intervals elapsed since the last fire, advancing the schedule."""

        if self.next_fire is None or now_ms < self.next_fire:
            return 0
        count = 1 + (now_ms - self.next_fire) // self.interval_ms
        self.next_fire += count * self.interval_ms
        return count
