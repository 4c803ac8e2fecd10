"""Viewport controller: the visible window over a chapter's layout lines."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class Viewport:
    """``top`` is the first visible layout line; ``height`` the visible rows."""

    top: int = 0
    height: int = 24
    margin: int = 2
    total: int = 0

    def __post_init__(self) -> None:
        if self.height < 1:
            raise ValueError("height must be positive")
        if self.margin < 0:
            raise ValueError("margin cannot be negative")

    @property
    def max_top(self) -> int:
        return max(0, self.total - self.height)

    @property
    def bottom(self) -> int:
        """One past the last visible line."""

        return min(self.total, self.top + self.height)

    def set_total(self, total: int) -> None:
        self.total = max(0, total)
        self.clamp()

    def resize(self, height: int) -> None:
        self.height = max(1, height)
        self.clamp()

    def clamp(self) -> None:
        self.top = max(0, min(self.top, self.max_top))

    def scroll_to(self, line: int) -> bool:
        previous = self.top
        self.top = line
        self.clamp()
        return self.top != previous

    def scroll_by(self, delta: int) -> bool:
        return self.scroll_to(self.top + delta)

    def line_down(self, count: int = 1) -> bool:
        return self.scroll_by(count)

    def line_up(self, count: int = 1) -> bool:
        return self.scroll_by(-count)

    def half_page_down(self) -> bool:
        return self.scroll_by(max(1, self.height // 2))

    def half_page_up(self) -> bool:
        return self.scroll_by(-max(1, self.height // 2))

    def page_down(self) -> bool:
        return self.scroll_by(max(1, self.height - 1))

    def page_up(self) -> bool:
        return self.scroll_by(-max(1, self.height - 1))

    def to_top(self) -> bool:
        return self.scroll_to(0)

    def to_bottom(self) -> bool:
        return self.scroll_to(self.max_top)

    def is_visible(self, line: int) -> bool:
        return self.top <= line < self.bottom

    def ensure_visible(self, line: int, *, center: bool = True) -> bool:
        """Scroll so ``line`` is on screen; centered when it was off screen."""

        if self.is_visible(line):
            return False
        target = line - self.height // 2 if center else line
        return self.scroll_to(target)

    def to_screen(self, line: int) -> int | None:
        if not self.is_visible(line):
            return None
        return line - self.top

    def to_line(self, row: int) -> int:
        return self.top + row
