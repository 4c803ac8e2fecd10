"""Layout-affecting style configuration passed explicitly into reflow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


MIN_CONTENT_WIDTH = 8
DEFAULT_TAB_WIDTH = 4
DEFAULT_MARGIN = 2


class WrapMode(str, Enum):
    WORD = "word"
    CHAR = "char"


@dataclass(frozen=True, slots=True)
class StyleConfig:
    """Everything besides content and width that changes layout structure.

    Theme colors are intentionally absent: cells carry roles, and colors are
    resolved by the renderer, so a theme switch never invalidates layout.
    """

    tab_width: int = DEFAULT_TAB_WIDTH
    wrap_mode: WrapMode = WrapMode.WORD
    margin: int = DEFAULT_MARGIN
    unicode_math: bool = True
    uppercase_h1: bool = True

    def __post_init__(self) -> None:
        if self.tab_width < 1:
            raise ValueError("tab_width must be >= 1")
        if self.margin < 0:
            raise ValueError("margin cannot be negative")

    def layout_key(self) -> tuple[object, ...]:
        return (self.tab_width, self.wrap_mode.value, self.margin, self.unicode_math, self.uppercase_h1)

    def content_width(self, columns: int) -> int:
        """Columns available for content after both margins, clamped to the minimum."""

        return max(MIN_CONTENT_WIDTH, columns - 2 * self.margin)
