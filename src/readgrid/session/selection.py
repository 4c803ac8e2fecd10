"""Selection engine working purely in canonical-stream offsets."""

from __future__ import annotations

from dataclasses import dataclass

from razdel import tokenize

from readgrid.content.models import Chapter
from readgrid.layout.index import LayoutIndex


@dataclass(frozen=True, slots=True)
class Selection:
    """``anchor`` is the fixed end of the gesture, ``cursor`` the moving end.

    Both ends are inclusive character offsets, so the covered range is
    ``[start, end)`` with ``end`` one past the larger of the two.
    """

    anchor: int
    cursor: int

    @classmethod
    def from_range(cls, start: int, end: int) -> "Selection":
        if end <= start:
            raise ValueError(f"empty selection range [{start}, {end})")
        return cls(anchor=start, cursor=end - 1)

    @property
    def start(self) -> int:
        return min(self.anchor, self.cursor)

    @property
    def end(self) -> int:
        return max(self.anchor, self.cursor) + 1

    @property
    def backward(self) -> bool:
        return self.cursor < self.anchor

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def text(self, chapter: Chapter) -> str:
        return chapter.text(self.start, self.end)


def resolve_position(index: LayoutIndex, line: int, column: int) -> int | None:
    """Screen position in layout coordinates to stream offset."""

    return index.offset_at(line, column)


class SelectionEngine:
    """At most one active selection for the chapter currently open."""

    def __init__(self, chapter: Chapter) -> None:
        self._chapter = chapter
        self._selection: Selection | None = None

    @property
    def chapter(self) -> Chapter:
        return self._chapter

    @property
    def selection(self) -> Selection | None:
        return self._selection

    @property
    def active(self) -> bool:
        return self._selection is not None

    def set_chapter(self, chapter: Chapter) -> None:
        self._chapter = chapter
        self._selection = None

    def _check(self, offset: int) -> int:
        if not self._chapter.stream:
            raise ValueError("cannot select in an empty chapter")
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        return min(offset, len(self._chapter.stream) - 1)

    def start(self, offset: int) -> Selection:
        offset = self._check(offset)
        self._selection = Selection(anchor=offset, cursor=offset)
        return self._selection

    def extend(self, offset: int) -> Selection:
        offset = self._check(offset)
        if self._selection is None:
            return self.start(offset)
        self._selection = Selection(anchor=self._selection.anchor, cursor=offset)
        return self._selection

    def select_range(self, start: int, end: int) -> Selection:
        self._check(start)
        if end > len(self._chapter.stream):
            raise ValueError(f"range end {end} is past the end of the chapter")
        self._selection = Selection.from_range(start, end)
        return self._selection

    def select_word(self, offset: int) -> Selection:
        """Select the word around ``offset``; punctuation and spaces select alone."""

        offset = self._check(offset)
        block = self._chapter.block_at(offset)
        if block is None or block.end <= block.start:
            return self.start(offset)

        text = self._chapter.stream[block.start : block.end]
        relative = offset - block.start
        for token in tokenize(text):
            if token.start <= relative < token.stop:
                if any(char.isalnum() for char in token.text):
                    return self.select_range(block.start + token.start, block.start + token.stop)
                break
        return self.start(offset)

    def select_paragraph(self, offset: int) -> Selection:
        offset = self._check(offset)
        block = self._chapter.block_at(offset)
        if block is None or block.end <= block.start:
            return self.start(offset)
        return self.select_range(block.start, block.end)

    def extend_by(self, delta: int) -> Selection | None:
        """Keyboard extension: move the cursor ``delta`` characters."""

        if self._selection is None:
            return None
        target = max(0, self._selection.cursor + delta)
        return self.extend(target)

    def clear(self) -> None:
        self._selection = None

    def text(self) -> str:
        if self._selection is None:
            return ""
        return self._selection.text(self._chapter)
