"""Lookups between stream offsets and (line, column) positions of a layout."""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from typing import Sequence

from readgrid.layout.cells import LayoutLine


class LayoutIndex:
    """Bisect-backed index over the offset-bearing cells of a layout.

    Two sorted views are kept: cells by offset, for offset to position
    lookups, and cells by screen position, for snapping clicks. They differ
    only inside wrapped table rows, where a later line of one column can hold
    earlier text than the line beside it.
    """

    def __init__(self, lines: Sequence[LayoutLine]) -> None:
        self._lines = tuple(lines)
        self._positions: list[tuple[int, int]] = []
        self._screen_offsets: list[int] = []
        for line_no, line in enumerate(self._lines):
            for column, cell in enumerate(line.cells):
                if cell.offset is not None:
                    self._positions.append((line_no, column))
                    self._screen_offsets.append(cell.offset)

        by_offset = sorted(zip(self._screen_offsets, self._positions))
        self._offsets = [offset for offset, _ in by_offset]
        self._offset_positions = [position for _, position in by_offset]

    @property
    def lines(self) -> tuple[LayoutLine, ...]:
        return self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._offsets

    def position_of(self, offset: int) -> tuple[int, int] | None:
        """Position of ``offset``, or of the nearest laid-out offset before it."""

        if not self._offsets:
            return None
        index = bisect_right(self._offsets, offset) - 1
        if index < 0:
            index = 0
        return self._offset_positions[index]

    def line_of(self, offset: int) -> int | None:
        position = self.position_of(offset)
        return None if position is None else position[0]

    def offset_at(self, line: int, column: int) -> int | None:
        """Resolve a screen cell to a stream offset.

        Cells without an offset snap to the nearest preceding offset-bearing
        cell on screen; positions before the first such cell snap forward to it.
        """

        if not self._offsets:
            return None
        line = max(0, min(line, len(self._lines) - 1))
        column = max(0, column)

        cells = self._lines[line].cells
        if column < len(cells) and cells[column].offset is not None:
            return cells[column].offset

        index = bisect_right(self._positions, (line, column)) - 1
        if index < 0:
            return self._screen_offsets[0]
        return self._screen_offsets[index]

    def offsets_between(self, start: int, end: int) -> list[tuple[int, int]]:
        """Positions of laid-out offsets in ``[start, end)``, in offset order."""

        left = bisect_left(self._offsets, start)
        right = bisect_left(self._offsets, end)
        return self._offset_positions[left:right]

    def first_offset_on_or_after(self, line: int) -> int | None:
        """Smallest offset on the first offset-bearing line at or after ``line``."""

        index = bisect_left(self._positions, (line, 0))
        if index >= len(self._positions):
            return None
        found = self._positions[index][0]
        return min(cell.offset for cell in self._lines[found].cells if cell.offset is not None)
