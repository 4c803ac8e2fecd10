"""Rectangular glyph grid with a baseline row, the unit of math composition."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class MathGrid:
    """A ``height`` x ``width`` block of single-column glyphs.

    ``baseline`` is the row that aligns with the surrounding text line.
    """

    rows: list[list[str]] = field(default_factory=lambda: [[]])
    baseline: int = 0

    @classmethod
    def text(cls, value: str) -> "MathGrid":
        return cls(rows=[list(value)], baseline=0)

    @classmethod
    def blank(cls, width: int, height: int, baseline: int = 0) -> "MathGrid":
        height = max(1, height)
        return cls(rows=[[" "] * width for _ in range(height)], baseline=min(baseline, height - 1))

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def height(self) -> int:
        return len(self.rows)

    @property
    def descent(self) -> int:
        """Rows below the baseline."""

        return self.height - self.baseline - 1

    def is_empty(self) -> bool:
        return self.width == 0

    def put(self, x: int, y: int, other: "MathGrid", *, transparent: bool = False) -> None:
        """Copy ``other`` into this grid with its top-left corner at (x, y)."""

        for row_index, row in enumerate(other.rows):
            target_y = y + row_index
            if not 0 <= target_y < self.height:
                continue
            for col_index, glyph in enumerate(row):
                target_x = x + col_index
                if not 0 <= target_x < self.width:
                    continue
                if transparent and glyph == " ":
                    continue
                self.rows[target_y][target_x] = glyph

    def set(self, x: int, y: int, glyph: str) -> None:
        if 0 <= y < self.height and 0 <= x < self.width:
            self.rows[y][x] = glyph

    def lines(self) -> list[str]:
        return ["".join(row).rstrip() for row in self.rows]

    def render(self) -> str:
        return "\n".join(self.lines())


def hconcat(grids: list[MathGrid]) -> MathGrid:
    """Place grids side by side, aligned on their baselines."""

    grids = [grid for grid in grids if not grid.is_empty()]
    if not grids:
        return MathGrid()
    if len(grids) == 1:
        return grids[0]

    above = max(grid.baseline for grid in grids)
    below = max(grid.descent for grid in grids)
    result = MathGrid.blank(sum(grid.width for grid in grids), above + below + 1, above)

    x = 0
    for grid in grids:
        result.put(x, above - grid.baseline, grid)
        x += grid.width
    return result


def centered_offset(outer: int, inner: int) -> int:
    return max(0, outer - inner) // 2
