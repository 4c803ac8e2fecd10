"""Math sub-renderer: compose a math tree into a baseline-aligned glyph grid."""

from __future__ import annotations

import logging
from typing import Callable

from readgrid.content.models import MalformedContentError, MathKind, MathNode
from readgrid.mathrender.grid import MathGrid, centered_offset, hconcat
from readgrid.mathrender.scripts import to_subscript, to_superscript


logger = logging.getLogger(__name__)

FRACTION_BAR = "─"
RADICAL = "√"
RADICAL_STEM = "│"
OVERLINE = "_"

BINARY_OPERATORS = frozenset("+-−=<>≤≥≠≈≡→←⇒⇔↦×·±∓∈∉⊂⊆∪∩÷∼")

# (top, middle, bottom, center) pieces for delimiters taller than one row.
TALL_DELIMITERS: dict[str, tuple[str, str, str, str]] = {
    "(": ("⎛", "⎜", "⎝", "⎜"),
    ")": ("⎞", "⎟", "⎠", "⎟"),
    "[": ("⎡", "⎢", "⎣", "⎢"),
    "]": ("⎤", "⎥", "⎦", "⎥"),
    "{": ("⎧", "⎪", "⎩", "⎨"),
    "}": ("⎫", "⎪", "⎭", "⎬"),
    "|": ("│", "│", "│", "│"),
    "‖": ("║", "║", "║", "║"),
}


def _expect(node: MathNode, count: int) -> tuple[MathNode, ...]:
    if len(node.children) != count:
        raise MalformedContentError(
            f"{node.kind} expects {count} children, got {len(node.children)}"
        )
    return node.children


def tall_delimiter(char: str, height: int) -> MathGrid:
    """A one-column grid drawing ``char`` stretched over ``height`` rows."""

    if height <= 1:
        return MathGrid.text(char)
    if char not in TALL_DELIMITERS:
        return MathGrid(rows=[[char] for _ in range(height)], baseline=height // 2)
    top, middle, bottom, center = TALL_DELIMITERS[char]
    column = [top] + [middle] * (height - 2) + [bottom]
    if height >= 3 and center != middle:
        column[height // 2] = center
    return MathGrid(rows=[[glyph] for glyph in column], baseline=height // 2)


class MathRenderer:
    """Recursive layout of :class:`MathNode` trees.

    A node whose kind is unknown, or whose children do not match its kind,
    renders as its literal text on a single row; siblings are unaffected.
    """

    def __init__(self, *, use_unicode: bool = True) -> None:
        self._use_unicode = use_unicode
        self._rules: dict[MathKind, Callable[[MathNode], MathGrid]] = {
            MathKind.ROW: self._row,
            MathKind.IDENTIFIER: self._leaf,
            MathKind.NUMBER: self._leaf,
            MathKind.OPERATOR: self._leaf,
            MathKind.TEXT: self._leaf,
            MathKind.SPACE: self._space,
            MathKind.FRACTION: self._fraction,
            MathKind.SUPERSCRIPT: self._superscript,
            MathKind.SUBSCRIPT: self._subscript,
            MathKind.SUBSUP: self._subsup,
            MathKind.SQRT: self._sqrt,
            MathKind.ROOT: self._root,
            MathKind.FENCED: self._fenced,
            MathKind.UNDEROVER: self._underover,
            MathKind.TABLE: self._table,
            MathKind.TABLE_ROW: self._row,
            MathKind.TABLE_CELL: self._row,
        }

    def render(self, node: MathNode) -> MathGrid:
        try:
            kind = MathKind(node.kind)
        except ValueError:
            logger.debug("Unsupported math node %r rendered as literal text", node.kind)
            return MathGrid.text(node.literal_text())

        try:
            return self._rules[kind](node)
        except MalformedContentError as exc:
            logger.warning("Malformed math node rendered as literal text: %s", exc)
            return MathGrid.text(node.literal_text())

    def _leaf(self, node: MathNode) -> MathGrid:
        return MathGrid.text(node.text)

    def _space(self, node: MathNode) -> MathGrid:
        return MathGrid.text(" " if node.text == "" else node.text)

    def _row(self, node: MathNode) -> MathGrid:
        grids: list[MathGrid] = []
        for index, child in enumerate(node.children):
            if child.kind == MathKind.OPERATOR.value:
                symbol = child.text.strip()
                if symbol in BINARY_OPERATORS and index > 0:
                    grids.append(MathGrid.text(f" {symbol} "))
                    continue
                if symbol == ",":
                    grids.append(MathGrid.text(", "))
                    continue
            grids.append(self.render(child))
        return hconcat(grids)

    def _fraction(self, node: MathNode) -> MathGrid:
        top, bottom = _expect(node, 2)
        numerator = self.render(top)
        denominator = self.render(bottom)
        width = max(numerator.width, denominator.width)

        if (node.attr("linethickness") or "").strip() in ("0", "0pt", "0px"):
            result = MathGrid.blank(width, numerator.height + denominator.height, numerator.height - 1)
            result.put(centered_offset(width, numerator.width), 0, numerator)
            result.put(centered_offset(width, denominator.width), numerator.height, denominator)
            return result

        bar_row = numerator.height
        result = MathGrid.blank(width, numerator.height + 1 + denominator.height, bar_row)
        result.put(centered_offset(width, numerator.width), 0, numerator)
        for x in range(width):
            result.set(x, bar_row, FRACTION_BAR)
        result.put(centered_offset(width, denominator.width), bar_row + 1, denominator)
        return result

    def _flat_text(self, grid: MathGrid) -> str | None:
        if grid.height != 1:
            return None
        return "".join(grid.rows[0]).strip()

    def _superscript(self, node: MathNode) -> MathGrid:
        base_node, exponent_node = _expect(node, 2)
        base = self.render(base_node)
        exponent = self.render(exponent_node)

        if self._use_unicode and base.height == 1:
            flat = self._flat_text(exponent)
            converted = to_superscript(flat) if flat else None
            if converted is not None:
                return hconcat([base, MathGrid.text(converted)])

        result = MathGrid.blank(base.width + exponent.width, exponent.height + base.height, exponent.height + base.baseline)
        result.put(0, exponent.height, base)
        result.put(base.width, 0, exponent)
        return result

    def _subscript(self, node: MathNode) -> MathGrid:
        base_node, index_node = _expect(node, 2)
        base = self.render(base_node)
        index = self.render(index_node)

        if self._use_unicode and base.height == 1:
            flat = self._flat_text(index)
            converted = to_subscript(flat) if flat else None
            if converted is not None:
                return hconcat([base, MathGrid.text(converted)])

        result = MathGrid.blank(base.width + index.width, base.height + index.height, base.baseline)
        result.put(0, 0, base)
        result.put(base.width, base.height, index)
        return result

    def _subsup(self, node: MathNode) -> MathGrid:
        base_node, index_node, exponent_node = _expect(node, 3)
        base = self.render(base_node)
        index = self.render(index_node)
        exponent = self.render(exponent_node)

        if self._use_unicode and base.height == 1:
            flat_index = self._flat_text(index)
            flat_exponent = self._flat_text(exponent)
            sub = to_subscript(flat_index) if flat_index else None
            sup = to_superscript(flat_exponent) if flat_exponent else None
            if sub is not None and sup is not None:
                return hconcat([base, MathGrid.text(sub + sup)])

        script_width = max(index.width, exponent.width)
        height = exponent.height + base.height + index.height
        result = MathGrid.blank(base.width + script_width, height, exponent.height + base.baseline)
        result.put(0, exponent.height, base)
        result.put(base.width, 0, exponent)
        result.put(base.width, exponent.height + base.height, index)
        return result

    def _radical(self, inner: MathGrid) -> MathGrid:
        result = MathGrid.blank(inner.width + 1, inner.height + 1, inner.baseline + 1)
        for x in range(1, inner.width + 1):
            result.set(x, 0, OVERLINE)
        for y in range(1, result.height - 1):
            result.set(0, y, RADICAL_STEM)
        result.set(0, result.height - 1, RADICAL)
        result.put(1, 1, inner)
        return result

    def _sqrt(self, node: MathNode) -> MathGrid:
        if not node.children:
            return MathGrid.text(RADICAL)
        inner = hconcat([self.render(child) for child in node.children])
        return self._radical(inner)

    def _root(self, node: MathNode) -> MathGrid:
        base_node, index_node = _expect(node, 2)
        radical = self._radical(self.render(base_node))
        index = self.render(index_node)

        shift = max(0, index.height - (radical.height - 1))
        result = MathGrid.blank(index.width + radical.width, radical.height + shift, radical.baseline + shift)
        result.put(index.width, shift, radical)
        result.put(0, shift + radical.height - 1 - index.height, index)
        return result

    def _fenced(self, node: MathNode) -> MathGrid:
        opener = node.attr("open", "(") or ""
        closer = node.attr("close", ")") or ""
        separator = node.attr("separators", ",") or ""

        parts: list[MathGrid] = []
        for index, child in enumerate(node.children):
            if index and separator:
                parts.append(MathGrid.text(separator[:1] + " "))
            parts.append(self.render(child))
        content = hconcat(parts)

        if content.height == 1:
            return hconcat([MathGrid.text(opener), content, MathGrid.text(closer)])

        left = tall_delimiter(opener, content.height) if opener else MathGrid()
        right = tall_delimiter(closer, content.height) if closer else MathGrid()
        left.baseline = content.baseline
        right.baseline = content.baseline
        return hconcat([left, content, right])

    def _underover(self, node: MathNode) -> MathGrid:
        if not 2 <= len(node.children) <= 3:
            raise MalformedContentError("underover expects a base plus under and/or over scripts")
        base = self.render(node.children[0])
        under = self.render(node.children[1])
        over = self.render(node.children[2]) if len(node.children) == 3 else MathGrid()

        over_height = 0 if over.is_empty() else over.height
        under_height = 0 if under.is_empty() else under.height
        width = max(base.width, under.width, over.width)
        result = MathGrid.blank(width, over_height + base.height + under_height, over_height + base.baseline)
        if over_height:
            result.put(centered_offset(width, over.width), 0, over)
        result.put(centered_offset(width, base.width), over_height, base)
        if under_height:
            result.put(centered_offset(width, under.width), over_height + base.height, under)
        return result

    def _table(self, node: MathNode) -> MathGrid:
        rows = [[self.render(cell) for cell in row.children] for row in node.children]
        rows = [row for row in rows if row]
        if not rows:
            return MathGrid()

        columns = max(len(row) for row in rows)
        widths = [0] * columns
        for row in rows:
            for column, cell in enumerate(row):
                widths[column] = max(widths[column], cell.width)

        line_grids: list[MathGrid] = []
        for row in rows:
            padded: list[MathGrid] = []
            for column in range(columns):
                cell = row[column] if column < len(row) else MathGrid()
                slot = MathGrid.blank(widths[column], max(1, cell.height), cell.baseline)
                slot.put(centered_offset(widths[column], cell.width), 0, cell)
                padded.append(slot)
                if column < columns - 1:
                    padded.append(MathGrid.text("  "))
            line_grids.append(hconcat(padded))

        total_width = max(grid.width for grid in line_grids)
        height = sum(grid.height for grid in line_grids)
        result = MathGrid.blank(total_width, height, (height - 1) // 2)
        y = 0
        for grid in line_grids:
            result.put(0, y, grid)
            y += grid.height
        return result


def render_math(node: MathNode, *, use_unicode: bool = True) -> MathGrid:
    """Render ``node`` into a grid; never raises for malformed content."""

    return MathRenderer(use_unicode=use_unicode).render(node)
