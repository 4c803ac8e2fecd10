"""Reflow engine: a pure function from chapter content and width to layout lines."""

from __future__ import annotations

import logging
from typing import Callable

from readgrid.content.models import (
    Block,
    BlockKind,
    Chapter,
    CodeBlock,
    Heading,
    Image,
    MalformedContentError,
    MathBlock,
    Paragraph,
    Table,
    ThematicBreak,
    block_text,
    validate_block,
)
from readgrid.layout.cells import CellStyle, CodeLineRef, LayoutLine, Role, blank_line, synthetic
from readgrid.layout.config import MIN_CONTENT_WIDTH, StyleConfig
from readgrid.layout.images import layout_image
from readgrid.layout.inlines import TallMath, math_row_glyphs, segments_for_inlines
from readgrid.layout.tables import layout_table
from readgrid.layout.wrap import Glyph, glyphs_for_text, glyphs_to_cells, wrap_glyphs
from readgrid.mathrender.grid import MathGrid
from readgrid.mathrender.renderer import MathRenderer


logger = logging.getLogger(__name__)

HEADING_RULES = {1: "═", 2: "─"}
CODE_STYLE = CellStyle(role=Role.CODE)
MATH_STYLE = CellStyle(role=Role.MATH)
LITERAL_STYLE = CellStyle(role=Role.LITERAL)
RULE_STYLE = CellStyle(role=Role.RULE)


def _heading_style(level: int) -> CellStyle:
    return CellStyle(role=Role.HEADING, bold=True, underline=level in (3, 4))


def _glyph_lines(glyphs: list[Glyph], width: int, style: StyleConfig, block_index: int) -> list[LayoutLine]:
    return [
        LayoutLine(cells=tuple(glyphs_to_cells(line)), block_index=block_index)
        for line in wrap_glyphs(glyphs, width, style.wrap_mode)
    ]


def _math_lines(grid: MathGrid, offset: int, style: CellStyle, width: int, block_index: int, *, center: bool) -> list[LayoutLine]:
    indent = (width - grid.width) // 2 if center and grid.width < width else 0
    lines: list[LayoutLine] = []
    for row_index, row in enumerate(grid.rows):
        if row_index == grid.baseline:
            glyphs = math_row_glyphs(row, offset, style)
        else:
            glyphs = [Glyph(char, None, style, 1, joined=True) for char in row]
        cells = synthetic(" " * indent) + glyphs_to_cells(glyphs)
        lines.append(LayoutLine(cells=tuple(cells[:width]), block_index=block_index))
    return lines


class Reflow:
    """Lay out one chapter at a fixed width and style."""

    def __init__(self, chapter: Chapter, width: int, style: StyleConfig) -> None:
        if width < MIN_CONTENT_WIDTH:
            logger.debug("Width %d below minimum, clamped to %d", width, MIN_CONTENT_WIDTH)
        self._chapter = chapter
        self._width = max(MIN_CONTENT_WIDTH, width)
        self._style = style
        self._math = MathRenderer(use_unicode=style.unicode_math)
        self._layouts: dict[BlockKind, Callable[[Block, int], list[LayoutLine]]] = {
            BlockKind.HEADING: self._heading,
            BlockKind.PARAGRAPH: self._paragraph,
            BlockKind.CODE_BLOCK: self._code_block,
            BlockKind.TABLE: self._table,
            BlockKind.IMAGE: self._image,
            BlockKind.MATH_BLOCK: self._math_block,
            BlockKind.THEMATIC_BREAK: self._thematic_break,
        }

    @property
    def width(self) -> int:
        return self._width

    def run(self) -> tuple[LayoutLine, ...]:
        lines: list[LayoutLine] = []
        for index, block in enumerate(self._chapter.blocks):
            if index:
                lines.append(blank_line())
            lines.extend(self.layout_block(block, index))
        return tuple(lines)

    def layout_block(self, block: Block, index: int) -> list[LayoutLine]:
        layout = self._layouts.get(getattr(block, "kind", None))
        if layout is None:
            logger.warning("Unknown block type %s rendered as literal text", type(block).__name__)
            return self._literal(block, index)
        try:
            validate_block(block)
            return layout(block, index)
        except MalformedContentError as exc:
            logger.warning("Malformed %s block %d rendered as literal text: %s", block.kind.value, index, exc)
            return self._literal(block, index)

    def _flow(self, segments: list, index: int) -> list[LayoutLine]:
        lines: list[LayoutLine] = []
        for segment in segments:
            if isinstance(segment, TallMath):
                lines.extend(
                    _math_lines(segment.grid, segment.offset, segment.style, self._width, index, center=False)
                )
            elif segment:
                lines.extend(_glyph_lines(segment, self._width, self._style, index))
        if not lines:
            lines.append(blank_line(index))
        return lines

    def _heading(self, block: Heading, index: int) -> list[LayoutLine]:
        segments = segments_for_inlines(
            block.inlines,
            _heading_style(block.level),
            self._style,
            self._math,
            uppercase=self._style.uppercase_h1 and block.level == 1,
        )
        lines = self._flow(segments, index)
        rule = HEADING_RULES.get(block.level)
        if rule:
            lines.append(LayoutLine(cells=tuple(synthetic(rule * self._width, RULE_STYLE)), block_index=index))
        return lines

    def _paragraph(self, block: Paragraph, index: int) -> list[LayoutLine]:
        segments = segments_for_inlines(block.inlines, CellStyle(), self._style, self._math)
        return self._flow(segments, index)

    def _code_block(self, block: CodeBlock, index: int) -> list[LayoutLine]:
        lines: list[LayoutLine] = []
        offset = block.start
        for line_index, line in enumerate(block.lines):
            glyphs = glyphs_for_text(line, offset, CODE_STYLE, tab_width=self._style.tab_width)
            cells = glyphs_to_cells(glyphs)[: self._width]
            lines.append(
                LayoutLine(cells=tuple(cells), block_index=index, code_line=CodeLineRef(index, line_index))
            )
            offset += len(line) + 1
        return lines

    def _table(self, block: Table, index: int) -> list[LayoutLine]:
        return layout_table(block, index, self._width, self._style, self._math)

    def _image(self, block: Image, index: int) -> list[LayoutLine]:
        return layout_image(block, index, self._width)

    def _math_block(self, block: MathBlock, index: int) -> list[LayoutLine]:
        grid = self._math.render(block.math)
        return _math_lines(grid, block.start, MATH_STYLE, self._width, index, center=True)

    def _thematic_break(self, block: ThematicBreak, index: int) -> list[LayoutLine]:
        return [LayoutLine(cells=tuple(synthetic("─" * self._width, RULE_STYLE)), block_index=index)]

    def _literal(self, block: Block, index: int) -> list[LayoutLine]:
        start = getattr(block, "start", None)
        end = getattr(block, "end", None)
        stream = self._chapter.stream
        if isinstance(start, int) and isinstance(end, int) and 0 <= start < end <= len(stream):
            glyphs = glyphs_for_text(stream[start:end], start, LITERAL_STYLE, tab_width=self._style.tab_width)
        else:
            text = block_text(block) if hasattr(block, "kind") else str(block)
            glyphs = glyphs_for_text(text, None, LITERAL_STYLE, tab_width=self._style.tab_width)
        return _glyph_lines(glyphs, self._width, self._style, index)


def reflow(chapter: Chapter, width: int, style: StyleConfig | None = None) -> tuple[LayoutLine, ...]:
    """Lay out ``chapter`` into lines at most ``width`` columns wide.

    Identical inputs always produce identical lines. ``width`` is the content
    width after margins; values below ``MIN_CONTENT_WIDTH`` are clamped.
    """

    return Reflow(chapter, width, style or StyleConfig()).run()


def covered_offsets(lines: tuple[LayoutLine, ...] | list[LayoutLine]) -> list[int]:
    """Every source offset in line-then-column order."""

    return [offset for line in lines for offset in line.offsets()]
