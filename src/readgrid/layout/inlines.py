"""Convert inline spans into glyph runs, expanding inline math."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from readgrid.content.models import Inline, InlineKind
from readgrid.layout.cells import CellStyle, Role
from readgrid.layout.config import StyleConfig
from readgrid.layout.wrap import Glyph, glyphs_for_text
from readgrid.mathrender.grid import MathGrid
from readgrid.mathrender.renderer import MathRenderer


@dataclass(slots=True)
class TallMath:
    """Inline math taller than one row; it interrupts the text flow."""

    grid: MathGrid
    offset: int
    style: CellStyle


Segment = Union[list[Glyph], TallMath]


def inline_style(kind: InlineKind, base: CellStyle) -> CellStyle:
    if kind is InlineKind.EMPHASIS:
        return base.decorate(italic=True)
    if kind is InlineKind.STRONG:
        return base.decorate(bold=True)
    if kind is InlineKind.LINK:
        return CellStyle(role=Role.LINK, bold=base.bold, underline=True)
    if kind is InlineKind.CODE:
        return CellStyle(role=Role.INLINE_CODE, bold=base.bold)
    if kind is InlineKind.MATH:
        return CellStyle(role=Role.MATH, bold=base.bold)
    return base


def math_row_glyphs(row: list[str], offset: int, style: CellStyle) -> list[Glyph]:
    """Glyphs for one row of a math grid; only the first visible glyph carries ``offset``."""

    glyphs: list[Glyph] = []
    anchored = False
    for char in row:
        glyph_offset = None
        if not anchored and not char.isspace():
            glyph_offset = offset
            anchored = True
        glyphs.append(Glyph(char, glyph_offset, style, 1, joined=True))
    return glyphs


def segments_for_inlines(
    inlines: tuple[Inline, ...],
    base: CellStyle,
    config: StyleConfig,
    renderer: MathRenderer,
    *,
    uppercase: bool = False,
    allow_tall_math: bool = True,
) -> list[Segment]:
    """Glyph runs for a block's inlines, split around tall inline math."""

    segments: list[Segment] = []
    current: list[Glyph] = []

    for inline in inlines:
        style = inline_style(inline.kind, base)

        if inline.kind is InlineKind.MATH and inline.math is not None:
            grid = renderer.render(inline.math)
            if grid.height == 1:
                current.extend(math_row_glyphs(grid.rows[0], inline.start, style))
                continue
            if allow_tall_math:
                segments.append(current)
                segments.append(TallMath(grid=grid, offset=inline.start, style=style))
                current = []
                continue

        glyphs = glyphs_for_text(inline.text, inline.start, style, tab_width=config.tab_width)
        if uppercase:
            for glyph in glyphs:
                upper = glyph.char.upper()
                if len(upper) == len(glyph.char):
                    glyph.char = upper
        current.extend(glyphs)

    segments.append(current)
    return segments
