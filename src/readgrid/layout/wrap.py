"""Offset-tagged glyph runs and greedy line wrapping."""

from __future__ import annotations

from dataclasses import dataclass
import unicodedata

from readgrid.layout.cells import BODY_STYLE, CONTINUATION, Cell, CellStyle
from readgrid.layout.config import WrapMode


@dataclass(slots=True)
class Glyph:
    """One displayed character before it is placed on a line.

    ``joined`` glyphs never start or end a break opportunity; inline math uses
    it so spaces inside an expression do not split it across lines.
    """

    char: str
    offset: int | None
    style: CellStyle = BODY_STYLE
    width: int = 1
    joined: bool = False

    @property
    def is_space(self) -> bool:
        return not self.joined and self.char.isspace()


def char_width(char: str) -> int:
    """Terminal column width of a single code point."""

    if not char:
        return 0
    if unicodedata.combining(char) or unicodedata.category(char) in ("Mn", "Me", "Cf"):
        return 0
    if unicodedata.east_asian_width(char) in ("W", "F"):
        return 2
    return 1


def glyphs_for_text(
    text: str,
    start_offset: int | None,
    style: CellStyle = BODY_STYLE,
    *,
    tab_width: int = 4,
) -> list[Glyph]:
    """Expand text into glyphs, collapsing zero-width marks into the previous glyph."""

    glyphs: list[Glyph] = []
    for index, char in enumerate(text):
        offset = None if start_offset is None else start_offset + index
        if char == "\t":
            glyphs.append(Glyph(" ", offset, style))
            glyphs.extend(Glyph(" ", None, style) for _ in range(tab_width - 1))
            continue
        if char in ("\n", "\r"):
            glyphs.append(Glyph(" ", offset, style))
            continue
        width = char_width(char)
        if width == 0:
            if glyphs:
                glyphs[-1].char += char
            continue
        glyphs.append(Glyph(char, offset, style, width))
    return glyphs


def glyph_width(glyphs: list[Glyph]) -> int:
    return sum(glyph.width for glyph in glyphs)


def _tokens(glyphs: list[Glyph]) -> list[tuple[bool, list[Glyph]]]:
    tokens: list[tuple[bool, list[Glyph]]] = []
    for glyph in glyphs:
        space = glyph.is_space
        if tokens and tokens[-1][0] == space:
            tokens[-1][1].append(glyph)
        else:
            tokens.append((space, [glyph]))
    return tokens


def _hard_split(word: list[Glyph], width: int) -> list[list[Glyph]]:
    chunks: list[list[Glyph]] = []
    current: list[Glyph] = []
    used = 0
    for glyph in word:
        if current and used + glyph.width > width:
            chunks.append(current)
            current = []
            used = 0
        current.append(glyph)
        used += glyph.width
    if current:
        chunks.append(current)
    return chunks


def _wrap_words(glyphs: list[Glyph], width: int) -> list[list[Glyph]]:
    lines: list[list[Glyph]] = []
    current: list[Glyph] = []
    used = 0
    pending_space: Glyph | None = None

    for is_space, token in _tokens(glyphs):
        if is_space:
            if current:
                pending_space = token[0]
            continue

        word_width = glyph_width(token)
        space_width = pending_space.width if current and pending_space is not None else 0

        if current and used + space_width + word_width <= width:
            if pending_space is not None:
                current.append(pending_space)
            current.extend(token)
            used += space_width + word_width
            pending_space = None
            continue

        if current:
            lines.append(current)
        current = []
        used = 0
        pending_space = None

        if word_width > width:
            chunks = _hard_split(token, width)
            lines.extend(chunks[:-1])
            current = list(chunks[-1])
        else:
            current = list(token)
        used = glyph_width(current)

    if current or not lines:
        lines.append(current)
    return lines


def _wrap_chars(glyphs: list[Glyph], width: int) -> list[list[Glyph]]:
    lines: list[list[Glyph]] = []
    current: list[Glyph] = []
    used = 0
    for glyph in glyphs:
        if not current and glyph.is_space and lines:
            continue
        if current and used + glyph.width > width:
            lines.append(current)
            current = []
            used = 0
            if glyph.is_space:
                continue
        current.append(glyph)
        used += glyph.width
    if current or not lines:
        lines.append(current)
    return lines


def wrap_glyphs(glyphs: list[Glyph], width: int, mode: WrapMode = WrapMode.WORD) -> list[list[Glyph]]:
    """Break glyphs into lines no wider than ``width`` columns.

    Word mode is greedy with no hyphenation: a word that cannot fit on an
    empty line is split at the column boundary. Spaces at a break are dropped.
    """

    width = max(1, width)
    if mode is WrapMode.CHAR:
        return _wrap_chars(glyphs, width)
    return _wrap_words(glyphs, width)


def glyphs_to_cells(glyphs: list[Glyph]) -> list[Cell]:
    cells: list[Cell] = []
    for glyph in glyphs:
        cells.append(Cell(glyph.char, glyph.style, glyph.offset))
        if glyph.width == 2:
            cells.append(Cell(CONTINUATION, glyph.style, None))
    return cells
