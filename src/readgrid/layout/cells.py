"""Terminal cell primitives produced by the reflow engine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Role(str, Enum):
    """Semantic role of a cell; the renderer maps roles to theme colors."""

    BODY = "body"
    HEADING = "heading"
    RULE = "rule"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    LINK = "link"
    INLINE_CODE = "inline_code"
    CODE = "code"
    MATH = "math"
    TABLE_BORDER = "table_border"
    TABLE_HEADER = "table_header"
    IMAGE = "image"
    PLACEHOLDER = "placeholder"
    LITERAL = "literal"


@dataclass(frozen=True, slots=True)
class CellStyle:
    role: Role = Role.BODY
    bold: bool = False
    italic: bool = False
    underline: bool = False
    selected: bool = False
    annotated: bool = False
    search_hit: bool = False
    current_hit: bool = False

    def decorate(self, **flags: bool) -> "CellStyle":
        return replace(self, **flags)


BODY_STYLE = CellStyle()

# Second half of a double-width glyph.
CONTINUATION = ""


@dataclass(frozen=True, slots=True)
class Cell:
    glyph: str
    style: CellStyle = BODY_STYLE
    offset: int | None = None


@dataclass(frozen=True, slots=True)
class CodeLineRef:
    block_index: int
    line_index: int


@dataclass(frozen=True, slots=True)
class LayoutLine:
    cells: tuple[Cell, ...] = ()
    block_index: int | None = None
    code_line: CodeLineRef | None = None

    @property
    def width(self) -> int:
        return len(self.cells)

    def text(self) -> str:
        return "".join(cell.glyph for cell in self.cells)

    def offsets(self) -> list[int]:
        return [cell.offset for cell in self.cells if cell.offset is not None]

    def first_offset(self) -> int | None:
        for cell in self.cells:
            if cell.offset is not None:
                return cell.offset
        return None


def synthetic(glyphs: str, style: CellStyle = BODY_STYLE) -> list[Cell]:
    """Cells with no source offset (rules, borders, padding)."""

    return [Cell(glyph, style, None) for glyph in glyphs]


def blank_line(block_index: int | None = None) -> LayoutLine:
    return LayoutLine(cells=(), block_index=block_index)
