"""Canonical structural model of a chapter: blocks, inline spans and math trees."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Mapping, Union

import numpy as np


class MalformedContentError(ValueError):
    """Raised when a block or math node lacks fields required for layout."""


class InlineKind(str, Enum):
    TEXT = "text"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    LINK = "link"
    MATH = "math"
    CODE = "code"


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    CODE_BLOCK = "code_block"
    TABLE = "table"
    IMAGE = "image"
    MATH_BLOCK = "math_block"
    THEMATIC_BREAK = "thematic_break"


class MathKind(str, Enum):
    ROW = "row"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    OPERATOR = "operator"
    TEXT = "text"
    SPACE = "space"
    FRACTION = "fraction"
    SUPERSCRIPT = "superscript"
    SUBSCRIPT = "subscript"
    SUBSUP = "subsup"
    SQRT = "sqrt"
    ROOT = "root"
    FENCED = "fenced"
    UNDEROVER = "underover"
    TABLE = "table"
    TABLE_ROW = "table_row"
    TABLE_CELL = "table_cell"


LEAF_MATH_KINDS = frozenset(
    {MathKind.IDENTIFIER, MathKind.NUMBER, MathKind.OPERATOR, MathKind.TEXT, MathKind.SPACE}
)


@dataclass(frozen=True, slots=True)
class MathNode:
    """One node of a math expression tree.

    ``kind`` is normally a :class:`MathKind` value, but adapters may pass
    through element names they do not understand; those render as literal text.
    """

    kind: str
    text: str = ""
    children: tuple["MathNode", ...] = ()
    attrs: tuple[tuple[str, str], ...] = ()

    def attr(self, name: str, default: str | None = None) -> str | None:
        for key, value in self.attrs:
            if key == name:
                return value
        return default

    def literal_text(self) -> str:
        if not self.children:
            return self.text
        return self.text + "".join(child.literal_text() for child in self.children)


def _math_kind(node: MathNode) -> MathKind | None:
    try:
        return MathKind(node.kind)
    except ValueError:
        return None


def _grouped(node: MathNode) -> str:
    text = linearize_math(node)
    if _math_kind(node) in LEAF_MATH_KINDS or len(text) <= 1:
        return text
    if text.startswith("(") and text.endswith(")"):
        return text
    return f"({text})"


def linearize_math(node: MathNode) -> str:
    """Return the single-line text form a math tree contributes to the stream."""

    kind = _math_kind(node)
    children = node.children

    if kind in LEAF_MATH_KINDS:
        return node.text
    if kind is MathKind.ROW or kind is MathKind.TABLE_CELL:
        return "".join(linearize_math(child) for child in children)
    if kind is MathKind.FRACTION and len(children) == 2:
        return f"{_grouped(children[0])}/{_grouped(children[1])}"
    if kind is MathKind.SUPERSCRIPT and len(children) == 2:
        return f"{_grouped(children[0])}^{_grouped(children[1])}"
    if kind is MathKind.SUBSCRIPT and len(children) == 2:
        return f"{_grouped(children[0])}_{_grouped(children[1])}"
    if kind is MathKind.SUBSUP and len(children) == 3:
        return f"{_grouped(children[0])}_{_grouped(children[1])}^{_grouped(children[2])}"
    if kind is MathKind.SQRT:
        inner = "".join(linearize_math(child) for child in children)
        return f"√({inner})"
    if kind is MathKind.ROOT and len(children) == 2:
        return f"√[{linearize_math(children[1])}]({linearize_math(children[0])})"
    if kind is MathKind.FENCED:
        opener = node.attr("open", "(") or ""
        closer = node.attr("close", ")") or ""
        separator = node.attr("separators", ",") or ""
        joiner = separator[:1] + " " if separator else ""
        return opener + joiner.join(linearize_math(child) for child in children) + closer
    if kind is MathKind.UNDEROVER and children:
        base = _grouped(children[0])
        under = children[1] if len(children) > 1 else None
        over = children[2] if len(children) > 2 else None
        text = base
        if under is not None and linearize_math(under):
            text += f"_{_grouped(under)}"
        if over is not None and linearize_math(over):
            text += f"^{_grouped(over)}"
        return text
    if kind is MathKind.TABLE:
        rows = [linearize_math(row) for row in children]
        return "[" + "; ".join(rows) + "]"
    if kind is MathKind.TABLE_ROW:
        return ", ".join(linearize_math(cell) for cell in children)
    return node.literal_text()


@dataclass(frozen=True, slots=True)
class Inline:
    """A contiguous run of text inside a block, addressed in stream offsets."""

    kind: InlineKind
    text: str
    start: int
    end: int
    href: str | None = None
    math: MathNode | None = None


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    inlines: tuple[Inline, ...]
    start: int
    end: int
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.HEADING


@dataclass(frozen=True, slots=True)
class Paragraph:
    inlines: tuple[Inline, ...]
    start: int
    end: int
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.PARAGRAPH


@dataclass(frozen=True, slots=True)
class CodeBlock:
    lines: tuple[str, ...]
    start: int
    end: int
    language: str | None = None
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.CODE_BLOCK

    def line_start(self, line_index: int) -> int:
        """Stream offset of the first character of ``line_index``."""

        offset = self.start
        for line in self.lines[:line_index]:
            offset += len(line) + 1
        return offset


@dataclass(frozen=True, slots=True)
class TableCell:
    inlines: tuple[Inline, ...]
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class TableRow:
    cells: tuple[TableCell, ...]
    header: bool = False


@dataclass(frozen=True, slots=True)
class Table:
    rows: tuple[TableRow, ...]
    start: int
    end: int
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.TABLE


@dataclass(frozen=True, slots=True)
class Image:
    src: str
    start: int
    end: int
    alt: str = ""
    width_px: int | None = None
    height_px: int | None = None
    pixels: np.ndarray | None = field(default=None, compare=False, repr=False)
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.IMAGE


@dataclass(frozen=True, slots=True)
class MathBlock:
    math: MathNode | None
    text: str
    start: int
    end: int
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.MATH_BLOCK


@dataclass(frozen=True, slots=True)
class ThematicBreak:
    """A horizontal rule; it holds no text, so ``start == end``."""

    start: int
    end: int
    anchor: str | None = None
    kind: ClassVar[BlockKind] = BlockKind.THEMATIC_BREAK


Block = Union[Heading, Paragraph, CodeBlock, Table, Image, MathBlock, ThematicBreak]


def block_inlines(block: Block) -> tuple[Inline, ...]:
    """Return every inline span of a block in document order."""

    if isinstance(block, (Heading, Paragraph)):
        return block.inlines
    if isinstance(block, Table):
        return tuple(inline for row in block.rows for cell in row.cells for inline in cell.inlines)
    return ()


def block_text(block: Block) -> str:
    """Best-effort literal text of a block, used for degraded rendering."""

    if isinstance(block, (Heading, Paragraph)):
        return "".join(inline.text for inline in block.inlines)
    if isinstance(block, CodeBlock):
        return "\n".join(block.lines)
    if isinstance(block, Table):
        return "\n".join(
            "\t".join("".join(inline.text for inline in cell.inlines) for cell in row.cells)
            for row in block.rows
        )
    if isinstance(block, Image):
        return block.alt
    if isinstance(block, MathBlock):
        return block.text
    return ""


def validate_block(block: Block) -> None:
    """Raise :class:`MalformedContentError` when a block cannot be laid out as declared."""

    if block.end < block.start:
        raise MalformedContentError(f"{block.kind.value} block has inverted range")

    if isinstance(block, Heading) and not 1 <= block.level <= 6:
        raise MalformedContentError(f"heading level must be 1..6, got {block.level}")
    if isinstance(block, Table):
        if not block.rows or not any(row.cells for row in block.rows):
            raise MalformedContentError("table has no cells")
    if isinstance(block, Image) and not block.src:
        raise MalformedContentError("image has no source")
    if isinstance(block, MathBlock) and block.math is None:
        raise MalformedContentError("math block has no expression tree")
    if isinstance(block, ThematicBreak) and block.end != block.start:
        raise MalformedContentError("thematic break cannot hold text")

    cursor = block.start
    for inline in block_inlines(block):
        if inline.start < cursor or inline.end < inline.start or inline.end > block.end:
            raise MalformedContentError(f"inline span [{inline.start}, {inline.end}) is out of order")
        if inline.kind is InlineKind.LINK and not inline.href:
            raise MalformedContentError("link span has no target")
        cursor = inline.end


@dataclass(frozen=True, slots=True)
class Chapter:
    """Immutable chapter content plus its canonical stream."""

    chapter_id: str
    blocks: tuple[Block, ...]
    stream: str
    title: str | None = None
    anchors: Mapping[str, int] = field(default_factory=dict)
    _starts: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_starts", tuple(block.start for block in self.blocks))

    def text(self, start: int, end: int) -> str:
        return self.stream[max(0, start) : max(0, end)]

    def block_index_at(self, offset: int) -> int | None:
        """Index of the block whose range contains ``offset`` (or the block ending there)."""

        if not self.blocks or offset < 0:
            return None
        index = bisect_right(self._starts, offset) - 1
        if index < 0:
            return None
        block = self.blocks[index]
        if block.start <= offset < block.end or offset == block.start:
            return index
        if offset == block.end and index + 1 >= len(self.blocks):
            return index
        return None

    def block_at(self, offset: int) -> Block | None:
        index = self.block_index_at(offset)
        return None if index is None else self.blocks[index]

    def inline_at(self, offset: int) -> Inline | None:
        block = self.block_at(offset)
        if block is None:
            return None
        for inline in block_inlines(block):
            if inline.start <= offset < inline.end:
                return inline
        return None

    def link_at(self, offset: int) -> Inline | None:
        inline = self.inline_at(offset)
        if inline is not None and inline.kind is InlineKind.LINK:
            return inline
        return None

    def anchor_offset(self, name: str) -> int | None:
        return self.anchors.get(name.lstrip("#"))
