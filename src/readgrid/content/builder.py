"""Chapter assembly with deterministic canonical-stream offsets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from readgrid.content.models import (
    Block,
    Chapter,
    CodeBlock,
    Heading,
    Image,
    Inline,
    InlineKind,
    MathBlock,
    MathNode,
    Paragraph,
    Table,
    TableCell,
    TableRow,
    ThematicBreak,
    linearize_math,
)


BLOCK_SEPARATOR = "\n"
CELL_SEPARATOR = "\t"
ROW_SEPARATOR = "\n"


@dataclass(frozen=True, slots=True)
class Run:
    """Inline content before offsets are assigned."""

    kind: InlineKind
    text: str
    href: str | None = None
    math: MathNode | None = None


def text(value: str) -> Run:
    return Run(InlineKind.TEXT, value)


def emphasis(value: str) -> Run:
    return Run(InlineKind.EMPHASIS, value)


def strong(value: str) -> Run:
    return Run(InlineKind.STRONG, value)


def code(value: str) -> Run:
    return Run(InlineKind.CODE, value)


def link(value: str, href: str) -> Run:
    return Run(InlineKind.LINK, value, href=href)


def math(node: MathNode) -> Run:
    return Run(InlineKind.MATH, linearize_math(node), math=node)


RunsLike = Union[str, Sequence[Run]]


def _as_runs(content: RunsLike) -> list[Run]:
    if isinstance(content, str):
        return [text(content)] if content else []
    return [run for run in content if run.text]


class ChapterBuilder:
    """Append blocks in reading order and produce an immutable :class:`Chapter`.

    Blocks are separated by a single newline in the canonical stream; table
    cells by a tab and table rows by a newline. Separators belong to no span.
    """

    def __init__(self, chapter_id: str, *, title: str | None = None) -> None:
        if not chapter_id:
            raise ValueError("chapter_id cannot be empty")
        self._chapter_id = chapter_id
        self._title = title
        self._parts: list[str] = []
        self._length = 0
        self._blocks: list[Block] = []
        self._anchors: dict[str, int] = {}
        self._pending_anchors: list[str] = []

    @property
    def offset(self) -> int:
        return self._length

    def _append(self, value: str) -> None:
        self._parts.append(value)
        self._length += len(value)

    def _begin_block(self) -> int:
        if self._blocks:
            self._append(BLOCK_SEPARATOR)
        start = self._length
        for name in self._pending_anchors:
            self._anchors.setdefault(name, start)
        self._pending_anchors.clear()
        return start

    def _place_runs(self, runs: list[Run]) -> tuple[Inline, ...]:
        inlines: list[Inline] = []
        for run in runs:
            start = self._length
            self._append(run.text)
            inlines.append(
                Inline(kind=run.kind, text=run.text, start=start, end=self._length, href=run.href, math=run.math)
            )
        return tuple(inlines)

    def anchor(self, name: str) -> "ChapterBuilder":
        """Register ``name`` at the start of the next block."""

        if name:
            self._pending_anchors.append(name.lstrip("#"))
        return self

    def anchor_here(self, name: str) -> "ChapterBuilder":
        """Register ``name`` at the current stream position."""

        if name:
            self._anchors.setdefault(name.lstrip("#"), self._length)
        return self

    def heading(self, level: int, content: RunsLike, *, anchor: str | None = None) -> "ChapterBuilder":
        start = self._begin_block()
        inlines = self._place_runs(_as_runs(content))
        self._blocks.append(Heading(level=level, inlines=inlines, start=start, end=self._length, anchor=anchor))
        self._register(anchor, start)
        return self

    def paragraph(self, content: RunsLike, *, anchor: str | None = None) -> "ChapterBuilder":
        start = self._begin_block()
        inlines = self._place_runs(_as_runs(content))
        self._blocks.append(Paragraph(inlines=inlines, start=start, end=self._length, anchor=anchor))
        self._register(anchor, start)
        return self

    def code_block(
        self,
        content: str | Sequence[str],
        *,
        language: str | None = None,
        anchor: str | None = None,
    ) -> "ChapterBuilder":
        lines = tuple(content.split("\n")) if isinstance(content, str) else tuple(content)
        start = self._begin_block()
        self._append("\n".join(lines))
        self._blocks.append(
            CodeBlock(lines=lines, start=start, end=self._length, language=language, anchor=anchor)
        )
        self._register(anchor, start)
        return self

    def table(
        self,
        rows: Sequence[Sequence[RunsLike]],
        *,
        header: bool = False,
        anchor: str | None = None,
    ) -> "ChapterBuilder":
        start = self._begin_block()
        built_rows: list[TableRow] = []
        for row_index, row in enumerate(rows):
            if row_index:
                self._append(ROW_SEPARATOR)
            cells: list[TableCell] = []
            for cell_index, cell in enumerate(row):
                if cell_index:
                    self._append(CELL_SEPARATOR)
                cell_start = self._length
                inlines = self._place_runs(_as_runs(cell))
                cells.append(TableCell(inlines=inlines, start=cell_start, end=self._length))
            built_rows.append(TableRow(cells=tuple(cells), header=header and row_index == 0))
        self._blocks.append(Table(rows=tuple(built_rows), start=start, end=self._length, anchor=anchor))
        self._register(anchor, start)
        return self

    def image(
        self,
        src: str,
        *,
        alt: str = "",
        width_px: int | None = None,
        height_px: int | None = None,
        pixels: np.ndarray | None = None,
        anchor: str | None = None,
    ) -> "ChapterBuilder":
        start = self._begin_block()
        self._blocks.append(
            Image(
                src=src,
                start=start,
                end=start,
                alt=alt,
                width_px=width_px,
                height_px=height_px,
                pixels=pixels,
                anchor=anchor,
            )
        )
        self._register(anchor, start)
        return self

    def math_block(self, node: MathNode | None, *, fallback_text: str = "", anchor: str | None = None) -> "ChapterBuilder":
        start = self._begin_block()
        linear = linearize_math(node) if node is not None else fallback_text
        self._append(linear)
        self._blocks.append(MathBlock(math=node, text=linear, start=start, end=self._length, anchor=anchor))
        self._register(anchor, start)
        return self

    def thematic_break(self, *, anchor: str | None = None) -> "ChapterBuilder":
        start = self._begin_block()
        self._blocks.append(ThematicBreak(start=start, end=start, anchor=anchor))
        self._register(anchor, start)
        return self

    def _register(self, anchor: str | None, start: int) -> None:
        if anchor:
            self._anchors.setdefault(anchor.lstrip("#"), start)

    def build(self) -> Chapter:
        end = self._length
        for name in self._pending_anchors:
            self._anchors.setdefault(name, end)
        self._pending_anchors.clear()
        return Chapter(
            chapter_id=self._chapter_id,
            blocks=tuple(self._blocks),
            stream="".join(self._parts),
            title=self._title,
            anchors=dict(self._anchors),
        )


def chapter_from_paragraphs(chapter_id: str, paragraphs: Sequence[str], *, title: str | None = None) -> Chapter:
    """Convenience constructor for plain-text chapters."""

    builder = ChapterBuilder(chapter_id, title=title)
    for paragraph in paragraphs:
        builder.paragraph(paragraph)
    return builder.build()
