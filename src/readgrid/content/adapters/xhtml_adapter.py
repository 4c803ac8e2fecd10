"""XHTML chapter documents (with embedded MathML) to :class:`Chapter` content."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import re
from typing import Callable

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag
import numpy as np

from readgrid.content.builder import ChapterBuilder, Run
from readgrid.content.models import Chapter, InlineKind, MathKind, MathNode, linearize_math
from readgrid.content.normalization import collapse_whitespace, normalize_whitespace


_HEADINGS = {"h1": 1, "h2": 2, "h3": 3, "h4": 4, "h5": 5, "h6": 6}
_PARAGRAPHS = {"p", "li", "dt", "dd", "blockquote", "figcaption", "caption", "address"}
_CONTAINERS = {
    "body", "div", "section", "article", "aside", "header", "footer", "main", "nav",
    "figure", "ul", "ol", "dl", "html",
}
_SKIPPED = {"head", "script", "style", "title", "meta", "link"}
_EMPHASIS = {"em", "i", "cite", "var", "dfn"}
_STRONG = {"strong", "b"}
_CODE = {"code", "kbd", "samp", "tt"}
_LANGUAGE_RE = re.compile(r"(?:language|lang)-([\w+-]+)")

_MATH_KINDS = {
    "mrow": MathKind.ROW,
    "mstyle": MathKind.ROW,
    "mpadded": MathKind.ROW,
    "mphantom": MathKind.ROW,
    "math": MathKind.ROW,
    "mi": MathKind.IDENTIFIER,
    "mn": MathKind.NUMBER,
    "mo": MathKind.OPERATOR,
    "mtext": MathKind.TEXT,
    "ms": MathKind.TEXT,
    "mspace": MathKind.SPACE,
    "mfrac": MathKind.FRACTION,
    "msup": MathKind.SUPERSCRIPT,
    "msub": MathKind.SUBSCRIPT,
    "msubsup": MathKind.SUBSUP,
    "msqrt": MathKind.SQRT,
    "mroot": MathKind.ROOT,
    "mfenced": MathKind.FENCED,
    "munderover": MathKind.UNDEROVER,
    "munder": MathKind.UNDEROVER,
    "mover": MathKind.UNDEROVER,
    "mtable": MathKind.TABLE,
    "mtr": MathKind.TABLE_ROW,
    "mlabeledtr": MathKind.TABLE_ROW,
    "mtd": MathKind.TABLE_CELL,
}
_MATH_ATTRS = ("linethickness", "open", "close", "separators")


@dataclass(frozen=True, slots=True)
class ImageAsset:
    width_px: int | None = None
    height_px: int | None = None
    pixels: np.ndarray | None = None


ImageLoader = Callable[[str], "ImageAsset | None"]


def _local(name: str | None) -> str:
    return (name or "").split(":")[-1].lower()


def _int_attr(tag: Tag, name: str) -> int | None:
    raw = str(tag.get(name) or "").strip().removesuffix("px")
    return int(raw) if raw.isdigit() else None


def _element_children(tag: Tag) -> list[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def parse_math(tag: Tag) -> MathNode:
    """MathML element to a :class:`MathNode`; unknown elements keep their name."""

    name = _local(tag.name)
    if name == "semantics":
        children = [child for child in _element_children(tag) if not _local(child.name).startswith("annotation")]
        return parse_math(children[0]) if children else MathNode(MathKind.ROW.value)

    kind = _MATH_KINDS.get(name)
    if kind is None:
        return MathNode(kind=name, text=normalize_whitespace(tag.get_text()))
    if kind is MathKind.SPACE:
        return MathNode(kind=kind.value, text=" ")
    if kind in (MathKind.IDENTIFIER, MathKind.NUMBER, MathKind.OPERATOR, MathKind.TEXT):
        return MathNode(kind=kind.value, text=normalize_whitespace(tag.get_text()))

    children = tuple(parse_math(child) for child in _element_children(tag))
    attrs = tuple((attr, str(tag[attr])) for attr in _MATH_ATTRS if tag.has_attr(attr))
    if name == "munder":
        return MathNode(kind=MathKind.UNDEROVER.value, children=children[:2])
    if name == "mover" and len(children) == 2:
        return MathNode(kind=MathKind.UNDEROVER.value, children=(children[0], MathNode(MathKind.ROW.value), children[1]))
    return MathNode(kind=kind.value, children=children, attrs=attrs)


def _tidy(runs: list[Run]) -> list[Run]:
    merged: list[Run] = []
    for run in runs:
        if merged and merged[-1].kind is run.kind and merged[-1].href == run.href and run.math is None and merged[-1].math is None:
            previous = merged.pop()
            run = Run(run.kind, previous.text + run.text, run.href)
        merged.append(run)

    result: list[Run] = []
    for run in merged:
        if run.math is not None:
            result.append(run)
            continue
        value = collapse_whitespace(run.text)
        previous_text = result[-1].text if result else ""
        if not previous_text or previous_text.endswith(" "):
            value = value.lstrip(" ")
        if value:
            result.append(Run(run.kind, value, run.href))

    while result and result[-1].math is None and result[-1].text.endswith(" "):
        last = result.pop()
        stripped = last.text.rstrip(" ")
        if stripped:
            result.append(Run(last.kind, stripped, last.href))
            break
    return result


class XHTMLChapterParser:
    """Walk one XHTML document and feed a :class:`ChapterBuilder`."""

    def __init__(self, chapter_id: str, *, title: str | None = None, image_loader: ImageLoader | None = None) -> None:
        self._builder = ChapterBuilder(chapter_id, title=title)
        self._image_loader = image_loader
        self._pending: list[Run] = []

    def parse(self, markup: bytes | str) -> Chapter:
        soup = BeautifulSoup(markup, "xml")
        root = soup.find(lambda tag: _local(tag.name) == "body") or soup
        self._container(root)
        self._flush()
        return self._builder.build()

    def _flush(self) -> None:
        runs = _tidy(self._pending)
        self._pending = []
        if runs:
            self._builder.paragraph(runs)

    def _container(self, node: Tag) -> None:
        for child in node.children:
            if isinstance(child, Comment):
                continue
            if isinstance(child, NavigableString):
                self._pending.extend(self._runs(child))
                continue
            if not isinstance(child, Tag):
                continue
            name = _local(child.name)
            if name in _SKIPPED:
                continue
            if self._is_block(child, name):
                self._flush()
                self._block(child, name)
            else:
                self._pending.extend(self._runs(child))

    def _is_block(self, tag: Tag, name: str) -> bool:
        if name in _HEADINGS or name in _PARAGRAPHS or name in _CONTAINERS:
            return True
        if name in {"pre", "table", "img", "image", "hr"}:
            return True
        return name == "math" and str(tag.get("display", "")).lower() == "block"

    def _block(self, tag: Tag, name: str) -> None:
        anchor = tag.get("id")
        if name in _CONTAINERS:
            if anchor:
                self._builder.anchor(str(anchor))
            self._container(tag)
            self._flush()
            return

        anchor = str(anchor) if anchor else None
        if name in _HEADINGS:
            self._register_inner_anchors(tag)
            runs = _tidy(self._runs(tag))
            if runs:
                self._builder.heading(_HEADINGS[name], runs, anchor=anchor)
        elif name in _PARAGRAPHS:
            if any(self._is_block(child, _local(child.name)) for child in _element_children(tag)):
                if anchor:
                    self._builder.anchor(anchor)
                self._container(tag)
                self._flush()
                return
            self._register_inner_anchors(tag)
            runs = _tidy(self._runs(tag))
            if name == "li" and runs:
                runs.insert(0, Run(InlineKind.TEXT, "• "))
            if runs:
                self._builder.paragraph(runs, anchor=anchor)
        elif name == "pre":
            self._code(tag, anchor)
        elif name == "table":
            self._register_inner_anchors(tag)
            self._table(tag, anchor)
        elif name in {"img", "image"}:
            self._image(tag, anchor)
        elif name == "hr":
            self._builder.thematic_break(anchor=anchor)
        elif name == "math":
            node = parse_math(tag)
            self._builder.math_block(node, fallback_text=linearize_math(node), anchor=anchor)

    def _register_inner_anchors(self, tag: Tag) -> None:
        for inner in tag.find_all(id=True):
            self._builder.anchor(str(inner["id"]))

    def _code(self, tag: Tag, anchor: str | None) -> None:
        language = None
        for candidate in (tag, tag.find(lambda item: _local(item.name) == "code")):
            if candidate is None:
                continue
            classes = candidate.get("class") or []
            if isinstance(classes, str):
                classes = classes.split()
            for value in classes:
                found = _LANGUAGE_RE.fullmatch(value)
                if found:
                    language = found.group(1)
                    break
        text = tag.get_text()
        if text.endswith("\n"):
            text = text[:-1]
        self._builder.code_block(text, language=language, anchor=anchor)

    def _table(self, tag: Tag, anchor: str | None) -> None:
        rows: list[list[list[Run]]] = []
        header = False
        for index, row in enumerate(tag.find_all(lambda item: _local(item.name) == "tr")):
            cells = [cell for cell in _element_children(row) if _local(cell.name) in {"td", "th"}]
            if not cells:
                continue
            if index == 0:
                in_head = row.find_parent(lambda item: _local(item.name) == "thead") is not None
                header = in_head or all(_local(cell.name) == "th" for cell in cells)
            rows.append([_tidy(self._runs(cell)) for cell in cells])
        if rows:
            self._builder.table(rows, header=header, anchor=anchor)

    def _image(self, tag: Tag, anchor: str | None) -> None:
        src = str(tag.get("src") or tag.get("href") or tag.get("xlink:href") or "")
        alt = normalize_whitespace(str(tag.get("alt") or ""))
        asset = self._image_loader(src) if self._image_loader is not None and src else None
        width = _int_attr(tag, "width")
        height = _int_attr(tag, "height")
        if asset is not None:
            width = asset.width_px or width
            height = asset.height_px or height
        self._builder.image(
            src,
            alt=alt,
            width_px=width,
            height_px=height,
            pixels=asset.pixels if asset is not None else None,
            anchor=anchor,
        )

    def _runs(self, node, kind: InlineKind = InlineKind.TEXT, href: str | None = None) -> list[Run]:
        if isinstance(node, Comment):
            return []
        if isinstance(node, NavigableString):
            return [Run(kind, str(node), href)]
        if not isinstance(node, Tag):
            return []

        name = _local(node.name)
        if name in _SKIPPED:
            return []
        if name == "math":
            math_node = parse_math(node)
            return [Run(InlineKind.MATH, linearize_math(math_node), math=math_node)]
        if name == "br":
            return [Run(kind, " ", href)]
        if name in {"img", "image"}:
            alt = normalize_whitespace(str(node.get("alt") or ""))
            return [Run(kind, f"[{alt}]", href)] if alt else []

        if kind is not InlineKind.LINK:
            if name == "a" and node.get("href"):
                kind, href = InlineKind.LINK, str(node["href"])
            elif name in _CODE:
                kind = InlineKind.CODE
            elif name in _STRONG:
                kind = InlineKind.STRONG
            elif name in _EMPHASIS and kind is not InlineKind.STRONG:
                kind = InlineKind.EMPHASIS

        runs: list[Run] = []
        for child in node.children:
            runs.extend(self._runs(child, kind, href))
        return runs


def parse_xhtml(
    chapter_id: str,
    markup: bytes | str,
    *,
    title: str | None = None,
    image_loader: ImageLoader | None = None,
) -> Chapter:
    return XHTMLChapterParser(chapter_id, title=title, image_loader=image_loader).parse(markup)


class XHTMLBook:
    """A standalone XHTML file presented as a one-chapter book."""

    def __init__(self, chapter: Chapter, *, book_id: str, title: str | None = None) -> None:
        self._chapter = chapter
        self.book_id = book_id
        self.title = title

    def chapter_ids(self) -> list[str]:
        return [self._chapter.chapter_id]

    def chapter(self, chapter_id: str) -> Chapter:
        if chapter_id != self._chapter.chapter_id:
            raise KeyError(f"unknown chapter id: {chapter_id}")
        return self._chapter

    def stream(self, chapter_id: str) -> str:
        return self.chapter(chapter_id).stream


class XHTMLAdapter:
    """Open single XHTML/HTML documents."""

    _SUFFIXES = {".xhtml", ".html", ".htm"}

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        if path.suffix.lower() in self._SUFFIXES:
            return True
        if sniffed_bytes is None:
            return False
        head = sniffed_bytes.lstrip()[:256].lower()
        return head.startswith(b"<?xml") or b"<html" in head

    def open(self, path: Path) -> XHTMLBook:
        chapter = parse_xhtml(path.name, path.read_bytes())
        title = chapter.title or path.stem
        return XHTMLBook(chapter, book_id=path.stem, title=title)
