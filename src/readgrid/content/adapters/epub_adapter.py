"""EPUB books read in spine order, one parsed chapter at a time."""

from __future__ import annotations

from functools import partial
import logging
from pathlib import Path
import posixpath
import re

import ebooklib
from ebooklib import epub

from readgrid.content.adapters.base import ParsedChapterCache
from readgrid.content.adapters.raster import decode_image
from readgrid.content.adapters.xhtml_adapter import ImageAsset, ImageLoader, parse_xhtml
from readgrid.content.models import Chapter
from readgrid.content.normalization import normalize_whitespace


logger = logging.getLogger(__name__)

_TITLE_SPLIT_RE = re.compile(r"[._\-]+")


def _normalize_title_from_path(path: Path) -> str:
    stem = _TITLE_SPLIT_RE.sub(" ", path.stem)
    return normalize_whitespace(stem).title()


def _first_non_empty(values: list[tuple[str, dict[str, str]]] | None) -> str | None:
    if not values:
        return None
    for value, _attrs in values:
        cleaned = normalize_whitespace(value)
        if cleaned:
            return cleaned
    return None


class EPUBBook:
    """Chapter provider over the document items of an EPUB spine.

    Chapter ids are the items' file names inside the archive, so relative
    ``href`` values in links resolve to them directly. Images are decoded from
    the archive unless an ``image_loader`` is supplied.
    """

    def __init__(
        self,
        book: epub.EpubBook,
        *,
        book_id: str,
        title: str | None = None,
        image_loader: ImageLoader | None = None,
    ) -> None:
        self._book = book
        self.book_id = book_id
        self.title = title
        self._image_loader = image_loader
        self._items: dict[str, epub.EpubHtml] = {}
        self._order: list[str] = []
        self._parsed = ParsedChapterCache()

        for spine_entry in book.spine:
            item_id = spine_entry[0] if isinstance(spine_entry, tuple) else spine_entry
            item = book.get_item_with_id(item_id)
            if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
                continue
            if isinstance(item, epub.EpubNav):
                continue
            name = item.get_name()
            if name in self._items:
                continue
            self._items[name] = item
            self._order.append(name)

    def chapter_ids(self) -> list[str]:
        return list(self._order)

    def _item(self, chapter_id: str) -> epub.EpubHtml:
        try:
            return self._items[chapter_id]
        except KeyError:
            raise KeyError(f"unknown chapter id: {chapter_id}") from None

    def chapter(self, chapter_id: str) -> Chapter:
        cached = self._parsed.get(chapter_id)
        if cached is not None:
            return cached

        item = self._item(chapter_id)
        title = normalize_whitespace(item.title) if getattr(item, "title", None) else None
        loader = self._image_loader or partial(self.load_image, chapter_id)
        chapter = parse_xhtml(chapter_id, item.get_content(), title=title or None, image_loader=loader)
        logger.debug("Parsed chapter %s (%d blocks)", chapter_id, len(chapter.blocks))
        self._parsed.put(chapter)
        return chapter

    def stream(self, chapter_id: str) -> str:
        return self.chapter(chapter_id).stream

    def resource(self, chapter_id: str, href: str) -> bytes | None:
        """Raw bytes of an asset referenced from ``chapter_id``, if the archive has it."""

        name = posixpath.normpath(posixpath.join(posixpath.dirname(chapter_id), href.split("#", 1)[0]))
        item = self._book.get_item_with_href(name)
        return None if item is None else item.get_content()

    def load_image(self, chapter_id: str, src: str) -> ImageAsset | None:
        data = self.resource(chapter_id, src)
        if data is None:
            logger.debug("Image %s referenced from %s is not in the archive", src, chapter_id)
            return None
        return decode_image(data, src)


class EPUBAdapter:
    """Open EPUB archives as chapter providers."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        if path.suffix.lower() == ".epub":
            return True
        if sniffed_bytes is None:
            return False
        return sniffed_bytes.startswith(b"PK\x03\x04")

    def open(self, path: Path) -> EPUBBook:
        book = epub.read_epub(str(path))
        title = _first_non_empty(book.get_metadata("DC", "title")) or _normalize_title_from_path(path)
        identifier = _first_non_empty(book.get_metadata("DC", "identifier")) or path.stem
        return EPUBBook(book, book_id=identifier, title=title)
