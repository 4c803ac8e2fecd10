"""Shared adapter contract for book formats."""

from __future__ import annotations

from collections import OrderedDict
from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from readgrid.content.models import Chapter


DEFAULT_PARSED_CHAPTERS = 4


@runtime_checkable
class OpenedBook(Protocol):
    """Content collaborator: chapters and streams in table-of-contents order."""

    book_id: str
    title: str | None

    def chapter_ids(self) -> Sequence[str]:
        ...

    def chapter(self, chapter_id: str) -> Chapter:
        ...

    def stream(self, chapter_id: str) -> str:
        ...


@runtime_checkable
class BookAdapter(Protocol):
    """Protocol that every format adapter must implement."""

    def supports(self, path: Path, sniffed_bytes: bytes | None = None) -> bool:
        """Return True when this adapter can open the given file."""

    def open(self, path: Path) -> OpenedBook:
        """Open a book for chapter-by-chapter parsing."""


class ParsedChapterCache:
    """Keeps the most recently parsed chapters; older ones are parsed again on demand."""

    def __init__(self, max_entries: int = DEFAULT_PARSED_CHAPTERS) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._entries: OrderedDict[str, Chapter] = OrderedDict()

    def get(self, chapter_id: str) -> Chapter | None:
        chapter = self._entries.get(chapter_id)
        if chapter is not None:
            self._entries.move_to_end(chapter_id)
        return chapter

    def put(self, chapter: Chapter) -> None:
        self._entries[chapter.chapter_id] = chapter
        self._entries.move_to_end(chapter.chapter_id)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
