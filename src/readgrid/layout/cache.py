"""Bounded cache of computed layouts keyed by chapter, width and style."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
import logging

from readgrid.content.models import Chapter
from readgrid.layout.cells import LayoutLine
from readgrid.layout.config import StyleConfig
from readgrid.layout.index import LayoutIndex
from readgrid.layout.reflow import Reflow


logger = logging.getLogger(__name__)

DEFAULT_CACHE_ENTRIES = 8

LayoutKey = tuple[str, int, int, tuple[object, ...]]


@dataclass(frozen=True, slots=True)
class Layout:
    key: LayoutKey
    width: int
    lines: tuple[LayoutLine, ...]
    index: LayoutIndex


class LayoutCache:
    """Whole-layout cache; entries are replaced, never patched."""

    def __init__(self, max_entries: int = DEFAULT_CACHE_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._entries: OrderedDict[LayoutKey, Layout] = OrderedDict()
        self.builds = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key_for(chapter: Chapter, width: int, style: StyleConfig) -> LayoutKey:
        return (chapter.chapter_id, width, style.margin, style.layout_key())

    def get(self, chapter: Chapter, width: int, style: StyleConfig) -> Layout:
        key = self.key_for(chapter, width, style)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            return cached

        reflow = Reflow(chapter, width, style)
        lines = reflow.run()
        layout = Layout(key=key, width=reflow.width, lines=lines, index=LayoutIndex(lines))
        self.builds += 1
        logger.debug("Built layout for %s at width %d (%d lines)", chapter.chapter_id, width, len(lines))

        self._entries[key] = layout
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
        return layout

    def invalidate(self, chapter_id: str | None = None) -> None:
        if chapter_id is None:
            self._entries.clear()
            return
        for key in [key for key in self._entries if key[0] == chapter_id]:
            del self._entries[key]
