from __future__ import annotations

from readgrid.content.builder import ChapterBuilder, chapter_from_paragraphs
from readgrid.layout.cache import LayoutCache
from readgrid.layout.config import StyleConfig
from readgrid.layout.index import LayoutIndex
from readgrid.layout.reflow import reflow


def test_index_maps_offsets_to_positions_and_back() -> None:
    chapter = chapter_from_paragraphs("ch1", ["The quick brown fox jumps."])
    index = LayoutIndex(reflow(chapter, 10))

    assert index.position_of(4) == (0, 4)
    assert index.position_of(10) == (1, 0)
    assert index.offset_at(1, 0) == 10
    assert index.line_of(20) == 2


def test_offset_at_snaps_to_preceding_offset_cell() -> None:
    chapter = chapter_from_paragraphs("ch1", ["The quick brown fox jumps."])
    index = LayoutIndex(reflow(chapter, 10))

    assert index.offset_at(0, 9) == 8
    assert index.offset_at(0, 50) == 8
    assert index.offset_at(99, 0) == 20
    assert index.offset_at(99, 40) == 25


def test_offset_at_before_first_offset_snaps_forward() -> None:
    chapter = ChapterBuilder("ch1").image("x.png").paragraph("Text").build()
    index = LayoutIndex(reflow(chapter, 20))

    assert index.offset_at(0, 0) == 1
    assert index.first_offset_on_or_after(0) == 1


def test_offsets_between_returns_positions_in_range() -> None:
    chapter = chapter_from_paragraphs("ch1", ["The quick brown fox jumps."])
    index = LayoutIndex(reflow(chapter, 10))

    assert index.offsets_between(4, 9) == [(0, 4), (0, 5), (0, 6), (0, 7), (0, 8)]


def test_cache_reuses_layout_until_key_changes() -> None:
    chapter = chapter_from_paragraphs("ch1", ["Some text for the cache."])
    cache = LayoutCache(max_entries=2)
    style = StyleConfig()

    first = cache.get(chapter, 20, style)
    assert cache.get(chapter, 20, style) is first
    assert cache.builds == 1

    cache.get(chapter, 30, style)
    cache.get(chapter, 20, StyleConfig(margin=4))
    assert cache.builds == 3
    assert len(cache) == 2

    cache.invalidate("ch1")
    assert len(cache) == 0


def test_theme_independent_style_key() -> None:
    assert StyleConfig().layout_key() == StyleConfig().layout_key()
    assert StyleConfig(tab_width=8).layout_key() != StyleConfig().layout_key()
    assert StyleConfig(margin=3).content_width(20) == 14
    assert StyleConfig(margin=10).content_width(20) == 8
