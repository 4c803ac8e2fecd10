from __future__ import annotations

import pytest

from readgrid.content.builder import ChapterBuilder, chapter_from_paragraphs
from readgrid.layout.cache import LayoutCache
from readgrid.layout.config import StyleConfig
from readgrid.session.selection import Selection, SelectionEngine, resolve_position


def test_selection_survives_reflow_at_new_width() -> None:
    chapter = chapter_from_paragraphs("ch1", ["The quick brown fox jumps."])
    cache = LayoutCache()
    narrow = cache.get(chapter, 10, StyleConfig())
    assert [line.text() for line in narrow.lines] == ["The quick", "brown fox", "jumps."]

    engine = SelectionEngine(chapter)
    engine.select_range(4, 9)

    wide = cache.get(chapter, 20, StyleConfig())
    positions = wide.index.offsets_between(engine.selection.start, engine.selection.end)
    line, first_column = positions[0]
    shown = "".join(wide.lines[line].cells[column].glyph for _, column in positions)

    assert engine.text() == "quick"
    assert shown == "quick"
    assert first_column == 4


def test_drag_extends_from_anchor_in_either_direction() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["The quick brown fox jumps."]))

    engine.start(10)
    selection = engine.extend(14)
    assert (selection.start, selection.end) == (10, 15)
    assert engine.text() == "brown"

    selection = engine.extend(4)
    assert selection.backward is True
    assert engine.text() == "quick b"


def test_extend_without_selection_starts_one() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["abc"]))

    assert engine.extend(1) == Selection(1, 1)


def test_select_word_uses_token_boundaries() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["Hello, wide world!"]))

    assert engine.text() == ""
    engine.select_word(9)
    assert engine.text() == "wide"
    engine.select_word(5)
    assert engine.text() == ","


def test_select_paragraph_covers_block() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["First one.", "Second one."]))

    engine.select_paragraph(13)
    assert engine.text() == "Second one."


def test_keyboard_extension_moves_cursor() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["abcdef"]))

    assert engine.extend_by(1) is None
    engine.start(2)
    engine.extend_by(2)
    assert engine.text() == "cde"
    engine.extend_by(-10)
    assert engine.text() == "abc"


def test_offsets_past_the_end_are_clamped() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["abc"]))

    assert engine.start(99) == Selection(2, 2)
    with pytest.raises(ValueError, match="past the end"):
        engine.select_range(0, 10)
    with pytest.raises(ValueError, match="offset must be >= 0"):
        engine.start(-1)


def test_empty_chapter_cannot_be_selected() -> None:
    engine = SelectionEngine(ChapterBuilder("ch1").build())

    with pytest.raises(ValueError, match="empty chapter"):
        engine.start(0)


def test_resolve_position_uses_layout_index() -> None:
    chapter = chapter_from_paragraphs("ch1", ["The quick brown fox jumps."])
    layout = LayoutCache().get(chapter, 10, StyleConfig())

    assert resolve_position(layout.index, 1, 2) == 12


def test_set_chapter_clears_selection() -> None:
    engine = SelectionEngine(chapter_from_paragraphs("ch1", ["abc"]))
    engine.start(0)

    engine.set_chapter(chapter_from_paragraphs("ch2", ["xyz"]))

    assert engine.active is False
    assert engine.chapter.chapter_id == "ch2"
