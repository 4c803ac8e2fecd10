from __future__ import annotations

import pytest

from readgrid.content.builder import ChapterBuilder, link, text
from readgrid.content.models import (
    Heading,
    Inline,
    InlineKind,
    MalformedContentError,
    MathKind,
    MathNode,
    linearize_math,
    validate_block,
)
from readgrid.content.normalization import fold_for_search, normalize_whitespace


def _leaf(kind: MathKind, value: str) -> MathNode:
    return MathNode(kind.value, value)


def test_block_lookup_by_offset() -> None:
    chapter = ChapterBuilder("ch1").paragraph("Hello").paragraph("World").build()

    assert chapter.block_index_at(0) == 0
    assert chapter.block_index_at(4) == 0
    assert chapter.block_index_at(5) is None
    assert chapter.block_index_at(6) == 1
    assert chapter.block_index_at(11) == 1
    assert chapter.block_index_at(-1) is None


def test_link_lookup_returns_only_link_spans() -> None:
    chapter = ChapterBuilder("ch1").paragraph([text("See "), link("notes", "notes.xhtml#n1")]).build()

    assert chapter.link_at(1) is None
    found = chapter.link_at(5)
    assert found is not None
    assert found.href == "notes.xhtml#n1"


def test_linearize_scripts_roots_and_fences() -> None:
    x = _leaf(MathKind.IDENTIFIER, "x")
    two = _leaf(MathKind.NUMBER, "2")
    i = _leaf(MathKind.IDENTIFIER, "i")

    assert linearize_math(MathNode(MathKind.SUPERSCRIPT.value, children=(x, two))) == "x^2"
    assert linearize_math(MathNode(MathKind.SUBSCRIPT.value, children=(x, i))) == "x_i"
    assert linearize_math(MathNode(MathKind.SQRT.value, children=(x,))) == "√(x)"
    assert linearize_math(MathNode(MathKind.ROOT.value, children=(x, _leaf(MathKind.NUMBER, "3")))) == "√[3](x)"
    fenced = MathNode(MathKind.FENCED.value, children=(x, i))
    assert linearize_math(fenced) == "(x, i)"


def test_linearize_groups_compound_fraction_parts() -> None:
    numerator = MathNode(
        MathKind.ROW.value,
        children=(_leaf(MathKind.IDENTIFIER, "a"), _leaf(MathKind.OPERATOR, "+"), _leaf(MathKind.IDENTIFIER, "b")),
    )
    node = MathNode(MathKind.FRACTION.value, children=(numerator, _leaf(MathKind.NUMBER, "2")))

    assert linearize_math(node) == "(a+b)/2"


def test_linearize_unknown_node_uses_literal_text() -> None:
    assert linearize_math(MathNode("menclose", "x")) == "x"


def test_validate_block_rejects_bad_heading_level() -> None:
    heading = Heading(level=9, inlines=(Inline(InlineKind.TEXT, "Hi", 0, 2),), start=0, end=2)

    with pytest.raises(MalformedContentError, match="heading level"):
        validate_block(heading)


def test_validate_block_rejects_out_of_order_inlines() -> None:
    heading = Heading(
        level=1,
        inlines=(Inline(InlineKind.TEXT, "ab", 2, 4), Inline(InlineKind.TEXT, "cd", 0, 2)),
        start=0,
        end=4,
    )

    with pytest.raises(MalformedContentError, match="out of order"):
        validate_block(heading)


def test_fold_for_search_keeps_length() -> None:
    value = "Straße İstanbul ǅ"

    folded = fold_for_search(value)

    assert len(folded) == len(value)
    assert folded.startswith("stra")


def test_normalize_whitespace() -> None:
    assert normalize_whitespace("  a \n\t b  ") == "a b"
