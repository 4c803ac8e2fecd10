from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup
import numpy as np
import pytest

from readgrid.content.adapters import ImageAsset, XHTMLAdapter, open_book, parse_math, parse_xhtml
from readgrid.content.models import BlockKind, InlineKind
from readgrid.mathrender import render_math


CHAPTER = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>Ignored</title></head>
<body>
  <h1 id="top">Chapter One</h1>
  <p>Plain <em>styled</em> and <a href="chapter_2.xhtml#end">linked</a> text.</p>
  <pre><code class="language-python">x = 1
y = 2
</code></pre>
  <table>
    <tr><th>Name</th><th>Qty</th></tr>
    <tr><td>apple</td><td>3</td></tr>
  </table>
  <p>Inline <math><mfrac><mi>a</mi><mi>b</mi></mfrac></math> math.</p>
  <math display="block"><msup><mi>x</mi><mn>2</mn></msup></math>
  <ul><li>One</li><li id="two">Two</li></ul>
  <img src="images/fig.png" alt="Figure" width="400" height="200"/>
</body>
</html>
"""


def math_tag(markup: str):
    return BeautifulSoup(markup, "xml").find("math")


def test_blocks_follow_document_order() -> None:
    chapter = parse_xhtml("chapter_1.xhtml", CHAPTER)

    assert [block.kind for block in chapter.blocks] == [
        BlockKind.HEADING,
        BlockKind.PARAGRAPH,
        BlockKind.CODE_BLOCK,
        BlockKind.TABLE,
        BlockKind.PARAGRAPH,
        BlockKind.MATH_BLOCK,
        BlockKind.PARAGRAPH,
        BlockKind.PARAGRAPH,
        BlockKind.IMAGE,
    ]
    assert chapter.stream == (
        "Chapter One\n"
        "Plain styled and linked text.\n"
        "x = 1\ny = 2\n"
        "Name\tQty\napple\t3\n"
        "Inline a/b math.\n"
        "x^2\n"
        "• One\n"
        "• Two\n"
    )


def test_inline_kinds_and_links() -> None:
    chapter = parse_xhtml("chapter_1.xhtml", CHAPTER)
    paragraph = chapter.blocks[1]

    assert [inline.kind for inline in paragraph.inlines] == [
        InlineKind.TEXT,
        InlineKind.EMPHASIS,
        InlineKind.TEXT,
        InlineKind.LINK,
        InlineKind.TEXT,
    ]
    link = chapter.link_at(paragraph.start + 18)
    assert link is not None
    assert link.href == "chapter_2.xhtml#end"
    assert link.text == "linked"


def test_code_table_math_and_image_details() -> None:
    chapter = parse_xhtml("chapter_1.xhtml", CHAPTER)
    code, table, inline_math, block_math, image = (chapter.blocks[index] for index in (2, 3, 4, 5, 8))

    assert code.lines == ("x = 1", "y = 2")
    assert code.language == "python"
    assert table.rows[0].header is True
    assert table.rows[1].header is False
    assert inline_math.inlines[1].kind is InlineKind.MATH
    assert inline_math.inlines[1].math.children[0].kind == "fraction"
    assert block_math.text == "x^2"
    assert (image.src, image.alt, image.width_px, image.height_px) == ("images/fig.png", "Figure", 400, 200)


def test_ids_become_anchors() -> None:
    chapter = parse_xhtml("chapter_1.xhtml", CHAPTER)

    assert chapter.anchor_offset("top") == 0
    assert chapter.stream[chapter.anchor_offset("two") :].startswith("• Two")


def test_image_loader_supplies_pixels() -> None:
    pixels = np.ones((10, 20))

    def loader(src: str) -> ImageAsset:
        assert src == "images/fig.png"
        return ImageAsset(width_px=20, height_px=10, pixels=pixels)

    chapter = parse_xhtml("chapter_1.xhtml", CHAPTER, image_loader=loader)
    image = chapter.blocks[-1]

    assert (image.width_px, image.height_px) == (20, 10)
    assert image.pixels is pixels


def test_mathml_semantics_and_limits() -> None:
    node = parse_math(
        math_tag(
            "<math><semantics><mrow><munderover><mo>∑</mo>"
            "<mrow><mi>i</mi><mo>=</mo><mn>1</mn></mrow><mi>n</mi></munderover></mrow>"
            '<annotation encoding="application/x-tex">\\sum</annotation></semantics></math>'
        )
    )

    assert render_math(node).lines() == ["  n", "  ∑", "i = 1"]


def test_mover_and_unknown_elements() -> None:
    accent = parse_math(math_tag("<math><mover><mi>x</mi><mo>^</mo></mover></math>"))
    unknown = parse_math(math_tag("<math><mmultiscripts><mi>F</mi><mn>1</mn></mmultiscripts></math>"))

    assert render_math(accent).lines() == ["^", "x"]
    assert unknown.children[0].kind == "mmultiscripts"
    assert render_math(unknown).lines() == ["F1"]


def test_fenced_attributes_are_kept() -> None:
    node = parse_math(math_tag('<math><mfenced open="[" close="]"><mi>a</mi><mi>b</mi></mfenced></math>'))

    assert render_math(node).lines() == ["[a, b]"]


def test_xhtml_adapter_opens_single_document(tmp_path: Path) -> None:
    path = tmp_path / "notes.xhtml"
    path.write_text(CHAPTER, encoding="utf-8")

    book = open_book(path)

    assert book.chapter_ids() == ["notes.xhtml"]
    assert book.book_id == "notes"
    assert book.stream("notes.xhtml").startswith("Chapter One\n")
    with pytest.raises(KeyError, match="unknown chapter id"):
        book.chapter("other.xhtml")


def test_adapter_sniffing() -> None:
    adapter = XHTMLAdapter()

    assert adapter.supports(Path("a.HTML")) is True
    assert adapter.supports(Path("a.bin"), b'  <?xml version="1.0"?><html/>') is True
    assert adapter.supports(Path("a.bin"), b"plain text") is False


def test_unsupported_file_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("just text", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported book format"):
        open_book(path)


def test_horizontal_rule_becomes_thematic_break() -> None:
    chapter = parse_xhtml(
        "ch1",
        '<html><body><p>Before</p><hr id="cut"/><p>After</p></body></html>',
    )

    assert [block.kind for block in chapter.blocks] == [
        BlockKind.PARAGRAPH,
        BlockKind.THEMATIC_BREAK,
        BlockKind.PARAGRAPH,
    ]
    assert chapter.stream == "Before\n\nAfter"
    rule = chapter.blocks[1]
    assert rule.start == rule.end == 7
    assert chapter.anchor_offset("cut") == 7
