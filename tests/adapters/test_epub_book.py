from __future__ import annotations

import io
import logging
from pathlib import Path
import shutil

from ebooklib import epub
from PIL import Image
import pytest

from readgrid.content.adapters import EPUBAdapter, EPUBBook, open_book
from readgrid.content.models import Image as ImageBlock
from readgrid.layout.cells import Role
from readgrid.layout.reflow import reflow
from readgrid.session.reader import ReadingSession


def _build_epub(path: Path, *, title: str | None = "Epub Sample") -> None:
    book = epub.EpubBook()
    book.set_identifier("book-id")
    if title:
        book.set_title(title)
    book.set_language("en")

    chapter_one = epub.EpubHtml(title="Chapter One", file_name="chapter_1.xhtml", lang="en")
    chapter_one.content = """
    <html><body>
      <h1>Chapter One</h1>
      <p>First paragraph with a <a href="chapter_2.xhtml#end">jump</a>.</p>
    </body></html>
    """

    chapter_two = epub.EpubHtml(title="Chapter Two", file_name="chapter_2.xhtml", lang="en")
    chapter_two.content = """
    <html><body>
      <h1>Chapter Two</h1>
      <p>The quick brown fox.</p>
      <p id="end">The end.</p>
    </body></html>
    """

    picture = epub.EpubItem(uid="fig", file_name="images/fig.png", media_type="image/png", content=b"PNGDATA")

    book.add_item(chapter_one)
    book.add_item(chapter_two)
    book.add_item(picture)
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())

    book.toc = (chapter_one, chapter_two)
    book.spine = ["nav", chapter_one, chapter_two]
    epub.write_epub(str(path), book)


def test_chapters_follow_spine_without_navigation(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)

    book = open_book(path)

    assert isinstance(book, EPUBBook)
    assert book.title == "Epub Sample"
    assert book.book_id == "book-id"
    assert book.chapter_ids() == ["chapter_1.xhtml", "chapter_2.xhtml"]
    assert book.stream("chapter_2.xhtml") == "Chapter Two\nThe quick brown fox.\nThe end."


def test_parsed_chapters_are_reused(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)
    book = EPUBAdapter().open(path)

    assert book.chapter("chapter_1.xhtml") is book.chapter("chapter_1.xhtml")


def test_title_falls_back_to_file_name(tmp_path: Path) -> None:
    path = tmp_path / "my_first-book.epub"
    _build_epub(path, title=None)

    assert EPUBAdapter().open(path).title == "My First Book"


def test_archive_is_sniffed_by_magic_bytes(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)
    renamed = tmp_path / "sample.bin"
    shutil.copy(path, renamed)

    assert EPUBAdapter().supports(renamed, b"PK\x03\x04rest") is True
    assert open_book(renamed).chapter_ids() == ["chapter_1.xhtml", "chapter_2.xhtml"]


def test_resources_resolve_relative_to_chapter(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)
    book = EPUBAdapter().open(path)

    assert book.resource("chapter_1.xhtml", "images/fig.png") == b"PNGDATA"
    assert book.resource("chapter_1.xhtml", "images/missing.png") is None


def test_session_follows_cross_chapter_link(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)
    book = open_book(path)
    session = ReadingSession(book, columns=60, rows=10, book_id=book.book_id)

    target = session.resolve_link("chapter_2.xhtml#end")

    assert target.external is False
    assert target.chapter_id == "chapter_2.xhtml"
    assert book.stream("chapter_2.xhtml")[target.offset :] == "The end."


def _png_bytes() -> bytes:
    image = Image.new("L", (40, 20), 0)
    image.paste(255, (0, 0, 20, 20))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _build_picture_epub(path: Path) -> None:
    book = epub.EpubBook()
    book.set_identifier("pictures")
    book.set_title("Pictures")
    book.set_language("en")

    chapter = epub.EpubHtml(title="Figures", file_name="text/figures.xhtml", lang="en")
    chapter.content = """
    <html><body>
      <p>Intro</p>
      <img src="../images/fig.png" alt="Figure"/>
      <img src="../images/broken.png" alt="Broken"/>
    </body></html>
    """
    book.add_item(chapter)
    book.add_item(epub.EpubImage(uid="fig", file_name="images/fig.png", media_type="image/png", content=_png_bytes()))
    book.add_item(
        epub.EpubImage(uid="broken", file_name="images/broken.png", media_type="image/png", content=b"not a png")
    )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chapter]
    epub.write_epub(str(path), book)


def test_archive_images_are_decoded_into_pixels(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    path = tmp_path / "pictures.epub"
    _build_picture_epub(path)
    book = open_book(path)

    with caplog.at_level(logging.WARNING, logger="readgrid.content.adapters.raster"):
        chapter = book.chapter("text/figures.xhtml")

    figure, broken = [block for block in chapter.blocks if isinstance(block, ImageBlock)]
    assert (figure.width_px, figure.height_px) == (40, 20)
    assert figure.pixels is not None
    assert figure.pixels.shape == (20, 40)
    assert broken.pixels is None
    assert "Cannot decode image ../images/broken.png" in caplog.text

    figure_roles = {
        cell.style.role
        for line in reflow(chapter, 40)
        if line.block_index == chapter.blocks.index(figure)
        for cell in line.cells
    }
    assert figure_roles == {Role.IMAGE}
