from __future__ import annotations

import json
from pathlib import Path

from ebooklib import epub

from readgrid.cli.search_book import main as search_book_main


def _build_epub(path: Path) -> None:
    book = epub.EpubBook()
    book.set_identifier("search-book")
    book.set_title("Search Sample")
    book.set_language("en")

    chapters = []
    for index, body in enumerate(["Nothing here.", "The quick brown fox.", "A quck note."], start=1):
        chapter = epub.EpubHtml(title=f"Chapter {index}", file_name=f"chapter_{index}.xhtml", lang="en")
        chapter.content = f"<html><body><p>{body}</p></body></html>"
        book.add_item(chapter)
        chapters.append(chapter)

    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.toc = tuple(chapters)
    book.spine = ["nav", *chapters]
    epub.write_epub(str(path), book)


def test_cli_book_search_returns_single_match(tmp_path: Path, capsys: object) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)

    exit_code = search_book_main(["--path", str(path), "--query", "fox"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["scope"] == "book"
    assert payload["total"] == 1
    result = payload["results"][0]
    assert (result["chapter_id"], result["start"], result["end"]) == ("chapter_2.xhtml", 16, 19)
    assert result["snippet"] == "The quick brown «fox»."


def test_cli_chapter_scope_and_limit(tmp_path: Path, capsys: object) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)

    search_book_main(["--path", str(path), "--query", "fox", "--scope", "chapter", "--chapter", "chapter_1.xhtml"])
    chapter_payload = json.loads(capsys.readouterr().out)
    search_book_main(["--path", str(path), "--query", "e", "--limit", "0"])
    limited_payload = json.loads(capsys.readouterr().out)

    assert chapter_payload["total"] == 0
    assert chapter_payload["results"] == []
    assert limited_payload["limit"] == 1
    assert len(limited_payload["results"]) == 1
    assert limited_payload["total"] > 1


def test_cli_fuzzy_mode_adds_near_matches(tmp_path: Path, capsys: object) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)

    search_book_main(["--path", str(path), "--query", "quick"])
    exact = json.loads(capsys.readouterr().out)
    search_book_main(["--path", str(path), "--query", "quick", "--fuzzy"])
    fuzzy = json.loads(capsys.readouterr().out)

    assert [result["chapter_id"] for result in exact["results"]] == ["chapter_2.xhtml"]
    assert fuzzy["mode"] == "fuzzy"
    assert [result["chapter_id"] for result in fuzzy["results"]] == ["chapter_2.xhtml", "chapter_3.xhtml"]


def test_cli_rejects_unknown_chapter(tmp_path: Path) -> None:
    path = tmp_path / "sample.epub"
    _build_epub(path)

    assert search_book_main(["--path", str(path), "--query", "fox", "--chapter", "nope.xhtml"]) == 1
