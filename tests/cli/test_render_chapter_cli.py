from __future__ import annotations

import json
from pathlib import Path

from readgrid.cli.render_chapter import main as render_chapter_main
from readgrid.session.annotations import AnnotationStore
from readgrid.storage import AnnotationRepository


DOCUMENT = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"><body>
<p>The quick brown fox jumps.</p>
</body></html>
"""


def _write_document(tmp_path: Path) -> Path:
    path = tmp_path / "doc.xhtml"
    path.write_text(DOCUMENT, encoding="utf-8")
    return path


def test_cli_lists_chapters(tmp_path: Path, capsys: object) -> None:
    path = _write_document(tmp_path)

    exit_code = render_chapter_main(["--path", str(path), "--list-chapters"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload == {"book_id": "doc", "chapters": ["doc.xhtml"]}


def test_cli_emits_wrapped_lines_as_json(tmp_path: Path, capsys: object) -> None:
    path = _write_document(tmp_path)

    exit_code = render_chapter_main(["--path", str(path), "--columns", "14", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["chapter_id"] == "doc.xhtml"
    assert payload["width"] == 10
    assert payload["total"] == 3
    assert [line["text"] for line in payload["lines"]] == ["The quick", "brown fox", "jumps."]


def test_cli_plain_text_includes_margin(tmp_path: Path, capsys: object) -> None:
    path = _write_document(tmp_path)

    assert render_chapter_main(["--path", str(path), "--columns", "14"]) == 0

    assert capsys.readouterr().out == "  The quick\n  brown fox\n  jumps.\n"


def test_cli_starts_window_at_offset(tmp_path: Path, capsys: object) -> None:
    path = _write_document(tmp_path)

    render_chapter_main(["--path", str(path), "--columns", "14", "--rows", "1", "--offset", "10", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert payload["top"] == 1
    assert [line["text"] for line in payload["lines"]] == ["brown fox"]


def test_cli_marks_annotations_and_counts_orphans(tmp_path: Path, capsys: object) -> None:
    path = _write_document(tmp_path)
    db_path = tmp_path / "notes.db"
    with AnnotationRepository(db_path) as repository:
        store = AnnotationStore("doc", sink=repository)
        store.insert("doc.xhtml", 4, 9, "adjective")
        store.insert("doc.xhtml", 100, 120, "from an older edition")

    exit_code = render_chapter_main(
        ["--path", str(path), "--columns", "14", "--json", "--with-annotations", "--db-path", str(db_path)]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert [line["annotated"] for line in payload["lines"]] == [True, False, False]
    assert payload["orphaned_annotations"] == 1
    with AnnotationRepository(db_path) as repository:
        assert len(repository.orphans("doc")) == 1


def test_cli_rejects_unknown_chapter_and_missing_file(tmp_path: Path) -> None:
    path = _write_document(tmp_path)

    assert render_chapter_main(["--path", str(path), "--chapter", "7"]) == 1
    assert render_chapter_main(["--path", str(tmp_path / "missing.epub")]) == 1
