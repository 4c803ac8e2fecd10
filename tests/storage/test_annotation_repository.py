from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
import sqlite3

from readgrid.content.builder import ChapterBuilder
from readgrid.session.annotations import AnnotationStore
from readgrid.storage import AnnotationRepository


def fixed_clock() -> datetime:
    return datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


def test_schema_and_pragmas_are_applied(tmp_path: Path) -> None:
    with AnnotationRepository(tmp_path / "notes.db") as repository:
        tables = {
            row["name"]
            for row in repository.connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        journal_mode = repository.connection.execute("PRAGMA journal_mode").fetchone()[0]

    assert "annotations" in tables
    assert journal_mode == "wal"


def test_store_changes_round_trip_through_sqlite(tmp_path: Path) -> None:
    db_path = tmp_path / "notes.db"
    with AnnotationRepository(db_path) as repository:
        store = AnnotationStore("book-1", sink=repository, now=fixed_clock)
        late = store.insert("ch1", 10, 14, "late")
        early = store.insert("ch1", 0, 3, "early")
        line = store.insert_code_line("ch1", 2, 0, "code", line_end=1)
        store.update(early.id, "early, edited")
        store.insert("ch2", 0, 1, "elsewhere")
        dropped = store.insert("ch1", 20, 22, "temporary")
        store.delete(dropped.id)

    with AnnotationRepository(db_path) as repository:
        loaded = repository.load_chapter("book-1", "ch1")
        book = repository.load_book("book-1")

    assert [item.id for item in loaded] == [early.id, late.id, line.id]
    assert loaded[0].text == "early, edited"
    assert loaded[0].created_at == fixed_clock()
    assert (loaded[2].block_index, loaded[2].line_start, loaded[2].line_end) == (2, 0, 1)
    assert len(book) == 4


def test_orphaned_anchors_are_flagged_not_deleted(tmp_path: Path) -> None:
    db_path = tmp_path / "notes.db"
    chapter = ChapterBuilder("ch1").paragraph("Short text").build()
    with AnnotationRepository(db_path) as repository:
        writer = AnnotationStore("book-1", sink=repository)
        kept = writer.insert("ch1", 0, 5, "kept")
        stale = writer.insert("ch1", 40, 50, "stale")

    with AnnotationRepository(db_path) as repository:
        reader = AnnotationStore("book-1", sink=repository)
        orphans = reader.load(repository.load_chapter("book-1", "ch1"), chapter)

        assert [item.id for item in orphans] == [stale.id]
        assert [item.id for item in repository.load_chapter("book-1", "ch1")] == [kept.id]
        assert [item.id for item in repository.orphans("book-1")] == [stale.id]

    connection = sqlite3.connect(db_path)
    try:
        count = connection.execute("SELECT COUNT(*) FROM annotations").fetchone()[0]
    finally:
        connection.close()
    assert count == 2
