"""Persistence collaborator storing annotation records per book in SQLite."""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import sqlite3

from readgrid.session.annotations import Annotation, AnnotationChange, AnnotationChangeKind
from readgrid.storage.schema import apply_runtime_pragmas, ensure_schema


logger = logging.getLogger(__name__)

_UPSERT_SQL = """
INSERT INTO annotations (
    id, book_id, chapter_id, start_offset, end_offset, block_index,
    line_start, line_end, body, created_at, updated_at, orphaned
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id) DO UPDATE SET
    chapter_id = excluded.chapter_id,
    start_offset = excluded.start_offset,
    end_offset = excluded.end_offset,
    block_index = excluded.block_index,
    line_start = excluded.line_start,
    line_end = excluded.line_end,
    body = excluded.body,
    updated_at = excluded.updated_at,
    orphaned = excluded.orphaned
"""


def _row_to_annotation(row: sqlite3.Row) -> Annotation:
    return Annotation(
        id=row["id"],
        chapter_id=row["chapter_id"],
        text=row["body"],
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        start=row["start_offset"],
        end=row["end_offset"],
        block_index=row["block_index"],
        line_start=row["line_start"],
        line_end=row["line_end"],
    )


class AnnotationRepository:
    """SQLite-backed annotation sink; usable as a context manager."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._connection = sqlite3.connect(str(self._db_path))
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "AnnotationRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def record(self, change: AnnotationChange) -> None:
        annotation = change.annotation
        if change.kind is AnnotationChangeKind.DELETE:
            self._connection.execute(
                "DELETE FROM annotations WHERE id = ? AND book_id = ?",
                (annotation.id, change.book_id),
            )
        else:
            orphaned = 1 if change.kind is AnnotationChangeKind.ORPHANED else 0
            self._connection.execute(
                _UPSERT_SQL,
                (
                    annotation.id,
                    change.book_id,
                    annotation.chapter_id,
                    annotation.start,
                    annotation.end,
                    annotation.block_index,
                    annotation.line_start,
                    annotation.line_end,
                    annotation.text,
                    annotation.created_at.isoformat(),
                    annotation.updated_at.isoformat(),
                    orphaned,
                ),
            )
        self._connection.commit()
        logger.debug("Recorded %s for annotation %s", change.kind.value, annotation.id)

    def load_chapter(self, book_id: str, chapter_id: str) -> list[Annotation]:
        rows = self._connection.execute(
            """
            SELECT * FROM annotations
            WHERE book_id = ? AND chapter_id = ? AND orphaned = 0
            ORDER BY block_index IS NOT NULL, start_offset, block_index, line_start
            """,
            (book_id, chapter_id),
        ).fetchall()
        return [_row_to_annotation(row) for row in rows]

    def load_book(self, book_id: str) -> list[Annotation]:
        rows = self._connection.execute(
            "SELECT * FROM annotations WHERE book_id = ? AND orphaned = 0 ORDER BY chapter_id, start_offset",
            (book_id,),
        ).fetchall()
        return [_row_to_annotation(row) for row in rows]

    def orphans(self, book_id: str) -> list[Annotation]:
        rows = self._connection.execute(
            "SELECT * FROM annotations WHERE book_id = ? AND orphaned = 1 ORDER BY updated_at",
            (book_id,),
        ).fetchall()
        return [_row_to_annotation(row) for row in rows]
