"""SQLite schema for persisted annotations."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create annotation tables and indexes if they do not exist."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS annotations (
            id TEXT PRIMARY KEY,
            book_id TEXT NOT NULL,
            chapter_id TEXT NOT NULL,
            start_offset INTEGER,
            end_offset INTEGER,
            block_index INTEGER,
            line_start INTEGER,
            line_end INTEGER,
            body TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            orphaned INTEGER NOT NULL DEFAULT 0 CHECK(orphaned IN (0, 1)),
            CHECK(
                (start_offset IS NOT NULL AND end_offset IS NOT NULL AND block_index IS NULL)
                OR (block_index IS NOT NULL AND line_start IS NOT NULL AND line_end IS NOT NULL)
            )
        );

        CREATE INDEX IF NOT EXISTS idx_annotations_book_chapter
        ON annotations(book_id, chapter_id, orphaned);
        """
    )
