"""CLI entrypoint that lays out one chapter of a book for a terminal width."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from readgrid.config import ReaderSettings
from readgrid.content.adapters import open_book
from readgrid.session.annotations import AnnotationStore
from readgrid.session.reader import ReadingSession
from readgrid.storage.annotation_repository import AnnotationRepository


load_dotenv()

logger = logging.getLogger(__name__)


def _pick_chapter(chapter_ids: list[str], selector: str | None) -> str:
    if not selector:
        return chapter_ids[0]
    if selector in chapter_ids:
        return selector
    if selector.isdigit() and 0 <= int(selector) < len(chapter_ids):
        return chapter_ids[int(selector)]
    raise ValueError(f"Unknown chapter: {selector}")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Lay out a book chapter as terminal lines")
    parser.add_argument("--path", required=True, help="EPUB or XHTML file")
    parser.add_argument("--chapter", help="Chapter id or zero-based spine index (default: first)")
    parser.add_argument("--columns", type=int, default=80, help="Terminal width in columns")
    parser.add_argument("--rows", type=int, default=0, help="Rows to print (default: whole chapter)")
    parser.add_argument("--offset", type=int, default=0, help="Stream offset to show at the top")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of plain text")
    parser.add_argument("--list-chapters", action="store_true", help="Print chapter ids and exit")
    parser.add_argument(
        "--with-annotations",
        action="store_true",
        help="Mark annotated text using the annotation database",
    )
    parser.add_argument("--db-path", help="Annotation database path (default: READGRID_DB_PATH)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    args = _parse_args(argv)

    try:
        settings = ReaderSettings.from_env()
        book = open_book(Path(args.path))
        chapter_ids = list(book.chapter_ids())
        if args.list_chapters:
            print(json.dumps({"book_id": book.book_id, "chapters": chapter_ids}, ensure_ascii=True, indent=2))
            return 0
        if not chapter_ids:
            raise ValueError("Book has no chapters")
        chapter_id = _pick_chapter(chapter_ids, args.chapter)
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    store = AnnotationStore(book.book_id)
    repository: AnnotationRepository | None = None
    if args.with_annotations:
        repository = AnnotationRepository(args.db_path or settings.db_path)
        store = AnnotationStore(book.book_id, sink=repository)
        store.load(repository.load_chapter(book.book_id, chapter_id), book.chapter(chapter_id))

    try:
        session = ReadingSession(
            book,
            columns=args.columns,
            rows=max(1, args.rows),
            settings=settings,
            annotations=store,
            book_id=book.book_id,
            chapter_id=chapter_id,
        )
        if not args.rows:
            session.resize(args.columns, max(1, session.viewport.total))
        if args.offset:
            session.open_chapter(chapter_id, args.offset)
        window = session.window()
    finally:
        if repository is not None:
            repository.close()

    margin = " " * window.margin
    if args.json:
        payload = {
            "book_id": book.book_id,
            "chapter_id": chapter_id,
            "width": session.content_width,
            "top": window.top,
            "total": window.total,
            "orphaned_annotations": len(store.orphans),
            "lines": [
                {
                    "text": line.text(),
                    "annotated": any(cell.style.annotated for cell in line.cells),
                }
                for line in window.lines
            ],
        }
        print(json.dumps(payload, ensure_ascii=True, indent=2))
        return 0

    for line in window.lines:
        print(f"{margin}{line.text()}".rstrip())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
