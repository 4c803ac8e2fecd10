"""CLI entrypoint for chapter or book-wide search over canonical streams."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from readgrid.config import ReaderSettings
from readgrid.content.adapters import open_book
from readgrid.session.search import MatchMode, SearchEngine, SearchScope


load_dotenv()

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.INFO,
    )
    parser = argparse.ArgumentParser(description="Search a book's chapters for a query")
    parser.add_argument("--path", required=True, help="EPUB or XHTML file")
    parser.add_argument("--query", required=True, help="Text to search for")
    parser.add_argument(
        "--scope",
        choices=[scope.value for scope in SearchScope],
        default=SearchScope.BOOK.value,
        help="Search one chapter or the whole book",
    )
    parser.add_argument("--chapter", help="Chapter id for chapter scope (default: first)")
    parser.add_argument("--fuzzy", action="store_true", help="Also report near matches")
    parser.add_argument("--limit", type=int, default=20, help="Maximum number of results")
    args = parser.parse_args(argv)
    safe_limit = max(1, min(args.limit, 500))

    try:
        settings = ReaderSettings.from_env()
        book = open_book(Path(args.path))
    except (OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    chapter_ids = list(book.chapter_ids())
    chapter_id = args.chapter or (chapter_ids[0] if chapter_ids else "")
    if chapter_id and chapter_id not in chapter_ids:
        logger.error("Unknown chapter: %s", chapter_id)
        return 1

    scope = SearchScope(args.scope)
    mode = MatchMode.FUZZY if args.fuzzy else MatchMode.SUBSTRING
    engine = SearchEngine(book, fuzzy_threshold=settings.fuzzy_threshold)
    matches = engine.search(scope, args.query, chapter_id=chapter_id, mode=mode) if chapter_id else ()

    payload = {
        "query": args.query,
        "scope": scope.value,
        "mode": mode.value,
        "total": len(matches),
        "limit": safe_limit,
        "results": [
            {
                "chapter_id": match.chapter_id,
                "start": match.start,
                "end": match.end,
                "snippet": match.snippet,
            }
            for match in matches[:safe_limit]
        ],
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
