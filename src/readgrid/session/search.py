"""Search over canonical streams for one chapter or a whole book."""

from __future__ import annotations

from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum
import logging
from typing import Protocol, Sequence, runtime_checkable

from razdel import tokenize

from readgrid.content.normalization import collapse_whitespace, fold_for_search, normalize_whitespace


logger = logging.getLogger(__name__)

DEFAULT_FUZZY_THRESHOLD = 0.8
SNIPPET_CONTEXT = 30


class SearchScope(str, Enum):
    CHAPTER = "chapter"
    BOOK = "book"


class MatchMode(str, Enum):
    SUBSTRING = "substring"
    FUZZY = "fuzzy"


@runtime_checkable
class ChapterSource(Protocol):
    """Streams in table-of-contents order, without building any layout."""

    def chapter_ids(self) -> Sequence[str]:
        ...

    def stream(self, chapter_id: str) -> str:
        ...


@dataclass(frozen=True, slots=True)
class SearchMatch:
    chapter_id: str
    start: int
    end: int
    snippet: str


@dataclass(frozen=True, slots=True)
class SearchRequest:
    scope: SearchScope
    query: str
    mode: MatchMode
    chapter_id: str
    offset: int = 0


def make_snippet(stream: str, start: int, end: int, context: int = SNIPPET_CONTEXT) -> str:
    """Match text bracketed with guillemets, trimmed context marked with an ellipsis."""

    left = max(0, start - context)
    right = min(len(stream), end + context)
    before = collapse_whitespace(stream[left:start])
    after = collapse_whitespace(stream[end:right])
    prefix = "…" if left > 0 else ""
    suffix = "…" if right < len(stream) else ""
    return f"{prefix}{before}«{collapse_whitespace(stream[start:end])}»{after}{suffix}"


def _substring_ranges(folded: str, needle: str) -> list[tuple[int, int]]:
    ranges: list[tuple[int, int]] = []
    position = folded.find(needle)
    while position != -1:
        ranges.append((position, position + len(needle)))
        position = folded.find(needle, position + len(needle))
    return ranges


def _word_tokens(text: str) -> list[tuple[int, int]]:
    return [
        (token.start, token.stop)
        for token in tokenize(text)
        if any(char.isalnum() for char in token.text)
    ]


def _fuzzy_ranges(
    folded: str,
    needle: str,
    exact: list[tuple[int, int]],
    threshold: float,
) -> list[tuple[int, int]]:
    size = max(1, len(_word_tokens(needle)))
    tokens = _word_tokens(folded)
    matcher = SequenceMatcher(autojunk=False)
    matcher.set_seq2(needle)

    ranges: list[tuple[int, int]] = []
    taken = list(exact)
    for index in range(len(tokens) - size + 1):
        start, end = tokens[index][0], tokens[index + size - 1][1]
        if any(start < other_end and other_start < end for other_start, other_end in taken):
            continue
        matcher.set_seq1(folded[start:end])
        if matcher.ratio() >= threshold:
            ranges.append((start, end))
            taken.append((start, end))
    return ranges


def find_matches(
    chapter_id: str,
    stream: str,
    query: str,
    mode: MatchMode = MatchMode.SUBSTRING,
    threshold: float = DEFAULT_FUZZY_THRESHOLD,
) -> list[SearchMatch]:
    """Case-insensitive matches of ``query`` in one stream, in document order.

    Fuzzy mode adds windows of as many words as the query whose
    ``SequenceMatcher`` ratio reaches ``threshold``; windows overlapping an
    exact hit are skipped.
    """

    needle = fold_for_search(normalize_whitespace(query))
    if not needle or not stream:
        return []

    folded = fold_for_search(stream)
    ranges = _substring_ranges(folded, needle)
    if mode is MatchMode.FUZZY:
        ranges = sorted(ranges + _fuzzy_ranges(folded, needle, ranges, threshold))
    return [
        SearchMatch(chapter_id=chapter_id, start=start, end=end, snippet=make_snippet(stream, start, end))
        for start, end in ranges
    ]


class SearchScan:
    """Incremental scan that processes one chapter per :meth:`step`."""

    def __init__(
        self,
        engine: "SearchEngine",
        request: SearchRequest,
        chapter_ids: Sequence[str],
    ) -> None:
        self._engine = engine
        self.request = request
        self._pending = list(chapter_ids)
        self._matches: list[SearchMatch] = []
        self.cancelled = False
        self.done = False

    @property
    def partial(self) -> tuple[SearchMatch, ...]:
        return tuple(self._matches)

    def cancel(self) -> None:
        if not self.done:
            self.cancelled = True

    def step(self) -> bool:
        """Scan the next chapter; return True once the scan is finished or cancelled."""

        if self.cancelled or self.done:
            return True
        if self._pending:
            chapter_id = self._pending.pop(0)
            stream = self._engine.source.stream(chapter_id)
            self._matches.extend(
                find_matches(
                    chapter_id,
                    stream,
                    self.request.query,
                    self.request.mode,
                    self._engine.fuzzy_threshold,
                )
            )
        if not self._pending:
            self.done = True
            self._engine._finish(self)
        return self.done

    def run(self) -> tuple[SearchMatch, ...]:
        while not self.step():
            pass
        return () if self.cancelled else self.partial


class SearchEngine:
    """Owns the ordered match list and its wraparound cursor."""

    def __init__(self, source: ChapterSource, *, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD) -> None:
        if not 0 < fuzzy_threshold <= 1:
            raise ValueError("fuzzy_threshold must be in (0, 1]")
        self.source = source
        self.fuzzy_threshold = fuzzy_threshold
        self._matches: tuple[SearchMatch, ...] = ()
        self._cursor: int | None = None
        self._request: SearchRequest | None = None
        self._book_request: SearchRequest | None = None
        self._book_position: SearchMatch | None = None
        self._active: SearchScan | None = None

    @property
    def matches(self) -> tuple[SearchMatch, ...]:
        return self._matches

    @property
    def cursor(self) -> int | None:
        return self._cursor

    @property
    def request(self) -> SearchRequest | None:
        return self._request

    def current(self) -> SearchMatch | None:
        if self._cursor is None:
            return None
        return self._matches[self._cursor]

    def start_scan(
        self,
        scope: SearchScope,
        query: str,
        *,
        chapter_id: str,
        offset: int = 0,
        mode: MatchMode = MatchMode.SUBSTRING,
    ) -> SearchScan:
        """Begin a scan, superseding and discarding any scan still in progress."""

        if self._active is not None and not self._active.done:
            logger.debug("Superseded search scan for %r", self._active.request.query)
            self._active.cancel()

        request = SearchRequest(scope=scope, query=query, mode=mode, chapter_id=chapter_id, offset=offset)
        if not normalize_whitespace(query):
            chapter_ids: Sequence[str] = []
        elif scope is SearchScope.BOOK:
            chapter_ids = list(self.source.chapter_ids())
        else:
            chapter_ids = [chapter_id]
        self._active = SearchScan(self, request, chapter_ids)
        return self._active

    def search(
        self,
        scope: SearchScope,
        query: str,
        *,
        chapter_id: str,
        offset: int = 0,
        mode: MatchMode = MatchMode.SUBSTRING,
    ) -> tuple[SearchMatch, ...]:
        """Run a scan to completion.

        An empty query or a query without matches returns ``()`` and keeps the
        previous match list and cursor.
        """

        return self.start_scan(scope, query, chapter_id=chapter_id, offset=offset, mode=mode).run()

    def _finish(self, scan: SearchScan) -> None:
        if scan is not self._active:
            return
        self._active = None
        matches = scan.partial
        if not matches:
            return
        request = scan.request
        self._remember_book_position()
        self._matches = matches
        self._request = request
        if request.scope is SearchScope.BOOK:
            self._book_request = request
        self._cursor = self._first_at_or_after(request.chapter_id, request.offset)

    def _remember_book_position(self) -> None:
        if self._request is not None and self._request.scope is SearchScope.BOOK:
            self._book_position = self.current()

    def _order(self, chapter_id: str) -> int:
        if self._request is not None and self._request.scope is SearchScope.CHAPTER:
            return 0
        try:
            return list(self.source.chapter_ids()).index(chapter_id)
        except ValueError:
            return 0

    def _first_at_or_after(self, chapter_id: str, offset: int) -> int:
        target = (self._order(chapter_id), offset)
        orders: dict[str, int] = {}
        for index, match in enumerate(self._matches):
            if match.chapter_id not in orders:
                orders[match.chapter_id] = self._order(match.chapter_id)
            if (orders[match.chapter_id], match.start) >= target:
                return index
        return 0

    def next(self) -> SearchMatch | None:
        if self._cursor is None:
            return None
        self._cursor = (self._cursor + 1) % len(self._matches)
        return self._matches[self._cursor]

    def previous(self) -> SearchMatch | None:
        if self._cursor is None:
            return None
        self._cursor = (self._cursor - 1) % len(self._matches)
        return self._matches[self._cursor]

    def reopen(self) -> tuple[SearchMatch, ...]:
        """Re-run the last book-wide query, keeping the cursor on the same match."""

        request = self._book_request
        if request is None:
            return ()
        current = self.current() if self._request is request else self._book_position
        matches = self.start_scan(
            SearchScope.BOOK,
            request.query,
            chapter_id=request.chapter_id,
            offset=request.offset,
            mode=request.mode,
        ).run()
        if matches and current is not None:
            self._cursor = self._first_at_or_after(current.chapter_id, current.start)
        return matches

    def clear(self) -> None:
        if self._active is not None:
            self._active.cancel()
            self._active = None
        self._remember_book_position()
        self._matches = ()
        self._cursor = None
        self._request = None
