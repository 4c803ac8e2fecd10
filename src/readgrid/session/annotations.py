"""In-memory annotation anchor store keyed by logical offsets."""

from __future__ import annotations

from bisect import bisect_right, insort
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Callable, Iterable, Protocol, runtime_checkable
import uuid

from readgrid.content.models import Chapter, CodeBlock


logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Annotation:
    """A comment anchored either to ``[start, end)`` or to code-block lines.

    Line-scoped annotations use ``block_index`` plus an inclusive
    ``[line_start, line_end]`` range of block-relative line indexes.
    """

    id: str
    chapter_id: str
    text: str
    created_at: datetime
    updated_at: datetime
    start: int | None = None
    end: int | None = None
    block_index: int | None = None
    line_start: int | None = None
    line_end: int | None = None

    @property
    def is_code_line(self) -> bool:
        return self.block_index is not None

    def contains(self, offset: int) -> bool:
        if self.start is None or self.end is None:
            return False
        return self.start <= offset < self.end

    def covers_line(self, block_index: int, line_index: int) -> bool:
        if self.block_index != block_index or self.line_start is None or self.line_end is None:
            return False
        return self.line_start <= line_index <= self.line_end


class AnnotationChangeKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ORPHANED = "orphaned"


@dataclass(frozen=True, slots=True)
class AnnotationChange:
    kind: AnnotationChangeKind
    book_id: str
    annotation: Annotation


@runtime_checkable
class AnnotationSink(Protocol):
    def record(self, change: AnnotationChange) -> None:
        ...


class AnnotationStore:
    """Per-book annotation index.

    Text annotations never overlap within a chapter; line annotations that
    overlap inside one code block are merged into a single record.
    """

    def __init__(
        self,
        book_id: str,
        *,
        sink: AnnotationSink | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._book_id = book_id
        self._sink = sink
        self._now = now
        self._by_id: dict[str, Annotation] = {}
        self._text: dict[str, list[tuple[int, str]]] = {}
        self._lines: dict[tuple[str, int], list[str]] = {}
        self.orphans: list[Annotation] = []

    @property
    def book_id(self) -> str:
        return self._book_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._by_id

    def get(self, annotation_id: str) -> Annotation:
        try:
            return self._by_id[annotation_id]
        except KeyError:
            raise KeyError(f"unknown annotation id: {annotation_id}") from None

    def _emit(self, kind: AnnotationChangeKind, annotation: Annotation) -> None:
        if self._sink is not None:
            self._sink.record(AnnotationChange(kind=kind, book_id=self._book_id, annotation=annotation))

    def _overlapping_text(self, chapter_id: str, start: int, end: int) -> Annotation | None:
        entries = self._text.get(chapter_id, [])
        index = bisect_right(entries, (start, "\uffff")) - 1
        for position in (index, index + 1):
            if 0 <= position < len(entries):
                candidate = self._by_id[entries[position][1]]
                if candidate.start < end and start < candidate.end:
                    return candidate
        return None

    def _index(self, annotation: Annotation) -> None:
        self._by_id[annotation.id] = annotation
        if annotation.is_code_line:
            self._lines.setdefault((annotation.chapter_id, annotation.block_index), []).append(annotation.id)
        else:
            insort(self._text.setdefault(annotation.chapter_id, []), (annotation.start, annotation.id))

    def _unindex(self, annotation: Annotation) -> None:
        del self._by_id[annotation.id]
        if annotation.is_code_line:
            self._lines[(annotation.chapter_id, annotation.block_index)].remove(annotation.id)
        else:
            self._text[annotation.chapter_id].remove((annotation.start, annotation.id))

    def insert(self, chapter_id: str, start: int, end: int, text: str) -> Annotation:
        if start < 0 or end <= start:
            raise ValueError(f"invalid annotation range [{start}, {end})")
        existing = self._overlapping_text(chapter_id, start, end)
        if existing is not None:
            raise ValueError(
                f"range [{start}, {end}) overlaps annotation {existing.id} [{existing.start}, {existing.end})"
            )

        timestamp = self._now()
        annotation = Annotation(
            id=uuid.uuid4().hex,
            chapter_id=chapter_id,
            text=text,
            created_at=timestamp,
            updated_at=timestamp,
            start=start,
            end=end,
        )
        self._index(annotation)
        self._emit(AnnotationChangeKind.CREATE, annotation)
        return annotation

    def insert_code_line(
        self,
        chapter_id: str,
        block_index: int,
        line_start: int,
        text: str,
        line_end: int | None = None,
        *,
        chapter: Chapter | None = None,
    ) -> Annotation:
        """Annotate code lines ``[line_start, line_end]``, merging with overlapping comments.

        When ``chapter`` is given the block must be a code block holding those lines.
        """

        line_end = line_start if line_end is None else line_end
        if block_index < 0 or line_start < 0 or line_end < line_start:
            raise ValueError(f"invalid code line range {line_start}..{line_end} in block {block_index}")
        if chapter is not None:
            _check_code_lines(chapter, chapter_id, block_index, line_end)

        ids = self._lines.get((chapter_id, block_index), [])
        overlapping = [
            self._by_id[annotation_id]
            for annotation_id in ids
            if self._by_id[annotation_id].line_start <= line_end
            and line_start <= self._by_id[annotation_id].line_end
        ]
        timestamp = self._now()
        if not overlapping:
            annotation = Annotation(
                id=uuid.uuid4().hex,
                chapter_id=chapter_id,
                text=text,
                created_at=timestamp,
                updated_at=timestamp,
                block_index=block_index,
                line_start=line_start,
                line_end=line_end,
            )
            self._index(annotation)
            self._emit(AnnotationChangeKind.CREATE, annotation)
            return annotation

        overlapping.sort(key=lambda item: (item.line_start, item.created_at))
        keeper = overlapping[0]
        texts: list[str] = []
        for item in [*overlapping, None]:
            value = text if item is None else item.text
            if value and value not in texts:
                texts.append(value)
        merged = replace(
            keeper,
            text="\n".join(texts),
            updated_at=timestamp,
            line_start=min([line_start, *(item.line_start for item in overlapping)]),
            line_end=max([line_end, *(item.line_end for item in overlapping)]),
        )
        for item in overlapping:
            self._unindex(item)
            if item is not keeper:
                self._emit(AnnotationChangeKind.DELETE, item)
        self._index(merged)
        self._emit(AnnotationChangeKind.UPDATE, merged)
        return merged

    def update(self, annotation_id: str, text: str) -> Annotation:
        current = self.get(annotation_id)
        updated = replace(current, text=text, updated_at=self._now())
        self._by_id[annotation_id] = updated
        self._emit(AnnotationChangeKind.UPDATE, updated)
        return updated

    def delete(self, annotation_id: str) -> Annotation:
        annotation = self.get(annotation_id)
        self._unindex(annotation)
        self._emit(AnnotationChangeKind.DELETE, annotation)
        return annotation

    def query(self, chapter_id: str, offset: int) -> Annotation | None:
        entries = self._text.get(chapter_id)
        if not entries:
            return None
        index = bisect_right(entries, (offset, "\uffff")) - 1
        if index < 0:
            return None
        candidate = self._by_id[entries[index][1]]
        return candidate if candidate.contains(offset) else None

    def query_line(self, chapter_id: str, block_index: int, line_index: int) -> Annotation | None:
        for annotation_id in self._lines.get((chapter_id, block_index), []):
            annotation = self._by_id[annotation_id]
            if annotation.covers_line(block_index, line_index):
                return annotation
        return None

    def for_chapter(self, chapter_id: str) -> tuple[Annotation, ...]:
        text = [self._by_id[annotation_id] for _, annotation_id in self._text.get(chapter_id, [])]
        lines = [
            self._by_id[annotation_id]
            for (owner, _), ids in sorted(self._lines.items())
            if owner == chapter_id
            for annotation_id in ids
        ]
        lines.sort(key=lambda item: (item.block_index, item.line_start))
        return tuple(text + lines)

    def text_ranges(self, chapter_id: str) -> list[tuple[int, int]]:
        return [
            (self._by_id[annotation_id].start, self._by_id[annotation_id].end)
            for _, annotation_id in self._text.get(chapter_id, [])
        ]

    def annotated_lines(self, chapter_id: str) -> set[tuple[int, int]]:
        covered: set[tuple[int, int]] = set()
        for (owner, block_index), ids in self._lines.items():
            if owner != chapter_id:
                continue
            for annotation_id in ids:
                annotation = self._by_id[annotation_id]
                covered.update((block_index, line) for line in range(annotation.line_start, annotation.line_end + 1))
        return covered

    def load(self, annotations: Iterable[Annotation], chapter: Chapter | None = None) -> list[Annotation]:
        """Index persisted annotations without emitting create records.

        When ``chapter`` is given, anchors that no longer fit its content are
        moved to :attr:`orphans` and reported to the sink. Returns the orphans
        found by this call.
        """

        found: list[Annotation] = []
        for annotation in annotations:
            if annotation.id in self._by_id:
                continue
            stale = chapter is not None and annotation.chapter_id == chapter.chapter_id and _is_stale(annotation, chapter)
            if not stale and not annotation.is_code_line:
                stale = self._overlapping_text(annotation.chapter_id, annotation.start, annotation.end) is not None
            if stale:
                found.append(annotation)
                continue
            self._index(annotation)
        self._orphan(found)
        return found

    def validate_chapter(self, chapter: Chapter) -> list[Annotation]:
        """Orphan indexed annotations whose anchors do not fit ``chapter``."""

        found = [item for item in self.for_chapter(chapter.chapter_id) if _is_stale(item, chapter)]
        for annotation in found:
            self._unindex(annotation)
        self._orphan(found)
        return found

    def _orphan(self, annotations: list[Annotation]) -> None:
        for annotation in annotations:
            logger.warning(
                "Orphaned annotation %s in chapter %s of book %s",
                annotation.id,
                annotation.chapter_id,
                self._book_id,
            )
            self.orphans.append(annotation)
            self._emit(AnnotationChangeKind.ORPHANED, annotation)


def _is_stale(annotation: Annotation, chapter: Chapter) -> bool:
    if annotation.is_code_line:
        if not 0 <= annotation.block_index < len(chapter.blocks):
            return True
        block = chapter.blocks[annotation.block_index]
        if not isinstance(block, CodeBlock):
            return True
        return annotation.line_start < 0 or annotation.line_end >= len(block.lines)
    if annotation.start is None or annotation.end is None:
        return True
    return annotation.start < 0 or annotation.end <= annotation.start or annotation.end > len(chapter.stream)


def _check_code_lines(chapter: Chapter, chapter_id: str, block_index: int, line_end: int) -> None:
    if chapter.chapter_id != chapter_id:
        raise ValueError(f"chapter {chapter.chapter_id} does not match {chapter_id}")
    block = chapter.blocks[block_index] if block_index < len(chapter.blocks) else None
    if not isinstance(block, CodeBlock):
        raise ValueError(f"block {block_index} of chapter {chapter_id} is not a code block")
    if line_end >= len(block.lines):
        raise ValueError(f"code block {block_index} has no line {line_end}")
