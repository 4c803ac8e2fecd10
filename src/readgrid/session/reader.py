"""Reading session: the single owner of layout, viewport and interaction state."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, replace
import logging
from posixpath import basename
from typing import Callable, Protocol, Sequence, runtime_checkable
from urllib.parse import unquote, urlparse

from readgrid.config import ReaderSettings
from readgrid.content.models import Chapter, Image, Inline
from readgrid.layout.cache import Layout, LayoutCache
from readgrid.layout.cells import Cell, LayoutLine
from readgrid.layout.config import StyleConfig
from readgrid.session.annotations import AnnotationStore
from readgrid.session.events import Event, EventQueue, KeyEvent, MouseEvent, MouseKind, ResizeEvent, TickEvent
from readgrid.session.history import JumpList, Location, NavigationEntry
from readgrid.session.search import MatchMode, SearchEngine, SearchMatch, SearchScope
from readgrid.session.selection import SelectionEngine
from readgrid.session.timers import RepeatingTimer, WheelBatcher
from readgrid.session.viewport import Viewport


logger = logging.getLogger(__name__)

DOUBLE_CLICK_MS = 500
WHEEL_LINES = 1
MAX_MARGIN = 40


@runtime_checkable
class ChapterProvider(Protocol):
    """Content collaborator: parsed chapters in table-of-contents order."""

    def chapter_ids(self) -> Sequence[str]:
        ...

    def chapter(self, chapter_id: str) -> Chapter:
        ...

    def stream(self, chapter_id: str) -> str:
        ...


@dataclass(frozen=True, slots=True)
class LinkTarget:
    href: str
    external: bool
    chapter_id: str | None = None
    offset: int | None = None


@dataclass(frozen=True, slots=True)
class ViewportWindow:
    chapter_id: str
    top: int
    total: int
    margin: int
    lines: tuple[LayoutLine, ...]


@runtime_checkable
class RenderSink(Protocol):
    def draw(self, window: ViewportWindow) -> None:
        ...


@runtime_checkable
class ShellSink(Protocol):
    def link_activated(self, target: LinkTarget) -> None:
        ...

    def open_externally(self, asset: str) -> None:
        ...

    def copy_text(self, text: str) -> None:
        ...


def _in_ranges(offset: int, starts: list[int], ranges: list[tuple[int, int]]) -> bool:
    index = bisect_right(starts, offset) - 1
    return index >= 0 and offset < ranges[index][1]


class ReadingSession:
    """Processes one event at a time and re-emits the visible window after each."""

    def __init__(
        self,
        provider: ChapterProvider,
        *,
        columns: int = 80,
        rows: int = 24,
        settings: ReaderSettings | None = None,
        annotations: AnnotationStore | None = None,
        render: RenderSink | None = None,
        shell: ShellSink | None = None,
        cache: LayoutCache | None = None,
        book_id: str = "book",
        chapter_id: str | None = None,
    ) -> None:
        ids = list(provider.chapter_ids())
        if not ids:
            raise ValueError("book has no chapters")
        settings = settings or ReaderSettings()

        self.provider = provider
        self.style: StyleConfig = settings.style()
        self.columns = max(1, columns)
        self.cache = cache if cache is not None else LayoutCache()
        self.annotations = annotations if annotations is not None else AnnotationStore(book_id)
        self.search_engine = SearchEngine(provider, fuzzy_threshold=settings.fuzzy_threshold)
        self.history = JumpList(settings.history_size)
        self.viewport = Viewport(top=0, height=max(1, rows), margin=self.style.margin)
        self.wheel = WheelBatcher(settings.wheel_window_ms)
        self.autoscroll = RepeatingTimer(settings.autoscroll_interval_ms)
        self._render = render
        self._shell = shell

        self._now_ms = 0
        self._pressed = False
        self._dragged = False
        self._press_offset: int | None = None
        self._drag_position: tuple[int, int] | None = None
        self._last_click: tuple[int, int, int] | None = None
        self._click_count = 0

        self._handlers: dict[type, Callable[[Event], None]] = {
            KeyEvent: self._on_key,
            MouseEvent: self._on_mouse,
            ResizeEvent: self._on_resize,
            TickEvent: self._on_tick,
        }
        self._keymap: dict[str, Callable[[], object]] = {
            "j": lambda: self.viewport.line_down(),
            "down": lambda: self.viewport.line_down(),
            "k": lambda: self.viewport.line_up(),
            "up": lambda: self.viewport.line_up(),
            "ctrl+d": lambda: self.viewport.half_page_down(),
            "ctrl+u": lambda: self.viewport.half_page_up(),
            "space": lambda: self.viewport.page_down(),
            "pagedown": lambda: self.viewport.page_down(),
            "pageup": lambda: self.viewport.page_up(),
            "g": lambda: self.viewport.to_top(),
            "home": lambda: self.viewport.to_top(),
            "G": lambda: self.viewport.to_bottom(),
            "shift+g": lambda: self.viewport.to_bottom(),
            "end": lambda: self.viewport.to_bottom(),
            "+": lambda: self.set_margin(self.style.margin + 1),
            "-": lambda: self.set_margin(self.style.margin - 1),
            "ctrl+o": self.jump_back,
            "ctrl+i": self.jump_forward,
            "tab": self.jump_forward,
            "n": self.search_next,
            "N": self.search_previous,
            "shift+n": self.search_previous,
            "escape": self.clear_selection,
            "y": self.copy_selection,
            "shift+left": lambda: self.selection.extend_by(-1),
            "shift+right": lambda: self.selection.extend_by(1),
            "shift+up": lambda: self._extend_by_line(-1),
            "shift+down": lambda: self._extend_by_line(1),
        }

        first = chapter_id or ids[0]
        self.chapter = provider.chapter(first)
        self.selection = SelectionEngine(self.chapter)
        self.annotations.validate_chapter(self.chapter)
        self.layout = self._build_layout()

    @property
    def content_width(self) -> int:
        return self.style.content_width(self.columns)

    def _build_layout(self) -> Layout:
        layout = self.cache.get(self.chapter, self.content_width, self.style)
        self.viewport.set_total(len(layout.lines))
        return layout

    def location(self) -> Location:
        offset = self.layout.index.first_offset_on_or_after(self.viewport.top)
        return Location(self.chapter.chapter_id, 0 if offset is None else offset)

    def relayout(self, anchor: int | None = None) -> None:
        """Recompute layout, keeping the offset at the top of the viewport on top."""

        if anchor is None:
            anchor = self.layout.index.first_offset_on_or_after(self.viewport.top)
        self.viewport.margin = self.style.margin
        self.layout = self._build_layout()
        if anchor is not None:
            line = self.layout.index.line_of(anchor)
            if line is not None:
                self.viewport.scroll_to(line)

    def set_margin(self, margin: int) -> bool:
        margin = max(0, min(MAX_MARGIN, margin))
        if margin == self.style.margin:
            return False
        self.style = replace(self.style, margin=margin)
        self.relayout()
        return True

    def resize(self, columns: int, rows: int) -> None:
        anchor = self.layout.index.first_offset_on_or_after(self.viewport.top)
        self.columns = max(1, columns)
        self.viewport.resize(rows)
        self.relayout(anchor)

    def open_chapter(self, chapter_id: str, offset: int = 0) -> None:
        if chapter_id != self.chapter.chapter_id:
            self.chapter = self.provider.chapter(chapter_id)
            self.selection.set_chapter(self.chapter)
            self.annotations.validate_chapter(self.chapter)
            self.layout = self._build_layout()
        self._show(offset)

    def _show(self, offset: int, *, center: bool = False) -> None:
        line = self.layout.index.line_of(offset)
        if line is None:
            self.viewport.to_top()
        elif center:
            self.viewport.ensure_visible(line)
        else:
            self.viewport.scroll_to(line)

    def go_to(self, destination: Location, *, record: bool = True, center: bool = False) -> None:
        if record:
            self.history.push(NavigationEntry(origin=self.location(), destination=destination))
        self.selection.clear()
        self.open_chapter(destination.chapter_id)
        self._show(destination.offset, center=center)

    def jump_back(self) -> bool:
        origin = self.history.back()
        if origin is None:
            return False
        self.go_to(origin, record=False)
        return True

    def jump_forward(self) -> bool:
        destination = self.history.forward()
        if destination is None:
            return False
        self.go_to(destination, record=False)
        return True

    def search(
        self,
        query: str,
        scope: SearchScope = SearchScope.CHAPTER,
        mode: MatchMode = MatchMode.SUBSTRING,
    ) -> tuple[SearchMatch, ...]:
        location = self.location()
        matches = self.search_engine.search(
            scope,
            query,
            chapter_id=location.chapter_id,
            offset=location.offset,
            mode=mode,
        )
        if matches:
            self._go_to_match(self.search_engine.current())
        return matches

    def reopen_search(self) -> tuple[SearchMatch, ...]:
        matches = self.search_engine.reopen()
        if matches:
            self._go_to_match(self.search_engine.current())
        return matches

    def search_next(self) -> SearchMatch | None:
        match = self.search_engine.next()
        self._go_to_match(match)
        return match

    def search_previous(self) -> SearchMatch | None:
        match = self.search_engine.previous()
        self._go_to_match(match)
        return match

    def _go_to_match(self, match: SearchMatch | None) -> None:
        if match is None:
            return
        self.go_to(Location(match.chapter_id, match.start), center=True)

    def clear_selection(self) -> None:
        self.selection.clear()

    def copy_selection(self) -> str:
        text = self.selection.text()
        if text and self._shell is not None:
            self._shell.copy_text(text)
        return text

    def _extend_by_line(self, delta: int) -> None:
        current = self.selection.selection
        if current is None:
            return
        position = self.layout.index.position_of(current.cursor)
        if position is None:
            return
        line, column = position
        offset = self.layout.index.offset_at(line + delta, column)
        if offset is not None:
            self.selection.extend(offset)

    def resolve_link(self, href: str) -> LinkTarget:
        parsed = urlparse(href)
        if parsed.scheme or parsed.netloc:
            return LinkTarget(href=href, external=True)

        chapter_id = self.chapter.chapter_id
        path = unquote(parsed.path)
        if path:
            wanted = basename(path)
            for candidate in self.provider.chapter_ids():
                if candidate == path or basename(candidate) == wanted:
                    chapter_id = candidate
                    break
            else:
                return LinkTarget(href=href, external=True)

        chapter = self.chapter if chapter_id == self.chapter.chapter_id else self.provider.chapter(chapter_id)
        offset = chapter.anchor_offset(parsed.fragment) if parsed.fragment else None
        return LinkTarget(href=href, external=False, chapter_id=chapter_id, offset=offset or 0)

    def activate_link(self, inline: Inline) -> LinkTarget:
        target = self.resolve_link(inline.href or "")
        if self._shell is not None:
            self._shell.link_activated(target)
        if not target.external:
            self.go_to(Location(target.chapter_id, target.offset or 0))
        return target

    def handle(self, event: Event) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("Ignoring unsupported event %r", event)
            return
        handler(event)
        self.render()

    def run(self, queue: EventQueue) -> None:
        for event in queue.drain():
            self.handle(event)

    def _on_key(self, event: KeyEvent) -> None:
        action = self._keymap.get(event.chord) or self._keymap.get(event.key)
        if action is None:
            return
        action()

    def _on_resize(self, event: ResizeEvent) -> None:
        self.resize(event.columns, event.rows)

    def _on_tick(self, event: TickEvent) -> None:
        self._now_ms = event.timestamp_ms
        delta = self.wheel.flush(event.timestamp_ms)
        if delta:
            self.viewport.scroll_by(delta * WHEEL_LINES)

        fires = self.autoscroll.fires(event.timestamp_ms)
        if fires and self._pressed and self._drag_position is not None:
            self.viewport.scroll_by(self.autoscroll.direction * fires)
            row, column = self._drag_position
            row = max(0, min(row, self.viewport.height - 1))
            offset = self._offset_at_screen(row, column)
            if offset is not None:
                self._extend_drag(offset)

    def _offset_at_screen(self, row: int, column: int) -> int | None:
        line = self.viewport.to_line(row)
        return self.layout.index.offset_at(line, column - self.style.margin)

    def _cell_at_screen(self, row: int, column: int) -> tuple[LayoutLine, Cell | None] | None:
        line = self.viewport.to_line(row)
        if not 0 <= line < len(self.layout.lines):
            return None
        layout_line = self.layout.lines[line]
        column -= self.style.margin
        cell = layout_line.cells[column] if 0 <= column < len(layout_line.cells) else None
        return layout_line, cell

    def _extend_drag(self, offset: int) -> None:
        if not self._dragged:
            if offset == self._press_offset or self._press_offset is None:
                return
            self.selection.start(self._press_offset)
            self._dragged = True
        self.selection.extend(offset)

    def _on_mouse(self, event: MouseEvent) -> None:
        now = self._now_ms if event.timestamp_ms is None else event.timestamp_ms
        self._now_ms = now
        if event.kind is MouseKind.WHEEL:
            self.wheel.add(event.delta, now)
        elif event.kind is MouseKind.PRESS:
            self._on_press(event, now)
        elif event.kind is MouseKind.DRAG:
            self._on_drag(event, now)
        elif event.kind is MouseKind.RELEASE:
            self._on_release(event)

    def _on_press(self, event: MouseEvent, now: int) -> None:
        offset = self._offset_at_screen(event.row, event.column)
        previous = self._last_click
        if (
            previous is not None
            and previous[0] == event.row
            and previous[1] == event.column
            and now - previous[2] <= DOUBLE_CLICK_MS
        ):
            self._click_count = min(3, self._click_count + 1)
        else:
            self._click_count = 1
        self._last_click = (event.row, event.column, now)

        self._pressed = True
        self._dragged = False
        self._press_offset = offset
        self._drag_position = (event.row, event.column)
        if offset is None:
            return
        if self._click_count == 1:
            self.selection.clear()
        elif self._click_count == 2:
            self.selection.select_word(offset)
        else:
            self.selection.select_paragraph(offset)

    def _on_drag(self, event: MouseEvent, now: int) -> None:
        if not self._pressed:
            return
        self._drag_position = (event.row, event.column)
        # first and last visible rows count as past the edge
        if event.row <= 0 and self.viewport.top > 0:
            self.autoscroll.start(now, -1)
        elif event.row >= self.viewport.height - 1 and self.viewport.top < self.viewport.max_top:
            self.autoscroll.start(now, 1)
        else:
            self.autoscroll.stop()
        row = max(0, min(event.row, self.viewport.height - 1))
        offset = self._offset_at_screen(row, event.column)
        if offset is not None:
            self._extend_drag(offset)

    def _on_release(self, event: MouseEvent) -> None:
        was_pressed = self._pressed
        self._pressed = False
        self.autoscroll.stop()
        self._drag_position = None
        if not was_pressed or self._dragged or self._click_count != 1:
            return

        hit = self._cell_at_screen(event.row, event.column)
        if hit is None:
            return
        layout_line, cell = hit
        if layout_line.block_index is not None:
            block = self.chapter.blocks[layout_line.block_index]
            if isinstance(block, Image):
                if self._shell is not None:
                    self._shell.open_externally(block.src)
                return
        if cell is None or cell.offset is None:
            return
        inline = self.chapter.link_at(cell.offset)
        if inline is not None:
            self.activate_link(inline)

    def window(self) -> ViewportWindow:
        """Visible lines with selection, annotation and search decorations applied."""

        lines = self.layout.lines[self.viewport.top : self.viewport.bottom]
        chapter_id = self.chapter.chapter_id
        selection = self.selection.selection

        annotated = self.annotations.text_ranges(chapter_id)
        annotated_starts = [start for start, _ in annotated]
        annotated_lines = self.annotations.annotated_lines(chapter_id)

        hits = [(match.start, match.end) for match in self.search_engine.matches if match.chapter_id == chapter_id]
        hit_starts = [start for start, _ in hits]
        current = self.search_engine.current()
        if current is not None and current.chapter_id != chapter_id:
            current = None

        decorated: list[LayoutLine] = []
        for line in lines:
            line_annotated = line.code_line is not None and (
                (line.code_line.block_index, line.code_line.line_index) in annotated_lines
            )
            cells: list[Cell] = []
            for cell in line.cells:
                flags: dict[str, bool] = {}
                if line_annotated:
                    flags["annotated"] = True
                if cell.offset is not None:
                    offset = cell.offset
                    if selection is not None and selection.contains(offset):
                        flags["selected"] = True
                    if annotated and _in_ranges(offset, annotated_starts, annotated):
                        flags["annotated"] = True
                    if hits and _in_ranges(offset, hit_starts, hits):
                        flags["search_hit"] = True
                    if current is not None and current.start <= offset < current.end:
                        flags["current_hit"] = True
                cells.append(Cell(cell.glyph, cell.style.decorate(**flags), cell.offset) if flags else cell)
            decorated.append(replace(line, cells=tuple(cells)))

        return ViewportWindow(
            chapter_id=chapter_id,
            top=self.viewport.top,
            total=self.viewport.total,
            margin=self.style.margin,
            lines=tuple(decorated),
        )

    def render(self) -> None:
        if self._render is not None:
            self._render.draw(self.window())
