"""Interaction state kept in canonical-stream offsets.

``readgrid.session.reader.ReadingSession`` ties these pieces together; it is
imported from its module directly because it depends on ``readgrid.config``.
"""

from readgrid.session.annotations import (
    Annotation,
    AnnotationChange,
    AnnotationChangeKind,
    AnnotationSink,
    AnnotationStore,
)
from readgrid.session.events import EventQueue, KeyEvent, MouseEvent, MouseKind, ResizeEvent, TickEvent
from readgrid.session.history import JumpList, Location, NavigationEntry
from readgrid.session.search import ChapterSource, MatchMode, SearchEngine, SearchMatch, SearchScope, find_matches
from readgrid.session.selection import Selection, SelectionEngine
from readgrid.session.timers import RepeatingTimer, WheelBatcher
from readgrid.session.viewport import Viewport

__all__ = [
    "Annotation",
    "AnnotationChange",
    "AnnotationChangeKind",
    "AnnotationSink",
    "AnnotationStore",
    "ChapterSource",
    "EventQueue",
    "JumpList",
    "KeyEvent",
    "Location",
    "MatchMode",
    "MouseEvent",
    "MouseKind",
    "NavigationEntry",
    "RepeatingTimer",
    "ResizeEvent",
    "SearchEngine",
    "SearchMatch",
    "SearchScope",
    "Selection",
    "SelectionEngine",
    "TickEvent",
    "Viewport",
    "WheelBatcher",
    "find_matches",
]
