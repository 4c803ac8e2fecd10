"""Chapter content model and builders."""

from .builder import ChapterBuilder, Run, chapter_from_paragraphs
from .models import Block, BlockKind, Chapter, Inline, InlineKind, MalformedContentError, MathKind, MathNode

__all__ = [
    "Block",
    "BlockKind",
    "Chapter",
    "ChapterBuilder",
    "Inline",
    "InlineKind",
    "MalformedContentError",
    "MathKind",
    "MathNode",
    "Run",
    "chapter_from_paragraphs",
]
