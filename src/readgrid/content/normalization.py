"""Text normalization helpers shared by chapter builders and adapters."""

from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse repeated whitespace and trim boundaries."""

    return _WHITESPACE_RE.sub(" ", text).strip()


def collapse_whitespace(text: str) -> str:
    """Collapse repeated whitespace but keep a single boundary space."""

    return _WHITESPACE_RE.sub(" ", text)


def fold_for_search(text: str) -> str:
    """Case-fold text while keeping a one-to-one character mapping."""

    folded: list[str] = []
    for char in text:
        candidate = unicodedata.normalize("NFC", char).casefold()
        if len(candidate) != 1:
            candidate = char.lower()
        folded.append(candidate if len(candidate) == 1 else char)
    return "".join(folded)
