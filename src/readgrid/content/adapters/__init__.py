"""Book format adapters producing chapters for the layout engine."""

from pathlib import Path

from .base import BookAdapter, OpenedBook
from .epub_adapter import EPUBAdapter, EPUBBook
from .xhtml_adapter import ImageAsset, XHTMLAdapter, XHTMLBook, parse_math, parse_xhtml

_SNIFF_BYTES = 512


def build_default_adapters() -> dict[str, BookAdapter]:
    """Return the default format adapter map."""
    return {"epub": EPUBAdapter(), "xhtml": XHTMLAdapter()}


def open_book(path: Path, adapters: dict[str, BookAdapter] | None = None) -> OpenedBook:
    """Open ``path`` with the first adapter that supports it."""

    adapters = adapters or build_default_adapters()
    with path.open("rb") as handle:
        sniffed = handle.read(_SNIFF_BYTES)
    for adapter in adapters.values():
        if adapter.supports(path, sniffed):
            return adapter.open(path)
    raise ValueError(f"Unsupported book format: {path}")


__all__ = [
    "BookAdapter",
    "EPUBAdapter",
    "EPUBBook",
    "ImageAsset",
    "OpenedBook",
    "XHTMLAdapter",
    "XHTMLBook",
    "build_default_adapters",
    "open_book",
    "parse_math",
    "parse_xhtml",
]
