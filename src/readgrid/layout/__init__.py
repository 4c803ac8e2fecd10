"""Reflow engine and terminal cell model."""

from .cache import Layout, LayoutCache
from .cells import Cell, CellStyle, CodeLineRef, LayoutLine, Role
from .config import MIN_CONTENT_WIDTH, StyleConfig, WrapMode
from .index import LayoutIndex
from .reflow import Reflow, covered_offsets, reflow

__all__ = [
    "Cell",
    "CellStyle",
    "CodeLineRef",
    "Layout",
    "LayoutCache",
    "LayoutIndex",
    "LayoutLine",
    "MIN_CONTENT_WIDTH",
    "Reflow",
    "Role",
    "StyleConfig",
    "WrapMode",
    "covered_offsets",
    "reflow",
]
