"""Math sub-renderer producing baseline-aligned glyph grids."""

from .grid import MathGrid, hconcat
from .renderer import MathRenderer, render_math

__all__ = ["MathGrid", "MathRenderer", "hconcat", "render_math"]
