"""Image block layout: glyph downsample of pixel data or a placeholder box."""

from __future__ import annotations

import logging

import numpy as np

from readgrid.content.models import Image
from readgrid.layout.cells import CellStyle, LayoutLine, Role, synthetic


logger = logging.getLogger(__name__)

IMAGE_MIN_ROWS = 3
IMAGE_MAX_ROWS = 15
IMAGE_ROWS_WIDE = 7
WIDE_IMAGE_ASPECT_RATIO = 3.0
# Terminal cells are roughly twice as tall as they are wide.
CELL_ASPECT = 2.0
GLYPH_RAMP = " .:-=+*#%@"

IMAGE_STYLE = CellStyle(role=Role.IMAGE)
PLACEHOLDER_STYLE = CellStyle(role=Role.PLACEHOLDER)
_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def image_rows(width_px: int | None, height_px: int | None, columns: int) -> int:
    """Rows reserved for an image scaled to ``columns`` terminal columns."""

    if not width_px or not height_px or width_px <= 0 or height_px <= 0:
        return IMAGE_ROWS_WIDE
    aspect = width_px / height_px
    if aspect > WIDE_IMAGE_ASPECT_RATIO:
        return IMAGE_ROWS_WIDE
    rows = round(columns / aspect / CELL_ASPECT)
    return max(IMAGE_MIN_ROWS, min(IMAGE_MAX_ROWS, rows))


def _luminance(pixels: np.ndarray) -> np.ndarray:
    array = np.asarray(pixels, dtype=float)
    if array.ndim == 3:
        channels = array.shape[2]
        if channels >= 3:
            array = array[..., :3] @ _LUMA_WEIGHTS
        else:
            array = array[..., 0]
    if array.size and array.max() > 1.0:
        array = array / 255.0
    return np.clip(array, 0.0, 1.0)


def downsample(pixels: np.ndarray, rows: int, columns: int) -> np.ndarray:
    """Block-average luminance into a ``rows`` x ``columns`` matrix in [0, 1]."""

    luma = _luminance(pixels)
    height, width = luma.shape
    row_edges = np.linspace(0, height, rows + 1).astype(int)
    col_edges = np.linspace(0, width, columns + 1).astype(int)

    result = np.zeros((rows, columns))
    for row in range(rows):
        top = min(row_edges[row], height - 1)
        bottom = max(row_edges[row + 1], top + 1)
        for column in range(columns):
            left = min(col_edges[column], width - 1)
            right = max(col_edges[column + 1], left + 1)
            result[row, column] = luma[top:bottom, left:right].mean()
    return result


def _usable_pixels(image: Image) -> np.ndarray | None:
    if image.pixels is None:
        logger.debug("No pixel data for image %s, using placeholder", image.src)
        return None
    array = np.asarray(image.pixels)
    if array.ndim not in (2, 3) or array.size == 0 or min(array.shape[:2]) == 0:
        logger.debug("Unusable pixel array %s for image %s", array.shape, image.src)
        return None
    return array


def _placeholder(image: Image, block_index: int, width: int, rows: int) -> list[LayoutLine]:
    inner = max(0, width - 2)
    label = f"[image: {image.src}]"
    if len(label) > inner:
        label = label[: max(0, inner - 1)] + "…"
    label_row = (rows - 2) // 2

    lines = [LayoutLine(tuple(synthetic("┌" + "─" * inner + "┐", PLACEHOLDER_STYLE)), block_index)]
    for row in range(max(1, rows - 2)):
        content = label.center(inner) if row == label_row else " " * inner
        lines.append(LayoutLine(tuple(synthetic("│" + content + "│", PLACEHOLDER_STYLE)), block_index))
    lines.append(LayoutLine(tuple(synthetic("└" + "─" * inner + "┘", PLACEHOLDER_STYLE)), block_index))
    return lines


def layout_image(image: Image, block_index: int, width: int) -> list[LayoutLine]:
    pixels = _usable_pixels(image)
    if pixels is None:
        rows = image_rows(image.width_px, image.height_px, width)
        return _placeholder(image, block_index, width, rows)

    height_px, width_px = pixels.shape[:2]
    rows = image_rows(image.width_px or width_px, image.height_px or height_px, width)
    levels = downsample(pixels, rows, width)
    steps = len(GLYPH_RAMP) - 1

    lines: list[LayoutLine] = []
    for row in levels:
        glyphs = "".join(GLYPH_RAMP[int(round(value * steps))] for value in row)
        lines.append(LayoutLine(tuple(synthetic(glyphs, IMAGE_STYLE)), block_index))
    return lines
