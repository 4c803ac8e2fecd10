from __future__ import annotations

import logging

import numpy as np
import pytest

from readgrid.content.builder import ChapterBuilder
from readgrid.layout.cells import Role
from readgrid.layout.images import IMAGE_MAX_ROWS, IMAGE_MIN_ROWS, IMAGE_ROWS_WIDE, downsample, image_rows
from readgrid.layout.reflow import reflow


def test_image_rows_follow_aspect_ratio() -> None:
    assert image_rows(400, 400, 20) == 10
    assert image_rows(100, 1000, 40) == IMAGE_MAX_ROWS
    assert image_rows(1000, 400, 8) == IMAGE_MIN_ROWS


def test_wide_or_unknown_images_use_fixed_height() -> None:
    assert image_rows(1000, 100, 60) == IMAGE_ROWS_WIDE
    assert image_rows(None, 300, 60) == IMAGE_ROWS_WIDE


def test_downsample_averages_blocks() -> None:
    pixels = np.array([[0, 0, 255, 255], [0, 0, 255, 255]], dtype=np.uint8)

    result = downsample(pixels, 1, 2)

    assert result.shape == (1, 2)
    assert result[0, 0] == pytest.approx(0.0)
    assert result[0, 1] == pytest.approx(1.0)


def test_downsample_converts_rgb_to_luminance() -> None:
    pixels = np.zeros((2, 2, 3))
    pixels[..., 1] = 1.0

    assert downsample(pixels, 1, 1)[0, 0] == pytest.approx(0.587)


def test_missing_pixels_render_placeholder_box(caplog: pytest.LogCaptureFixture) -> None:
    chapter = ChapterBuilder("ch1").image("images/cover.jpg").build()

    with caplog.at_level(logging.DEBUG, logger="readgrid.layout.images"):
        lines = reflow(chapter, 30)

    texts = [line.text() for line in lines]
    assert len(lines) == IMAGE_ROWS_WIDE
    assert texts[0] == "┌" + "─" * 28 + "┐"
    assert texts[-1] == "└" + "─" * 28 + "┘"
    assert any("[image: images/cover.jpg]" in text for text in texts)
    assert all(cell.style.role is Role.PLACEHOLDER for cell in lines[0].cells)
    assert all(cell.offset is None for line in lines for cell in line.cells)
    assert "No pixel data" in caplog.text


def test_placeholder_label_is_truncated_to_fit() -> None:
    chapter = ChapterBuilder("ch1").image("a/very/long/path/to/some/image.png").build()

    lines = reflow(chapter, 12)

    assert all(line.width == 12 for line in lines)
    assert any("…" in line.text() for line in lines)
