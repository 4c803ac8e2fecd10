from __future__ import annotations

import pytest

from readgrid.session.viewport import Viewport


def test_scrolling_is_clamped_to_content() -> None:
    viewport = Viewport(height=10, total=25)

    assert viewport.page_down() is True
    assert viewport.top == 9
    assert viewport.page_down() is True
    assert viewport.top == 15
    assert viewport.page_down() is False
    assert viewport.bottom == 25

    viewport.to_top()
    assert viewport.line_up() is False
    assert viewport.top == 0


def test_half_pages_and_bottom() -> None:
    viewport = Viewport(height=10, total=100)

    viewport.half_page_down()
    assert viewport.top == 5
    viewport.to_bottom()
    assert viewport.top == 90
    viewport.half_page_up()
    assert viewport.top == 85


def test_short_content_never_scrolls() -> None:
    viewport = Viewport(height=10, total=4)

    assert viewport.line_down(3) is False
    assert viewport.max_top == 0
    assert viewport.bottom == 4


def test_ensure_visible_centers_off_screen_lines() -> None:
    viewport = Viewport(height=10, total=100)

    assert viewport.ensure_visible(5) is False
    assert viewport.ensure_visible(50) is True
    assert viewport.top == 45
    assert viewport.to_screen(50) == 5
    assert viewport.to_screen(10) is None
    assert viewport.to_line(3) == 48


def test_shrinking_content_clamps_top() -> None:
    viewport = Viewport(top=40, height=10, total=100)

    viewport.set_total(20)
    assert viewport.top == 10
    viewport.resize(30)
    assert viewport.top == 0


def test_invalid_geometry_is_rejected() -> None:
    with pytest.raises(ValueError, match="height must be positive"):
        Viewport(height=0)
    with pytest.raises(ValueError, match="margin cannot be negative"):
        Viewport(margin=-1)
