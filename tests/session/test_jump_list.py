from __future__ import annotations

import pytest

from readgrid.session.history import JumpList, Location, NavigationEntry


def jump(origin: int, destination: int) -> NavigationEntry:
    return NavigationEntry(Location("ch1", origin), Location("ch1", destination))


def test_back_and_forward_walk_entries() -> None:
    history = JumpList()
    history.push(jump(0, 100))
    history.push(jump(100, 200))

    assert history.back() == Location("ch1", 100)
    assert history.back() == Location("ch1", 0)
    assert history.back() is None
    assert history.forward() == Location("ch1", 100)
    assert history.forward() == Location("ch1", 200)
    assert history.forward() is None


def test_push_after_back_truncates_forward_branch() -> None:
    history = JumpList()
    history.push(jump(0, 100))
    history.push(jump(100, 200))
    history.push(jump(200, 300))

    history.back()
    history.back()
    history.push(jump(100, 500))

    assert [entry.destination.offset for entry in history.entries] == [100, 500]
    assert history.can_go_forward() is False
    assert history.back() == Location("ch1", 100)


def test_capacity_drops_oldest_entries() -> None:
    history = JumpList(capacity=3)
    for index in range(5):
        history.push(jump(index, index + 1))

    assert len(history) == 3
    assert history.entries[0] == jump(2, 3)
    assert history.cursor == 3


def test_default_capacity_is_twenty() -> None:
    history = JumpList()
    for index in range(25):
        history.push(jump(index, index + 1))

    assert len(history) == 20


def test_invalid_capacity() -> None:
    with pytest.raises(ValueError, match="capacity must be positive"):
        JumpList(capacity=0)
