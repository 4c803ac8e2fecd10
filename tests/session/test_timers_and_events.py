from __future__ import annotations

from readgrid.session.events import EventQueue, KeyEvent, MouseEvent, MouseKind, ResizeEvent, TickEvent
from readgrid.session.timers import RepeatingTimer, WheelBatcher


def test_wheel_deltas_coalesce_within_window() -> None:
    wheel = WheelBatcher(window_ms=100)
    wheel.add(1, 0)
    wheel.add(1, 30)
    wheel.add(-3, 60)

    assert wheel.flush(99) == 0
    assert wheel.flush(100) == -1
    assert wheel.flush(200) == 0


def test_wheel_flush_can_be_forced() -> None:
    wheel = WheelBatcher()
    wheel.add(2, 10)

    assert wheel.flush(force=True) == 2
    assert wheel.started_at is None


def test_repeating_timer_counts_elapsed_intervals() -> None:
    timer = RepeatingTimer(interval_ms=50)
    timer.start(0, 1)

    assert timer.fires(49) == 0
    assert timer.fires(50) == 1
    assert timer.fires(180) == 2
    assert timer.next_fire == 200


def test_restarting_in_same_direction_keeps_schedule() -> None:
    timer = RepeatingTimer(interval_ms=50)
    timer.start(0, 1)
    timer.start(30, 1)
    assert timer.next_fire == 50

    timer.start(30, -1)
    assert timer.next_fire == 80

    timer.stop()
    assert timer.running is False
    assert timer.fires(1000) == 0


def test_key_chord_names() -> None:
    assert KeyEvent("d", ctrl=True).chord == "ctrl+d"
    assert KeyEvent("n", shift=True).chord == "shift+n"
    assert KeyEvent("j").chord == "j"


def test_queue_is_fifo() -> None:
    queue = EventQueue()
    events = [KeyEvent("j"), MouseEvent(MouseKind.WHEEL, 0, 0, delta=1), ResizeEvent(80, 24), TickEvent(5)]
    queue.extend(events)

    assert len(queue) == 4
    assert queue.get() == events[0]
    assert list(queue.drain()) == events[1:]
    assert queue.get() is None
