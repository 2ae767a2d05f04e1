"""Tests for the cooperative clocks."""
from __future__ import annotations

import pytest

from doorlock.clock import ManualClock, SystemClock


def test_after_fires_once() -> None:
    clock = ManualClock(start_ms=0)
    calls: list[int] = []
    handle = clock.after(250, lambda: calls.append(clock.now()))
    clock.advance(249)
    assert calls == []
    clock.advance(1)
    assert calls == [250]
    clock.advance(1_000)
    assert calls == [250]
    assert handle.active is False


def test_every_fires_per_interval() -> None:
    clock = ManualClock(start_ms=0)
    calls: list[int] = []
    clock.every(1_000, lambda: calls.append(clock.now()))
    assert clock.advance(3_500) == 3
    assert calls == [1_000, 2_000, 3_000]
    assert clock.now() == 3_500


def test_cancel_stops_repeating_timer() -> None:
    clock = ManualClock(start_ms=0)
    calls: list[int] = []

    def tick() -> None:
        calls.append(clock.now())
        if len(calls) == 2:
            handle.cancel()

    handle = clock.every(100, tick)
    clock.advance(1_000)
    assert calls == [100, 200]
    assert clock.pending() == 0


def test_callbacks_run_in_time_order() -> None:
    clock = ManualClock(start_ms=0)
    order: list[str] = []
    clock.after(300, lambda: order.append("late"))
    clock.after(100, lambda: order.append("early"))
    clock.every(200, lambda: order.append("tick"))
    clock.advance(400)
    assert order == ["early", "tick", "late", "tick"]


def test_manual_clock_rejects_negative_advance() -> None:
    clock = ManualClock()
    with pytest.raises(ValueError):
        clock.advance(-1)


def test_every_requires_positive_interval() -> None:
    with pytest.raises(ValueError):
        ManualClock().every(0, lambda: None)


def test_system_clock_runs_due_callbacks() -> None:
    clock = SystemClock()
    calls: list[str] = []
    clock.after(0, lambda: calls.append("now"))
    clock.after(60_000, lambda: calls.append("later"))
    assert clock.run_pending() == 1
    assert calls == ["now"]
    assert clock.pending() == 1
