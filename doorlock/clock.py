"""Time sources and callback scheduling for the lock controller.

The controller never sleeps or spawns threads; it asks a clock for the
current epoch time in milliseconds and registers callbacks for the lockout
countdown and the error-flag reset. Two cooperative clocks live here:

* ``ManualClock`` keeps virtual time that only moves when ``advance`` is
  called, which makes countdown behaviour deterministic under test.
* ``SystemClock`` follows the wall clock and fires callbacks whenever the
  owning event loop calls ``run_pending``.

The Tk-backed clock used by the keypad window lives in ``keypad_window``.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable, List, Protocol, Tuple

logger = logging.getLogger("doorlock.clock")

Callback = Callable[[], None]


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    """Time source consumed by ``LockController``."""

    def now(self) -> int: ...

    def every(self, interval_ms: int, callback: Callback) -> Cancellable: ...

    def after(self, delay_ms: int, callback: Callback) -> Cancellable: ...


class TimerHandle:
    """Handle for a scheduled callback; ``cancel`` is safe to call repeatedly."""

    __slots__ = ("callback", "interval_ms", "due", "cancelled", "finished")

    def __init__(self, callback: Callback, due: int, interval_ms: int | None) -> None:
        self.callback = callback
        self.due = due
        self.interval_ms = interval_ms
        self.cancelled = False
        self.finished = False

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.finished)

    def cancel(self) -> None:
        self.cancelled = True


class _ScheduledClock:
    """Shared timer queue for the cooperative clocks."""

    def __init__(self) -> None:
        self._timers: List[Tuple[int, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def now(self) -> int:  # pragma: no cover - overridden
        raise NotImplementedError

    def after(self, delay_ms: int, callback: Callback) -> TimerHandle:
        return self._schedule(delay_ms, callback, None)

    def every(self, interval_ms: int, callback: Callback) -> TimerHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        return self._schedule(interval_ms, callback, interval_ms)

    def pending(self) -> int:
        """Number of timers that have not been cancelled or finished."""
        return sum(1 for _, _, handle in self._timers if handle.active)

    def _schedule(
        self, delay_ms: int, callback: Callback, interval_ms: int | None
    ) -> TimerHandle:
        handle = TimerHandle(callback, self.now() + max(0, int(delay_ms)), interval_ms)
        self._push(handle)
        return handle

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._timers, (handle.due, next(self._sequence), handle))

    def _on_fire(self, due: int) -> None:
        """Hook invoked right before a callback due at ``due`` runs."""

    def _fire_due(self, until: int) -> int:
        fired = 0
        while self._timers and self._timers[0][0] <= until:
            due, _, handle = heapq.heappop(self._timers)
            if handle.cancelled:
                continue
            self._on_fire(due)
            if handle.interval_ms is None:
                handle.finished = True
            handle.callback()
            fired += 1
            if handle.interval_ms is not None and not handle.cancelled:
                handle.due = due + handle.interval_ms
                self._push(handle)
        return fired


class ManualClock(_ScheduledClock):
    """Virtual clock that only moves forward when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        super().__init__()
        self._now = int(start_ms)

    def now(self) -> int:
        return self._now

    def advance(self, delta_ms: int) -> int:
        """Move time forward, firing due callbacks in order. Returns the fire count."""
        if delta_ms < 0:
            raise ValueError("cannot move a clock backwards")
        target = self._now + int(delta_ms)
        fired = self._fire_due(target)
        self._now = target
        return fired

    def _on_fire(self, due: int) -> None:
        self._now = max(self._now, due)


class SystemClock(_ScheduledClock):
    """Wall-clock time; callbacks run only when the owner calls ``run_pending``.

    The CLI uses it for one-shot reads and writes of the stored state and never
    pumps it, so a restored lockout countdown is registered but not driven.
    """

    def now(self) -> int:
        return int(time.time() * 1000)

    def run_pending(self) -> int:
        fired = self._fire_due(self.now())
        if fired:
            logger.debug("Ran %s scheduled callbacks", fired)
        return fired
