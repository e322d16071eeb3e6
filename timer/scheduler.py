"""Cancellable one-shot and repeating callbacks.

``ThreadingScheduler`` runs callbacks on background threads and is what a
real client uses.  ``ManualScheduler`` keeps a virtual clock that only
moves when ``advance`` is called, so the engine can be driven tick by
tick in tests.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class ScheduledCall:
    """Handle returned by ``call_later`` / ``call_every``."""

    def __init__(self, callback: Callable[[], None], interval: float | None = None) -> None:
        self.callback = callback
        self.interval = interval
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        self._cancelled = True

    def run(self) -> None:
        if self._cancelled:
            return
        try:
            self.callback()
        except Exception:
            logger.exception("Scheduled callback %r failed", self.callback)


# ── threads ───────────────────────────────────────────────────────────────


class _ThreadedCall(ScheduledCall):

    def __init__(self, callback, interval=None) -> None:
        super().__init__(callback, interval)
        self._stop = threading.Event()

    def cancel(self) -> None:
        super().cancel()
        self._stop.set()


class ThreadingScheduler:
    """Wall-clock scheduler backed by daemon threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = _ThreadedCall(callback)

        def fire():
            if not call._stop.wait(delay):
                call.run()

        threading.Thread(target=fire, daemon=True, name="timer-later").start()
        return call

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledCall:
        call = _ThreadedCall(callback, interval)

        def loop():
            while not call._stop.wait(interval):
                call.run()

        threading.Thread(target=loop, daemon=True, name="timer-every").start()
        return call


# ── virtual clock ─────────────────────────────────────────────────────────


class ManualScheduler:
    """Deterministic scheduler.  Nothing fires until ``advance``.

    Calls due at the same instant fire in the order they were scheduled;
    a repeating call keeps its original place in that order.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self._queue: list[tuple[float, int, ScheduledCall]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback)
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), call))
        return call

    def call_every(self, interval: float, callback: Callable[[], None]) -> ScheduledCall:
        call = ScheduledCall(callback, interval)
        heapq.heappush(self._queue, (self.now + interval, next(self._seq), call))
        return call

    @property
    def pending(self) -> int:
        """Number of live (not cancelled) scheduled calls."""
        return sum(1 for _, _, call in self._queue if not call.cancelled)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every call that falls due."""
        target = self.now + seconds
        while self._queue:
            when, seq, call = self._queue[0]
            if when > target:
                break
            heapq.heappop(self._queue)
            if call.cancelled:
                continue
            self.now = when
            call.run()
            if call.repeating and not call.cancelled:
                heapq.heappush(self._queue, (when + call.interval, seq, call))
        self.now = target
