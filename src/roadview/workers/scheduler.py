"""Deferred callbacks for hosts that own their own event loop."""
from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Protocol, Tuple


class Scheduler(Protocol):
    """Runs a callback once after a delay, on the caller's thread."""

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> None:
        ...


class ManualScheduler:
    """Scheduler driven by explicit :meth:`advance` calls.

    Suitable for render loops that already tick at a known rate, and for
    deterministic tests. Callbacks due at the same instant run in the order
    they were scheduled.
    """

    def __init__(self) -> None:
        self._now_ms = 0.0
        self._counter = itertools.count()
        self._queue: List[Tuple[float, int, Callable[[], None]]] = []

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> None:
        due = self._now_ms + max(0.0, float(delay_ms))
        heapq.heappush(self._queue, (due, next(self._counter), callback))

    def advance(self, delta_ms: float) -> int:
        """Move the clock forward and run every callback that became due."""
        target = self._now_ms + max(0.0, float(delta_ms))
        executed = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, callback = heapq.heappop(self._queue)
            self._now_ms = due
            callback()
            executed += 1
        self._now_ms = target
        return executed
