"""
Cooperative scheduling for study sessions.

Deferred work is kept in a deadline-ordered heap and runs only when the owner
polls with `run_due()`, on the polling thread. There are no background
threads: a session's timer ticks and auto-advance never interleave with a
transition that is being applied.
"""

import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class ScheduledHandle:
    """A pending callback; cancelling it guarantees it never runs."""

    __slots__ = ("when", "callback", "label", "_cancelled", "_fired")

    def __init__(self, when: float, callback: Callable[[], None], label: str):
        self.when = when
        self.callback = callback
        self.label = label
        self._cancelled = False
        self._fired = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        """True once the callback has run or can no longer run."""
        return self._cancelled or self._fired

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        if self._cancelled:
            state = "cancelled"
        else:
            state = "fired" if self._fired else "pending"
        return f"<ScheduledHandle {self.label!r} at {self.when:.3f} {state}>"


class DeferredScheduler:
    """
    One-shot callbacks against an injectable monotonic clock.

    Parameters:
        clock: Returns the current time in seconds. Defaults to
            `time.monotonic`; tests pass a controllable clock.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock: Clock = clock or time.monotonic
        self._queue: List[Tuple[float, int, ScheduledHandle]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_at(
        self, when: float, callback: Callable[[], None], label: str = ""
    ) -> ScheduledHandle:
        handle = ScheduledHandle(when, callback, label)
        heapq.heappush(self._queue, (when, next(self._counter), handle))
        return handle

    def call_later(
        self, delay: float, callback: Callable[[], None], label: str = ""
    ) -> ScheduledHandle:
        return self.call_at(self.now() + max(0.0, delay), callback, label)

    def next_deadline(self) -> Optional[float]:
        """Earliest deadline among callbacks that are still pending."""
        self._discard_cancelled()
        return self._queue[0][0] if self._queue else None

    def run_due(self) -> int:
        """
        Run every pending callback whose deadline has passed, in deadline
        order (ties in scheduling order). Callbacks scheduled by a callback
        run in the same pass if they are already due.

        Returns:
            int: Number of callbacks run.
        """
        ran = 0
        now = self.now()
        while self._queue and self._queue[0][0] <= now:
            _, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            handle._fired = True
            handle.callback()
            ran += 1
        return ran

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def __len__(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)
