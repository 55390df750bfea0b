"""
Session Timer: a cancellable periodic tick owned by a study session.
"""

import logging
from typing import Callable, Optional

from .constants import DEFAULT_TICK_INTERVAL_SECONDS
from .scheduling import DeferredScheduler, ScheduledHandle

logger = logging.getLogger(__name__)


def format_elapsed(seconds: int) -> str:
    """Format whole seconds as MM:SS; minutes are not wrapped at 60."""
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


class SessionTimer:
    """
    Calls `on_tick` once per `interval` while started.

    Each tick is re-armed from its own deadline rather than from the time the
    tick actually ran, so a late poll catches up with exactly one tick per
    elapsed interval. `stop()` cancels the pending tick; a stopped timer never
    ticks again until started.
    """

    def __init__(
        self,
        scheduler: DeferredScheduler,
        on_tick: Callable[[], None],
        interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
    ):
        if interval <= 0:
            raise ValueError("Timer interval must be positive.")
        self._scheduler = scheduler
        self._on_tick = on_tick
        self.interval = interval
        self._handle: Optional[ScheduledHandle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    def start(self) -> None:
        if self.running:
            return
        self._arm(self._scheduler.now() + self.interval)
        logger.debug("Session timer started.")

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug("Session timer stopped.")

    def _arm(self, when: float) -> None:
        self._handle = self._scheduler.call_at(when, self._fire, label="tick")

    def _fire(self) -> None:
        deadline = self._handle.when if self._handle else self._scheduler.now()
        # Re-arm first so a tick callback that stops the timer wins.
        self._arm(deadline + self.interval)
        self._on_tick()
