"""
Tests for the cooperative scheduler and the session timer.
"""

from unittest.mock import MagicMock

import pytest

from deckstudy.scheduling import DeferredScheduler
from deckstudy.timer import SessionTimer, format_elapsed


class TestDeferredScheduler:
    def test_nothing_runs_before_deadline(self, scheduler, clock):
        callback = MagicMock()
        scheduler.call_later(2.0, callback)
        clock.advance(1.999)
        assert scheduler.run_due() == 0
        callback.assert_not_called()
        clock.advance(0.001)
        assert scheduler.run_due() == 1
        callback.assert_called_once()

    def test_runs_in_deadline_order_with_fifo_ties(self, scheduler, clock):
        calls = []
        scheduler.call_later(2.0, lambda: calls.append("late"))
        scheduler.call_later(1.0, lambda: calls.append("first"))
        scheduler.call_later(1.0, lambda: calls.append("second"))
        clock.advance(5)
        scheduler.run_due()
        assert calls == ["first", "second", "late"]

    def test_cancelled_callback_never_runs(self, scheduler, clock):
        callback = MagicMock()
        handle = scheduler.call_later(1.0, callback)
        handle.cancel()
        clock.advance(2)
        assert scheduler.run_due() == 0
        callback.assert_not_called()
        assert handle.cancelled and handle.done

    def test_fired_handle_is_done_not_cancelled(self, scheduler, clock):
        handle = scheduler.call_later(0, MagicMock())
        scheduler.run_due()
        assert handle.done
        assert not handle.cancelled

    def test_next_deadline_skips_cancelled(self, scheduler, clock):
        assert scheduler.next_deadline() is None
        early = scheduler.call_later(1.0, MagicMock())
        scheduler.call_later(3.0, MagicMock())
        early.cancel()
        assert scheduler.next_deadline() == pytest.approx(clock.now + 3.0)
        assert len(scheduler) == 1

    def test_callbacks_scheduled_by_callbacks_run_when_due(self, scheduler, clock):
        calls = []

        def outer():
            calls.append("outer")
            scheduler.call_later(0, lambda: calls.append("inner"))

        scheduler.call_later(1.0, outer)
        clock.advance(1.0)
        assert scheduler.run_due() == 2
        assert calls == ["outer", "inner"]

    def test_cancel_all(self, scheduler, clock):
        callback = MagicMock()
        scheduler.call_later(1, callback)
        scheduler.call_later(2, callback)
        scheduler.cancel_all()
        clock.advance(10)
        scheduler.run_due()
        callback.assert_not_called()
        assert len(scheduler) == 0

    def test_defaults_to_monotonic_clock(self):
        scheduler = DeferredScheduler()
        assert scheduler.now() > 0


class TestSessionTimer:
    def test_ticks_once_per_interval(self, scheduler, clock):
        on_tick = MagicMock()
        timer = SessionTimer(scheduler, on_tick, interval=1.0)
        timer.start()
        for _ in range(3):
            clock.advance(1.0)
            scheduler.run_due()
        assert on_tick.call_count == 3

    def test_late_poll_catches_up(self, scheduler, clock):
        on_tick = MagicMock()
        SessionTimer(scheduler, on_tick, interval=1.0).start()
        clock.advance(5.5)
        scheduler.run_due()
        assert on_tick.call_count == 5

    def test_stop_prevents_further_ticks(self, scheduler, clock):
        on_tick = MagicMock()
        timer = SessionTimer(scheduler, on_tick)
        timer.start()
        clock.advance(1.0)
        scheduler.run_due()
        timer.stop()
        assert not timer.running
        clock.advance(10)
        scheduler.run_due()
        assert on_tick.call_count == 1

    def test_start_is_idempotent(self, scheduler, clock):
        on_tick = MagicMock()
        timer = SessionTimer(scheduler, on_tick)
        timer.start()
        timer.start()
        clock.advance(1.0)
        scheduler.run_due()
        assert on_tick.call_count == 1

    def test_stop_from_tick_callback_wins(self, scheduler, clock):
        timer = None

        def on_tick():
            timer.stop()

        timer = SessionTimer(scheduler, on_tick)
        timer.start()
        clock.advance(3)
        assert scheduler.run_due() == 1
        assert not timer.running

    def test_interval_must_be_positive(self, scheduler):
        with pytest.raises(ValueError):
            SessionTimer(scheduler, MagicMock(), interval=0)


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "00:00"), (59, "00:59"), (60, "01:00"), (754, "12:34"), (6000, "100:00")],
)
def test_format_elapsed(seconds, expected):
    assert format_elapsed(seconds) == expected
