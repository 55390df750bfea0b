"""
This module defines the StudySession class, which runs one timed, scored pass
over a deck. It owns the session state, the session timer and the deferred
flip/advance actions, and is the only place where they change.
"""

import logging
from typing import Callable, List, Optional

from .constants import (
    DEFAULT_ADVANCE_DELAY_SECONDS,
    DEFAULT_FLIP_DELAY_SECONDS,
    DEFAULT_TICK_INTERVAL_SECONDS,
)
from .db.database import DeckDatabase
from .exceptions import DeckNotFoundError
from .models import DeckWithCards
from .scheduling import DeferredScheduler, ScheduledHandle
from .scoring import SessionResult
from .sequencer import shuffle_cards
from .session_state import (
    Advance,
    CancelExit,
    CardFace,
    ConfirmExit,
    Event,
    Pause,
    RequestExit,
    Resume,
    RevealAnswer,
    Sequencer,
    SessionState,
    SessionStatus,
    Start,
    StudyAgain,
    SubmitAnswer,
    Tick,
    TypeAnswer,
    initial_state,
    transition,
)
from .timer import SessionTimer

logger = logging.getLogger(__name__)


class StudySession:
    """
    Drives a study session for one deck.

    This class is responsible for:
    - Applying events to the session state one at a time.
    - Running the timer exactly while the session is active.
    - Scheduling the card flip and auto-advance after each accepted answer,
      and cancelling them when the attempt they belong to is over.
    - Tearing everything down on `close()`.

    Deferred work only runs when the session is polled (`poll()`, or
    implicitly before every dispatched event), on the caller's thread.
    """

    def __init__(
        self,
        deck: DeckWithCards,
        scheduler: Optional[DeferredScheduler] = None,
        *,
        flip_delay: float = DEFAULT_FLIP_DELAY_SECONDS,
        advance_delay: float = DEFAULT_ADVANCE_DELAY_SECONDS,
        tick_interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
        sequencer: Sequencer = shuffle_cards,
    ):
        """
        Parameters:
            deck: Snapshot of the deck and its cards, read once.
            scheduler: Scheduler for ticks and deferred actions; a scheduler on
                the monotonic clock is created when omitted.
            flip_delay: Seconds from an accepted answer to the card showing
                its back.
            advance_delay: Seconds from an accepted answer to the next card.
            tick_interval: Seconds per timer tick.
            sequencer: Draws the card order on the first start and on
                "study again"; an exited attempt restarts in the same order.

        Raises:
            EmptyDeckError: If the deck has no cards.
        """
        self._state = initial_state(deck)
        self._scheduler = (
            scheduler if scheduler is not None else DeferredScheduler()
        )
        self._sequencer = sequencer
        self.flip_delay = flip_delay
        self.advance_delay = advance_delay
        self._timer = SessionTimer(
            self._scheduler, self._on_tick, interval=tick_interval
        )
        self._deferred: List[ScheduledHandle] = []
        self._closed = False
        logger.info(
            f"Opened study session for deck {deck.id} "
            f"('{deck.name}', {len(deck.cards)} cards)."
        )

    @classmethod
    def open(
        cls, db: DeckDatabase, deck_id: int, owner_id: str, **kwargs
    ) -> "StudySession":
        """
        Read a deck snapshot from the store and build a session for it.

        Raises:
            DeckNotFoundError: If the deck does not exist for this owner.
            EmptyDeckError: If the deck has no cards.
        """
        deck = db.fetch_deck_with_cards(deck_id, owner_id)
        if deck is None:
            raise DeckNotFoundError(f"Deck {deck_id} not found.")
        return cls(deck, **kwargs)

    # --- Introspection ---

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def scheduler(self) -> DeferredScheduler:
        return self._scheduler

    @property
    def result(self) -> Optional[SessionResult]:
        return self._state.result

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def timer_running(self) -> bool:
        return self._timer.running

    @property
    def has_pending_feedback(self) -> bool:
        return any(not handle.done for handle in self._deferred)

    # --- Event entry points ---

    def poll(self) -> SessionState:
        """Run ticks and deferred actions that are due."""
        if not self._closed:
            self._scheduler.run_due()
        return self._state

    def dispatch(self, event: Event) -> SessionState:
        """
        Apply a user event after everything already due has run.

        Events on a closed session, and events that do not apply to the
        current state, are ignored.
        """
        if self._closed:
            logger.debug(f"Ignoring {type(event).__name__} on closed session.")
            return self._state
        self.poll()
        return self._apply(event)

    def start(self) -> SessionState:
        return self.dispatch(Start())

    def pause(self) -> SessionState:
        return self.dispatch(Pause())

    def resume(self) -> SessionState:
        return self.dispatch(Resume())

    def toggle_pause(self) -> SessionState:
        if self._state.status is SessionStatus.Active:
            return self.pause()
        return self.resume()

    def type_answer(self, text: str) -> SessionState:
        return self.dispatch(TypeAnswer(text=text))

    def submit(self, text: Optional[str] = None) -> SessionState:
        return self.dispatch(SubmitAnswer(text=text))

    def request_exit(self) -> SessionState:
        return self.dispatch(RequestExit())

    def cancel_exit(self) -> SessionState:
        return self.dispatch(CancelExit())

    def confirm_exit(self) -> SessionState:
        return self.dispatch(ConfirmExit())

    def study_again(self) -> SessionState:
        return self.dispatch(StudyAgain())

    def close(self) -> None:
        """Discard the session: stop the timer and drop deferred actions."""
        if self._closed:
            return
        self._timer.stop()
        self._cancel_deferred()
        self._closed = True
        logger.info(f"Closed study session for deck {self._state.deck.id}.")

    def __enter__(self) -> "StudySession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- Internals ---

    def _apply(self, event: Event) -> SessionState:
        previous = self._state
        new = transition(previous, event, sequencer=self._sequencer)
        if new is previous:
            logger.debug(
                f"Ignored {type(event).__name__} in status "
                f"{previous.status.value} (face={previous.face.value})."
            )
            return previous
        self._state = new
        self._sync_effects(previous, new)
        return new

    def _sync_effects(self, previous: SessionState, new: SessionState) -> None:
        if new.attempt != previous.attempt:
            self._cancel_deferred()

        was_active = previous.status is SessionStatus.Active
        is_active = new.status is SessionStatus.Active
        if is_active and not was_active:
            self._timer.start()
        elif was_active and not is_active:
            self._timer.stop()

        if new.answered_count > previous.answered_count:
            self._schedule_feedback(new)
        elif was_active and new.status is SessionStatus.Paused:
            # Feedback in progress is suspended with the timer.
            self._cancel_deferred()
        elif (
            previous.status is SessionStatus.Paused
            and is_active
            and new.face is not CardFace.Front
        ):
            self._schedule_feedback(new)

        if new.status is not previous.status:
            logger.info(
                f"Session for deck {new.deck.id}: "
                f"{previous.status.value} -> {new.status.value}"
            )
        if new.status is SessionStatus.Completed and new.result is not None:
            result = new.result
            logger.info(
                f"Completed deck {new.deck.id}: {result.score_text} "
                f"({result.accuracy_percent}%, {result.tier.value}) "
                f"in {result.elapsed_text}."
            )

    def _schedule_feedback(self, state: SessionState) -> None:
        """
        Schedule the flip (if the card has not flipped yet) and the
        auto-advance for the current card of the current attempt.
        """
        self._cancel_deferred()
        if state.face is CardFace.Flipping:
            self._deferred.append(
                self._scheduler.call_later(
                    self.flip_delay,
                    self._deferred_event(RevealAnswer(), state),
                    label="reveal",
                )
            )
        self._deferred.append(
            self._scheduler.call_later(
                self.advance_delay,
                self._deferred_event(Advance(), state),
                label="advance",
            )
        )

    def _deferred_event(
        self, event: Event, scheduled_for: SessionState
    ) -> Callable[[], None]:
        attempt = scheduled_for.attempt
        cursor = scheduled_for.cursor

        def fire() -> None:
            current = self._state
            if (
                self._closed
                or current.attempt != attempt
                or current.cursor != cursor
            ):
                logger.debug(
                    f"Dropping stale {type(event).__name__} "
                    f"(attempt {attempt}, card {cursor})."
                )
                return
            self._apply(event)

        return fire

    def _cancel_deferred(self) -> None:
        for handle in self._deferred:
            handle.cancel()
        self._deferred = []

    def _on_tick(self) -> None:
        self._apply(Tick())
