"""
Explicit state model for one study session.

`SessionState` is a single immutable value tagged by `status`; `transition`
maps (state, event) to the next state without side effects, so every rule of
the session lifecycle can be exercised without a timer or a terminal. Events
that do not apply to the current state return the state unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .evaluator import evaluate, is_blank
from .exceptions import EmptyDeckError
from .models import Card, DeckSnapshot, DeckWithCards
from .scoring import SessionResult, accuracy_percent
from .sequencer import shuffle_cards

Sequencer = Callable[[Sequence[Card]], List[Card]]


class SessionStatus(str, Enum):
    Setup = "setup"
    Active = "active"
    Paused = "paused"
    Completed = "completed"


class CardFace(str, Enum):
    """Visible side of the current card. `Flipping` leads to `Back`."""

    Front = "front"
    Flipping = "flipping"
    Back = "back"


# --- Events ---


class Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class Start(Event):
    pass


class Pause(Event):
    pass


class Resume(Event):
    pass


class TypeAnswer(Event):
    text: str


class SubmitAnswer(Event):
    """Validate the pending answer, or `text` when given."""

    text: Optional[str] = None


class RevealAnswer(Event):
    pass


class Advance(Event):
    pass


class RequestExit(Event):
    pass


class CancelExit(Event):
    pass


class ConfirmExit(Event):
    pass


class StudyAgain(Event):
    pass


class Tick(Event):
    pass


# --- State ---


class SessionState(BaseModel):
    """
    Everything a study session knows. Counters and the cursor belong to the
    current attempt; `attempt` changes whenever an attempt starts or is
    discarded, which invalidates work scheduled for the previous one.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: SessionStatus = SessionStatus.Setup
    deck: DeckSnapshot
    cards: Tuple[Card, ...] = Field(..., min_length=1)
    sequence: Tuple[Card, ...] = ()
    cursor: int = Field(default=0, ge=0)
    face: CardFace = CardFace.Front
    pending_answer: str = ""
    answered_count: int = Field(default=0, ge=0)
    correct_count: int = Field(default=0, ge=0)
    elapsed_seconds: int = Field(default=0, ge=0)
    last_answer_correct: Optional[bool] = None
    exit_requested: bool = False
    attempt: int = Field(default=0, ge=0)

    @property
    def total_cards(self) -> int:
        return len(self.cards)

    @property
    def current_card(self) -> Optional[Card]:
        if not self.sequence:
            return None
        return self.sequence[self.cursor]

    @property
    def is_last_card(self) -> bool:
        return bool(self.sequence) and self.cursor == len(self.sequence) - 1

    @property
    def feedback_visible(self) -> bool:
        return self.face is CardFace.Back

    @property
    def can_submit(self) -> bool:
        return (
            self.status is SessionStatus.Active
            and self.face is CardFace.Front
            and not self.exit_requested
            and not is_blank(self.pending_answer)
        )

    @property
    def progress_percent(self) -> float:
        if not self.sequence:
            return 0.0
        return (self.cursor + 1) / len(self.sequence) * 100

    @property
    def accuracy_percent(self) -> int:
        return accuracy_percent(self.correct_count, self.answered_count)

    @property
    def result(self) -> Optional[SessionResult]:
        """Final tally; only available once the attempt is completed."""
        if self.status is not SessionStatus.Completed:
            return None
        return SessionResult.from_counts(
            correct_count=self.correct_count,
            answered_count=self.answered_count,
            total_cards=len(self.sequence),
            elapsed_seconds=self.elapsed_seconds,
        )


def initial_state(deck: DeckWithCards) -> SessionState:
    """
    Build the setup state for a deck.

    Raises:
        EmptyDeckError: If the deck has no cards.
    """
    if not deck.cards:
        raise EmptyDeckError(f"Deck '{deck.name}' has no cards to study.")
    return SessionState(
        deck=DeckSnapshot.from_deck(deck), cards=tuple(deck.cards)
    )


def _reset(
    state: SessionState, sequence: Tuple[Card, ...] = ()
) -> SessionState:
    return state.model_copy(
        update={
            "status": SessionStatus.Setup,
            "sequence": sequence,
            "cursor": 0,
            "face": CardFace.Front,
            "pending_answer": "",
            "answered_count": 0,
            "correct_count": 0,
            "elapsed_seconds": 0,
            "last_answer_correct": None,
            "exit_requested": False,
            "attempt": state.attempt + 1,
        }
    )


def _draw(state: SessionState, sequencer: Sequencer) -> Tuple[Card, ...]:
    sequence = tuple(sequencer(state.cards))
    if not sequence:
        raise EmptyDeckError("Sequencer returned no cards.")
    return sequence


def _start(state: SessionState, sequencer: Sequencer) -> SessionState:
    if state.status is not SessionStatus.Setup:
        return state
    # An exited attempt keeps its order; only the first start and StudyAgain
    # draw a new one.
    sequence = state.sequence or _draw(state, sequencer)
    return _reset(state, sequence).model_copy(
        update={"status": SessionStatus.Active}
    )


def _submit(state: SessionState, event: SubmitAnswer) -> SessionState:
    answer = state.pending_answer if event.text is None else event.text
    if (
        state.status is not SessionStatus.Active
        or state.face is not CardFace.Front
        or state.exit_requested
        or is_blank(answer)
    ):
        return state
    correct = evaluate(answer, state.sequence[state.cursor].back)
    return state.model_copy(
        update={
            "pending_answer": answer,
            "answered_count": state.answered_count + 1,
            "correct_count": state.correct_count + (1 if correct else 0),
            "last_answer_correct": correct,
            "face": CardFace.Flipping,
        }
    )


def _advance(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.Active or state.face is CardFace.Front:
        return state
    if state.is_last_card:
        return state.model_copy(
            update={
                "status": SessionStatus.Completed,
                "face": CardFace.Back,
                "pending_answer": "",
                "exit_requested": False,
            }
        )
    return state.model_copy(
        update={
            "cursor": state.cursor + 1,
            "face": CardFace.Front,
            "pending_answer": "",
            "last_answer_correct": None,
        }
    )


def transition(
    state: SessionState,
    event: Event,
    *,
    sequencer: Sequencer = shuffle_cards,
) -> SessionState:
    """
    Compute the state that follows `event`.

    Returns the very same object when the event is out of order (e.g. Resume
    while active, SubmitAnswer while feedback is showing), so callers can
    detect an ignored event with an identity check.
    """
    status = state.status
    in_play = status in (SessionStatus.Active, SessionStatus.Paused)

    if isinstance(event, Start):
        return _start(state, sequencer)
    if isinstance(event, Pause):
        if status is SessionStatus.Active:
            return state.model_copy(update={"status": SessionStatus.Paused})
        return state
    if isinstance(event, Resume):
        if status is SessionStatus.Paused:
            return state.model_copy(update={"status": SessionStatus.Active})
        return state
    if isinstance(event, TypeAnswer):
        if (
            status is SessionStatus.Active
            and state.face is CardFace.Front
            and not state.exit_requested
        ):
            return state.model_copy(update={"pending_answer": event.text})
        return state
    if isinstance(event, SubmitAnswer):
        return _submit(state, event)
    if isinstance(event, RevealAnswer):
        if status is SessionStatus.Active and state.face is CardFace.Flipping:
            return state.model_copy(update={"face": CardFace.Back})
        return state
    if isinstance(event, Advance):
        return _advance(state)
    if isinstance(event, RequestExit):
        if in_play and not state.exit_requested:
            return state.model_copy(update={"exit_requested": True})
        return state
    if isinstance(event, CancelExit):
        if state.exit_requested:
            return state.model_copy(update={"exit_requested": False})
        return state
    if isinstance(event, ConfirmExit):
        if in_play and state.exit_requested:
            return _reset(state, state.sequence)
        return state
    if isinstance(event, StudyAgain):
        if status is SessionStatus.Completed:
            return _reset(state, _draw(state, sequencer))
        return state
    if isinstance(event, Tick):
        if status is SessionStatus.Active:
            return state.model_copy(
                update={"elapsed_seconds": state.elapsed_seconds + 1}
            )
        return state
    raise TypeError(f"Unknown session event: {event!r}")
