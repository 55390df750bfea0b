"""Deckstudy - flashcard decks and timed, scored study sessions."""

from .models import Card, Deck, DeckWithCards, CreateCardInput, CreateDeckInput
from .constants import MASTERED_THRESHOLD, GOOD_THRESHOLD
from .db import DeckDatabase
from .scoring import FeedbackTier, SessionResult
from .session_state import CardFace, SessionState, SessionStatus
from .study_session import StudySession

__all__ = [
    "Card",
    "Deck",
    "DeckWithCards",
    "CreateCardInput",
    "CreateDeckInput",
    "MASTERED_THRESHOLD",
    "GOOD_THRESHOLD",
    "DeckDatabase",
    "FeedbackTier",
    "SessionResult",
    "CardFace",
    "SessionState",
    "SessionStatus",
    "StudySession",
]
