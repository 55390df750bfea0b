"""
Scoring Aggregator: accuracy and qualitative feedback for a finished attempt.
"""

from dataclasses import dataclass
from enum import Enum

from .constants import GOOD_THRESHOLD, MASTERED_THRESHOLD
from .timer import format_elapsed


class FeedbackTier(str, Enum):
    """
    Qualitative bucket derived from final accuracy.
    """

    Mastered = "mastered"
    Good = "good"
    NeedsReview = "needs review"

    @property
    def message(self) -> str:
        return _TIER_MESSAGES[self]


_TIER_MESSAGES = {
    FeedbackTier.Mastered: "Excellent work! You've mastered this deck!",
    FeedbackTier.Good: "Great job! Keep practicing to improve further!",
    FeedbackTier.NeedsReview: "Good effort! Consider reviewing these cards again!",
}


def accuracy_percent(correct_count: int, answered_count: int) -> int:
    """
    Percentage of correct answers, rounded to the nearest integer with halves
    rounding up. Returns 0 when nothing has been answered.
    """
    if answered_count <= 0:
        return 0
    # Integer form of floor(correct / answered * 100 + 0.5).
    return (200 * correct_count + answered_count) // (2 * answered_count)


def feedback_tier(accuracy: int) -> FeedbackTier:
    """Lower bounds are inclusive: 90 is mastered, 70 is good."""
    if accuracy >= MASTERED_THRESHOLD:
        return FeedbackTier.Mastered
    if accuracy >= GOOD_THRESHOLD:
        return FeedbackTier.Good
    return FeedbackTier.NeedsReview


@dataclass(frozen=True)
class SessionResult:
    """
    Display-only summary of a completed attempt. Never persisted.
    """

    correct_count: int
    answered_count: int
    total_cards: int
    accuracy_percent: int
    tier: FeedbackTier
    elapsed_seconds: int

    @property
    def score_text(self) -> str:
        return f"{self.correct_count}/{self.total_cards}"

    @property
    def elapsed_text(self) -> str:
        return format_elapsed(self.elapsed_seconds)

    @classmethod
    def from_counts(
        cls,
        correct_count: int,
        answered_count: int,
        total_cards: int,
        elapsed_seconds: int,
    ) -> "SessionResult":
        accuracy = accuracy_percent(correct_count, answered_count)
        return cls(
            correct_count=correct_count,
            answered_count=answered_count,
            total_cards=total_cards,
            accuracy_percent=accuracy,
            tier=feedback_tier(accuracy),
            elapsed_seconds=elapsed_seconds,
        )
