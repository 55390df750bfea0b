"""
Pydantic models for decks, cards and the validated inputs that create or
change them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import (
    DECK_DESCRIPTION_MAX_LENGTH,
    DECK_NAME_MAX_LENGTH,
    OWNER_ID_MAX_LENGTH,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Deck(BaseModel):
    """
    A named collection of cards owned by one user.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: int = Field(..., description="Store-assigned deck identifier.")
    name: str = Field(
        ...,
        min_length=1,
        max_length=DECK_NAME_MAX_LENGTH,
        description="Display name of the deck.",
    )
    description: Optional[str] = Field(
        default=None,
        max_length=DECK_DESCRIPTION_MAX_LENGTH,
        description="Optional free-text description.",
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        max_length=OWNER_ID_MAX_LENGTH,
        description="Identity of the user who owns the deck.",
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the deck was created.",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp of the last modification.",
    )


class Card(BaseModel):
    """
    A front/back text pair belonging to a deck.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    id: int = Field(..., description="Store-assigned card identifier.")
    deck_id: int = Field(..., description="Identifier of the owning deck.")
    front: str = Field(..., min_length=1, description="Question side.")
    back: str = Field(..., min_length=1, description="Answer side.")
    created_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the card was created.",
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp of the last modification.",
    )


class DeckWithCards(Deck):
    """A deck together with every card it contains."""

    cards: List[Card] = Field(default_factory=list)


class DeckSnapshot(BaseModel):
    """
    Immutable copy of the deck fields a study session displays. Captured once
    when the session is opened.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    name: str
    description: Optional[str] = None

    @classmethod
    def from_deck(cls, deck: Deck) -> "DeckSnapshot":
        return cls(id=deck.id, name=deck.name, description=deck.description)


# --- Validated inputs ---


class CreateDeckInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=DECK_NAME_MAX_LENGTH)
    description: Optional[str] = Field(
        default=None, max_length=DECK_DESCRIPTION_MAX_LENGTH
    )


class UpdateDeckInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(
        default=None, min_length=1, max_length=DECK_NAME_MAX_LENGTH
    )
    description: Optional[str] = Field(
        default=None, max_length=DECK_DESCRIPTION_MAX_LENGTH
    )

    def has_changes(self) -> bool:
        return bool(self.model_dump(exclude_none=True))


class CreateCardInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    deck_id: int = Field(..., gt=0, description="Invalid deck ID if <= 0.")
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)

    @field_validator("front", "back")
    @classmethod
    def reject_blank_sides(cls, value: str) -> str:
        """Ensure a card side is not whitespace only."""
        if not value.strip():
            raise ValueError("Card sides must not be blank.")
        return value


class UpdateCardInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    front: Optional[str] = Field(default=None, min_length=1)
    back: Optional[str] = Field(default=None, min_length=1)

    @field_validator("front", "back")
    @classmethod
    def reject_blank_sides(cls, value: Optional[str]) -> Optional[str]:
        """Ensure a provided card side is not whitespace only."""
        if value is not None and not value.strip():
            raise ValueError("Card sides must not be blank.")
        return value

    def has_changes(self) -> bool:
        return bool(self.model_dump(exclude_none=True))
