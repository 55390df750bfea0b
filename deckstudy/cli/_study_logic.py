import logging
from pathlib import Path
from typing import Optional

from deckstudy.cli.study_ui import show_empty_deck_prompt, start_study_flow
from deckstudy.config import Settings, get_settings
from deckstudy.db.database import DeckDatabase
from deckstudy.exceptions import DeckNotFoundError
from deckstudy.study_session import StudySession

logger = logging.getLogger(__name__)


def study_logic(
    deck_id: int,
    db_path: Path,
    owner_id: str,
    settings: Optional[Settings] = None,
) -> None:
    """
    Load a deck and run an interactive study session over it.

    The deck and its cards are read once, before the session starts; the
    database connection is closed while the user studies.

    Parameters:
        deck_id (int): ID of the deck to study.
        db_path (Path): Path to the deck database file.
        owner_id (str): Identity the deck must belong to.
        settings (Optional[Settings]): Timing configuration; read from the
            environment when omitted.

    Raises:
        DeckNotFoundError: If the deck does not exist for this owner.
    """
    settings = settings or get_settings()

    with DeckDatabase(db_path=db_path) as db_manager:
        db_manager.initialize_schema()
        deck = db_manager.fetch_deck_with_cards(deck_id, owner_id)

    if deck is None:
        raise DeckNotFoundError(f"Deck {deck_id} not found.")
    if not deck.cards:
        logger.info(f"Deck {deck_id} has no cards; not starting a session.")
        show_empty_deck_prompt(deck)
        return

    session = StudySession(
        deck,
        flip_delay=settings.flip_delay_seconds,
        advance_delay=settings.advance_delay_seconds,
        tick_interval=settings.tick_interval_seconds,
    )
    start_study_flow(session)
