import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator, List

import pytest

from deckstudy.db import DeckDatabase
from deckstudy.models import Card, CreateCardInput, CreateDeckInput, DeckWithCards
from deckstudy.scheduling import DeferredScheduler

OWNER = "user-a"
OTHER_OWNER = "user-b"


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(request):
    """
    Temporarily change the working directory to the test's tmpdir, so a
    stray .env file or default database never leaks into a test.
    """
    tmpdir = request.getfixturevalue("tmpdir")
    sys.path.insert(0, str(tmpdir))
    with tmpdir.as_cwd():
        yield


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    return tmp_path / "test_decks.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[DeckDatabase, None, None]:
    """
    Provide a DeckDatabase, either in-memory or file-backed, and close it on
    teardown.
    """
    if request.param == "memory":
        db_man = DeckDatabase(db_path_memory)
    else:
        db_man = DeckDatabase(db_path_file)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def initialized_db_manager(db_manager: DeckDatabase) -> DeckDatabase:
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def populated_db(initialized_db_manager: DeckDatabase) -> DeckDatabase:
    """A database with one three-card deck owned by OWNER."""
    deck = initialized_db_manager.create_deck(
        OWNER, CreateDeckInput(name="Capitals", description="European capitals")
    )
    for front, back in [
        ("France", "Paris"),
        ("Italy", "Rome"),
        ("Spain", "Madrid"),
    ]:
        initialized_db_manager.create_card(
            OWNER, CreateCardInput(deck_id=deck.id, front=front, back=back)
        )
    return initialized_db_manager


# --- Model Fixtures ---
def make_card(card_id: int, front: str, back: str, deck_id: int = 1) -> Card:
    return Card(
        id=card_id,
        deck_id=deck_id,
        front=front,
        back=back,
        created_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
    )


def make_deck(cards: List[Card], deck_id: int = 1) -> DeckWithCards:
    return DeckWithCards(
        id=deck_id,
        name="Capitals",
        description="European capitals",
        owner_id=OWNER,
        created_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        updated_at=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
        cards=cards,
    )


@pytest.fixture
def sample_cards() -> List[Card]:
    return [
        make_card(1, "France", "Paris"),
        make_card(2, "Italy", "Rome"),
        make_card(3, "Spain", "Madrid"),
    ]


@pytest.fixture
def sample_deck(sample_cards: List[Card]) -> DeckWithCards:
    return make_deck(sample_cards)


@pytest.fixture
def ten_card_deck() -> DeckWithCards:
    return make_deck(
        [make_card(i, f"Question {i}", f"Answer {i}") for i in range(1, 11)]
    )


def in_order(cards):
    """Sequencer that keeps the deck order, for deterministic sessions."""
    return list(cards)


# --- Clock Fixtures ---
class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> DeferredScheduler:
    return DeferredScheduler(clock=clock)
