"""
Tests for the DuckDB deck/card store (deckstudy.db).
"""

from datetime import timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from deckstudy.db import DeckDatabase
from deckstudy.exceptions import (
    CardNotFoundError,
    DatabaseConnectionError,
    DeckNotFoundError,
    DeckOperationError,
    SchemaInitializationError,
)
from deckstudy.models import (
    CreateCardInput,
    CreateDeckInput,
    UpdateCardInput,
    UpdateDeckInput,
)

from conftest import OTHER_OWNER, OWNER


def _only_deck(db: DeckDatabase):
    decks = db.get_user_decks(OWNER)
    assert len(decks) == 1
    return decks[0]


class TestConnectionAndSchema:
    def test_memory_path_is_recognized(self):
        db = DeckDatabase(":memory:")
        assert str(db.db_path_resolved) == ":memory:"

    def test_file_path_is_resolved(self, tmp_path: Path):
        db = DeckDatabase(tmp_path / "nested" / "decks.db")
        assert db.db_path_resolved.is_absolute()

    def test_context_manager_creates_schema_for_new_file(self, tmp_path: Path):
        db_file = tmp_path / "nested" / "decks.db"
        with DeckDatabase(db_file) as db:
            assert db.get_user_decks(OWNER) == []
        assert db_file.exists()

    def test_initialize_schema_is_idempotent(self, initialized_db_manager):
        initialized_db_manager.initialize_schema()
        assert initialized_db_manager.get_user_decks(OWNER) == []

    def test_force_recreate_refused_for_file_with_decks(self, tmp_path: Path):
        with DeckDatabase(tmp_path / "decks.db") as db:
            db.create_deck(OWNER, CreateDeckInput(name="Keep me"))
            with pytest.raises(SchemaInitializationError, match="Refusing"):
                db.initialize_schema(force_recreate_tables=True)
            assert len(db.get_user_decks(OWNER)) == 1

    def test_force_recreate_allowed_in_memory(self):
        with DeckDatabase(":memory:") as db:
            db.create_deck(OWNER, CreateDeckInput(name="Scratch"))
            db.initialize_schema(force_recreate_tables=True)
            assert db.get_user_decks(OWNER) == []

    def test_read_only_refuses_writes(self, tmp_path: Path):
        db_file = tmp_path / "decks.db"
        with DeckDatabase(db_file) as db:
            db.create_deck(OWNER, CreateDeckInput(name="Existing"))
        with DeckDatabase(db_file, read_only=True) as db:
            assert len(db.get_user_decks(OWNER)) == 1
            with pytest.raises(DeckOperationError, match="read-only"):
                db.create_deck(OWNER, CreateDeckInput(name="New"))

    def test_entering_existing_file_skips_schema_bootstrap(self, tmp_path: Path):
        db_file = tmp_path / "decks.db"
        with DeckDatabase(db_file) as db:
            db.create_deck(OWNER, CreateDeckInput(name="Existing"))
        with patch.object(DeckDatabase, "initialize_schema") as mock_init:
            with DeckDatabase(db_file) as db:
                assert len(db.get_user_decks(OWNER)) == 1
        mock_init.assert_not_called()

    def test_entering_memory_store_bootstraps_schema(self):
        with patch.object(DeckDatabase, "initialize_schema") as mock_init:
            with DeckDatabase(":MEMORY:"):
                pass
        mock_init.assert_called_once_with()

    def test_read_only_missing_file_fails_to_connect(self, tmp_path: Path):
        db_file = tmp_path / "missing" / "decks.db"
        with pytest.raises(DatabaseConnectionError, match="Failed to connect"):
            with DeckDatabase(db_file, read_only=True):
                pass
        assert not db_file.parent.exists()

    def test_reconnects_after_close(self, tmp_path: Path):
        db = DeckDatabase(tmp_path / "decks.db")
        with db:
            db.create_deck(OWNER, CreateDeckInput(name="Kept"))
        db.close_connection()
        with db:
            assert [d.name for d in db.get_user_decks(OWNER)] == ["Kept"]


class TestDeckOperations:
    def test_create_deck(self, initialized_db_manager: DeckDatabase):
        deck = initialized_db_manager.create_deck(
            OWNER, CreateDeckInput(name="Capitals", description="desc")
        )
        assert deck.id > 0
        assert deck.name == "Capitals"
        assert deck.description == "desc"
        assert deck.owner_id == OWNER
        assert deck.created_at.tzinfo == timezone.utc

    def test_get_deck_is_scoped_to_owner(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        assert populated_db.get_deck_by_id(deck.id, OWNER) == deck
        assert populated_db.get_deck_by_id(deck.id, OTHER_OWNER) is None
        assert populated_db.get_deck_by_id(9999, OWNER) is None

    def test_get_user_decks_newest_first(
        self, initialized_db_manager: DeckDatabase
    ):
        first = initialized_db_manager.create_deck(
            OWNER, CreateDeckInput(name="First")
        )
        second = initialized_db_manager.create_deck(
            OWNER, CreateDeckInput(name="Second")
        )
        initialized_db_manager.create_deck(
            OTHER_OWNER, CreateDeckInput(name="Not mine")
        )
        decks = initialized_db_manager.get_user_decks(OWNER)
        assert [d.id for d in decks] == [second.id, first.id]

    def test_decks_with_card_counts(self, populated_db: DeckDatabase):
        empty = populated_db.create_deck(OWNER, CreateDeckInput(name="Empty"))
        counts = {
            deck.id: count
            for deck, count in populated_db.get_user_decks_with_card_counts(
                OWNER
            )
        }
        assert counts[empty.id] == 0
        assert sorted(counts.values()) == [0, 3]
        assert populated_db.get_user_decks_with_card_counts(OTHER_OWNER) == []

    def test_update_deck(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        updated = populated_db.update_deck(
            deck.id, OWNER, UpdateDeckInput(name="Renamed")
        )
        assert updated.name == "Renamed"
        assert updated.description == deck.description
        assert updated.updated_at >= deck.updated_at

    def test_update_foreign_deck_raises(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        with pytest.raises(DeckNotFoundError):
            populated_db.update_deck(
                deck.id, OTHER_OWNER, UpdateDeckInput(name="Hijacked")
            )
        assert populated_db.get_deck_by_id(deck.id, OWNER).name == "Capitals"

    def test_delete_deck_cascades_to_cards(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card_ids = [c.id for c in populated_db.get_cards_by_deck(deck.id, OWNER)]

        removed = populated_db.delete_deck(deck.id, OWNER)

        assert removed == 3
        assert populated_db.get_deck_by_id(deck.id, OWNER) is None
        for card_id in card_ids:
            assert populated_db.get_card_by_id(card_id, OWNER) is None

    def test_delete_foreign_deck_raises(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        with pytest.raises(DeckNotFoundError):
            populated_db.delete_deck(deck.id, OTHER_OWNER)
        assert populated_db.get_deck_by_id(deck.id, OWNER) is not None


class TestCardOperations:
    def test_create_card(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card = populated_db.create_card(
            OWNER, CreateCardInput(deck_id=deck.id, front="Portugal", back="Lisbon")
        )
        assert card.deck_id == deck.id
        assert (card.front, card.back) == ("Portugal", "Lisbon")
        assert populated_db.get_card_by_id(card.id, OWNER) == card

    def test_create_card_in_foreign_deck_raises(
        self, populated_db: DeckDatabase
    ):
        deck = _only_deck(populated_db)
        with pytest.raises(DeckNotFoundError):
            populated_db.create_card(
                OTHER_OWNER,
                CreateCardInput(deck_id=deck.id, front="f", back="b"),
            )
        assert len(populated_db.get_cards_by_deck(deck.id, OWNER)) == 3

    def test_cards_listed_newest_first(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        fronts = [c.front for c in populated_db.get_cards_by_deck(deck.id, OWNER)]
        assert fronts == ["Spain", "Italy", "France"]

    def test_list_cards_of_foreign_deck_raises(
        self, populated_db: DeckDatabase
    ):
        deck = _only_deck(populated_db)
        with pytest.raises(DeckNotFoundError):
            populated_db.get_cards_by_deck(deck.id, OTHER_OWNER)

    def test_get_card_is_scoped_to_owner(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card = populated_db.get_cards_by_deck(deck.id, OWNER)[0]
        assert populated_db.get_card_by_id(card.id, OTHER_OWNER) is None

    def test_update_card(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card = populated_db.get_cards_by_deck(deck.id, OWNER)[0]
        updated = populated_db.update_card(
            card.id, OWNER, UpdateCardInput(back="Madrid!")
        )
        assert updated.back == "Madrid!"
        assert updated.front == card.front

    def test_update_foreign_card_raises(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card = populated_db.get_cards_by_deck(deck.id, OWNER)[0]
        with pytest.raises(CardNotFoundError):
            populated_db.update_card(
                card.id, OTHER_OWNER, UpdateCardInput(back="x")
            )

    def test_delete_card(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        card = populated_db.get_cards_by_deck(deck.id, OWNER)[0]
        populated_db.delete_card(card.id, OWNER)
        assert populated_db.get_card_by_id(card.id, OWNER) is None
        with pytest.raises(CardNotFoundError):
            populated_db.delete_card(card.id, OWNER)


class TestFetchDeckWithCards:
    def test_snapshot_contains_all_cards(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        snapshot = populated_db.fetch_deck_with_cards(deck.id, OWNER)
        assert snapshot.name == "Capitals"
        assert [c.front for c in snapshot.cards] == ["France", "Italy", "Spain"]

    def test_empty_deck_has_no_cards(self, initialized_db_manager):
        deck = initialized_db_manager.create_deck(
            OWNER, CreateDeckInput(name="Empty")
        )
        snapshot = initialized_db_manager.fetch_deck_with_cards(deck.id, OWNER)
        assert snapshot is not None
        assert snapshot.cards == []

    def test_foreign_deck_is_none(self, populated_db: DeckDatabase):
        deck = _only_deck(populated_db)
        assert populated_db.fetch_deck_with_cards(deck.id, OTHER_OWNER) is None
