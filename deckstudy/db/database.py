"""
DuckDB-backed deck/card store for deckstudy.

Every operation is scoped to an owner: a deck that belongs to someone else is
indistinguishable from a deck that does not exist.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Type, Union

import duckdb

from ..exceptions import (
    CardNotFoundError,
    CardOperationError,
    DatabaseConnectionError,
    DatabaseError,
    DeckNotFoundError,
    DeckOperationError,
    MarshallingError,
)
from ..models import (
    Card,
    CreateCardInput,
    CreateDeckInput,
    Deck,
    DeckWithCards,
    UpdateCardInput,
    UpdateDeckInput,
)
from . import db_utils
from .schema_manager import SchemaManager

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DeckDatabase:
    """
    Facade over the deck store. Owns the single DuckDB connection and hands
    schema work to SchemaManager. Use it as a context manager: entering opens
    the connection and bootstraps the schema of a database it just created.
    """

    def __init__(self, db_path: Union[str, Path], read_only: bool = False):
        """
        Args:
            db_path: Path to the database file, or ':memory:' (any case).
                File paths are resolved to absolute paths.
            read_only: Open the database in read-only mode.
        """
        if isinstance(db_path, str) and db_path.lower() == MEMORY_DB:
            self.db_path_resolved = Path(MEMORY_DB)
        else:
            self.db_path_resolved = Path(db_path).resolve()
        self.read_only = read_only
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._schema_manager = SchemaManager(self)

    @property
    def is_memory(self) -> bool:
        return str(self.db_path_resolved) == MEMORY_DB

    def get_connection(self) -> duckdb.DuckDBPyConnection:
        """
        Return the open connection, connecting on first use. A later call
        after `close_connection` reconnects.

        Raises:
            DatabaseConnectionError: If DuckDB cannot open the database.
        """
        if self._connection is not None:
            return self._connection
        if not self.is_memory and not self.read_only:
            self.db_path_resolved.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._connection = duckdb.connect(
                database=str(self.db_path_resolved), read_only=self.read_only
            )
        except duckdb.Error as e:
            raise DatabaseConnectionError(
                f"Failed to connect to database: {e}", original_exception=e
            ) from e
        logger.info(f"Connected to deck store at {self.db_path_resolved}.")
        return self._connection

    def close_connection(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
            logger.info(f"Deck store at {self.db_path_resolved} closed.")
        except duckdb.Error as e:
            logger.error(f"Error closing the database connection: {e}")
        finally:
            self._connection = None

    def __enter__(self) -> "DeckDatabase":
        """
        Open the connection. A writable database that did not exist before
        (a new file, or any in-memory store) gets its schema here.
        """
        created = self.is_memory or not self.db_path_resolved.exists()
        self.get_connection()
        if created and not self.read_only:
            self.initialize_schema()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close_connection()

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        self._schema_manager.initialize_schema(
            force_recreate_tables=force_recreate_tables
        )

    # --- Helpers ---

    @contextmanager
    def _transaction(
        self, error_cls: Type[DatabaseError], context: str
    ) -> Iterator[duckdb.DuckDBPyConnection]:
        """
        Run the body in one transaction on a fresh cursor. DuckDB errors are
        wrapped in `error_cls`; any exception rolls the transaction back.
        """
        if self.read_only:
            raise error_cls(f"Cannot {context} in read-only mode.")
        conn = self.get_connection()
        with conn.cursor() as cursor:
            cursor.begin()
            try:
                yield cursor
                cursor.commit()
            except duckdb.Error as e:
                logger.error(f"Failed to {context}: {e}")
                self._rollback(cursor, context)
                raise error_cls(
                    f"Failed to {context}: {e}", original_exception=e
                ) from e
            except Exception:
                self._rollback(cursor, context)
                raise

    @staticmethod
    def _rollback(cursor: duckdb.DuckDBPyConnection, context: str) -> None:
        try:
            cursor.rollback()
            logger.info(f"Transaction rolled back ({context}).")
        except duckdb.Error as rb_err:
            logger.error(f"Failed to rollback transaction: {rb_err}")

    @staticmethod
    def _now() -> datetime:
        return db_utils.to_db_timestamp(datetime.now(timezone.utc))

    def _query_decks(
        self, sql: str, params: tuple, context: str
    ) -> List[Deck]:
        try:
            cursor = self.get_connection().execute(sql, params)
            return [db_utils.db_row_to_deck(row) for row in db_utils.rows_to_dicts(cursor)]
        except MarshallingError as e:
            raise DeckOperationError(
                f"Failed to parse decks ({context}).", original_exception=e
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error while trying to {context}: {e}")
            raise DeckOperationError(
                f"Failed to {context}: {e}", original_exception=e
            ) from e

    def _query_cards(
        self, sql: str, params: tuple, context: str
    ) -> List[Card]:
        try:
            cursor = self.get_connection().execute(sql, params)
            return [db_utils.db_row_to_card(row) for row in db_utils.rows_to_dicts(cursor)]
        except MarshallingError as e:
            raise CardOperationError(
                f"Failed to parse cards ({context}).", original_exception=e
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error while trying to {context}: {e}")
            raise CardOperationError(
                f"Failed to {context}: {e}", original_exception=e
            ) from e

    @staticmethod
    def _owns_deck(
        cursor: duckdb.DuckDBPyConnection, deck_id: int, owner_id: str
    ) -> bool:
        row = cursor.execute(
            "SELECT 1 FROM decks WHERE id = $1 AND owner_id = $2;",
            (deck_id, owner_id),
        ).fetchone()
        return row is not None

    @staticmethod
    def _owns_card(
        cursor: duckdb.DuckDBPyConnection, card_id: int, owner_id: str
    ) -> bool:
        row = cursor.execute(
            """
            SELECT 1 FROM cards c
            JOIN decks d ON c.deck_id = d.id
            WHERE c.id = $1 AND d.owner_id = $2;
            """,
            (card_id, owner_id),
        ).fetchone()
        return row is not None

    # --- Deck Operations ---

    def create_deck(self, owner_id: str, data: CreateDeckInput) -> Deck:
        """Insert a new deck owned by `owner_id` and return it."""
        now = self._now()
        sql = """
            INSERT INTO decks (name, description, owner_id, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *;
        """
        with self._transaction(DeckOperationError, "create deck") as cursor:
            cursor.execute(
                sql, (data.name, data.description, owner_id, now, now)
            )
            rows = db_utils.rows_to_dicts(cursor)
        deck = db_utils.db_row_to_deck(rows[0])
        logger.info(f"Created deck {deck.id} ('{deck.name}') for {owner_id}.")
        return deck

    def get_deck_by_id(self, deck_id: int, owner_id: str) -> Optional[Deck]:
        decks = self._query_decks(
            "SELECT * FROM decks WHERE id = $1 AND owner_id = $2;",
            (deck_id, owner_id),
            f"fetch deck {deck_id}",
        )
        return decks[0] if decks else None

    def get_user_decks(self, owner_id: str) -> List[Deck]:
        """Decks owned by `owner_id`, newest first."""
        return self._query_decks(
            """
            SELECT * FROM decks WHERE owner_id = $1
            ORDER BY created_at DESC, id DESC;
            """,
            (owner_id,),
            "list decks",
        )

    def get_user_decks_with_card_counts(
        self, owner_id: str
    ) -> List[Tuple[Deck, int]]:
        """
        Decks owned by `owner_id` paired with their number of cards, newest
        deck first.
        """
        sql = """
            SELECT d.*, COUNT(c.id) AS card_count
            FROM decks d
            LEFT JOIN cards c ON c.deck_id = d.id
            WHERE d.owner_id = $1
            GROUP BY ALL
            ORDER BY d.created_at DESC, d.id DESC;
        """
        try:
            cursor = self.get_connection().execute(sql, (owner_id,))
            results = []
            for row in db_utils.rows_to_dicts(cursor):
                card_count = int(row.pop("card_count"))
                results.append((db_utils.db_row_to_deck(row), card_count))
            return results
        except MarshallingError as e:
            raise DeckOperationError(
                "Failed to parse decks with card counts.", original_exception=e
            ) from e
        except duckdb.Error as e:
            logger.error(f"Error listing decks with card counts: {e}")
            raise DeckOperationError(
                f"Failed to list decks: {e}", original_exception=e
            ) from e

    def update_deck(
        self, deck_id: int, owner_id: str, data: UpdateDeckInput
    ) -> Deck:
        """
        Apply the provided fields to a deck.

        Raises:
            DeckNotFoundError: If the deck does not exist for this owner.
        """
        changes: Dict[str, object] = data.model_dump(exclude_none=True)
        changes["updated_at"] = self._now()
        assignments = ", ".join(
            f"{column} = ${index}" for index, column in enumerate(changes, 1)
        )
        params = (*changes.values(), deck_id, owner_id)
        n = len(changes)
        sql = (
            f"UPDATE decks SET {assignments} "
            f"WHERE id = ${n + 1} AND owner_id = ${n + 2} RETURNING *;"
        )
        with self._transaction(DeckOperationError, "update deck") as cursor:
            cursor.execute(sql, params)
            rows = db_utils.rows_to_dicts(cursor)
            if not rows:
                raise DeckNotFoundError(f"Deck {deck_id} not found.")
        return db_utils.db_row_to_deck(rows[0])

    def delete_deck(self, deck_id: int, owner_id: str) -> int:
        """
        Delete a deck together with all of its cards.

        Returns:
            int: The number of cards removed with the deck.

        Raises:
            DeckNotFoundError: If the deck does not exist for this owner.
        """
        with self._transaction(DeckOperationError, "delete deck") as cursor:
            if not self._owns_deck(cursor, deck_id, owner_id):
                raise DeckNotFoundError(f"Deck {deck_id} not found.")
            row = cursor.execute(
                "SELECT COUNT(*) FROM cards WHERE deck_id = $1;", (deck_id,)
            ).fetchone()
            card_count = row[0] if row else 0
            cursor.execute("DELETE FROM cards WHERE deck_id = $1;", (deck_id,))
            cursor.execute("DELETE FROM decks WHERE id = $1;", (deck_id,))
        logger.info(f"Deleted deck {deck_id} and {card_count} cards.")
        return card_count

    # --- Card Operations ---

    def create_card(self, owner_id: str, data: CreateCardInput) -> Card:
        """
        Raises:
            DeckNotFoundError: If the target deck does not exist for this owner.
        """
        now = self._now()
        sql = """
            INSERT INTO cards (deck_id, front, back, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5)
            RETURNING *;
        """
        with self._transaction(CardOperationError, "create card") as cursor:
            if not self._owns_deck(cursor, data.deck_id, owner_id):
                raise DeckNotFoundError(f"Deck {data.deck_id} not found.")
            cursor.execute(sql, (data.deck_id, data.front, data.back, now, now))
            rows = db_utils.rows_to_dicts(cursor)
            cursor.execute(
                "UPDATE decks SET updated_at = $1 WHERE id = $2;",
                (now, data.deck_id),
            )
        return db_utils.db_row_to_card(rows[0])

    def get_card_by_id(self, card_id: int, owner_id: str) -> Optional[Card]:
        cards = self._query_cards(
            """
            SELECT c.* FROM cards c
            JOIN decks d ON c.deck_id = d.id
            WHERE c.id = $1 AND d.owner_id = $2;
            """,
            (card_id, owner_id),
            f"fetch card {card_id}",
        )
        return cards[0] if cards else None

    def get_cards_by_deck(self, deck_id: int, owner_id: str) -> List[Card]:
        """
        Cards of a deck, newest first.

        Raises:
            DeckNotFoundError: If the deck does not exist for this owner.
        """
        if self.get_deck_by_id(deck_id, owner_id) is None:
            raise DeckNotFoundError(f"Deck {deck_id} not found.")
        return self._query_cards(
            """
            SELECT * FROM cards WHERE deck_id = $1
            ORDER BY created_at DESC, id DESC;
            """,
            (deck_id,),
            f"list cards of deck {deck_id}",
        )

    def update_card(
        self, card_id: int, owner_id: str, data: UpdateCardInput
    ) -> Card:
        """
        Raises:
            CardNotFoundError: If the card does not exist for this owner.
        """
        changes: Dict[str, object] = data.model_dump(exclude_none=True)
        changes["updated_at"] = self._now()
        assignments = ", ".join(
            f"{column} = ${index}" for index, column in enumerate(changes, 1)
        )
        n = len(changes)
        sql = (
            f"UPDATE cards SET {assignments} WHERE id = ${n + 1} RETURNING *;"
        )
        with self._transaction(CardOperationError, "update card") as cursor:
            if not self._owns_card(cursor, card_id, owner_id):
                raise CardNotFoundError(f"Card {card_id} not found.")
            cursor.execute(sql, (*changes.values(), card_id))
            rows = db_utils.rows_to_dicts(cursor)
        return db_utils.db_row_to_card(rows[0])

    def delete_card(self, card_id: int, owner_id: str) -> None:
        """
        Raises:
            CardNotFoundError: If the card does not exist for this owner.
        """
        with self._transaction(CardOperationError, "delete card") as cursor:
            if not self._owns_card(cursor, card_id, owner_id):
                raise CardNotFoundError(f"Card {card_id} not found.")
            cursor.execute("DELETE FROM cards WHERE id = $1;", (card_id,))
        logger.info(f"Deleted card {card_id}.")

    # --- Study Operations ---

    def fetch_deck_with_cards(
        self, deck_id: int, owner_id: str
    ) -> Optional[DeckWithCards]:
        """
        Read a deck and every card in it in one snapshot.

        Returns:
            DeckWithCards | None: None if the deck does not exist for this
            owner. The card list may be empty.
        """
        deck = self.get_deck_by_id(deck_id, owner_id)
        if deck is None:
            return None
        cards = self._query_cards(
            "SELECT * FROM cards WHERE deck_id = $1 ORDER BY id;",
            (deck_id,),
            f"load cards of deck {deck_id}",
        )
        logger.debug(f"Loaded deck {deck_id} with {len(cards)} cards.")
        return DeckWithCards(**deck.model_dump(), cards=cards)
