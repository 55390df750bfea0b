import logging
from typing import TYPE_CHECKING

import duckdb

from . import schema
from ..exceptions import DatabaseConnectionError, SchemaInitializationError

if TYPE_CHECKING:
    from .database import DeckDatabase

logger = logging.getLogger(__name__)


class SchemaManager:
    """Creates (and optionally recreates) the decks and cards tables."""

    def __init__(self, db: "DeckDatabase"):
        self._db = db

    def initialize_schema(self, force_recreate_tables: bool = False) -> None:
        """
        Create the schema inside a transaction. Skipped for read-only file
        databases. `force_recreate_tables` drops every deck and card first
        and is refused on a file database that still holds data.
        """
        if self._handle_read_only_initialization(force_recreate_tables):
            return

        conn = self._db.get_connection()
        try:
            with conn.cursor() as cursor:
                cursor.begin()
                try:
                    if force_recreate_tables:
                        self._recreate_tables(cursor)
                    cursor.execute(schema.DB_SCHEMA_SQL)
                    cursor.commit()
                except SchemaInitializationError:
                    cursor.rollback()
                    raise
            logger.info(
                f"Deck store schema at {self._db.db_path_resolved} "
                "initialized (or already exists)."
            )
        except duckdb.Error as e:
            logger.error(
                f"Error initializing schema at "
                f"{self._db.db_path_resolved}: {e}"
            )
            try:
                conn.rollback()
            except duckdb.Error as rb_err:
                logger.debug(f"Rollback after schema error failed: {rb_err}")
            raise SchemaInitializationError(
                f"Failed to initialize schema: {e}", original_exception=e
            ) from e

    def _handle_read_only_initialization(
        self, force_recreate_tables: bool
    ) -> bool:
        """Returns True if initialization should be skipped."""
        if not self._db.read_only:
            return False
        if force_recreate_tables:
            raise DatabaseConnectionError(
                "Cannot force_recreate_tables in read-only mode."
            )
        if not self._db.is_memory:
            logger.warning(
                "Attempting to initialize schema in read-only mode. Skipping."
            )
            return True
        return False

    def _perform_safety_check(self, cursor: duckdb.DuckDBPyConnection) -> None:
        """Refuses to drop a file database that still contains decks."""
        if self._db.is_memory:
            return
        try:
            result = cursor.execute("SELECT COUNT(*) FROM decks").fetchone()
        except duckdb.CatalogException:
            return
        deck_count = result[0] if result else 0
        if deck_count > 0:
            error_msg = (
                f"Refusing to drop tables holding {deck_count} decks; "
                "this would permanently delete them."
            )
            logger.error(error_msg)
            raise SchemaInitializationError(error_msg)

    def _recreate_tables(self, cursor: duckdb.DuckDBPyConnection) -> None:
        self._perform_safety_check(cursor)
        logger.warning(
            f"Forcing table recreation for {self._db.db_path_resolved}."
        )
        cursor.execute("DROP TABLE IF EXISTS cards;")
        cursor.execute("DROP TABLE IF EXISTS decks;")
        cursor.execute("DROP SEQUENCE IF EXISTS card_seq;")
        cursor.execute("DROP SEQUENCE IF EXISTS deck_seq;")
