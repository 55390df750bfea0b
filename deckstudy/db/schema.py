"""
Defines the database schema for the deck/card store using a SQL string
constant. Timestamps are stored as UTC without a zone and re-tagged as UTC when
read back.
"""

DB_SCHEMA_SQL = """
    CREATE SEQUENCE IF NOT EXISTS deck_seq;
    CREATE SEQUENCE IF NOT EXISTS card_seq;

    CREATE TABLE IF NOT EXISTS decks (
        id INTEGER PRIMARY KEY DEFAULT nextval('deck_seq'),
        name VARCHAR NOT NULL,
        description VARCHAR,
        owner_id VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );

    CREATE TABLE IF NOT EXISTS cards (
        id INTEGER PRIMARY KEY DEFAULT nextval('card_seq'),
        deck_id INTEGER NOT NULL,
        front VARCHAR NOT NULL,
        back VARCHAR NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_decks_owner_id ON decks (owner_id);
    CREATE INDEX IF NOT EXISTS idx_cards_deck_id ON cards (deck_id);
"""
