"""
Centralized configuration management for deckstudy.
"""
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_ADVANCE_DELAY_SECONDS,
    DEFAULT_FLIP_DELAY_SECONDS,
    DEFAULT_TICK_INTERVAL_SECONDS,
)

# --- Path Configuration ---


def get_default_db_path() -> Path:
    """Returns the default path for the database file."""
    return Path.home() / ".deckstudy" / "deckstudy.db"


class Settings(BaseSettings):
    """
    Application settings, loaded from DECKSTUDY_* environment variables or a
    .env file. Command-line flags take precedence over these values.
    """

    model_config = SettingsConfigDict(
        env_prefix="DECKSTUDY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Core Paths ---
    # Overridden by DECKSTUDY_DB_PATH.
    db_path: Path = Field(default_factory=get_default_db_path)

    # --- User Configuration ---
    # Identity that owns decks created from this machine. Overridden by
    # DECKSTUDY_OWNER_ID.
    owner_id: str = "local-user"

    # --- Study Session Timing ---
    flip_delay_seconds: float = Field(
        default=DEFAULT_FLIP_DELAY_SECONDS, ge=0
    )
    advance_delay_seconds: float = Field(
        default=DEFAULT_ADVANCE_DELAY_SECONDS, ge=0
    )
    tick_interval_seconds: float = Field(
        default=DEFAULT_TICK_INTERVAL_SECONDS, gt=0
    )


def get_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    return Settings()
