from typing import Optional


class DatabaseError(Exception):
    """Base exception for database-related errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class DatabaseConnectionError(DatabaseError):
    """Raised for errors connecting to the database."""

    pass


class SchemaInitializationError(DatabaseError):
    """Raised for errors during schema setup."""

    pass


class DeckOperationError(DatabaseError):
    """Raised for errors during deck operations (CRUD)."""

    pass


class CardOperationError(DatabaseError):
    """Raised for errors during card operations (CRUD)."""

    pass


class MarshallingError(DatabaseError):
    """Indicates an error during data conversion between application models
    and DB format."""

    pass


class DeckNotFoundError(DatabaseError):
    """Raised when a deck does not exist or belongs to another owner."""

    pass


class CardNotFoundError(DatabaseError):
    """Raised when a card does not exist or its deck belongs to another
    owner."""

    pass


class StudySessionError(Exception):
    """Base exception for study-session preconditions."""

    pass


class EmptyDeckError(StudySessionError, ValueError):
    """Raised when a study session is requested for a deck with no cards."""

    pass
