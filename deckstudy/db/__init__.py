"""Database package for deckstudy.

This package provides the deck/card store. Only DeckDatabase is exported as
the public API.
"""

from .database import DeckDatabase

__all__ = ["DeckDatabase"]
