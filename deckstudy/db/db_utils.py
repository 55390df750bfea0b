"""
Marshalling between pydantic models and DuckDB rows.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import duckdb
from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Card, Deck


def rows_to_dicts(cursor: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Convert cursor results to list of dictionaries using column names."""
    rows = cursor.fetchall()
    if not rows or cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


def to_db_timestamp(value: datetime) -> datetime:
    """Naive UTC datetime for a TIMESTAMP column."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_timestamp(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _with_utc_timestamps(row_dict: Dict[str, Any]) -> Dict[str, Any]:
    data = row_dict.copy()
    for key in ("created_at", "updated_at"):
        if key in data:
            data[key] = from_db_timestamp(data[key])
    return data


def db_row_to_deck(row_dict: Dict[str, Any]) -> Deck:
    """
    Raises:
        MarshallingError: If the row does not validate as a Deck.
    """
    try:
        return Deck(**_with_utc_timestamps(row_dict))
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse deck from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def db_row_to_card(row_dict: Dict[str, Any]) -> Card:
    """
    Raises:
        MarshallingError: If the row does not validate as a Card.
    """
    try:
        return Card(**_with_utc_timestamps(row_dict))
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse card from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e
