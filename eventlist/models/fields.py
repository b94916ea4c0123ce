"""
Helpers for converting database row values into model field values.

PostgreSQL hands back native types while SQLite returns strings and integers,
so models normalise through these functions.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime column value.

    Args:
        value: datetime, date, ISO 8601 string or None

    Returns:
        datetime instance or None

    Raises:
        ValueError: if a string value is not a valid ISO 8601 datetime
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    raise ValueError(f"Unparseable datetime value: {value!r}")


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage or JSON output."""
    return value.isoformat() if value else None


def parse_bool(value: Any) -> bool:
    """Parse a boolean column value (SQLite stores 0/1)."""
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 't', 'yes', 'on')
    return bool(value)


def parse_price(value: Any) -> Optional[float]:
    """Parse a numeric price column value."""
    if value is None or value == '':
        return None
    if isinstance(value, Decimal):
        return float(value)
    return round(float(value), 2)
