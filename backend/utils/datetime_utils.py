"""
Datetime utility functions.
Provides replacements for deprecated datetime functions.
"""

from datetime import datetime
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones.

    Args:
        value: Datetime read from the database or a request

    Returns:
        Timezone-aware UTC datetime, or None
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (a trailing "Z" is accepted) into a UTC datetime.

    Examples:
        >>> parse_datetime("2020-04-30T12:33:00.000Z")
        datetime.datetime(2020, 4, 30, 12, 33, tzinfo=<UTC>)
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO-8601 UTC, or None."""
    value = as_utc(value)
    return value.isoformat() if value else None
