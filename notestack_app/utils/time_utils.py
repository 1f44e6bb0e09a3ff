"""
Centralized Utilities for Time Handling in Notestack.
Goal: every stored timestamp is naive UTC (SQLite drops tzinfo).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """
    Get the current UTC datetime as a naive value.
    Always use this instead of datetime.utcnow() or datetime.now().
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC; naive input is assumed UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """
    Parse an API timestamp into naive UTC.

    Accepts ISO-8601 strings (``Z`` suffix allowed), epoch milliseconds or a datetime.
    Raises ValueError on anything else, including epochs outside the datetime range.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    try:
        if isinstance(value, (int, float)):
            return datetime(1970, 1, 1) + timedelta(milliseconds=value)
        if isinstance(value, str):
            return to_naive_utc(datetime.fromisoformat(value.replace('Z', '+00:00')))
    except OverflowError:
        raise ValueError(f"Timestamp out of range: {value!r}")
    raise ValueError(f"Invalid timestamp: {value!r}")


def days_between(start: Optional[datetime], end: datetime) -> float:
    """Fractional days from ``start`` to ``end``; 0 when ``start`` is missing."""
    if start is None:
        return 0.0
    return (to_naive_utc(end) - to_naive_utc(start)).total_seconds() / 86400.0
