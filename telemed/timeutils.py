"""
timeutils.py
============
UTC helpers shared by the API layer and the reporting functions.

The database stores naive UTC timestamps; everything leaving the API is
timezone-aware so it serializes with a trailing "Z".
"""

import datetime
from typing import Any, Optional

UTC = datetime.timezone.utc


def utcnow() -> datetime.datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.datetime.now(UTC)


def as_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Attach UTC to a naive datetime, convert an aware one."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_storage(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Convert to the naive UTC form kept in SQLite."""
    value = as_utc(value)
    return value.replace(tzinfo=None) if value is not None else None


def parse_timestamp(value: Any) -> Optional[datetime.datetime]:
    """
    Best-effort conversion of an API value to an aware UTC datetime.

    Accepts datetimes, dates (midnight UTC) and ISO-8601 strings, including
    the "Z" suffix. Returns None for anything that cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        return as_utc(value)
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day, tzinfo=UTC)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return as_utc(datetime.datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def isoformat_z(value: datetime.datetime) -> str:
    """ISO-8601 with millisecond precision and a "Z" suffix, like a JS Date."""
    value = as_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
