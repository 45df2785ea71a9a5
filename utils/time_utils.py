"""UTC helpers.

Every timestamp this project stores or returns is timezone-aware UTC; the
metadata record renders it as `2024-01-05T06:00:00.000Z`.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_isoformat(dt: datetime) -> str:
    """ISO-8601 in UTC, millisecond precision, `Z` suffix."""

    return ensure_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")
