"""Date helpers for the RFC 3339 strings Google APIs expect."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: str) -> datetime:
    """Parse ISO-8601 strings, including date-only values and a trailing ``Z``."""
    cleaned = value.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(cleaned))


def to_rfc3339(value: datetime | str) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    if isinstance(value, str):
        value = parse_datetime(value)
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    """Return the first and last instants of ``moment``'s calendar day."""
    start = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """google-auth compares expiry against a naive UTC ``utcnow()``."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


__all__ = [
    "day_bounds",
    "ensure_utc",
    "parse_datetime",
    "to_naive_utc",
    "to_rfc3339",
    "utcnow",
]
