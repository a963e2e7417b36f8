# src/kidguard/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def truncate_to_millis(value: datetime) -> datetime:
    """Drop sub-millisecond precision so timestamps survive storage round trips."""
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_millis(value: datetime) -> int:
    """Return epoch milliseconds for an aware or naive-UTC datetime."""
    return int(ensure_utc(value).timestamp() * 1000)
