"""Staleness policy for cached product snapshots."""

from datetime import UTC, datetime, timedelta

MAX_CACHE_AGE = timedelta(days=7)


def validate(
    timestamp: datetime, against: datetime, max_age: timedelta = MAX_CACHE_AGE
) -> bool:
    """Return True while a snapshot written at ``timestamp`` is still fresh.

    A snapshot exactly ``max_age`` old is still valid. Timestamps whose expiry
    cannot be represented are treated as expired. Naive datetimes are read as
    UTC.
    """
    try:
        expires_at = as_utc(timestamp) + max_age
    except OverflowError:
        return False
    return as_utc(against) <= expires_at


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware datetimes are returned unchanged."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
