"""
Expiry policy for workspace files.

A file lives between 1 minute and 30 days. Refreshing a TTL restarts the clock
from the current time rather than extending the previous deadline.
"""

from datetime import UTC, datetime, timedelta
from typing import Protocol

from workspace_files.core.exceptions import TTLOutOfRangeError

MIN_TTL_MINUTES = 1
MAX_TTL_MINUTES = 43200  # 30 days


class Expiring(Protocol):
    expire_at: datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def bounds_check(minutes: int) -> int:
    """
    Validate a TTL in minutes.

    Args:
        minutes: Requested lifetime

    Returns:
        The same value when it is within bounds

    Raises:
        TTLOutOfRangeError: If minutes is outside [1, 43200]
    """
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise TTLOutOfRangeError(minutes, MIN_TTL_MINUTES, MAX_TTL_MINUTES)
    if minutes < MIN_TTL_MINUTES or minutes > MAX_TTL_MINUTES:
        raise TTLOutOfRangeError(minutes, MIN_TTL_MINUTES, MAX_TTL_MINUTES)
    return minutes


def compute_expiry(now: datetime, minutes: int) -> datetime:
    """Absolute expiry for a TTL starting at ``now``."""
    bounds_check(minutes)
    return now + timedelta(minutes=minutes)


def refresh(file: Expiring, minutes: int, now: datetime | None = None) -> datetime:
    """
    Restart a file's TTL from the current time.

    Args:
        file: Object with a mutable ``expire_at`` attribute
        minutes: New lifetime in minutes
        now: Reference time (defaults to current UTC time)

    Returns:
        The new expiry timestamp, also assigned to ``file.expire_at``
    """
    file.expire_at = compute_expiry(now or utcnow(), minutes)
    return file.expire_at


def is_expired(expire_at: datetime, now: datetime | None = None) -> bool:
    """Check whether an expiry timestamp has passed."""
    now = now or utcnow()
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if expire_at.tzinfo is None:
        expire_at = expire_at.replace(tzinfo=UTC)
    return now > expire_at
