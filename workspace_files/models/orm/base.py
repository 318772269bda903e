"""
Base declarative class for ORM models.

All SQLAlchemy models inherit from the Base class defined here.
"""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


def utc_now() -> datetime:
    """Column default for timezone-aware timestamps."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass
