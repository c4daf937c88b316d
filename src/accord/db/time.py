# src/accord/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def epoch() -> datetime:
    """Return the Unix epoch as a timezone-aware datetime."""
    return datetime.fromtimestamp(0, UTC)
