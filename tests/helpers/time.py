"""Shared, deterministic timestamps for tests."""

from datetime import UTC, datetime


# Mid-day so "today" and the default 72h window are unambiguous.
FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=UTC)
FIXED_TODAY = FIXED_NOW.date().isoformat()


def fixed_clock() -> datetime:
    """Clock returning FIXED_NOW."""
    return FIXED_NOW
