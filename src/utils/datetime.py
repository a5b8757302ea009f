# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

All timestamps are stored and compared as timezone-aware UTC. Some drivers
(SQLite in tests) hand back naive datetimes, so every comparison against a
stored value goes through ensure_utc().

Usage:
------
    from src.utils.datetime import utc_now

    # For SQLAlchemy model defaults
    created_date = mapped_column(DateTime(timezone=True), default=utc_now)
"""

from datetime import date, datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Get the current calendar date in UTC."""
    return utc_now().date()


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def to_calendar_date(value: datetime | date) -> date:
    """Strip the time-of-day from a value, keeping the UTC calendar date.

    Args:
        value: A datetime (naive treated as UTC) or a date.

    Returns:
        The calendar date.
    """
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    return value


def is_expired(expiry: datetime | None, now: datetime | None = None) -> bool:
    """Check if an expiry timestamp has been reached.

    A value equal to the current instant counts as expired.

    Args:
        expiry: Expiry timestamp (naive treated as UTC).
        now: Reference instant, defaults to the current time.

    Returns:
        True if expired, False if not or if expiry is None.
    """
    if expiry is None:
        return False
    return (now or utc_now()) >= ensure_utc(expiry)
