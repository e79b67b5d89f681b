"""Date helpers shared by the scheduler, template catalog and audit engine.

All instants are timezone-aware UTC datetimes.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(UTC)


def days_until(target: datetime, now: datetime | None = None) -> int:
    """Whole days from *now* to *target*, rounded up (negative when past)."""
    now = now or utcnow()
    return math.ceil((target - now) / ONE_DAY)


def format_long_date(value: datetime) -> str:
    """US long form, e.g. ``March 15, 2024``."""
    return f"{value:%B} {value.day}, {value.year}"


def format_short_date(value: datetime) -> str:
    """US numeric form, e.g. ``3/15/2024``."""
    return f"{value.month}/{value.day}/{value.year}"


def format_locale_datetime(value: datetime) -> str:
    """US locale date and time, e.g. ``3/15/2024, 9:05:00 AM``."""
    hour = value.hour % 12 or 12
    return f"{format_short_date(value)}, {hour}:{value:%M:%S} {value:%p}"
