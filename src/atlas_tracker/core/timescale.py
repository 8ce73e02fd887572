from __future__ import annotations

from datetime import datetime, timedelta, timezone

from atlas_tracker.core.constants import SECONDS_PER_DAY

# J2000.0 epoch (2000-01-01 12:00 TT), treated as UTC at this precision
J2000 = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def ensure_utc(when: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.
    """
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def days_between(start: datetime, end: datetime) -> float:
    """Signed number of days from start to end."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / SECONDS_PER_DAY


def add_days(when: datetime, days: float) -> datetime:
    return ensure_utc(when) + timedelta(days=days)


def days_since_j2000(when: datetime) -> float:
    return days_between(J2000, when)
