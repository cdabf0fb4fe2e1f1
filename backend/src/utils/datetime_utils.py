"""
Datetime utilities for consistent timezone handling across the application.

Business logic runs on the practice-local clock configured by APP_TIMEZONE.
Appointment timestamps are stored as naive datetimes interpreted in that zone,
so every datetime entering the scheduling core is normalized with
``to_local_naive`` first.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Optional
from zoneinfo import ZoneInfo

from core.config import APP_TIMEZONE

LOCAL_TZ = ZoneInfo(APP_TIMEZONE)


def local_now() -> datetime:
    """
    Get the current practice-local time as a naive datetime.

    Returns:
        Current wall-clock time in APP_TIMEZONE without tzinfo
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def to_local_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to a naive practice-local datetime.

    Aware datetimes are converted to APP_TIMEZONE; naive datetimes are assumed
    to already be practice-local and are returned unchanged.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(LOCAL_TZ).replace(tzinfo=None)


def day_of_week(d: date) -> int:
    """
    Day-of-week index with 0=Sunday ... 6=Saturday.

    Python's weekday() is 0=Monday, so shift by one.
    """
    return (d.weekday() + 1) % 7


def iterate_dates(start_date: date, end_date: date) -> Iterator[date]:
    """Yield every calendar day from start_date through end_date inclusive."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def day_bounds(d: date) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) window for a calendar day."""
    start = datetime.combine(d, time.min)
    return start, start + timedelta(days=1)

