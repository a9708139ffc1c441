"""Datetime utilities with consistent local timezone handling.

The timetable is read against wall-clock time, so every instant handled by
Timetable CLI is timezone-aware and expressed in the local timezone unless
the caller supplies a reference instant with its own tzinfo.
"""

import math
from datetime import date, datetime, timedelta
from typing import Optional

import parsedatetime

MILLISECONDS_IN_MINUTE = 60000

_calendar = parsedatetime.Calendar()


def now_local() -> datetime:
    """Return the current datetime in the local timezone.

    Returns:
        Current datetime, timezone-aware
    """
    return datetime.now().astimezone()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming local time if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.astimezone()

    return dt


def from_timestamp(timestamp: float) -> datetime:
    """Convert a POSIX timestamp (e.g. a file mtime) to an aware local datetime."""
    return datetime.fromtimestamp(timestamp).astimezone()


def floor_minutes(delta: timedelta) -> int:
    """Whole minutes in a timedelta, rounded towards negative infinity."""
    return math.floor(delta.total_seconds() / 60)


def wall_clock(day: date, hour: int, minute: int, reference: datetime) -> datetime:
    """Place an ``hour:minute`` wall-clock time on ``day`` in the reference's timezone.

    A reference in local time is re-localised on ``day`` itself, so the UTC
    offset follows daylight saving changes between the two dates.
    """
    naive = datetime(day.year, day.month, day.day, hour, minute)
    if reference.tzinfo is None:
        return naive
    if reference.utcoffset() == reference.replace(tzinfo=None).astimezone().utcoffset():
        return naive.astimezone()
    return naive.replace(tzinfo=reference.tzinfo)


def to_milliseconds(delta: timedelta) -> int:
    return int(delta.total_seconds() * 1000)


def format_clock(dt: Optional[datetime]) -> str:
    """Format a datetime as a 24-hour ``HH:MM`` clock string."""
    if dt is None:
        return ""
    return dt.strftime("%H:%M")


def parse_reference_time(text: str) -> Optional[datetime]:
    """Parse a user supplied reference time such as ``2024-05-01T09:00``,
    ``9am`` or ``tomorrow 8:30``.

    Returns:
        Aware local datetime, or None if the text is not understood
    """
    text = text.strip()
    if not text:
        return None

    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        pass

    time_struct, parse_status = _calendar.parse(text)
    if parse_status > 0:
        return ensure_aware(datetime(*time_struct[:6]))
    return None
