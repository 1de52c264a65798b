"""Calendar-day and rounding helpers shared by the store and the service."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Union

DAY_FMT = "%Y-%m-%d"

_PARSE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
)

DayLike = Union[date, datetime]


def start_of_day(value: DayLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(hour=0, minute=0, second=0, microsecond=0)
    return datetime(value.year, value.month, value.day)


def end_of_day(value: DayLike) -> datetime:
    """Return the last whole second of the calendar day."""
    return start_of_day(value) + timedelta(days=1, seconds=-1)


def round_up_to_minutes(value: datetime, interval: int) -> datetime:
    """Round ``value`` up to the next multiple of ``interval`` minutes past the hour.

    Seconds are dropped first, so a time already on a boundary stays there.
    Intervals of 0 or 1 leave the value untouched.
    """
    if interval <= 1:
        return value
    base = value.replace(second=0, microsecond=0)
    remainder = base.minute % interval
    if remainder == 0:
        return base
    return base + timedelta(minutes=interval - remainder)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 text with millisecond precision, as stored in the database."""
    return value.isoformat(timespec="milliseconds")


def format_day(value: DayLike) -> str:
    return value.strftime(DAY_FMT)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse stored ISO-8601 text; return None when it is absent or malformed."""
    if not value:
        return None
    text = value.strip()
    for fmt in _PARSE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
