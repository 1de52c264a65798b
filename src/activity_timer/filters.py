"""Date filters used to select activities for listing and export."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .timeutils import DayLike, end_of_day, start_of_day


class FilterKind(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    ON_DATE = "date"
    FROM_DATE = "from"
    RANGE = "range"
    ALL = "all"


@dataclass(frozen=True)
class DateFilter:
    kind: FilterKind
    first: Optional[DayLike] = None
    second: Optional[DayLike] = None

    @classmethod
    def today(cls) -> "DateFilter":
        return cls(FilterKind.TODAY)

    @classmethod
    def yesterday(cls) -> "DateFilter":
        return cls(FilterKind.YESTERDAY)

    @classmethod
    def on(cls, day: DayLike) -> "DateFilter":
        return cls(FilterKind.ON_DATE, day)

    @classmethod
    def since(cls, day: DayLike) -> "DateFilter":
        return cls(FilterKind.FROM_DATE, day)

    @classmethod
    def between(cls, first: DayLike, second: DayLike) -> "DateFilter":
        return cls(FilterKind.RANGE, first, second)

    @classmethod
    def all(cls) -> "DateFilter":
        return cls(FilterKind.ALL)

    def __post_init__(self) -> None:
        needs = {FilterKind.ON_DATE: 1, FilterKind.FROM_DATE: 1, FilterKind.RANGE: 2}
        required = needs.get(self.kind, 0)
        given = sum(value is not None for value in (self.first, self.second))
        if given < required:
            raise ValueError(f"{self.kind.value} filter needs {required} date(s)")

    def bounds(self, now: datetime) -> tuple[Optional[datetime], Optional[datetime]]:
        """Inclusive datetime bounds; ``(None, None)`` for the ALL filter."""
        if self.kind is FilterKind.TODAY:
            return start_of_day(now), end_of_day(now)
        if self.kind is FilterKind.YESTERDAY:
            yesterday = now - timedelta(days=1)
            return start_of_day(yesterday), end_of_day(yesterday)
        if self.kind is FilterKind.ON_DATE:
            return start_of_day(self.first), end_of_day(self.first)
        if self.kind is FilterKind.FROM_DATE:
            lower, upper = sorted((start_of_day(self.first), now))
            return lower, upper
        if self.kind is FilterKind.RANGE:
            lower, upper = sorted((start_of_day(self.first), start_of_day(self.second)))
            return lower, end_of_day(upper)
        return None, None

    @property
    def title(self) -> str:
        if self.kind is FilterKind.ON_DATE:
            return f"On {_day_text(self.first)}"
        if self.kind is FilterKind.FROM_DATE:
            return f"From {_day_text(self.first)}"
        if self.kind is FilterKind.RANGE:
            return f"{_day_text(self.first)} - {_day_text(self.second)}"
        return self.kind.name.capitalize()


def _day_text(value: DayLike) -> str:
    return value.strftime("%b %d, %Y")
