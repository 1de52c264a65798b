"""Domain models for tracked activities and saved jobs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import TimerSettings


class ActivityType(str, Enum):
    BUG = "BUG"
    DEVELOP = "DEVELOP"
    GENERAL = "GENERAL"
    INFRA = "INFRA"
    MEETING = "MEETING"
    OUT_OF_OFFICE = "OUT_OF_OFFICE"
    PROBLEM = "PROBLEM"
    SUPPORT = "SUPPORT"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ActivityType":
        """Return the matching type, falling back to GENERAL for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.GENERAL

    @property
    def display_name(self) -> str:
        if self is ActivityType.OUT_OF_OFFICE:
            return "Out of Office"
        return self.value.capitalize()


class ActivityStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ActivityStatus":
        """Return the matching status, falling back to COMPLETED for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return cls.COMPLETED

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


@dataclass(slots=True)
class Activity:
    """One tracked work session. An ``id`` of 0 means not yet persisted."""

    start_time: datetime
    end_time: Optional[datetime]
    activity_type: ActivityType
    status: ActivityStatus
    description: str = ""
    id: int = 0

    @property
    def is_running(self) -> bool:
        return self.status is ActivityStatus.ACTIVE

    def elapsed_seconds(self, reference: datetime) -> float:
        """Seconds between start and end, using ``reference`` while running."""
        if self.end_time is not None:
            end = self.end_time
        elif self.is_running:
            end = reference
        else:
            end = self.start_time
        return max(0.0, (end - self.start_time).total_seconds())


@dataclass(slots=True)
class Job:
    """A saved description that can seed a new activity."""

    description: str
    id: int = 0


@dataclass(slots=True)
class ActivityEditorState:
    """Draft values collected by an editor before they become an Activity."""

    description: str
    activity_type: ActivityType
    start: datetime
    end: datetime
    include_end: bool = True
    status: ActivityStatus = ActivityStatus.COMPLETED

    @classmethod
    def default(cls, settings: "TimerSettings", now: datetime) -> "ActivityEditorState":
        start = settings.default_start_date(now)
        return cls(
            description="",
            activity_type=settings.default_activity_type,
            start=start,
            end=start + timedelta(minutes=settings.default_duration_minutes),
            include_end=True,
            status=ActivityStatus.COMPLETED,
        )

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityEditorState":
        return cls(
            description=activity.description,
            activity_type=activity.activity_type,
            start=activity.start_time,
            end=activity.end_time or activity.start_time,
            include_end=True,
            status=activity.status,
        )
