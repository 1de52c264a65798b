"""Activity lifecycle: start, stop, restart, manual entries and reporting queries."""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Iterator, Optional

from .config import TimerSettings
from .db import StoreError
from .filters import DateFilter, FilterKind
from .models import Activity, ActivityEditorState, ActivityStatus, ActivityType, Job
from .repositories import ActivityRepository, JobRepository, RecordNotFoundError
from .timeutils import DayLike, round_up_to_minutes, start_of_day

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ServiceErrorReason(str, Enum):
    STORE = "store"
    NOT_FOUND = "not_found"
    INVALID = "invalid"


class ServiceError(Exception):
    """A failed service operation, tagged with why it failed."""

    def __init__(self, reason: ServiceErrorReason, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except StoreError as exc:
        raise ServiceError(ServiceErrorReason.STORE, str(exc)) from exc
    except RecordNotFoundError as exc:
        raise ServiceError(ServiceErrorReason.NOT_FOUND, str(exc)) from exc


class ActivityService:
    """Keeps at most one activity ACTIVE and applies rounding/duration policy."""

    def __init__(
        self,
        repository: ActivityRepository,
        settings: TimerSettings,
        *,
        clock: Clock = datetime.now,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._clock = clock

    @property
    def settings(self) -> TimerSettings:
        return self._settings

    def start(
        self,
        activity_type: ActivityType,
        description: str,
        start_time: datetime,
        *,
        connect_to_previous: bool = False,
    ) -> Activity:
        """Complete whatever is running and start a new ACTIVE activity.

        With ``connect_to_previous`` the start is moved to one minute after
        the latest activity that ended on ``start_time``'s day.
        """
        with _translate_errors():
            if connect_to_previous:
                latest = self._repository.find_latest_activity(start_time)
                if latest is None or latest.end_time is None:
                    raise ServiceError(
                        ServiceErrorReason.INVALID, "Latest activity has no end time."
                    )
                start_time = latest.end_time + timedelta(minutes=1)

            completed = self._repository.update_status(
                ActivityStatus.ACTIVE, ActivityStatus.COMPLETED, start_time
            )
            if completed:
                logger.info("Completed %d running activity(ies) at %s", completed, start_time)
            activity = self._repository.save(
                Activity(
                    start_time=start_time,
                    end_time=None,
                    activity_type=activity_type,
                    status=ActivityStatus.ACTIVE,
                    description=description.strip(),
                )
            )
        logger.info("Started activity #%d (%s)", activity.id, activity.activity_type.value)
        return activity

    def start_from_job(
        self, job: Job, activity_type: ActivityType, start_time: datetime
    ) -> Activity:
        return self.start(activity_type, job.description, start_time)

    def stop(self, reference: Optional[datetime] = None) -> Optional[Activity]:
        """Complete the running activity; return None when nothing is running."""
        reference = reference or self._clock()
        with _translate_errors():
            running = self._repository.find_by_status(ActivityStatus.ACTIVE)
            if not running:
                logger.debug("Stop requested with no active activity.")
                return None
            activity = running[0]
            end_time = round_up_to_minutes(reference, self._settings.rounding_minutes)
            activity.end_time = max(end_time, activity.start_time)
            activity.status = ActivityStatus.COMPLETED
            stopped = self._repository.update(activity)
        logger.info("Stopped activity #%d at %s", stopped.id, stopped.end_time)
        return stopped

    def restart(self, activity_id: int) -> Optional[Activity]:
        """Start a fresh copy of an activity's type and description as of now."""
        with _translate_errors():
            source = self._repository.find_by_id(activity_id)
        if source is None:
            logger.debug("Restart requested for missing activity #%d", activity_id)
            return None
        self.stop()
        return self.start(source.activity_type, source.description, self._clock())

    def add_completed(self, state: ActivityEditorState) -> Activity:
        if state.include_end:
            end_time = state.end
        else:
            end_time = state.start + timedelta(minutes=self._settings.default_duration_minutes)
        activity = self._save_completed(state, end_time)
        logger.info("Added completed activity #%d", activity.id)
        return activity

    def edit(self, activity: Activity, state: ActivityEditorState) -> Activity:
        end_time = state.end if state.include_end else None
        _check_span(state.start, end_time)
        updated = Activity(
            id=activity.id,
            start_time=state.start,
            end_time=end_time,
            activity_type=state.activity_type,
            status=state.status,
            description=state.description.strip(),
        )
        with _translate_errors():
            updated = self._repository.update(updated)
        logger.info("Edited activity #%d", updated.id)
        return updated

    def copy(self, activity: Activity, state: ActivityEditorState) -> Activity:
        copied = self._save_completed(state, state.end)
        logger.info("Copied activity #%d to #%d", activity.id, copied.id)
        return copied

    def delete(self, activity_id: int) -> None:
        with _translate_errors():
            self._repository.delete(activity_id)
        logger.info("Deleted activity #%d", activity_id)

    def get(self, activity_id: int) -> Optional[Activity]:
        with _translate_errors():
            return self._repository.find_by_id(activity_id)

    def query(self, date_filter: DateFilter) -> list[Activity]:
        logger.debug("Querying activities: %s", date_filter.title)
        with _translate_errors():
            if date_filter.kind is FilterKind.ALL:
                return self._repository.find_all()
            if date_filter.kind is FilterKind.ON_DATE:
                return self._repository.find_by_date(date_filter.first)
            lower, upper = date_filter.bounds(self._clock())
            return self._repository.find_by_date_range(lower, upper)

    def latest_activity_on(self, day: DayLike) -> Optional[Activity]:
        with _translate_errors():
            return self._repository.find_latest_activity(day)

    def active_activities(self) -> list[Activity]:
        with _translate_errors():
            return self._repository.find_by_status(ActivityStatus.ACTIVE)

    def durations(
        self,
        start: DayLike,
        end: DayLike,
        reference: Optional[datetime] = None,
    ) -> dict[ActivityType, float]:
        """Elapsed seconds per type for activities starting within the day range.

        Running activities count up to ``reference`` (default: now).
        """
        reference = reference or self._clock()
        lower, upper = sorted((start_of_day(start), start_of_day(end)))
        with _translate_errors():
            activities = self._repository.find_by_date_range(lower, upper)
        totals: defaultdict[ActivityType, float] = defaultdict(float)
        for activity in activities:
            seconds = activity.elapsed_seconds(reference)
            if seconds <= 0:
                continue
            totals[activity.activity_type] += seconds
        return dict(totals)

    def _save_completed(self, state: ActivityEditorState, end_time: datetime) -> Activity:
        _check_span(state.start, end_time)
        with _translate_errors():
            return self._repository.save(
                Activity(
                    start_time=state.start,
                    end_time=end_time,
                    activity_type=state.activity_type,
                    status=ActivityStatus.COMPLETED,
                    description=state.description.strip(),
                )
            )


class JobService:
    """Manages saved job descriptions."""

    def __init__(self, repository: JobRepository) -> None:
        self._repository = repository

    def add(self, description: str) -> Job:
        with _translate_errors():
            job = self._repository.save(Job(description=_require_text(description)))
        logger.info("Added job #%d", job.id)
        return job

    def rename(self, job_id: int, description: str) -> Job:
        with _translate_errors():
            return self._repository.save(Job(id=job_id, description=_require_text(description)))

    def delete(self, job_id: int) -> None:
        with _translate_errors():
            self._repository.delete(job_id)
        logger.info("Deleted job #%d", job_id)

    def list_jobs(self) -> list[Job]:
        with _translate_errors():
            return self._repository.find_all()

    def get(self, job_id: int) -> Optional[Job]:
        with _translate_errors():
            return self._repository.find_by_id(job_id)


def _check_span(start: datetime, end: Optional[datetime]) -> None:
    if end is not None and end < start:
        raise ServiceError(ServiceErrorReason.INVALID, "End time must not precede start time.")


def _require_text(description: str) -> str:
    text = description.strip()
    if not text:
        raise ServiceError(ServiceErrorReason.INVALID, "Description is required.")
    return text
