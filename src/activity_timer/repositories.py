"""Repositories mapping ``activity`` and ``job`` rows to domain objects."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Iterable, Optional

from .db import Store
from .models import Activity, ActivityStatus, ActivityType, Job
from .timeutils import DayLike, format_day, format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

_ACTIVITY_SELECT = """
    SELECT id, start_time, end_time, activity_type, status, description
    FROM activity
"""


class RecordNotFoundError(LookupError):
    """Raised when an update targets an id that has no row."""


class ActivityRepository:
    """CRUD and filtered queries over the ``activity`` table."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def save(self, activity: Activity) -> Activity:
        """Insert ``activity`` and return a copy carrying the assigned id."""
        new_id = self._store.insert(
            """
            INSERT INTO activity (
                start_time,
                end_time,
                activity_type,
                status,
                description
            ) VALUES (?, ?, ?, ?, ?)
            """,
            _activity_params(activity),
        )
        return Activity(
            id=new_id,
            start_time=activity.start_time,
            end_time=activity.end_time,
            activity_type=activity.activity_type,
            status=activity.status,
            description=activity.description,
        )

    def update(self, activity: Activity) -> Activity:
        rowcount = self._store.execute(
            """
            UPDATE activity
            SET start_time = ?, end_time = ?, activity_type = ?, status = ?, description = ?
            WHERE id = ?
            """,
            (*_activity_params(activity), activity.id),
        )
        if rowcount == 0:
            raise RecordNotFoundError(f"No activity found for id={activity.id}")
        return activity

    def delete(self, activity_id: int) -> None:
        self._store.execute("DELETE FROM activity WHERE id = ?", (activity_id,))

    def find_by_id(self, activity_id: int) -> Optional[Activity]:
        row = self._store.query_one(
            _ACTIVITY_SELECT + " WHERE id = ? LIMIT 1", (activity_id,)
        )
        return _row_to_activity(row) if row is not None else None

    def find_all(self) -> list[Activity]:
        return _map_rows(self._store.query(_ACTIVITY_SELECT + " ORDER BY start_time ASC"))

    def find_by_status(self, status: ActivityStatus) -> list[Activity]:
        rows = self._store.query(
            _ACTIVITY_SELECT + " WHERE status = ? ORDER BY start_time ASC",
            (status.value,),
        )
        return _map_rows(rows)

    def find_by_date_range(self, start: DayLike, end: DayLike) -> list[Activity]:
        """Activities starting on any calendar day from ``start`` to ``end`` inclusive."""
        rows = self._store.query(
            _ACTIVITY_SELECT
            + """
            WHERE DATE(start_time) >= DATE(?) AND DATE(start_time) <= DATE(?)
            ORDER BY start_time ASC
            """,
            (format_day(start), format_day(end)),
        )
        return _map_rows(rows)

    def find_by_date(self, day: DayLike) -> list[Activity]:
        rows = self._store.query(
            _ACTIVITY_SELECT + " WHERE DATE(start_time) = DATE(?) ORDER BY start_time ASC",
            (format_day(day),),
        )
        return _map_rows(rows)

    def find_latest_activity(self, day: DayLike) -> Optional[Activity]:
        """The activity on ``day`` with the greatest end time.

        SQLite sorts NULL below every value, so running activities only come
        back when nothing on that day has ended.
        """
        row = self._store.query_one(
            _ACTIVITY_SELECT
            + " WHERE DATE(start_time) = DATE(?) ORDER BY end_time DESC LIMIT 1",
            (format_day(day),),
        )
        return _row_to_activity(row) if row is not None else None

    def update_status(
        self,
        current: ActivityStatus,
        new_status: ActivityStatus,
        end_time: Optional[datetime] = None,
    ) -> int:
        """Move every row in ``current`` to ``new_status``; return rows touched."""
        return self._store.execute(
            "UPDATE activity SET status = ?, end_time = COALESCE(?, end_time) WHERE status = ?",
            (
                new_status.value,
                format_timestamp(end_time) if end_time is not None else None,
                current.value,
            ),
        )


class JobRepository:
    """CRUD over the ``job`` table."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def save(self, job: Job) -> Job:
        if job.id == 0:
            new_id = self._store.insert(
                "INSERT INTO job (description) VALUES (?)", (job.description,)
            )
            return Job(id=new_id, description=job.description)
        rowcount = self._store.execute(
            "UPDATE job SET description = ? WHERE id = ?", (job.description, job.id)
        )
        if rowcount == 0:
            raise RecordNotFoundError(f"No job found for id={job.id}")
        return job

    def delete(self, job_id: int) -> None:
        self._store.execute("DELETE FROM job WHERE id = ?", (job_id,))

    def find_all(self) -> list[Job]:
        rows = self._store.query("SELECT id, description FROM job ORDER BY id ASC")
        return [_row_to_job(row) for row in rows]

    def find_by_id(self, job_id: int) -> Optional[Job]:
        row = self._store.query_one(
            "SELECT id, description FROM job WHERE id = ? LIMIT 1", (job_id,)
        )
        return _row_to_job(row) if row is not None else None


def _activity_params(activity: Activity) -> tuple:
    return (
        format_timestamp(activity.start_time),
        format_timestamp(activity.end_time) if activity.end_time is not None else None,
        activity.activity_type.value,
        activity.status.value,
        activity.description,
    )


def _map_rows(rows: Iterable[sqlite3.Row]) -> list[Activity]:
    activities = []
    for row in rows:
        activity = _row_to_activity(row)
        if activity is not None:
            activities.append(activity)
    return activities


def _row_to_activity(row: sqlite3.Row) -> Optional[Activity]:
    start = parse_timestamp(row["start_time"])
    if start is None:
        logger.debug("Skipping activity id=%s with unreadable start_time", row["id"])
        return None
    return Activity(
        id=row["id"],
        start_time=start,
        end_time=parse_timestamp(row["end_time"]),
        activity_type=ActivityType.parse(row["activity_type"]),
        status=ActivityStatus.parse(row["status"]),
        description=row["description"] or "",
    )


def _row_to_job(row: sqlite3.Row) -> Job:
    return Job(id=row["id"], description=row["description"] or "")
