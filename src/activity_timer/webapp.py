"""FastAPI application exposing the activity timer as a local JSON API."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import AfterValidator, BaseModel, ConfigDict

from .config import TimerSettings, load_settings
from .db import open_store
from .export import make_csv
from .filters import DateFilter, FilterKind
from .models import Activity, ActivityEditorState, ActivityStatus, ActivityType, Job
from .paths import get_db_path, get_settings_path
from .repositories import ActivityRepository, JobRepository
from .service import ActivityService, JobService, ServiceError, ServiceErrorReason
from .timeutils import format_timestamp, start_of_day

logger = logging.getLogger(__name__)

_STATUS_CODES = {
    ServiceErrorReason.NOT_FOUND: 404,
    ServiceErrorReason.INVALID: 400,
    ServiceErrorReason.STORE: 500,
}


def _local_naive(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


LocalDateTime = Annotated[datetime, AfterValidator(_local_naive)]


class StartRequest(BaseModel):
    description: str = ""
    activity_type: Optional[ActivityType] = None
    start_time: Optional[LocalDateTime] = None
    connect_to_previous: bool = False

    model_config = ConfigDict(extra="forbid")


class StopRequest(BaseModel):
    reference: Optional[LocalDateTime] = None

    model_config = ConfigDict(extra="forbid")


class ActivityDraft(BaseModel):
    description: Optional[str] = None
    activity_type: Optional[ActivityType] = None
    start_time: Optional[LocalDateTime] = None
    end_time: Optional[LocalDateTime] = None
    status: ActivityStatus = ActivityStatus.COMPLETED

    model_config = ConfigDict(extra="forbid")

    def to_state(self, fallback: ActivityEditorState) -> ActivityEditorState:
        """Merge the submitted fields over ``fallback``.

        Without a start time the fallback's start and end are kept; with one,
        a missing end means "no end" and the service decides what that implies.
        """
        if self.start_time is None:
            start = fallback.start
            end = self.end_time or fallback.end
            include_end = self.end_time is not None or fallback.include_end
        else:
            start = self.start_time
            end = self.end_time or self.start_time
            include_end = self.end_time is not None
        return ActivityEditorState(
            description=fallback.description if self.description is None else self.description,
            activity_type=self.activity_type or fallback.activity_type,
            start=start,
            end=end,
            include_end=include_end,
            status=self.status,
        )


class JobPayload(BaseModel):
    description: str

    model_config = ConfigDict(extra="forbid")


class JobStartRequest(BaseModel):
    activity_type: Optional[ActivityType] = None
    start_time: Optional[LocalDateTime] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    settings: Optional[TimerSettings] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> FastAPI:
    """Instantiate the FastAPI application around a single open store."""
    resolved_db_path = Path(db_path or get_db_path())
    resolved_settings = settings or load_settings(get_settings_path())
    store = open_store(resolved_db_path)
    activities = ActivityService(
        ActivityRepository(store), resolved_settings, clock=clock
    )
    jobs = JobService(JobRepository(store))

    app = FastAPI(title="Activity Timer", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.db_path = resolved_db_path
    app.state.activity_service = activities
    app.state.job_service = jobs

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        store.close()

    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=_STATUS_CODES[exc.reason],
            content={"detail": exc.message, "reason": exc.reason.value},
        )

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        active = activities.active_activities()
        return {
            "database_path": str(request.app.state.db_path),
            "rounding_minutes": resolved_settings.rounding_minutes,
            "default_duration_minutes": resolved_settings.default_duration_minutes,
            "active": _activity_payload(active[0]) if active else None,
        }

    @app.get("/api/activities")
    def list_activities(
        kind: FilterKind = Query(default=FilterKind.TODAY, alias="filter"),
        date: Optional[str] = Query(default=None, description="YYYY-MM-DD for date/from filters."),
        start: Optional[str] = Query(default=None, description="Range start, YYYY-MM-DD."),
        end: Optional[str] = Query(default=None, description="Range end, YYYY-MM-DD."),
    ) -> Dict[str, Any]:
        date_filter = _build_filter(kind, date, start, end)
        rows = activities.query(date_filter)
        return {
            "filter": date_filter.title,
            "activities": [_activity_payload(activity) for activity in rows],
        }

    @app.get("/api/activities/{activity_id}")
    def get_activity(activity_id: int) -> Dict[str, Any]:
        return _activity_payload(_require_activity(activities, activity_id))

    @app.post("/api/activities/start")
    def start_activity(payload: StartRequest) -> Dict[str, Any]:
        activity = activities.start(
            payload.activity_type or resolved_settings.default_activity_type,
            payload.description,
            payload.start_time or clock(),
            connect_to_previous=payload.connect_to_previous,
        )
        return _activity_payload(activity)

    @app.post("/api/activities/stop")
    def stop_activity(payload: Optional[StopRequest] = None) -> Dict[str, Any]:
        stopped = activities.stop(payload.reference if payload else None)
        if stopped is None:
            return {"stopped": None, "message": "No active activity found."}
        return {"stopped": _activity_payload(stopped), "message": f"Stopped activity #{stopped.id}"}

    @app.post("/api/activities/{activity_id}/restart")
    def restart_activity(activity_id: int) -> Dict[str, Any]:
        restarted = activities.restart(activity_id)
        if restarted is None:
            raise HTTPException(status_code=404, detail="Activity not found")
        return _activity_payload(restarted)

    @app.post("/api/activities")
    def add_activity(payload: ActivityDraft) -> Dict[str, Any]:
        fallback = ActivityEditorState.default(resolved_settings, clock())
        return _activity_payload(activities.add_completed(payload.to_state(fallback)))

    @app.put("/api/activities/{activity_id}")
    def edit_activity(activity_id: int, payload: ActivityDraft) -> Dict[str, Any]:
        existing = _require_activity(activities, activity_id)
        state = payload.to_state(_existing_state(existing))
        return _activity_payload(activities.edit(existing, state))

    @app.post("/api/activities/{activity_id}/copy")
    def copy_activity(activity_id: int, payload: ActivityDraft) -> Dict[str, Any]:
        existing = _require_activity(activities, activity_id)
        state = payload.to_state(_existing_state(existing))
        return _activity_payload(activities.copy(existing, state))

    @app.delete("/api/activities/{activity_id}")
    def delete_activity(activity_id: int) -> Dict[str, Any]:
        activities.delete(activity_id)
        return {"deleted": activity_id}

    @app.get("/api/durations")
    def durations(
        start: Optional[str] = Query(default=None, description="Start date (inclusive)."),
        end: Optional[str] = Query(default=None, description="End date (inclusive)."),
    ) -> Dict[str, Any]:
        start_day = _parse_date(start, clock)
        end_day = _parse_date(end, clock) if end else start_day
        totals = activities.durations(start_day, end_day)
        return {
            "start": start_day.strftime("%Y-%m-%d"),
            "end": end_day.strftime("%Y-%m-%d"),
            "totals": {activity_type.value: seconds for activity_type, seconds in totals.items()},
            "overall_seconds": sum(totals.values()),
        }

    @app.get("/api/export", response_class=PlainTextResponse)
    def export_activities(
        kind: FilterKind = Query(default=FilterKind.ALL, alias="filter"),
        date: Optional[str] = Query(default=None),
        start: Optional[str] = Query(default=None),
        end: Optional[str] = Query(default=None),
    ) -> PlainTextResponse:
        rows = activities.query(_build_filter(kind, date, start, end))
        return PlainTextResponse(
            make_csv(rows, resolved_settings.csv_delimiter), media_type="text/csv"
        )

    @app.get("/api/jobs")
    def list_jobs() -> Dict[str, Any]:
        return {"jobs": [_job_payload(job) for job in jobs.list_jobs()]}

    @app.post("/api/jobs")
    def add_job(payload: JobPayload) -> Dict[str, Any]:
        return _job_payload(jobs.add(payload.description))

    @app.put("/api/jobs/{job_id}")
    def rename_job(job_id: int, payload: JobPayload) -> Dict[str, Any]:
        return _job_payload(jobs.rename(job_id, payload.description))

    @app.delete("/api/jobs/{job_id}")
    def delete_job(job_id: int) -> Dict[str, Any]:
        jobs.delete(job_id)
        return {"deleted": job_id}

    @app.post("/api/jobs/{job_id}/start")
    def start_job(job_id: int, payload: Optional[JobStartRequest] = None) -> Dict[str, Any]:
        job = jobs.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        payload = payload or JobStartRequest()
        activity = activities.start_from_job(
            job,
            payload.activity_type or resolved_settings.default_activity_type,
            payload.start_time or clock(),
        )
        return _activity_payload(activity)

    return app


def _require_activity(service: ActivityService, activity_id: int) -> Activity:
    activity = service.get(activity_id)
    if activity is None:
        raise HTTPException(status_code=404, detail="Activity not found")
    return activity


def _existing_state(activity: Activity) -> ActivityEditorState:
    state = ActivityEditorState.from_activity(activity)
    state.include_end = activity.end_time is not None
    return state


def _build_filter(
    kind: FilterKind,
    date: Optional[str],
    start: Optional[str],
    end: Optional[str],
) -> DateFilter:
    if kind is FilterKind.ON_DATE:
        return DateFilter.on(_parse_required_date(date, "date"))
    if kind is FilterKind.FROM_DATE:
        return DateFilter.since(_parse_required_date(date, "date"))
    if kind is FilterKind.RANGE:
        return DateFilter.between(
            _parse_required_date(start, "start"), _parse_required_date(end, "end")
        )
    return DateFilter(kind)


def _parse_required_date(value: Optional[str], name: str) -> datetime:
    if not value:
        raise HTTPException(status_code=400, detail=f"{name} is required for this filter")
    return _parse_date(value)


def _parse_date(
    value: Optional[str], clock: Callable[[], datetime] = datetime.now
) -> datetime:
    if not value:
        return start_of_day(clock())
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid date format") from exc
    return start_of_day(parsed)


def _activity_payload(activity: Activity) -> Dict[str, Any]:
    return {
        "id": activity.id,
        "start_time": format_timestamp(activity.start_time),
        "end_time": format_timestamp(activity.end_time) if activity.end_time else None,
        "activity_type": activity.activity_type.value,
        "status": activity.status.value,
        "description": activity.description,
    }


def _job_payload(job: Job) -> Dict[str, Any]:
    return {"id": job.id, "description": job.description}
