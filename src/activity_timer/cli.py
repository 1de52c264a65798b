"""Command-line interface for the activity timer."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

import typer

from .config import TimerSettings, load_settings, save_settings
from .db import StoreError, store_connection
from .export import write_csv
from .filters import DateFilter, FilterKind
from .models import Activity, ActivityEditorState, ActivityStatus, ActivityType
from .paths import get_db_path, get_settings_path
from .reporting import activity_duration_text, print_duration_summary, total_text
from .repositories import ActivityRepository, JobRepository
from .service import ActivityService, JobService, ServiceError

app = typer.Typer(help="Track typed work sessions, one at a time.")
jobs_app = typer.Typer(help="Manage saved job descriptions.")
config_app = typer.Typer(help="Show or change preferences.")
app.add_typer(jobs_app, name="jobs")
app.add_typer(config_app, name="config")

_DATETIME_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S")


@dataclass(slots=True)
class CliState:
    db_path: Path
    settings_path: Path

    @property
    def settings(self) -> TimerSettings:
        return load_settings(self.settings_path)


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    db_path: Optional[Path] = typer.Option(
        None, "--db", path_type=Path, help="Location of the timer SQLite database."
    ),
    settings_path: Optional[Path] = typer.Option(
        None, "--settings", path_type=Path, help="Location of the preferences file."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.obj = CliState(
        db_path=db_path or get_db_path(),
        settings_path=settings_path or get_settings_path(),
    )


@contextmanager
def _services(ctx: typer.Context) -> Iterator[tuple[ActivityService, JobService]]:
    state: CliState = ctx.obj
    try:
        with store_connection(state.db_path) as store:
            yield (
                ActivityService(ActivityRepository(store), state.settings),
                JobService(JobRepository(store)),
            )
    except (StoreError, ServiceError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def start(
    ctx: typer.Context,
    description: str = typer.Argument("", help="What you are working on."),
    activity_type: Optional[ActivityType] = typer.Option(None, "--type", "-t"),
    at: Optional[str] = typer.Option(None, "--at", help="Start time, YYYY-MM-DD HH:MM."),
    connect: bool = typer.Option(
        False, "--connect", help="Start one minute after the day's latest activity ended."
    ),
) -> None:
    """Start a new activity, completing the running one."""
    start_time = _parse_datetime(at) if at else datetime.now()
    with _services(ctx) as (activities, _):
        activity = activities.start(
            activity_type or activities.settings.default_activity_type,
            description,
            start_time,
            connect_to_previous=connect,
        )
    typer.echo(f"Started activity #{activity.id}")


@app.command()
def stop(
    ctx: typer.Context,
    at: Optional[str] = typer.Option(None, "--at", help="Stop time, YYYY-MM-DD HH:MM."),
) -> None:
    """Stop the running activity."""
    with _services(ctx) as (activities, _):
        stopped = activities.stop(_parse_datetime(at) if at else None)
    if stopped is None:
        typer.echo("No active activity found.")
    else:
        typer.echo(f"Stopped activity #{stopped.id}")


@app.command()
def restart(ctx: typer.Context, activity_id: int) -> None:
    """Start a new activity with the type and description of an earlier one."""
    with _services(ctx) as (activities, _):
        restarted = activities.restart(activity_id)
    if restarted is None:
        typer.echo(f"Activity #{activity_id} not found.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Restarted as activity #{restarted.id}")


@app.command()
def add(
    ctx: typer.Context,
    description: str,
    start_at: Optional[str] = typer.Option(
        None, "--start", help="Start time; defaults to today at the preferred start time."
    ),
    end_at: Optional[str] = typer.Option(
        None, "--end", help="End time; defaults to start plus the default duration."
    ),
    activity_type: Optional[ActivityType] = typer.Option(None, "--type", "-t"),
) -> None:
    """Record an activity that already happened."""
    with _services(ctx) as (activities, _):
        state = ActivityEditorState.default(activities.settings, datetime.now())
        state.description = description
        if activity_type is not None:
            state.activity_type = activity_type
        if start_at:
            state.start = _parse_datetime(start_at)
            state.end = state.start
            state.include_end = False
        if end_at:
            state.end = _parse_datetime(end_at)
            state.include_end = True
        activity = activities.add_completed(state)
    typer.echo(f"Added activity #{activity.id}")


@app.command()
def edit(
    ctx: typer.Context,
    activity_id: int,
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    activity_type: Optional[ActivityType] = typer.Option(None, "--type", "-t"),
    start_at: Optional[str] = typer.Option(None, "--start"),
    end_at: Optional[str] = typer.Option(None, "--end"),
    clear_end: bool = typer.Option(False, "--clear-end", help="Remove the end time."),
    status: Optional[ActivityStatus] = typer.Option(None, "--status"),
) -> None:
    """Change fields of an existing activity."""
    with _services(ctx) as (activities, _):
        activity = _require_activity(activities, activity_id)
        state = ActivityEditorState.from_activity(activity)
        if description is not None:
            state.description = description
        if activity_type is not None:
            state.activity_type = activity_type
        if start_at:
            state.start = _parse_datetime(start_at)
        if end_at:
            state.end = _parse_datetime(end_at)
        state.include_end = not clear_end and (end_at is not None or activity.end_time is not None)
        if status is not None:
            state.status = status
        activities.edit(activity, state)
    typer.echo(f"Updated activity #{activity_id}")


@app.command()
def copy(
    ctx: typer.Context,
    activity_id: int,
    start_at: Optional[str] = typer.Option(None, "--start"),
    end_at: Optional[str] = typer.Option(None, "--end"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
) -> None:
    """Duplicate an activity as a new completed entry."""
    with _services(ctx) as (activities, _):
        activity = _require_activity(activities, activity_id)
        state = ActivityEditorState.from_activity(activity)
        if start_at:
            state.start = _parse_datetime(start_at)
        if end_at:
            state.end = _parse_datetime(end_at)
        if description is not None:
            state.description = description
        copied = activities.copy(activity, state)
    typer.echo(f"Copied activity #{activity_id} to #{copied.id}")


@app.command()
def delete(ctx: typer.Context, activity_id: int) -> None:
    """Delete an activity."""
    with _services(ctx) as (activities, _):
        activities.delete(activity_id)
    typer.echo(f"Deleted activity #{activity_id}")


@app.command("list")
def list_activities(
    ctx: typer.Context,
    kind: FilterKind = typer.Option(FilterKind.TODAY, "--filter", "-f"),
    date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD for date/from filters."),
    start_date: Optional[str] = typer.Option(None, "--start", help="Range start, YYYY-MM-DD."),
    end_date: Optional[str] = typer.Option(None, "--end", help="Range end, YYYY-MM-DD."),
) -> None:
    """List activities for a period."""
    date_filter = _build_filter(kind, date, start_date, end_date)
    with _services(ctx) as (activities, _):
        rows = activities.query(date_filter)
    if not rows:
        typer.echo(f"No activities for {date_filter.title}.")
        return
    now = datetime.now()
    for activity in rows:
        typer.echo(_format_activity(activity, now))
    typer.echo(f"Total: {total_text(rows, now)}")


@app.command()
def summary(
    ctx: typer.Context,
    start_date: Optional[str] = typer.Option(
        None, "--start", help="First day (YYYY-MM-DD). Defaults to today."
    ),
    end_date: Optional[str] = typer.Option(
        None, "--end", help="Last day (YYYY-MM-DD). Defaults to the first day."
    ),
) -> None:
    """Print time spent per activity type."""
    first = _parse_day(start_date) if start_date else datetime.now()
    last = _parse_day(end_date) if end_date else first
    with _services(ctx) as (activities, _):
        totals = activities.durations(first, last)
    if first.date() == last.date():
        title = DateFilter.on(first).title
    else:
        title = DateFilter.between(first, last).title
    print_duration_summary(title, totals)


@app.command()
def export(
    ctx: typer.Context,
    output: Path = typer.Argument(..., path_type=Path, help="CSV file to write."),
    kind: FilterKind = typer.Option(FilterKind.ALL, "--filter", "-f"),
    date: Optional[str] = typer.Option(None, "--date"),
    start_date: Optional[str] = typer.Option(None, "--start"),
    end_date: Optional[str] = typer.Option(None, "--end"),
    delimiter: Optional[str] = typer.Option(None, "--delimiter", help="Overrides the preference."),
) -> None:
    """Export activities to a delimited text file."""
    if delimiter is not None and len(delimiter) != 1:
        raise typer.BadParameter("must be a single character", param_hint="--delimiter")
    date_filter = _build_filter(kind, date, start_date, end_date)
    with _services(ctx) as (activities, _):
        rows = activities.query(date_filter)
        write_csv(rows, delimiter or activities.settings.csv_delimiter, output)
    typer.echo(f"Exported {len(rows)} activities to {output}")


@app.command()
def web(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(
        8765, "--port", min=1, max=65535, help="TCP port for the API."
    ),
    open_browser: bool = typer.Option(
        False,
        "--open-browser/--no-open-browser",
        help="Open the interactive API docs in your default browser.",
    ),
) -> None:
    """Serve the local JSON API until interrupted."""
    import uvicorn

    from .webapp import create_app

    state: CliState = ctx.obj
    api = create_app(db_path=state.db_path, settings=state.settings)
    if open_browser:
        # Give uvicorn a moment to bind before the browser asks for the page.
        threading.Timer(1.0, typer.launch, args=(f"http://{host}:{port}/docs",)).start()
    log_level = "debug" if logging.getLogger().isEnabledFor(logging.DEBUG) else "info"
    uvicorn.run(api, host=host, port=port, log_level=log_level)


@jobs_app.command("add")
def jobs_add(ctx: typer.Context, description: str) -> None:
    """Save a job description."""
    with _services(ctx) as (_, jobs):
        job = jobs.add(description)
    typer.echo(f"Added job #{job.id}")


@jobs_app.command("list")
def jobs_list(ctx: typer.Context) -> None:
    """List saved jobs."""
    with _services(ctx) as (_, jobs):
        rows = jobs.list_jobs()
    if not rows:
        typer.echo("No saved jobs.")
    for job in rows:
        typer.echo(f"#{job.id:<4} {job.description}")


@jobs_app.command("delete")
def jobs_delete(ctx: typer.Context, job_id: int) -> None:
    """Delete a saved job."""
    with _services(ctx) as (_, jobs):
        jobs.delete(job_id)
    typer.echo(f"Deleted job #{job_id}")


@jobs_app.command("start")
def jobs_start(
    ctx: typer.Context,
    job_id: int,
    activity_type: Optional[ActivityType] = typer.Option(None, "--type", "-t"),
) -> None:
    """Start an activity described by a saved job."""
    with _services(ctx) as (activities, jobs):
        job = jobs.get(job_id)
        if job is None:
            typer.echo(f"Job #{job_id} not found.", err=True)
            raise typer.Exit(code=1)
        activity = activities.start_from_job(
            job,
            activity_type or activities.settings.default_activity_type,
            datetime.now(),
        )
    typer.echo(f"Started activity #{activity.id}")


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print the current preferences."""
    state: CliState = ctx.obj
    for key, value in state.settings.to_mapping().items():
        typer.echo(f"{key} = {value}")


@config_app.command("set")
def config_set(ctx: typer.Context, key: str, value: str) -> None:
    """Change one preference."""
    state: CliState = ctx.obj
    current = state.settings.to_mapping()
    values = dict(current)
    if key not in values:
        typer.echo(f"Unknown setting {key!r}; choose from {', '.join(values)}", err=True)
        raise typer.Exit(code=1)
    values[key] = value
    settings = TimerSettings.from_mapping(values)
    applied = str(settings.to_mapping()[key])
    if applied != value:
        typer.echo(f"Invalid value {value!r} for {key}; keeping {current[key]}", err=True)
        raise typer.Exit(code=1)
    save_settings(settings, state.settings_path)
    typer.echo(f"{key} = {applied}")


def _require_activity(activities: ActivityService, activity_id: int) -> Activity:
    activity = activities.get(activity_id)
    if activity is None:
        typer.echo(f"Activity #{activity_id} not found.", err=True)
        raise typer.Exit(code=1)
    return activity


def _build_filter(
    kind: FilterKind,
    date: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
) -> DateFilter:
    if kind is FilterKind.ON_DATE:
        return DateFilter.on(_parse_day(_required(date, "--date")))
    if kind is FilterKind.FROM_DATE:
        return DateFilter.since(_parse_day(_required(date, "--date")))
    if kind is FilterKind.RANGE:
        return DateFilter.between(
            _parse_day(_required(start_date, "--start")),
            _parse_day(_required(end_date, "--end")),
        )
    return DateFilter(kind)


def _required(value: Optional[str], option: str) -> str:
    if not value:
        raise typer.BadParameter(f"{option} is required for this filter")
    return value


def _parse_day(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date {value!r}; use YYYY-MM-DD") from exc


def _parse_datetime(value: str) -> datetime:
    for fmt in _DATETIME_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        clock = datetime.strptime(value, "%H:%M")
    except ValueError as exc:
        raise typer.BadParameter(
            f"Invalid time {value!r}; use YYYY-MM-DD HH:MM or HH:MM"
        ) from exc
    return datetime.now().replace(
        hour=clock.hour, minute=clock.minute, second=0, microsecond=0
    )


def _format_activity(activity: Activity, now: datetime) -> str:
    end = f"{activity.end_time:%H:%M}" if activity.end_time else "..."
    return (
        f"#{activity.id:<4} {activity.start_time:%Y-%m-%d %H:%M}-{end:<5} "
        f"{activity.activity_type.display_name:<14} {activity.status.display_name:<10} "
        f"{activity_duration_text(activity, now):>7}  {activity.description}"
    )
