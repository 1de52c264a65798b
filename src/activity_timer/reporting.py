"""Duration formatting and console summaries."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Optional

from .models import Activity, ActivityType


def print_duration_summary(
    title: str, totals: Mapping[ActivityType, float]
) -> None:
    if not totals:
        print("No activity recorded for the selected period.")
        return

    print(f"Summary for {title}")
    print("-" * 40)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    for activity_type, seconds in ranked:
        print(f"  {activity_type.display_name:<20} {format_duration(seconds)}")
    print("-" * 40)
    print(f"  {'Total':<20} {format_duration(sum(totals.values()))}")


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def activity_duration_text(activity: Activity, now: Optional[datetime] = None) -> str:
    """Short "1h 5m" / "5m" label; "-" for a stopped activity without an end."""
    if activity.end_time is None and not activity.is_running:
        return "-"
    seconds = int(activity.elapsed_seconds(now or datetime.now()))
    hours, remainder = divmod(seconds, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def total_text(activities: Iterable[Activity], reference: Optional[datetime] = None) -> str:
    reference = reference or datetime.now()
    total_seconds = sum(activity.elapsed_seconds(reference) for activity in activities)
    total_minutes = int(total_seconds // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m ({total_minutes} min)"
    return f"{total_minutes} min"
