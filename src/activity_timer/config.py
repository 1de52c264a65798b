"""User preferences read by the activity service and the exporters."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

from .models import ActivityType

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TimerSettings:
    """Preferences for new activities, stop-time rounding and CSV export."""

    default_activity_type: ActivityType = ActivityType.DEVELOP
    default_duration_minutes: int = 60
    rounding_minutes: int = 5
    default_start_time: str = "09:00"
    csv_delimiter: str = ","

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TimerSettings":
        """Build settings from stored key-values, replacing invalid entries with defaults."""
        defaults = cls()
        try:
            activity_type = ActivityType(values.get("default_activity_type"))
        except ValueError:
            activity_type = defaults.default_activity_type

        duration = _as_int(values.get("default_duration_minutes"), 0)
        rounding = _as_int(values.get("rounding_minutes"), defaults.rounding_minutes)
        start_time = values.get("default_start_time")
        if not _is_clock_time(start_time):
            start_time = defaults.default_start_time
        delimiter = values.get("csv_delimiter")
        if not isinstance(delimiter, str) or len(delimiter) != 1:
            delimiter = defaults.csv_delimiter

        return cls(
            default_activity_type=activity_type,
            default_duration_minutes=(
                duration if duration > 0 else defaults.default_duration_minutes
            ),
            rounding_minutes=max(0, rounding),
            default_start_time=start_time,
            csv_delimiter=delimiter,
        )

    def to_mapping(self) -> dict[str, Any]:
        values = asdict(self)
        values["default_activity_type"] = self.default_activity_type.value
        return values

    def default_start_date(self, reference: datetime) -> datetime:
        """Anchor ``default_start_time`` (``HH:MM``) on the reference day."""
        parts = self.default_start_time.split(":")
        if len(parts) != 2:
            return reference
        try:
            hour, minute = int(parts[0]), int(parts[1])
            return reference.replace(hour=hour, minute=minute, second=0, microsecond=0)
        except ValueError:
            return reference


def load_settings(path: Path) -> TimerSettings:
    """Read settings from ``path``; a missing or unreadable file yields defaults."""
    path = Path(path)
    if not path.exists():
        return TimerSettings()
    try:
        values = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Ignoring unreadable settings file %s", path)
        return TimerSettings()
    if not isinstance(values, dict):
        return TimerSettings()
    return TimerSettings.from_mapping(values)


def save_settings(settings: TimerSettings, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(settings.to_mapping(), indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


def _as_int(value: Any, fallback: int) -> int:
    if value is None:
        return fallback
    try:
        return int(value)
    except (TypeError, ValueError):
        return fallback


def _is_clock_time(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.strptime(value, "%H:%M")
    except ValueError:
        return False
    return True
