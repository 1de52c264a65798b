"""Delimited-text export of activities."""

from __future__ import annotations

import csv
import io
import os
from pathlib import Path
from typing import Iterable

from .models import Activity
from .timeutils import format_timestamp

CSV_HEADER = ("id", "start_time", "end_time", "activity_type", "status", "description")


def make_csv(activities: Iterable[Activity], delimiter: str = ",") -> str:
    """Render activities as CSV; fields holding the delimiter, quotes or newlines are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(
        buffer,
        delimiter=delimiter,
        quotechar='"',
        doublequote=True,
        quoting=csv.QUOTE_MINIMAL,
        lineterminator="\n",
    )
    writer.writerow(CSV_HEADER)
    for activity in activities:
        writer.writerow(
            (
                activity.id,
                format_timestamp(activity.start_time),
                format_timestamp(activity.end_time) if activity.end_time else "",
                activity.activity_type.value,
                activity.status.value,
                activity.description,
            )
        )
    return buffer.getvalue()


def write_csv(activities: Iterable[Activity], delimiter: str, path: Path) -> None:
    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(make_csv(activities, delimiter), encoding="utf-8", newline="")
    os.replace(tmp_path, path)
