"""Serialize the activity set for download or backup."""

from __future__ import annotations

import csv
import io
import json
from datetime import date, datetime
from typing import Iterable

from .models import ActivityRecord
from .reporting import format_duration
from .views import sort_activities

CSV_HEADER = ("Date", "Activity", "Start Time", "End Time", "Duration")
EXPORT_FORMATS = ("json", "csv")


def export_json(records: Iterable[ActivityRecord]) -> str:
    return json.dumps([record.to_dict() for record in records], indent=2)


def export_csv(records: Iterable[ActivityRecord]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for record in sort_activities(records, newest_first=False):
        writer.writerow(
            (
                record.day.isoformat(),
                record.title,
                _format_local(record.start),
                _format_local(record.end) if record.end else "",
                format_duration(record.duration or 0),
            )
        )
    return buffer.getvalue()


def export_filename(fmt: str, today: date) -> str:
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    return f"time-tracker-export-{today.strftime('%Y%m%d')}.{fmt}"


def render_export(fmt: str, records: Iterable[ActivityRecord]) -> str:
    if fmt == "json":
        return export_json(records)
    if fmt == "csv":
        return export_csv(records)
    raise ValueError(f"Unsupported export format: {fmt}")


def _format_local(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")
