"""Domain models for tracked activities."""

from __future__ import annotations

import math
import random
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Any, Optional

ACTIVITY_COLORS: tuple[str, ...] = (
    "#3B82F6",
    "#8B5CF6",
    "#EC4899",
    "#F59E0B",
    "#10B981",
    "#06B6D4",
    "#6366F1",
)


def new_activity_id() -> str:
    return str(uuid.uuid4())


def random_color() -> str:
    return random.choice(ACTIVITY_COLORS)


def ensure_aware(value: datetime) -> datetime:
    """Attach the local UTC offset to naive datetimes."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.astimezone()
    return value


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware datetime."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def local_day(value: datetime) -> date:
    """Calendar day of a timestamp in the local time zone."""
    return ensure_aware(value).astimezone().date()


def whole_seconds(delta: timedelta) -> int:
    return math.floor(delta.total_seconds())


@dataclass(frozen=True, slots=True)
class ActivityRecord:
    """A single tracked interval; open while ``end`` is unset."""

    id: str
    title: str
    start: datetime
    end: Optional[datetime] = None
    duration: Optional[int] = None
    color: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Activity id must be a non-empty string")
        if not isinstance(self.title, str):
            raise ValueError("Activity title must be a string")
        if not isinstance(self.start, datetime):
            raise ValueError("Activity start must be a datetime")
        object.__setattr__(self, "start", ensure_aware(self.start))
        if self.end is None:
            if self.duration is not None:
                raise ValueError("An open activity cannot have a duration")
            return
        if not isinstance(self.end, datetime):
            raise ValueError("Activity end must be a datetime")
        object.__setattr__(self, "end", ensure_aware(self.end))
        if self.end <= self.start:
            raise ValueError("Activity end must be after its start")
        expected = whole_seconds(self.end - self.start)
        if self.duration is None:
            object.__setattr__(self, "duration", expected)
        elif self.duration != expected:
            raise ValueError(
                f"Activity duration {self.duration} does not match end - start ({expected})"
            )

    @property
    def is_open(self) -> bool:
        return self.end is None

    @property
    def day(self) -> date:
        return local_day(self.start)

    @classmethod
    def begin(
        cls, start: datetime, title: str = "", color: Optional[str] = None
    ) -> "ActivityRecord":
        return cls(
            id=new_activity_id(),
            title=title,
            start=start,
            color=color if color is not None else random_color(),
        )

    def finalized(self, end: datetime, placeholder: str) -> "ActivityRecord":
        """Return the closed copy of an open record."""
        if not self.is_open:
            raise ValueError(f"Activity {self.id} is already finalized")
        end = ensure_aware(end)
        return replace(
            self,
            title=self.title.strip() or placeholder,
            end=end,
            duration=whole_seconds(end - self.start),
        )

    def with_title(self, title: str) -> "ActivityRecord":
        return replace(self, title=title)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "start": self.start.isoformat(),
        }
        if self.end is not None:
            payload["end"] = self.end.isoformat()
            payload["duration"] = self.duration
        if self.color is not None:
            payload["color"] = self.color
        return payload

    @classmethod
    def from_dict(cls, payload: Any) -> "ActivityRecord":
        if not isinstance(payload, dict):
            raise ValueError("Activity payload must be an object")
        end = payload.get("end")
        duration = payload.get("duration")
        if duration is not None and not _is_whole_number(duration):
            raise ValueError(f"Invalid activity duration: {duration!r}")
        return cls(
            id=payload.get("id"),  # type: ignore[arg-type]
            title=payload.get("title") or "",
            start=parse_timestamp(payload.get("start")),
            end=parse_timestamp(end) if end is not None else None,
            duration=int(duration) if duration is not None and end is not None else None,
            color=payload.get("color"),
        )


def _is_whole_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value == int(value)


@dataclass(slots=True)
class Document:
    """Everything the store persists: finalized activities plus the open slot."""

    activities: list[ActivityRecord] = field(default_factory=list)
    current: Optional[ActivityRecord] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "activities": [record.to_dict() for record in self.activities],
            "currentActivity": self.current.to_dict() if self.current else None,
        }
