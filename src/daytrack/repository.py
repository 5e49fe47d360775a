"""Activity repository layered on top of a document store."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from typing import Any, Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config import PLACEHOLDER_TITLE
from .models import ActivityRecord, Document


logger = logging.getLogger(__name__)


class DocumentStore(Protocol):
    def load(self) -> Optional[Document]: ...

    def save(self, document: Document) -> None: ...


class ActivityImportError(ValueError):
    """Raised when an import payload cannot be merged."""


class ImportedActivity(BaseModel):
    """Shape an imported entry must have to be accepted.

    A supplied duration is ignored; it is derived from start and end.
    """

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    start: datetime
    end: datetime
    color: Optional[str] = None

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    def to_record(self) -> ActivityRecord:
        return ActivityRecord(
            id=self.id,
            title=self.title,
            start=self.start,
            end=self.end,
            color=self.color,
        )


class ActivityRepository:
    """Reads and writes activities, always merging against the full stored set."""

    def __init__(self, store: DocumentStore, placeholder_title: str = PLACEHOLDER_TITLE) -> None:
        self._store = store
        self._placeholder_title = placeholder_title
        self.lock = threading.RLock()

    def _load(self) -> Document:
        return self._store.load() or Document()

    def all_activities(self) -> list[ActivityRecord]:
        return list(self._load().activities)

    def get(self, activity_id: str) -> Optional[ActivityRecord]:
        for record in self._load().activities:
            if record.id == activity_id:
                return record
        return None

    def get_by_date(self, day: date) -> list[ActivityRecord]:
        """Return activities whose start falls on ``day`` in local time."""
        return [record for record in self._load().activities if record.day == day]

    def upsert(self, record: ActivityRecord) -> None:
        if record.is_open:
            raise ValueError("Only finished activities can be stored")
        with self.lock:
            document = self._load()
            for index, existing in enumerate(document.activities):
                if existing.id == record.id:
                    document.activities[index] = record
                    break
            else:
                document.activities.append(record)
            self._store.save(document)

    def save_day(self, day: date, records: Iterable[ActivityRecord]) -> None:
        """Replace the activities of ``day`` without touching any other day."""
        replacement = list(records)
        for record in replacement:
            if record.is_open:
                raise ValueError("Only finished activities can be stored")
            if record.day != day:
                raise ValueError(
                    f"Activity {record.id} starts on {record.day}, not {day}"
                )
        with self.lock:
            document = self._load()
            kept = [record for record in document.activities if record.day != day]
            document.activities = kept + replacement
            self._store.save(document)

    def delete(self, activity_id: str) -> bool:
        with self.lock:
            document = self._load()
            remaining = [record for record in document.activities if record.id != activity_id]
            if len(remaining) == len(document.activities):
                return False
            document.activities = remaining
            self._store.save(document)
        logger.info("Deleted activity %s", activity_id)
        return True

    def rename(self, activity_id: str, title: str) -> Optional[ActivityRecord]:
        with self.lock:
            record = self.get(activity_id)
            if record is None:
                return None
            renamed = record.with_title(title.strip() or self._placeholder_title)
            self.upsert(renamed)
            return renamed

    def get_current(self) -> Optional[ActivityRecord]:
        return self._load().current

    def set_current(self, record: Optional[ActivityRecord]) -> None:
        if record is not None and not record.is_open:
            raise ValueError("The current activity must still be running")
        with self.lock:
            document = self._load()
            document.current = record
            self._store.save(document)

    def import_activities(self, payload: Any) -> int:
        """Merge externally supplied activities; existing ids win.

        Returns the number of activities that were added.
        """
        if not isinstance(payload, list):
            raise ActivityImportError(
                "Invalid data format: Expected an array of activities"
            )

        valid: list[ActivityRecord] = []
        for entry in payload:
            try:
                valid.append(ImportedActivity.model_validate(entry).to_record())
            except (ValidationError, ValueError) as exc:
                logger.debug("Dropping invalid imported activity: %s", exc)

        if not valid:
            raise ActivityImportError("No valid activities found in the imported file")

        with self.lock:
            document = self._load()
            known_ids = {record.id for record in document.activities}
            added = 0
            for record in valid:
                if record.id in known_ids:
                    continue
                known_ids.add(record.id)
                document.activities.append(record)
                added += 1

            if added:
                self._store.save(document)
        logger.info("Imported %d of %d valid activities", added, len(valid))
        return added
