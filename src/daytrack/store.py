"""JSON document persistence for activities."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from .models import ActivityRecord, Document

logger = logging.getLogger(__name__)


class JsonDocumentStore:
    """Keeps the whole :class:`Document` in a single JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Optional[Document]:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Ignoring unparseable activity file %s", self.path)
            return None
        return document_from_payload(payload)

    def save(self, document: Document) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(document.to_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(data)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug(
            "Saved %d activities to %s", len(document.activities), self.path
        )


class MemoryDocumentStore:
    """In-process store with the same contract as :class:`JsonDocumentStore`."""

    def __init__(self, payload: Any = None) -> None:
        self._raw: Optional[str] = None if payload is None else json.dumps(payload)

    def load(self) -> Optional[Document]:
        if self._raw is None:
            return None
        return document_from_payload(json.loads(self._raw))

    def save(self, document: Document) -> None:
        self._raw = json.dumps(document.to_dict())


def document_from_payload(payload: Any) -> Optional[Document]:
    """Build a document from decoded JSON, skipping malformed records."""
    if not isinstance(payload, dict):
        logger.warning("Ignoring activity document with unexpected shape")
        return None

    raw_activities = payload.get("activities") or []
    if not isinstance(raw_activities, list):
        logger.warning("Ignoring activity document without an activity list")
        return None

    activities: list[ActivityRecord] = []
    for entry in raw_activities:
        record = _record_or_none(entry)
        if record is None:
            continue
        if record.is_open:
            logger.warning("Skipping stored activity %s without an end time", record.id)
            continue
        activities.append(record)

    current = None
    raw_current = payload.get("currentActivity")
    if raw_current is not None:
        current = _record_or_none(raw_current)
        if current is not None and not current.is_open:
            logger.warning("Discarding finished activity %s from current slot", current.id)
            current = None

    return Document(activities=activities, current=current)


def _record_or_none(entry: Any) -> Optional[ActivityRecord]:
    try:
        return ActivityRecord.from_dict(entry)
    except (TypeError, ValueError, OverflowError) as exc:
        logger.warning("Skipping malformed stored activity: %s", exc)
        return None
