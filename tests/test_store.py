from __future__ import annotations

import json
from datetime import timedelta

import pytest

from conftest import local
from daytrack.models import ActivityRecord, Document
from daytrack.store import JsonDocumentStore, MemoryDocumentStore


def _finished(activity_id: str = "a") -> ActivityRecord:
    start = local(2024, 3, 5, 9)
    return ActivityRecord(id=activity_id, title="Work", start=start, end=start + timedelta(hours=1))


def test_missing_file_loads_as_absent(store):
    assert store.load() is None


def test_unparseable_file_is_treated_as_empty(data_path, caplog):
    data_path.write_text("{not json", encoding="utf-8")

    assert JsonDocumentStore(data_path).load() is None
    assert "unparseable" in caplog.text


def test_unexpected_shape_is_treated_as_empty(data_path):
    data_path.write_text(json.dumps(["just", "a", "list"]), encoding="utf-8")

    assert JsonDocumentStore(data_path).load() is None


def test_save_then_load_returns_same_document(store):
    current = ActivityRecord.begin(local(2024, 3, 6, 8), title="Running")
    document = Document(activities=[_finished()], current=current)

    store.save(document)
    loaded = store.load()

    assert loaded == document


def test_persisted_shape_uses_current_activity_key(store, data_path):
    store.save(Document(activities=[_finished()]))

    payload = json.loads(data_path.read_text(encoding="utf-8"))

    assert set(payload) == {"activities", "currentActivity"}
    assert payload["currentActivity"] is None
    assert payload["activities"][0]["duration"] == 3600


def test_malformed_records_are_skipped(data_path):
    good = _finished("good").to_dict()
    data_path.write_text(
        json.dumps({"activities": [good, {"id": "bad"}, "junk"], "currentActivity": None}),
        encoding="utf-8",
    )

    loaded = JsonDocumentStore(data_path).load()

    assert [record.id for record in loaded.activities] == ["good"]


def test_save_leaves_no_temp_files(store, tmp_path):
    store.save(Document(activities=[_finished()]))

    assert sorted(path.name for path in tmp_path.iterdir()) == ["activities.json"]


def test_save_creates_parent_directory(tmp_path):
    nested = JsonDocumentStore(tmp_path / "a" / "b" / "activities.json")

    nested.save(Document())

    assert nested.load() == Document()


def test_memory_store_matches_file_store_contract():
    store = MemoryDocumentStore()
    assert store.load() is None

    store.save(Document(activities=[_finished()]))

    assert [record.id for record in store.load().activities] == ["a"]


def test_invalid_utf8_file_is_treated_as_empty(data_path, caplog):
    data_path.write_bytes(b"\xff\xfe\x00garbage")

    assert JsonDocumentStore(data_path).load() is None
    assert "unparseable" in caplog.text


@pytest.mark.parametrize("duration", ["1e400", "Infinity", "NaN", "12.5", '"long"', "true"])
def test_record_with_unusable_duration_is_skipped(data_path, duration):
    good = json.dumps(_finished("good").to_dict())
    bad = json.dumps({**_finished("bad").to_dict(), "duration": 0}).replace(
        '"duration": 0', f'"duration": {duration}'
    )
    data_path.write_text(
        f'{{"activities": [{bad}, {good}], "currentActivity": null}}', encoding="utf-8"
    )

    loaded = JsonDocumentStore(data_path).load()

    assert [record.id for record in loaded.activities] == ["good"]


def test_record_with_inconsistent_duration_is_skipped(data_path):
    bad = {**_finished("bad").to_dict(), "duration": 1700}
    data_path.write_text(
        json.dumps({"activities": [bad, _finished("good").to_dict()], "currentActivity": None}),
        encoding="utf-8",
    )

    loaded = JsonDocumentStore(data_path).load()

    assert [record.id for record in loaded.activities] == ["good"]
