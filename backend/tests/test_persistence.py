import json

import pytest
from conftest import adjustment, consultation

from echomed.core.errors import PersistenceError
from echomed.models import AdjustmentEvent, ConsultationEvent, Patient


def test_missing_snapshot_is_empty(snapshot_store):
    snapshot = snapshot_store.load_all()
    assert snapshot.patients == []
    assert snapshot.events == []


def test_snapshot_uses_camel_case_and_iso_timestamps(snapshot_store):
    patient = Patient(id="patient_1", name="Ana Costa")
    path = snapshot_store.save_all([patient], [consultation(0, kind="initial"), adjustment(1)])

    raw = json.loads(path.read_text(encoding="utf-8"))
    event = raw["events"][1]
    assert event["type"] == "adjustment"
    assert event["patientId"] == "patient_1"
    assert event["adjustmentNote"] == "ajuste t=1"
    assert event["date"] == "2024-03-01T09:01:00Z"
    assert "createdAt" in raw["patients"][0]
    assert not path.with_suffix(".json.tmp").exists()


def test_round_trip_keeps_event_variants(snapshot_store):
    snapshot_store.save_all([], [consultation(0, kind="initial"), adjustment(1)])
    events = snapshot_store.load_all().events
    assert isinstance(events[0], ConsultationEvent)
    assert isinstance(events[1], AdjustmentEvent)


def test_unreadable_snapshot_raises(snapshot_store):
    snapshot_store.data_dir.mkdir(parents=True, exist_ok=True)
    snapshot_store.snapshot_path.write_text('{"events": [{"type": "bogus"}]}', encoding="utf-8")
    with pytest.raises(PersistenceError):
        snapshot_store.load_all()


def test_legacy_history_reading(snapshot_store):
    assert snapshot_store.load_legacy_history() == []

    snapshot_store.data_dir.mkdir(parents=True, exist_ok=True)
    snapshot_store.legacy_path.write_text('[{"patient": "Ana"}]', encoding="utf-8")
    assert snapshot_store.load_legacy_history() == [{"patient": "Ana"}]

    snapshot_store.legacy_path.write_text('{"patient": "Ana"}', encoding="utf-8")
    with pytest.raises(PersistenceError):
        snapshot_store.load_legacy_history()


def test_set_aside_moves_unreadable_snapshot(snapshot_store):
    snapshot_store.data_dir.mkdir(parents=True, exist_ok=True)
    snapshot_store.snapshot_path.write_text("{not json", encoding="utf-8")

    moved = snapshot_store.set_aside()

    assert not snapshot_store.snapshot_path.exists()
    assert moved.read_text(encoding="utf-8") == "{not json"
    assert snapshot_store.load_all().patients == []


def test_set_aside_without_snapshot_raises(snapshot_store):
    with pytest.raises(PersistenceError):
        snapshot_store.set_aside()
