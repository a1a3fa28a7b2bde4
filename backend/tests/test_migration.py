import pytest

from echomed.core.errors import MigrationError
from echomed.services.migration import migrate_history, should_migrate

HISTORY = [
    {
        "id": "c1",
        "patient": "maria silva",
        "transcript": "primeira consulta",
        "result": {"nutritionalAssessment": "a", "clinicalRationale": "b"},
        "doctorName": "Dra. Paula",
        "createdAt": "2024-01-10T12:00:00.000Z",
    },
    {
        "id": "c2",
        "patient": "MARIA SILVA.",
        "transcript": "retorno",
        "result": {"nutritionalAssessment": "c", "clinicalRationale": "d"},
        "createdAt": {"seconds": 1706875200, "nanoseconds": 0},
    },
    {"id": "c3", "patient": "", "transcript": "sem nome", "result": None},
]


def test_should_migrate_only_into_empty_store():
    assert should_migrate(0, HISTORY) is True
    assert should_migrate(0, []) is False
    assert should_migrate(3, HISTORY) is False


def test_history_becomes_patients_and_events():
    patients, events = migrate_history(HISTORY)

    assert [p.name for p in patients] == ["Maria Silva", "Anônimo"]
    maria, anonymous = patients
    assert [(e.id, e.type, e.patient_id) for e in events] == [
        ("c1", "initial", maria.id),
        ("c2", "followup", maria.id),
        ("c3", "initial", anonymous.id),
    ]
    assert maria.created_at == events[0].date


def test_fields_are_carried_over_with_defaults():
    _, events = migrate_history(HISTORY, default_doctor="Nutricionista")
    first, second, third = events

    assert first.doctor_name == "Dra. Paula"
    assert second.doctor_name == "Nutricionista"
    assert first.result == {"nutritionalAssessment": "a", "clinicalRationale": "b"}
    assert first.date.isoformat() == "2024-01-10T12:00:00+00:00"
    assert second.date.isoformat() == "2024-02-02T12:00:00+00:00"
    # missing timestamp falls back to migration time
    assert third.date.tzinfo is not None
    assert third.created_at == third.date


def test_repeated_legacy_ids_get_fresh_ids():
    rows = [{"id": "same", "patient": "Ana"}, {"id": "same", "patient": "Ana"}]
    _, events = migrate_history(rows)
    assert events[0].id == "same"
    assert events[1].id != "same"


def test_unreadable_row_aborts_whole_migration():
    rows = [{"patient": "Ana"}, {"patient": "Bia", "createdAt": "not a date"}]
    with pytest.raises(MigrationError):
        migrate_history(rows)
