import pytest

from echomed.core.errors import PatientNotFoundError
from echomed.models import Patient, PatientContext, TrainingEntry
from echomed.services.patient_registry import PatientRegistry


def test_find_or_create_dedups_by_normalized_name():
    registry = PatientRegistry()
    first = registry.find_or_create("Maria Silva")
    second = registry.find_or_create("maria   silva")

    assert first.id == second.id
    assert len(registry) == 1
    assert first.name == "Maria Silva"


def test_new_patient_gets_normalized_name_and_creation_time():
    registry = PatientRegistry()
    patient = registry.find_or_create("  joão   PEREIRA. ")
    assert patient.name == "João Pereira"
    assert patient.created_at.tzinfo is not None
    assert patient.id.startswith("patient_")


def test_blank_name_falls_back_to_anonymous():
    registry = PatientRegistry(anonymous_name="Anônimo")
    first = registry.find_or_create("")
    second = registry.find_or_create(" ;; ")
    assert first.name == "Anônimo"
    assert first.id == second.id


def test_context_merge_non_empty_overwrites_empty_never_does():
    registry = PatientRegistry()
    patient = registry.find_or_create(
        "Ana Costa",
        PatientContext(
            goals=["hipertrofia"],
            training_routine=[TrainingEntry(type="musculação", frequency="5x/semana")],
            is_first_consultation=True,
        ),
    )

    registry.find_or_create("ana costa", PatientContext(goals=[], goal_custom="  "))
    assert patient.goals == ["hipertrofia"]
    assert patient.training_routine[0].frequency == "5x/semana"
    assert patient.is_first_consultation is True

    registry.find_or_create("ANA COSTA", PatientContext(goals=["outro"], goal_custom="Maratona", is_first_consultation=False))
    assert patient.goals == ["outro"]
    assert patient.goal_custom == "Maratona"
    assert patient.is_first_consultation is False
    assert patient.training_routine[0].type == "musculação"


def test_get_unknown_patient_raises():
    with pytest.raises(PatientNotFoundError):
        PatientRegistry().get("patient_missing")


def test_rename_normalizes_and_ignores_blank():
    registry = PatientRegistry()
    patient = registry.find_or_create("Maria")

    assert registry.rename(patient.id, "  maria   SOUZA ") is True
    assert registry.get(patient.id).name == "Maria Souza"

    assert registry.rename(patient.id, "   ") is False
    assert registry.get(patient.id).name == "Maria Souza"


def test_rename_to_existing_name_keeps_both_patients():
    registry = PatientRegistry()
    maria = registry.find_or_create("Maria")
    joana = registry.find_or_create("Joana")

    registry.rename(joana.id, "maria")

    assert len(registry) == 2
    assert registry.get(joana.id).name == "Maria"
    # find-or-create keeps resolving to the first match
    assert registry.find_or_create("Maria").id == maria.id


def test_rename_unknown_patient_raises():
    with pytest.raises(PatientNotFoundError):
        PatientRegistry().rename("patient_missing", "Novo Nome")


def test_normalize_stored_names_collapses_duplicates():
    registry = PatientRegistry(
        [
            Patient(id="p1", name="maria silva"),
            Patient(id="p2", name="MARIA SILVA."),
            Patient(id="p3", name="joão"),
        ]
    )

    redirects = registry.normalize_stored_names()

    assert redirects == {"p2": "p1"}
    assert [p.name for p in registry.list()] == ["Maria Silva", "João"]
