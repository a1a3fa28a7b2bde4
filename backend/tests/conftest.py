from datetime import datetime, timedelta, timezone

import pytest

from echomed.models import AdjustmentEvent, ConsultationEvent
from echomed.services.persistence import JsonSnapshotStore
from echomed.services.timeline_service import TimelineService

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

RESULT = {
    "nutritionalAssessment": "Baixa ingestão proteica",
    "clinicalRationale": "Relato de refeições pobres em proteína e treino diário.",
    "possibleAssociatedConditions": ["Sarcopenia"],
    "recommendedExams": ["Albumina"],
    "nutritionalConduct": "Aumentar proteína no café da manhã.",
}


def at(minutes: float) -> datetime:
    return T0 + timedelta(minutes=minutes)


def consultation(minutes, patient_id="patient_1", kind="followup", **kwargs):
    return ConsultationEvent(
        patient_id=patient_id,
        type=kind,
        date=at(minutes),
        transcript=kwargs.pop("transcript", "transcrição"),
        result=kwargs.pop("result", RESULT),
        doctor_name=kwargs.pop("doctor_name", "Dra. Ana"),
        **kwargs,
    )


def adjustment(minutes, patient_id="patient_1", note=None, **kwargs):
    return AdjustmentEvent(
        patient_id=patient_id,
        date=at(minutes),
        adjustment_note=note or f"ajuste t={minutes}",
        doctor_name=kwargs.pop("doctor_name", "Dra. Ana"),
        **kwargs,
    )


@pytest.fixture
def service():
    return TimelineService()


@pytest.fixture
def snapshot_store(tmp_path):
    return JsonSnapshotStore(tmp_path, "timeline.json", "history.json")


@pytest.fixture
def stored_service(snapshot_store):
    return TimelineService(store=snapshot_store)
