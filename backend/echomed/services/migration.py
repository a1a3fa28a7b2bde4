# backend/echomed/services/migration.py

import logging
from typing import Any, Dict, Iterable, List, Tuple

from pydantic import ValidationError

from echomed.core.errors import MigrationError
from echomed.models import FOLLOWUP, INITIAL, ConsultationEvent, LegacyConsultation, Patient
from echomed.models.base import utcnow
from echomed.services.names import normalize_patient_name

logger = logging.getLogger(__name__)


def should_migrate(patient_count: int, history: List[Any]) -> bool:
    """Only an empty patient store with a non-empty legacy history is migrated."""
    return patient_count == 0 and len(history) > 0


def migrate_history(
    history: Iterable[Any],
    anonymous_name: str = "Anônimo",
    default_doctor: str = "Nutricionista",
) -> Tuple[List[Patient], List[ConsultationEvent]]:
    """
    Turn the flat consultation history into patients and consultation events.

    Works only on local lists; the caller commits the result as a whole.
    History is walked in its stored order and the first row seen for a
    patient becomes that patient's `initial` event.
    """
    patients: List[Patient] = []
    events: List[ConsultationEvent] = []
    by_key: Dict[str, Patient] = {}
    seen_ids = set()

    for position, raw in enumerate(history):
        try:
            item = LegacyConsultation.model_validate(raw)
        except ValidationError as e:
            raise MigrationError(f"Unreadable history row {position}: {e}") from e

        display_name = normalize_patient_name(item.patient or "") or normalize_patient_name(anonymous_name)
        key = display_name.lower()
        stamp = item.created_at or utcnow()

        patient = by_key.get(key)
        if patient is None:
            patient = Patient(name=display_name, created_at=stamp)
            by_key[key] = patient
            patients.append(patient)
            event_type = INITIAL
        else:
            event_type = FOLLOWUP

        fields = dict(
            patient_id=patient.id,
            type=event_type,
            date=stamp,
            transcript=item.transcript or "",
            result=item.result,
            doctor_name=item.doctor_name or default_doctor,
            created_at=stamp,
        )
        # Legacy ids are kept unless a row repeats one
        if item.id and item.id not in seen_ids:
            fields["id"] = item.id
        event = ConsultationEvent(**fields)
        seen_ids.add(event.id)
        events.append(event)

    logger.info("Migrated %d patients and %d events from legacy history", len(patients), len(events))
    return patients, events
