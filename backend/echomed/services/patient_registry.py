# backend/echomed/services/patient_registry.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from echomed.core.errors import PatientNotFoundError
from echomed.models import Patient, PatientContext
from echomed.services.names import name_key, normalize_patient_name

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ("phone", "email", "birth_date")


def merge_context(patient: Patient, context: Optional[PatientContext]) -> bool:
    """
    Copy non-empty context fields onto the patient.

    Empty or absent incoming values never overwrite what is already stored.
    Returns True when the patient changed.
    """
    if context is None or context.is_empty():
        return False

    changed = False
    if context.goals and context.goals != patient.goals:
        patient.goals = list(context.goals)
        changed = True
    goal_custom = (context.goal_custom or "").strip()
    if goal_custom and goal_custom != patient.goal_custom:
        patient.goal_custom = goal_custom
        changed = True
    if context.training_routine and context.training_routine != patient.training_routine:
        patient.training_routine = [entry.model_copy() for entry in context.training_routine]
        changed = True
    if context.is_first_consultation is not None and context.is_first_consultation != patient.is_first_consultation:
        patient.is_first_consultation = context.is_first_consultation
        changed = True
    return changed


class PatientRegistry:
    """Patients keyed by id, deduplicated by normalized name on find-or-create."""

    def __init__(self, patients: Iterable[Patient] = (), anonymous_name: str = "Anônimo"):
        self.anonymous_name = anonymous_name
        self._patients: Dict[str, Patient] = {}
        for patient in patients:
            self._patients[patient.id] = patient

    def __len__(self) -> int:
        return len(self._patients)

    def __contains__(self, patient_id: str) -> bool:
        return patient_id in self._patients

    def list(self) -> List[Patient]:
        return list(self._patients.values())

    def get(self, patient_id: str) -> Patient:
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    def find(self, raw_name: str) -> Optional[Patient]:
        key = name_key(raw_name)
        if not key:
            return None
        for patient in self._patients.values():
            if name_key(patient.name) == key:
                return patient
        return None

    def display_name(self, raw_name: str) -> str:
        """Normalized name, or the anonymous placeholder when nothing usable is left."""
        return normalize_patient_name(raw_name) or normalize_patient_name(self.anonymous_name)

    def find_or_create(self, raw_name: str, context: Optional[PatientContext] = None) -> Patient:
        display_name = self.display_name(raw_name)

        existing = self.find(display_name)
        if existing is not None:
            if merge_context(existing, context):
                logger.info("Updated context for patient %s", existing.id)
            return existing

        patient = Patient(name=display_name)
        merge_context(patient, context)
        self._patients[patient.id] = patient
        logger.info("Registered patient %s (%s)", patient.id, patient.name)
        return patient

    def discard(self, patient_id: str) -> None:
        self._patients.pop(patient_id, None)

    def rename(self, patient_id: str, new_name: str) -> bool:
        """
        Rename a patient. Blank names are ignored.

        A rename may produce the same display name as another patient; the two
        records are kept apart (ids are the identity, not names).
        """
        patient = self.get(patient_id)
        normalized = normalize_patient_name(new_name)
        if not normalized or normalized == patient.name:
            return False

        clash = self.find(normalized)
        if clash is not None and clash.id != patient_id:
            logger.warning("Patient %s renamed to %r, which is also used by %s", patient_id, normalized, clash.id)
        patient.name = normalized
        return True

    def update_contact(self, patient_id: str, contact: Dict[str, Any]) -> bool:
        """Set the given contact fields. Blank strings clear a field. Returns True when anything changed."""
        patient = self.get(patient_id)
        changed = False
        for field in CONTACT_FIELDS:
            if field not in contact:
                continue
            value = contact[field]
            if isinstance(value, str):
                value = value.strip() or None
            if value != getattr(patient, field):
                setattr(patient, field, value)
                changed = True
        return changed

    def normalize_stored_names(self) -> Dict[str, str]:
        """
        Bring stored names into normalized form and collapse duplicates.

        The first patient for each key is kept. Returns {dropped_id: kept_id}
        so the caller can re-point events of dropped duplicates.
        """
        kept: Dict[str, Patient] = {}
        redirects: Dict[str, str] = {}
        for patient in list(self._patients.values()):
            normalized = self.display_name(patient.name)
            if normalized != patient.name:
                patient.name = normalized
            key = normalized.lower()
            if key in kept:
                redirects[patient.id] = kept[key].id
                del self._patients[patient.id]
            else:
                kept[key] = patient
        if redirects:
            logger.info("Collapsed %d duplicate patient record(s) after name normalization", len(redirects))
        return redirects
