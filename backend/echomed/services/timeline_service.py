# backend/echomed/services/timeline_service.py

import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from echomed.core.config import Settings
from echomed.core.errors import InvalidInputError, MigrationError, PersistenceError
from echomed.models import (
    AdjustmentEvent,
    ConsultationEvent,
    Patient,
    PatientContext,
    PatientSuggestion,
    PatientSummary,
    TimelineEvent,
)
from echomed.models.base import as_utc, utcnow
from echomed.models.timeline import TimelineItem, is_consultation
from echomed.services.event_store import EventStore, classify
from echomed.services.migration import migrate_history, should_migrate
from echomed.services.names import normalize_patient_name
from echomed.services.patient_registry import PatientRegistry
from echomed.services.persistence import JsonSnapshotStore
from echomed.services.timeline_grouping import group_timeline

logger = logging.getLogger(__name__)


class TimelineService:
    """
    Owner of the patient registry and the event store.

    Every read and write goes through this object and runs under one lock, so
    a consultation's find-or-create, typing and append are seen as a unit.
    The snapshot is written after each mutation; a failed write is logged and
    kept in `last_persistence_error` but never undoes the in-memory change.
    """

    def __init__(
        self,
        store: Optional[JsonSnapshotStore] = None,
        default_doctor: str = "Nutricionista",
        anonymous_name: str = "Anônimo",
    ):
        self.store = store
        self.default_doctor = default_doctor
        self.anonymous_name = anonymous_name
        self.registry = PatientRegistry(anonymous_name=anonymous_name)
        self.events = EventStore()
        self.last_persistence_error: Optional[str] = None
        # Where an unreadable snapshot was moved on load, if that happened
        self.set_aside_snapshot: Optional[Path] = None
        self._writes_blocked = False
        self._lock = threading.RLock()

    # ---- startup ---------------------------------------------------------

    def load(self) -> None:
        """Load the saved snapshot, tidy stored names, then migrate legacy history if needed."""
        if self.store is None:
            return
        with self._lock:
            try:
                snapshot = self.store.load_all()
            except PersistenceError as e:
                # Legacy history is not migrated over data we could not read
                self._set_aside_unreadable_snapshot(e)
                return

            registry = PatientRegistry(snapshot.patients, anonymous_name=self.anonymous_name)
            events = EventStore(snapshot.events)
            names_before = [p.name for p in registry.list()]
            redirects = registry.normalize_stored_names()
            if redirects:
                moved = events.reassign_patient(redirects)
                retyped = events.retype_consultations(set(redirects.values()))
                logger.info("Moved %d events from collapsed duplicate patients, retyped %d", moved, retyped)
            self.registry = registry
            self.events = events
            logger.info("Loaded %d patients and %d events", len(registry), len(events))
            if redirects or names_before != [p.name for p in registry.list()]:
                self._persist()

            try:
                history = self.store.load_legacy_history()
                self.migrate_legacy_history(history)
            except (PersistenceError, MigrationError) as e:
                logger.error("Legacy history not migrated: %s", e)

    def migrate_legacy_history(self, history: List[Any]) -> int:
        """
        Migrate a flat consultation history once. Returns the number of patients created.

        Nothing is committed unless the whole history converts; the guard and
        the commit run under the same lock as every other mutation.
        """
        with self._lock:
            if not should_migrate(len(self.registry), history):
                return 0
            patients, events = migrate_history(
                history,
                anonymous_name=self.anonymous_name,
                default_doctor=self.default_doctor,
            )
            self.registry = PatientRegistry(patients, anonymous_name=self.anonymous_name)
            self.events = EventStore(events)
            self._persist()
            return len(patients)

    # ---- persistence -----------------------------------------------------

    def _set_aside_unreadable_snapshot(self, error: PersistenceError) -> None:
        logger.error("Snapshot not loaded: %s", error)
        try:
            self.set_aside_snapshot = self.store.set_aside()
        except PersistenceError as e:
            logger.error("Unreadable snapshot left in place, snapshot writes disabled: %s", e)
            self._writes_blocked = True
            self.last_persistence_error = f"{error}; snapshot writes disabled"
            return
        logger.warning("Starting with an empty store; previous data kept in %s", self.set_aside_snapshot)
        self.last_persistence_error = str(error)

    def _persist(self) -> None:
        if self.store is None:
            return
        if self._writes_blocked:
            logger.warning("Snapshot write skipped, the unreadable snapshot on disk is kept as is")
            return
        try:
            self.store.save_all(self.registry.list(), self.events.in_insertion_order())
            self.last_persistence_error = None
        except PersistenceError as e:
            logger.error("Snapshot write failed, changes kept in memory only: %s", e)
            self.last_persistence_error = str(e)

    # ---- queries ---------------------------------------------------------

    def list_patients(self) -> List[Patient]:
        with self._lock:
            return self.registry.list()

    def get_patient(self, patient_id: str) -> Patient:
        with self._lock:
            return self.registry.get(patient_id)

    def list_events(self, patient_id: str) -> List[TimelineEvent]:
        with self._lock:
            self.registry.get(patient_id)
            return self.events.for_patient(patient_id)

    def grouped_timeline(self, patient_id: str) -> List[TimelineItem]:
        with self._lock:
            self.registry.get(patient_id)
            events = [e for e in self.events.in_insertion_order() if e.patient_id == patient_id]
            return group_timeline(events)

    def _summary(self, patient: Patient) -> PatientSummary:
        patient_events = self.events.for_patient(patient.id)
        last = max((e.date for e in patient_events), default=None)
        return PatientSummary(
            patient=patient,
            consultation_count=sum(1 for e in patient_events if is_consultation(e)),
            last_event_date=last,
            event_dates=sorted({e.date.date() for e in patient_events}),
        )

    def patient_summaries(self, query: Optional[str] = None, on_date: Optional[date] = None) -> List[PatientSummary]:
        """
        Patients with their activity, most recently active first.

        `query` matches a case-insensitive substring of the name; `on_date`
        keeps patients with any event on that (UTC) calendar day.
        """
        with self._lock:
            summaries = [self._summary(p) for p in self.registry.list()]
        if query and query.strip():
            needle = query.strip().lower()
            summaries = [s for s in summaries if needle in s.patient.name.lower()]
        if on_date is not None:
            summaries = [s for s in summaries if on_date in s.event_dates]
        # Patients with no events go last; sort is stable for ties
        summaries.sort(key=lambda s: s.last_event_date.timestamp() if s.last_event_date else 0.0, reverse=True)
        return summaries

    def suggest_patients(self, partial: str, limit: int = 5) -> List[PatientSuggestion]:
        """Known patients whose name contains `partial`, excluding an exact match."""
        needle = (partial or "").strip().lower()
        if not needle:
            return []
        with self._lock:
            suggestions = []
            for patient in self.registry.list():
                lowered = patient.name.lower()
                if needle not in lowered or lowered == needle:
                    continue
                last_visit = max((e.date for e in self.events.for_patient(patient.id)), default=None)
                suggestions.append(PatientSuggestion(patient=patient, last_visit=last_visit))
        return suggestions[:limit]

    def get_event(self, event_id: str) -> TimelineEvent:
        with self._lock:
            return self.events.get(event_id)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "patients": len(self.registry),
                "events": len(self.events),
                "persistence": "ok" if self.last_persistence_error is None else "failing",
                "last_persistence_error": self.last_persistence_error,
                "set_aside_snapshot": str(self.set_aside_snapshot) if self.set_aside_snapshot else None,
            }

    # ---- commands --------------------------------------------------------

    def add_consultation_event(
        self,
        patient_name: str,
        context: Optional[PatientContext],
        transcript: str,
        result: Any,
        doctor_name: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> ConsultationEvent:
        """Record a finished consultation as the patient's `initial` or `followup` event."""
        if result is None:
            raise InvalidInputError("A consultation is recorded only once its analysis result exists")

        with self._lock:
            is_new = self.registry.find(self.registry.display_name(patient_name)) is None
            patient = self.registry.find_or_create(patient_name, context)
            try:
                event_type = classify(patient.id, self.events.for_patient(patient.id))
                stamp = as_utc(when) if when else utcnow()
                event = ConsultationEvent(
                    patient_id=patient.id,
                    type=event_type,
                    date=stamp,
                    transcript=transcript or "",
                    result=result,
                    doctor_name=doctor_name or self.default_doctor,
                )
                self.events.append(event)
            except Exception:
                if is_new:
                    self.registry.discard(patient.id)
                raise
            logger.info("Recorded %s consultation %s for patient %s", event.type, event.id, patient.id)
            self._persist()
            return event

    def add_adjustment(
        self,
        patient_id: str,
        note: str,
        previous_plan: Optional[str] = None,
        new_plan: Optional[str] = None,
        doctor_name: Optional[str] = None,
        when: Optional[datetime] = None,
    ) -> AdjustmentEvent:
        note = (note or "").strip()
        if not note:
            raise InvalidInputError("Adjustment note must not be empty")

        with self._lock:
            self.registry.get(patient_id)
            stamp = as_utc(when) if when else utcnow()
            current = self.events.consultation_at(patient_id, stamp)
            event = AdjustmentEvent(
                patient_id=patient_id,
                date=stamp,
                adjustment_note=note,
                previous_plan=previous_plan or None,
                new_plan=new_plan or None,
                consultation_id=current.id if current else None,
                doctor_name=doctor_name or self.default_doctor,
            )
            self.events.append(event)
            logger.info("Recorded adjustment %s for patient %s", event.id, patient_id)
            self._persist()
            return event

    def edit_adjustment(self, event_id: str, note: str) -> bool:
        note = (note or "").strip()
        if not note:
            raise InvalidInputError("Adjustment note must not be empty")
        with self._lock:
            changed = self.events.edit_note(event_id, note)
            if changed:
                self._persist()
            return changed

    def delete_adjustment(self, event_id: str) -> bool:
        with self._lock:
            removed = self.events.remove(event_id)
            if removed:
                logger.info("Deleted adjustment %s", event_id)
                self._persist()
            return removed

    def rename_patient(self, patient_id: str, new_name: str) -> Patient:
        with self._lock:
            if self.registry.rename(patient_id, new_name):
                logger.info("Renamed patient %s to %r", patient_id, normalize_patient_name(new_name))
                self._persist()
            return self.registry.get(patient_id)

    def update_patient(
        self,
        patient_id: str,
        name: Optional[str] = None,
        contact: Optional[Dict[str, Any]] = None,
    ) -> Patient:
        """
        Rename and/or change contact details (`phone`, `email`, `birth_date`).

        Only the contact keys present in `contact` are touched; a blank value clears the field.
        """
        with self._lock:
            renamed = name is not None and self.registry.rename(patient_id, name)
            updated = self.registry.update_contact(patient_id, contact or {})
            if renamed or updated:
                logger.info("Updated patient %s", patient_id)
                self._persist()
            return self.registry.get(patient_id)


def build_timeline_service(settings: Settings) -> TimelineService:
    store = JsonSnapshotStore(settings.DATA_DIR, settings.SNAPSHOT_FILE, settings.LEGACY_HISTORY_FILE)
    service = TimelineService(
        store=store,
        default_doctor=settings.DEFAULT_DOCTOR_NAME,
        anonymous_name=settings.ANONYMOUS_PATIENT_NAME,
    )
    service.load()
    return service
