# backend/echomed/services/event_store.py

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from echomed.core.errors import EventNotFoundError
from echomed.models import ADJUSTMENT, FOLLOWUP, INITIAL, AdjustmentEvent, ConsultationEvent, TimelineEvent
from echomed.models.timeline import ConsultationType, is_consultation

logger = logging.getLogger(__name__)


def classify(patient_id: str, existing_events: Iterable[TimelineEvent]) -> ConsultationType:
    """
    Type of the next consultation for a patient: `initial` when the patient has
    no consultation yet, `followup` otherwise. Adjustments are not counted.

    Must be called before the new event is appended.
    """
    for event in existing_events:
        if event.patient_id == patient_id and is_consultation(event):
            return FOLLOWUP
    return INITIAL


class EventStore:
    """
    Timeline events in insertion order.

    Reads return the most recent insertion first; date ordering is left to the
    timeline grouping.
    """

    def __init__(self, events: Iterable[TimelineEvent] = ()):
        # Oldest insertion first; reversed on read
        self._events: List[TimelineEvent] = []
        self._index: Dict[str, TimelineEvent] = {}
        for event in events:
            self._insert(event)

    def _insert(self, event: TimelineEvent) -> None:
        if event.id in self._index:
            raise ValueError(f"Duplicate timeline event id: {event.id}")
        self._events.append(event)
        self._index[event.id] = event

    def __len__(self) -> int:
        return len(self._events)

    def all(self) -> List[TimelineEvent]:
        return list(reversed(self._events))

    def in_insertion_order(self) -> List[TimelineEvent]:
        return list(self._events)

    def for_patient(self, patient_id: str) -> List[TimelineEvent]:
        return [e for e in reversed(self._events) if e.patient_id == patient_id]

    def get(self, event_id: str) -> TimelineEvent:
        event = self._index.get(event_id)
        if event is None:
            raise EventNotFoundError(event_id)
        return event

    def consultation_at(self, patient_id: str, when: datetime) -> Optional[ConsultationEvent]:
        """Most recent consultation of the patient dated at or before `when`."""
        latest = None
        for event in self._events:
            if event.patient_id != patient_id or not is_consultation(event) or event.date > when:
                continue
            # >= so that a later insertion wins on equal dates
            if latest is None or event.date >= latest.date:
                latest = event
        return latest

    def append(self, event: TimelineEvent) -> TimelineEvent:
        self._insert(event)
        logger.debug("Appended %s event %s for patient %s", event.type, event.id, event.patient_id)
        return event

    def _adjustment(self, event_id: str) -> Optional[AdjustmentEvent]:
        event = self._index.get(event_id)
        if event is None or event.type != ADJUSTMENT:
            return None
        return event

    def remove(self, event_id: str) -> bool:
        """Delete an adjustment. Unknown ids and consultations are left alone."""
        event = self._adjustment(event_id)
        if event is None:
            logger.info("Ignored delete of %s: not an existing adjustment", event_id)
            return False
        self._events = [e for e in self._events if e.id != event.id]
        del self._index[event_id]
        return True

    def edit_note(self, event_id: str, note: str) -> bool:
        """Replace an adjustment's note. Unknown ids and consultations are left alone."""
        event = self._adjustment(event_id)
        if event is None:
            logger.info("Ignored note edit of %s: not an existing adjustment", event_id)
            return False
        event.adjustment_note = note
        return True

    def reassign_patient(self, redirects: Dict[str, str]) -> int:
        """Re-point events of collapsed duplicate patients. Returns how many moved."""
        moved = 0
        for position, event in enumerate(self._events):
            target = redirects.get(event.patient_id)
            if target is None:
                continue
            replacement = event.model_copy(update={"patient_id": target})
            self._events[position] = replacement
            self._index[event.id] = replacement
            moved += 1
        return moved

    def retype_consultations(self, patient_ids: Iterable[str]) -> int:
        """
        Make each patient's earliest consultation `initial` and the rest `followup`.

        Used after events of several records were merged onto one patient.
        Returns how many events changed type.
        """
        wanted = set(patient_ids)
        first_seen: Dict[str, int] = {}
        for position, event in enumerate(self._events):
            if event.patient_id not in wanted or not is_consultation(event):
                continue
            current = first_seen.get(event.patient_id)
            if current is None or (event.date, event.created_at) < (
                self._events[current].date,
                self._events[current].created_at,
            ):
                first_seen[event.patient_id] = position

        retyped = 0
        for position, event in enumerate(self._events):
            if event.patient_id not in wanted or not is_consultation(event):
                continue
            expected = INITIAL if first_seen[event.patient_id] == position else FOLLOWUP
            if event.type == expected:
                continue
            replacement = event.model_copy(update={"type": expected})
            self._events[position] = replacement
            self._index[event.id] = replacement
            retyped += 1
        return retyped
