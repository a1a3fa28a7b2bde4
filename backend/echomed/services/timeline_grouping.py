"""
Read-side reconciliation of a patient's timeline.

Adjustments are nested under the consultation whose plan they amend. An
adjustment that recorded the consultation current at creation time
(`consultation_id`) is attached to it directly. Otherwise it belongs to the
consultation whose window contains it: from that consultation's date
(inclusive) up to the next, more recent consultation's date (exclusive).

Adjustments dated before the first consultation, or recorded for a patient
with no consultation at all, are returned as standalone items after the
groups. No event is ever dropped.

Equal dates are ordered by `created_at`, then by position in the input
sequence; the later one counts as more recent. Callers pass events in
insertion order, so of two consultations sharing a timestamp the one
recorded last is treated as the newer.
"""

from typing import Dict, List, Optional, Sequence

from echomed.models import AdjustmentEvent, ConsultationEvent, ConsultationGroup, StandaloneAdjustment, TimelineEvent
from echomed.models.timeline import TimelineItem, is_consultation


def most_recent_first(events: Sequence[TimelineEvent]) -> List[TimelineEvent]:
    positioned = sorted(
        enumerate(events),
        key=lambda pair: (pair[1].date, pair[1].created_at, pair[0]),
        reverse=True,
    )
    return [event for _, event in positioned]


def _window_owner(
    adjustment: AdjustmentEvent, consultations: List[ConsultationEvent]
) -> Optional[ConsultationEvent]:
    for index, consultation in enumerate(consultations):
        newer = consultations[index - 1] if index > 0 else None
        if consultation.date <= adjustment.date and (newer is None or adjustment.date < newer.date):
            return consultation
    return None


def group_timeline(events: Sequence[TimelineEvent]) -> List[TimelineItem]:
    """Group one patient's events, most recent first."""
    ordered = most_recent_first(events)
    consultations: List[ConsultationEvent] = [e for e in ordered if is_consultation(e)]
    adjustments: List[AdjustmentEvent] = [e for e in ordered if not is_consultation(e)]

    attached: Dict[str, List[AdjustmentEvent]] = {c.id: [] for c in consultations}
    orphans: List[AdjustmentEvent] = []
    for adjustment in adjustments:
        if adjustment.consultation_id in attached:
            attached[adjustment.consultation_id].append(adjustment)
            continue
        owner = _window_owner(adjustment, consultations)
        if owner is None:
            orphans.append(adjustment)
        else:
            attached[owner.id].append(adjustment)

    items: List[TimelineItem] = [
        ConsultationGroup(consultation=c, adjustments=attached[c.id]) for c in consultations
    ]
    items.extend(StandaloneAdjustment(adjustment=a) for a in orphans)
    return items
