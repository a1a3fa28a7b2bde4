# backend/echomed/models/timeline.py

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import ConfigDict, Field

from .base import CamelModel, Timestamp, new_id, utcnow

INITIAL = "initial"
FOLLOWUP = "followup"
ADJUSTMENT = "adjustment"

ConsultationType = Literal["initial", "followup"]
CONSULTATION_TYPES = frozenset({INITIAL, FOLLOWUP})


def new_event_id() -> str:
    return new_id("event")


class EventEnvelope(CamelModel):
    """Fields shared by every timeline event."""

    id: str = Field(default_factory=new_event_id, frozen=True)
    patient_id: str = Field(frozen=True)
    date: Timestamp = Field(default_factory=utcnow)
    doctor_name: str = Field(frozen=True)
    created_at: Timestamp = Field(default_factory=utcnow, frozen=True)


class ConsultationEvent(EventEnvelope):
    """An `initial` or `followup` consultation. Never edited once recorded."""

    model_config = ConfigDict(frozen=True)

    type: ConsultationType
    transcript: str = ""
    # Whatever the analysis returned, kept verbatim
    result: Any = None


class AdjustmentEvent(EventEnvelope):
    """A plan adjustment. Its note can be edited and the event deleted."""

    type: Literal["adjustment"] = ADJUSTMENT
    adjustment_note: str
    previous_plan: Optional[str] = None
    new_plan: Optional[str] = None
    # Consultation that was current when the adjustment was made
    consultation_id: Optional[str] = None


TimelineEvent = Annotated[
    Union[ConsultationEvent, AdjustmentEvent],
    Field(discriminator="type"),
]


def is_consultation(event) -> bool:
    return event.type in CONSULTATION_TYPES


class ConsultationGroup(CamelModel):
    kind: Literal["group"] = "group"
    consultation: ConsultationEvent
    adjustments: List[AdjustmentEvent] = []


class StandaloneAdjustment(CamelModel):
    kind: Literal["orphan"] = "orphan"
    adjustment: AdjustmentEvent


TimelineItem = Annotated[
    Union[ConsultationGroup, StandaloneAdjustment],
    Field(discriminator="kind"),
]
