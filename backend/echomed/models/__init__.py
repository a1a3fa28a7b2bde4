"""Pydantic models for the consultation timeline."""

from .consultation import GOAL_LABELS, LegacyConsultation, NutritionalAssessment, PatientContext, TrainingEntry
from .patient import Patient, PatientSuggestion, PatientSummary
from .timeline import (
    ADJUSTMENT,
    FOLLOWUP,
    INITIAL,
    AdjustmentEvent,
    ConsultationEvent,
    ConsultationGroup,
    StandaloneAdjustment,
    TimelineEvent,
    TimelineItem,
)

__all__ = [
    "ADJUSTMENT",
    "FOLLOWUP",
    "GOAL_LABELS",
    "INITIAL",
    "AdjustmentEvent",
    "ConsultationEvent",
    "ConsultationGroup",
    "LegacyConsultation",
    "NutritionalAssessment",
    "Patient",
    "PatientContext",
    "PatientSuggestion",
    "PatientSummary",
    "StandaloneAdjustment",
    "TimelineEvent",
    "TimelineItem",
    "TrainingEntry",
]
