# backend/echomed/models/patient.py

from datetime import date
from typing import List, Optional

from pydantic import Field

from .base import CamelModel, Timestamp, new_id, utcnow
from .consultation import TrainingEntry


def new_patient_id() -> str:
    return new_id("patient")


class Patient(CamelModel):
    id: str = Field(default_factory=new_patient_id, frozen=True)
    name: str
    created_at: Timestamp = Field(default_factory=utcnow, frozen=True)
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[date] = None
    goals: List[str] = []
    goal_custom: Optional[str] = None
    training_routine: List[TrainingEntry] = []
    is_first_consultation: Optional[bool] = None


class PatientSummary(CamelModel):
    patient: Patient
    consultation_count: int = 0
    last_event_date: Optional[Timestamp] = None
    event_dates: List[date] = []


class PatientSuggestion(CamelModel):
    patient: Patient
    last_visit: Optional[Timestamp] = None
