# backend/echomed/models/consultation.py

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator

from .base import CamelModel, Timestamp

GOAL_LABELS: Dict[str, str] = {
    "emagrecimento": "Emagrecimento",
    "hipertrofia": "Hipertrofia",
    "saude": "Saúde e bem-estar",
    "performance": "Performance esportiva",
    "reeducacao": "Reeducação alimentar",
    "outro": "Outro",
}


class TrainingEntry(BaseModel):
    type: str
    frequency: str


class PatientContext(CamelModel):
    """Optional context collected alongside a consultation."""

    goals: List[str] = []
    goal_custom: Optional[str] = None
    training_routine: List[TrainingEntry] = []
    is_first_consultation: Optional[bool] = None

    def goal_labels(self) -> List[str]:
        labels = []
        for goal in self.goals:
            if goal == "outro":
                if self.goal_custom and self.goal_custom.strip():
                    labels.append(self.goal_custom.strip())
            else:
                labels.append(GOAL_LABELS.get(goal, goal))
        return labels

    def is_empty(self) -> bool:
        return (
            not self.goals
            and not (self.goal_custom or "").strip()
            and not self.training_routine
            and self.is_first_consultation is None
        )


class NutritionalAssessment(CamelModel):
    nutritional_assessment: str
    clinical_rationale: str
    possible_associated_conditions: List[str] = []
    recommended_exams: List[str] = []
    nutritional_conduct: Optional[str] = None


def _firestore_seconds(value: Any) -> Any:
    # Cloud history rows carry {"seconds": ..., "nanoseconds": ...}
    if isinstance(value, dict) and "seconds" in value:
        seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if value == "":
        return None
    return value


class LegacyConsultation(CamelModel):
    """One row of the flat, pre-patient consultation history."""

    id: Optional[str] = None
    patient: Optional[str] = None
    transcript: Optional[str] = None
    result: Any = None
    doctor_name: Optional[str] = None
    created_at: Annotated[Optional[Timestamp], BeforeValidator(_firestore_seconds)] = None
