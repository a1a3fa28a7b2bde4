# backend/echomed/api/routes/patient_routes.py

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from echomed.api.deps import get_timeline_service
from echomed.core.errors import EventNotFoundError, InvalidInputError, PatientNotFoundError
from echomed.models import AdjustmentEvent, Patient, PatientSuggestion, PatientSummary, TimelineEvent
from echomed.models.base import CamelModel
from echomed.models.timeline import TimelineItem
from echomed.services.timeline_service import TimelineService

router = APIRouter(tags=["patients"])


class PatientUpdateRequest(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    birth_date: Optional[date] = None


class AdjustmentRequest(CamelModel):
    note: str
    previous_plan: Optional[str] = None
    new_plan: Optional[str] = None
    doctor_name: Optional[str] = None


class NoteRequest(CamelModel):
    note: str


@router.get("/patients", response_model=List[PatientSummary])
def list_patients(
    q: Optional[str] = None,
    on_date: Optional[date] = None,
    timeline: TimelineService = Depends(get_timeline_service),
):
    """Patients with activity counts, most recently active first."""
    return timeline.patient_summaries(query=q, on_date=on_date)


@router.get("/patients/suggest", response_model=List[PatientSuggestion])
def suggest_patients(
    name: str,
    limit: int = 5,
    timeline: TimelineService = Depends(get_timeline_service),
):
    return timeline.suggest_patients(name, limit=limit)


@router.get("/patients/{patient_id}", response_model=Patient)
def get_patient(patient_id: str, timeline: TimelineService = Depends(get_timeline_service)):
    try:
        return timeline.get_patient(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")


@router.patch("/patients/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: str,
    req: PatientUpdateRequest,
    timeline: TimelineService = Depends(get_timeline_service),
):
    """Rename the patient and/or change contact details. Omitted fields are left as they are."""
    contact = req.model_dump(include={"phone", "email", "birth_date"}, exclude_unset=True)
    try:
        return timeline.update_patient(patient_id, name=req.name, contact=contact)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")


@router.get("/patients/{patient_id}/events", response_model=List[TimelineEvent])
def list_events(patient_id: str, timeline: TimelineService = Depends(get_timeline_service)):
    try:
        return timeline.list_events(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")


@router.get("/patients/{patient_id}/timeline", response_model=List[TimelineItem])
def grouped_timeline(patient_id: str, timeline: TimelineService = Depends(get_timeline_service)):
    """Consultations with their adjustments nested, most recent first."""
    try:
        return timeline.grouped_timeline(patient_id)
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")


@router.post("/patients/{patient_id}/adjustments", response_model=AdjustmentEvent, status_code=201)
def add_adjustment(
    patient_id: str,
    req: AdjustmentRequest,
    timeline: TimelineService = Depends(get_timeline_service),
):
    try:
        return timeline.add_adjustment(
            patient_id,
            req.note,
            previous_plan=req.previous_plan,
            new_plan=req.new_plan,
            doctor_name=req.doctor_name,
        )
    except PatientNotFoundError:
        raise HTTPException(status_code=404, detail="Patient not found")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch("/events/{event_id}", status_code=204)
def edit_adjustment(
    event_id: str,
    req: NoteRequest,
    timeline: TimelineService = Depends(get_timeline_service),
):
    try:
        changed = timeline.edit_adjustment(event_id, req.note)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not changed:
        raise HTTPException(status_code=404, detail="Adjustment not found")
    return Response(status_code=204)


@router.delete("/events/{event_id}", status_code=204)
def delete_adjustment(event_id: str, timeline: TimelineService = Depends(get_timeline_service)):
    if not timeline.delete_adjustment(event_id):
        raise HTTPException(status_code=404, detail="Adjustment not found")
    return Response(status_code=204)


@router.get("/events/{event_id}", response_model=TimelineEvent)
def get_event(event_id: str, timeline: TimelineService = Depends(get_timeline_service)):
    try:
        return timeline.get_event(event_id)
    except EventNotFoundError:
        raise HTTPException(status_code=404, detail="Event not found")
