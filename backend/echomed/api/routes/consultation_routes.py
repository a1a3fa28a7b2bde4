# backend/echomed/api/routes/consultation_routes.py

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from echomed.api.deps import get_analysis_service, get_timeline_service
from echomed.core.errors import AnalysisError, InvalidInputError
from echomed.models import ConsultationEvent, PatientContext
from echomed.models.base import CamelModel
from echomed.services.analysis_service import AnalysisService
from echomed.services.timeline_service import TimelineService

router = APIRouter(prefix="/consultations", tags=["consultations"])


class AnalyzeRequest(CamelModel):
    patient_name: str = ""
    transcript: str
    context: Optional[PatientContext] = None
    doctor_name: Optional[str] = None


class RecordRequest(AnalyzeRequest):
    transcript: str = ""
    result: Dict[str, Any]


@router.post("/analyze", response_model=ConsultationEvent, status_code=201)
async def analyze_consultation(
    req: AnalyzeRequest,
    analysis: AnalysisService = Depends(get_analysis_service),
    timeline: TimelineService = Depends(get_timeline_service),
):
    """
    Analyze a finished consultation and record it on the patient's timeline.

    Nothing is recorded unless the analysis returns a complete result.
    """
    try:
        result = await run_in_threadpool(analysis.analyze, req.transcript, req.context)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=502, detail=f"Analysis failed: {e}")

    return await run_in_threadpool(
        timeline.add_consultation_event,
        req.patient_name,
        req.context,
        req.transcript,
        result,
        req.doctor_name,
    )


@router.post("", response_model=ConsultationEvent, status_code=201)
def record_consultation(
    req: RecordRequest,
    timeline: TimelineService = Depends(get_timeline_service),
):
    """Record a consultation whose result was produced elsewhere."""
    try:
        return timeline.add_consultation_event(
            req.patient_name,
            req.context,
            req.transcript,
            req.result,
            doctor_name=req.doctor_name,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
