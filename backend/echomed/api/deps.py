from fastapi import Request

from echomed.services.analysis_service import AnalysisService
from echomed.services.timeline_service import TimelineService


def get_timeline_service(request: Request) -> TimelineService:
    return request.app.state.timeline


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis
