import logging
import sys

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from echomed.api.deps import get_timeline_service
from echomed.api.routes.consultation_routes import router as consultation_routes
from echomed.api.routes.patient_routes import router as patient_routes
from echomed.core.config import settings
from echomed.services.analysis_service import AnalysisService
from echomed.services.timeline_service import TimelineService, build_timeline_service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("echomed")

app = FastAPI(
    title="EchoMed – Nutritional Consultation Timeline",
    description="Consultation analysis and patient-centric timeline for a single practitioner",
    version="1.0.0",
)

# Browser client (Vite dev server by default)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(consultation_routes)
app.include_router(patient_routes)


@app.get("/health")
def health(timeline: TimelineService = Depends(get_timeline_service)):
    return {"status": "ok", **timeline.stats()}


@app.on_event("startup")
def startup_event():
    app.state.timeline = build_timeline_service(settings)
    app.state.analysis = AnalysisService(settings)
    logger.info("Timeline store ready at %s", settings.DATA_DIR)
