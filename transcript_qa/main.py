# =============================================================================
# FastAPI Application
# =============================================================================
#
# Run with:
#   uvicorn transcript_qa.main:app --reload
#   celery -A transcript_qa.workers.celery_app worker --loglevel=info
#
# Logging is configured once here; every module logs through
# logging.getLogger(__name__).
# =============================================================================

import logging

from fastapi import FastAPI

from transcript_qa.api import ask, conversations, knowledge
from transcript_qa.config import settings
from transcript_qa.models.responses import HealthResponse

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=(
        "Question answering over a library of video transcripts, with "
        "external search fallback and persisted conversation history."
    ),
)

app.include_router(ask.router)
app.include_router(conversations.router)
app.include_router(knowledge.router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=settings.app_version,
        service=settings.app_name,
    )
