# =============================================================================
# API Response Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data going OUT of the API. `source` is the AnswerSource value
# ("database", "database_fallback", "web", "hybrid", "none", "error");
# `provider` names the winning cascade tier when source is "web".
# =============================================================================

from pydantic import BaseModel, Field

from transcript_qa.models.conversations import ReferenceModel


class HealthResponse(BaseModel):
    """Response for GET /health — confirms the API is running."""

    status: str = "ok"
    version: str
    service: str


class AskResponse(BaseModel):
    answer: str
    references: list[ReferenceModel] = Field(default_factory=list)
    source: str = Field(description="Where the answer came from")
    confidence: float = Field(
        ge=0.0, le=1.0,
        description="Heuristic routing score, not a calibrated probability",
    )
    provider: str | None = Field(
        default=None, description="Winning external provider, when source is 'web'",
    )
    intent: str | None = None
    conversation_id: str


class KnowledgeIngestResponse(BaseModel):
    total: int
    added: int
    skipped: int = Field(description="Records whose link was already stored")
    task_id: str | None = Field(
        default=None,
        description="Celery task id of the embedding backfill, null if not enqueued",
    )
