# =============================================================================
# Knowledge API — Corpus Ingestion
# =============================================================================
#
# POST /knowledge stores a batch of video records and enqueues the Celery
# embedding backfill, which makes them reachable by semantic search.
#
# Structured lookups (titles, channels, recency) see the new rows as soon
# as this endpoint returns; semantic search sees them once the backfill
# has run.
#
# DESIGN DECISION: 202 Accepted.
# The records are stored, but the embedding work is still pending.
#
# A broker outage does not fail the request: the rows are already
# committed and the next backfill run picks them up (it selects every
# row with embedded_at IS NULL). task_id is then null.
# =============================================================================

import logging

from fastapi import APIRouter, Depends

from transcript_qa.api.deps import get_knowledge_store
from transcript_qa.models.requests import KnowledgeIngestRequest
from transcript_qa.models.responses import KnowledgeIngestResponse
from transcript_qa.services.knowledge_store import KnowledgeStore, VideoRecord
from transcript_qa.workers.tasks import backfill_embeddings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Knowledge"])


@router.post(
    "/knowledge",
    response_model=KnowledgeIngestResponse,
    status_code=202,
    summary="Add video records to the knowledge base",
    description=(
        "Stores records whose link is not already known and enqueues the "
        "embedding backfill for them."
    ),
)
async def ingest_knowledge(
    request: KnowledgeIngestRequest,
    store: KnowledgeStore = Depends(get_knowledge_store),
) -> KnowledgeIngestResponse:
    records = [
        VideoRecord(
            title=item.title.strip(),
            channel_name=item.channel_name.strip(),
            link=item.link.strip(),
            date=item.date,
            summary=item.summary,
            transcript=item.transcript,
            video_type=item.video_type,
        )
        for item in request.items
    ]

    outcome = await store.add_videos(records)

    task_id: str | None = None
    if outcome.added:
        try:
            task_id = backfill_embeddings.delay().id
        except Exception as exc:
            logger.warning("Could not enqueue embedding backfill: %s", exc)

    logger.info(
        "Knowledge ingest: total=%d added=%d skipped=%d task_id=%s",
        outcome.total, outcome.added, outcome.skipped, task_id,
    )
    return KnowledgeIngestResponse(
        total=outcome.total,
        added=outcome.added,
        skipped=outcome.skipped,
        task_id=task_id,
    )
