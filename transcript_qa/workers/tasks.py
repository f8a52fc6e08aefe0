# =============================================================================
# Celery Task Definitions — Embedding Backfill
# =============================================================================
#
# `backfill_embeddings` embeds every video that has no vector yet:
#
#   1. Page through videos with embedded_at IS NULL (keyset on id)
#   2. Build the embedding text: title, summary, transcript excerpt
#   3. Skip records whose text is too short to be meaningful
#   4. Embed the page in one batch call
#   5. Write vectors to the vector store (pgvector or Chroma)
#   6. Stamp embedded_at
#
# IMPORTANT: Celery workers are SYNCHRONOUS.
# - No async/await here
# - Sync SQLAlchemy engine only (get_sync_session)
#
# FAILURE POLICY:
# A failed page is counted and skipped. After
# backfill_max_consecutive_failures failed pages in a row the run stops
# and Celery retries it later; by then rows from the failed pages still
# have embedded_at IS NULL and are picked up again.
# =============================================================================

import logging
from datetime import UTC, datetime

from sqlalchemy import select, update

from transcript_qa.config import settings
from transcript_qa.db.engine import get_sync_session
from transcript_qa.db.models import Video
from transcript_qa.services.embedder import embed_batch
from transcript_qa.services.vectorstore import EmbeddingRow, get_vector_store
from transcript_qa.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

TRANSCRIPT_EXCERPT_CHARS = 1000
MAX_EMBEDDING_TEXT_CHARS = 15000
MIN_EMBEDDING_TEXT_CHARS = 50


def build_embedding_text(
    title: str,
    summary: str | None,
    transcript: str | None,
) -> str:
    """
    Text embedded for one video.

    >>> build_embedding_text("Ep 1", "About ETH", "Hello")
    'Title: Ep 1\\nSummary: About ETH\\nTranscript: Hello'
    """
    parts = [f"Title: {title}"]
    if summary:
        parts.append(f"Summary: {summary}")
    if transcript:
        parts.append(f"Transcript: {transcript[:TRANSCRIPT_EXCERPT_CHARS]}")
    return "\n".join(parts)[:MAX_EMBEDDING_TEXT_CHARS]


def _next_page(last_id: int, limit: int) -> list[Video]:
    with get_sync_session() as session:
        return list(
            session.execute(
                select(Video)
                .where(Video.embedded_at.is_(None), Video.id > last_id)
                .order_by(Video.id)
                .limit(limit)
            ).scalars().all()
        )


def _mark_embedded(video_ids: list[int]) -> None:
    with get_sync_session() as session:
        session.execute(
            update(Video)
            .where(Video.id.in_(video_ids))
            .values(embedded_at=datetime.now(UTC))
        )


@celery_app.task(
    bind=True,
    name="backfill_embeddings",
    max_retries=3,
    default_retry_delay=60,
)
def backfill_embeddings(self) -> dict:
    """
    Embed all videos that do not have a vector yet.

    Returns:
        {"processed": n, "skipped": n, "failed": n}
    """
    task_id = self.request.id
    batch_size = settings.backfill_batch_size
    max_failures = settings.backfill_max_consecutive_failures
    vector_store = get_vector_store()

    processed = skipped = failed = 0
    consecutive_failures = 0
    last_id = 0

    logger.info(
        "[%s] Starting embedding backfill (batch=%d, vectorstore=%s)",
        task_id, batch_size, settings.vectorstore_type,
    )

    while True:
        videos = _next_page(last_id, batch_size)
        if not videos:
            break
        last_id = videos[-1].id

        pending: list[tuple[Video, str]] = []
        for video in videos:
            text = build_embedding_text(video.title, video.summary, video.transcript)
            if len(text) < MIN_EMBEDDING_TEXT_CHARS:
                logger.debug("[%s] Skipping video %d: text too short", task_id, video.id)
                skipped += 1
                continue
            pending.append((video, text))

        if not pending:
            continue

        try:
            vectors = embed_batch([text for _, text in pending])
            vector_store.add_embeddings([
                EmbeddingRow(
                    video_id=video.id,
                    document=text,
                    embedding=vector,
                    title=video.title,
                    channel_name=video.channel_name,
                    link=video.link,
                    date=video.date,
                    summary=video.summary,
                    transcript=video.transcript,
                )
                for (video, text), vector in zip(pending, vectors, strict=True)
            ])
            _mark_embedded([video.id for video, _ in pending])
        except Exception as exc:
            failed += len(pending)
            consecutive_failures += 1
            logger.warning(
                "[%s] Backfill of videos %d-%d failed (%d in a row): %s",
                task_id, pending[0][0].id, pending[-1][0].id,
                consecutive_failures, exc,
            )
            if consecutive_failures >= max_failures:
                logger.error(
                    "[%s] Stopping backfill after %d consecutive failures",
                    task_id, consecutive_failures,
                )
                raise self.retry(exc=exc)
            continue

        consecutive_failures = 0
        processed += len(pending)
        logger.info("[%s] Embedded %d videos (total %d)", task_id, len(pending), processed)

    summary = {"processed": processed, "skipped": skipped, "failed": failed}
    logger.info("[%s] Backfill complete: %s", task_id, summary)
    return summary
