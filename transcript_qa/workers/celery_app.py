# =============================================================================
# Celery Application Configuration
# =============================================================================
#
# Celery runs the embedding backfill outside the API process:
#   POST /knowledge → rows committed → backfill_embeddings.delay()
#
# ARCHITECTURE:
# ┌──────────┐     ┌───────┐     ┌──────────────┐     ┌───────┐
# │ FastAPI  │────▶│ Redis │────▶│ Celery Worker│────▶│ Redis │
# │(producer)│     │(broker)│    │  (consumer)  │     │(result)│
# └──────────┘     └───────┘     └──────────────┘     └───────┘
#    db 0 ──────────┘                                    └── db 1
# =============================================================================

from celery import Celery

from transcript_qa.config import settings

celery_app = Celery(
    "transcript_qa.workers",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
)

celery_app.conf.update(
    # JSON only: pickle would execute arbitrary code on deserialisation
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Acknowledge after completion so a crashed worker's task is re-queued
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # One task at a time per worker; backfill runs are long
    worker_prefetch_multiplier=1,

    # Soft limit lets the task log before the hard kill
    task_soft_time_limit=900,
    task_time_limit=1200,

    result_expires=3600,

    include=["transcript_qa.workers.tasks"],
)
