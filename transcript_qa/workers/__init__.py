# =============================================================================
# Workers Package — Celery Background Tasks
# =============================================================================
#   - celery_app.py: Celery application configuration
#   - tasks.py: backfill_embeddings, which embeds videos added via
#     POST /knowledge so semantic search can find them
#
# Embedding a large ingest batch is network-bound and slow; running it in
# a worker lets POST /knowledge return as soon as the rows are stored.
# =============================================================================
