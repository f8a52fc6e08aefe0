# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - ask.py: POST /ask, the question-answering endpoint
#   - conversations.py: GET /conversations/{id}
#   - knowledge.py: POST /knowledge, corpus ingestion + embedding backfill
#   - deps.py: dependency providers (coordinator, stores)
# =============================================================================
