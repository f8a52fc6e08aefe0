# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
# Request/response schemas for the API plus the conversation read model.
# Kept apart from the ORM models in transcript_qa/db/models.py so embedding
# vectors and other storage details never reach the wire.
# =============================================================================
