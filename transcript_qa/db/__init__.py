# =============================================================================
# Database Package
# =============================================================================
# Async (and lazily-created sync) SQLAlchemy engines, sessions, ORM models.
#
# Key exports:
#   - async_session_factory: API-side sessions
#   - get_sync_session: Celery-side sessions
#   - Video, Conversation: ORM models
# =============================================================================
