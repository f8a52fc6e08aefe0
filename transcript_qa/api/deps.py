# =============================================================================
# API Dependencies — FastAPI Dependency Injection
# =============================================================================
#
# Route handlers never build stores or the coordinator themselves; they
# receive them through Depends(). Tests replace any of these with
# app.dependency_overrides[...] = lambda: fake.
#
# DESIGN DECISION: Process-wide singletons via lru_cache.
# The coordinator compiles a LangGraph graph and the providers hold SDK
# configuration; both are built once per process on first request rather
# than at import time, so importing the app needs no database or keys.
# =============================================================================

from __future__ import annotations

import logging
from functools import lru_cache

from transcript_qa.agents.cascade import ExternalSearchCascade
from transcript_qa.agents.coordinator import ResolutionCoordinator
from transcript_qa.agents.recorder import InteractionRecorder
from transcript_qa.agents.resolver import InternalKnowledgeResolver
from transcript_qa.config import get_settings
from transcript_qa.services.conversation_store import (
    ConversationStore,
    SqlConversationStore,
)
from transcript_qa.services.knowledge_store import KnowledgeStore, SqlKnowledgeStore
from transcript_qa.services.vectorstore import get_vector_store
from transcript_qa.services.web_search import build_providers

logger = logging.getLogger(__name__)


@lru_cache
def get_knowledge_store() -> KnowledgeStore:
    return SqlKnowledgeStore()


@lru_cache
def get_conversation_store() -> ConversationStore:
    return SqlConversationStore()


@lru_cache
def get_coordinator() -> ResolutionCoordinator:
    """Assemble the pipeline from the configured collaborators."""
    settings = get_settings()

    resolver = InternalKnowledgeResolver(
        get_knowledge_store(),
        get_vector_store(),
        store_timeout=settings.store_timeout_seconds,
        embedding_timeout=settings.embedding_timeout_seconds,
        semantic_top_k=settings.semantic_top_k,
        recent_limit=settings.recent_limit,
        similarity_threshold=settings.retrieval_similarity_threshold,
    )
    cascade = ExternalSearchCascade(
        build_providers(settings),
        timeout=settings.provider_timeout_seconds,
    )
    recorder = InteractionRecorder(
        get_conversation_store(),
        title_max_chars=settings.conversation_title_max_chars,
    )

    logger.info("Resolution coordinator ready")
    return ResolutionCoordinator(resolver, cascade, recorder)


def get_optional_coordinator() -> ResolutionCoordinator | None:
    """
    The coordinator, or None when it cannot be assembled.

    Building it touches the vector store backend and the cascade
    configuration; /ask turns a None into an ERROR answer instead of a 500.
    """
    try:
        return get_coordinator()
    except Exception:
        logger.exception("Could not assemble the resolution coordinator")
        return None
