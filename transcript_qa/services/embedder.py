# =============================================================================
# Embedding Service — Vectors for Videos and Questions
# =============================================================================
#
# Two consumers:
#   - the Celery backfill task embeds video records in batches (embed_batch)
#   - the internal resolver embeds the user's question (embed_query),
#     calling it through asyncio.to_thread so the event loop is not blocked
#
# Any OpenAI-compatible embeddings endpoint works; point
# EMBEDDING_BASE_URL at it.
#
# Retries are not handled here. The backfill task owns its own failure
# policy and the resolver converts errors into a fallback.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence

from openai import OpenAI

from transcript_qa.config import settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Embedding Client — Lazy Singleton
# ---------------------------------------------------------------------------
# Created on first use so importing this module never needs an API key.
# Key resolution order: OPENAI_API_KEY, then LLM_API_KEY.
# ---------------------------------------------------------------------------

_client: OpenAI | None = None


def _get_client() -> OpenAI:
    """Lazily initialize and cache the embedding client."""
    global _client
    if _client is None:
        resolved_key = settings.openai_api_key or settings.llm_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for embeddings. "
                "Set OPENAI_API_KEY or LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": resolved_key}
        if settings.embedding_base_url:
            client_kwargs["base_url"] = settings.embedding_base_url

        _client = OpenAI(**client_kwargs)
        logger.info(
            "Initialized embedding client (model=%s, base_url=%s)",
            settings.embedding_model,
            settings.embedding_base_url or "https://api.openai.com/v1",
        )
    return _client


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def embed_batch(
    texts: Sequence[str],
    batch_size: int | None = None,
) -> list[list[float]]:
    """
    Embed many texts, returning vectors in input order.

    Args:
        texts: Texts to embed.
        batch_size: Texts per API call (default settings.embedding_batch_size).

    Raises:
        ValueError: If no embedding API key is configured.
        openai.APIError: If the embeddings call fails.
    """
    if not texts:
        return []

    client = _get_client()
    step = batch_size or settings.embedding_batch_size
    vectors: list[list[float]] = [[] for _ in texts]

    for start in range(0, len(texts), step):
        batch = list(texts[start : start + step])
        create_kwargs: dict = {"model": settings.embedding_model, "input": batch}
        if settings.embedding_dimensions:
            create_kwargs["dimensions"] = settings.embedding_dimensions

        response = client.embeddings.create(**create_kwargs)

        # Items carry their input index; place them by it
        for item in response.data:
            vectors[start + item.index] = item.embedding

        logger.debug(
            "Embedded texts %d-%d of %d",
            start + 1, min(start + step, len(texts)), len(texts),
        )

    logger.info(
        "Generated %d embeddings (model=%s)", len(texts), settings.embedding_model,
    )
    return vectors


def embed_query(text: str) -> list[float]:
    """Embed a single question for similarity search."""
    return embed_batch([text], batch_size=1)[0]
