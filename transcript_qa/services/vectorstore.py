# =============================================================================
# Vector Store Abstraction — Pluggable Backend Protocol
# =============================================================================
#
# Similarity search over video embeddings, with concrete implementations
# for pgvector (PostgreSQL) and ChromaDB.
#
# DESIGN DECISION: Protocol (structural typing) over ABC (nominal typing).
# Any class with the right methods can be plugged in, including the
# in-memory fakes the tests use.
#
# DESIGN DECISION: Mixed sync/async interface.
# - add_embeddings() is sync → called by the Celery backfill task
# - search() is async → called by the internal resolver during /ask
#
# DESIGN DECISION: Similarity may be unknown.
# VideoMatch.similarity_score is `float | None`. Both built-in backends
# always fill it, but the resolver treats a missing score as "neutral"
# (see confidence.SEMANTIC_DEFAULT) so third-party stores that only
# return ranked rows still work.
#
# ARCHITECTURE:
#   VectorStore (Protocol)
#   ├── PgVectorStore     — `videos.embedding` column + pgvector operators
#   │   ├── add_embeddings() — sync via get_sync_session (Celery)
#   │   └── search()         — async via async_session_factory (FastAPI)
#   └── ChromaVectorStore — ChromaDB collection (in-process or client/server)
#       ├── add_embeddings() — sync (ChromaDB client is sync)
#       └── search()         — async via asyncio.to_thread() wrapper
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import chromadb
from sqlalchemy import select, update

from transcript_qa.config import settings
from transcript_qa.db.engine import async_session_factory, get_sync_session
from transcript_qa.db.models import Video

logger = logging.getLogger(__name__)

CHROMA_COLLECTION = "video_transcripts"


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class VideoMatch:
    """
    A single result from vector similarity search.

    Carries enough of the video to build an answer and its reference
    without a second round-trip to the knowledge store.
    """

    video_id: int
    title: str
    channel_name: str
    link: str
    date: datetime | None = None
    summary: str | None = None
    transcript: str = ""
    similarity_score: float | None = None  # cosine similarity, higher = closer


@dataclass
class EmbeddingRow:
    """One video to be written to the vector store by the backfill task."""

    video_id: int
    document: str
    embedding: list[float]
    title: str
    channel_name: str
    link: str
    date: datetime | None = None
    summary: str | None = None
    transcript: str = ""


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class VectorStore(Protocol):
    """Interface shared by the pgvector and ChromaDB backends."""

    def add_embeddings(self, rows: list[EmbeddingRow]) -> int:
        """
        Store video embeddings. Sync (for Celery).

        Returns:
            Number of rows written.
        """
        ...

    async def search(
        self,
        query_embedding: list[float],
        top_k: int = 5,
        threshold: float = 0.0,
    ) -> list[VideoMatch]:
        """
        Find the videos most similar to the query. Async (for FastAPI).

        Args:
            query_embedding: The query vector.
            top_k: Maximum number of matches.
            threshold: Minimum cosine similarity for a match to be returned.

        Returns:
            Matches sorted by similarity (highest first).
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: pgvector (PostgreSQL)
# ---------------------------------------------------------------------------


class PgVectorStore:
    """
    pgvector-backed store using the `embedding` column of `videos`.

    pgvector's cosine_distance() returns values in [0, 2]; similarity is
    reported as 1 - distance.
    """

    def add_embeddings(self, rows: list[EmbeddingRow]) -> int:
        """Write each row's vector into its video record."""
        with get_sync_session() as session:
            for row in rows:
                session.execute(
                    update(Video)
                    .where(Video.id == row.video_id)
                    .values(embedding=row.embedding)
                )

        logger.info("Stored %d video embeddings in pgvector", len(rows))
        return len(rows)

    async def search(
        self,
        query_embedding: list[float],
        top_k: int = 5,
        threshold: float = 0.0,
    ) -> list[VideoMatch]:
        distance = Video.embedding.cosine_distance(query_embedding)
        stmt = (
            select(Video, distance.label("distance"))
            .where(Video.embedding.is_not(None))
            .where(distance <= 1.0 - threshold)
            .order_by(distance)
            .limit(top_k)
        )

        async with async_session_factory() as session:
            rows = (await session.execute(stmt)).all()

        logger.debug(
            "Vector search returned %d rows (top_k=%d, threshold=%.2f)",
            len(rows), top_k, threshold,
        )

        return [
            VideoMatch(
                video_id=video.id,
                title=video.title,
                channel_name=video.channel_name,
                link=video.link,
                date=video.date,
                summary=video.summary,
                transcript=video.transcript,
                similarity_score=round(1.0 - dist, 4),
            )
            for video, dist in rows
        ]


# ---------------------------------------------------------------------------
# Implementation 2: ChromaDB
# ---------------------------------------------------------------------------


class ChromaVectorStore:
    """
    ChromaDB-backed store with one collection for the whole corpus.

    Video fields needed to build answers are copied into the Chroma
    metadata, since search results never touch PostgreSQL.

    ChromaDB supports both in-process and client/server modes:
    - In-process (default): no extra infra, data held in memory
    - Client/server: set CHROMA_URL
    """

    def __init__(
        self,
        client=None,
        collection_name: str = CHROMA_COLLECTION,
    ) -> None:
        if client is not None:
            self._client = client
        elif settings.chroma_url:
            self._client = chromadb.HttpClient(host=settings.chroma_url)
        else:
            self._client = chromadb.Client()

        # Cosine distance to match the pgvector backend
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
        )

    def add_embeddings(self, rows: list[EmbeddingRow]) -> int:
        if not rows:
            return 0

        # upsert: re-running the backfill for a video replaces its entry
        self._collection.upsert(
            ids=[f"video{row.video_id}" for row in rows],
            documents=[row.document for row in rows],
            embeddings=[row.embedding for row in rows],
            metadatas=[_row_metadata(row) for row in rows],
        )

        logger.info("Stored %d video embeddings in ChromaDB", len(rows))
        return len(rows)

    async def search(
        self,
        query_embedding: list[float],
        top_k: int = 5,
        threshold: float = 0.0,
    ) -> list[VideoMatch]:
        """
        Similarity search in ChromaDB.

        The Chroma client is synchronous, so the query runs in a worker
        thread to keep the event loop free.
        """

        def _sync_search() -> list[VideoMatch]:
            results = self._collection.query(
                query_embeddings=[query_embedding],
                n_results=top_k,
                include=["metadatas", "distances"],
            )

            matches: list[VideoMatch] = []
            if not (results and results["ids"] and results["ids"][0]):
                return matches

            for i in range(len(results["ids"][0])):
                distance = (
                    results["distances"][0][i] if results["distances"] else 0.0
                )
                similarity = round(1.0 - distance, 4)
                if similarity < threshold:
                    continue
                metadata = results["metadatas"][0][i] if results["metadatas"] else {}
                matches.append(_match_from_metadata(metadata, similarity))

            return matches

        return await asyncio.to_thread(_sync_search)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------


def get_vector_store(
    override_type: str | None = None,
) -> PgVectorStore | ChromaVectorStore:
    """
    Return the configured vector store backend.

    Reads `vectorstore_type` from settings:
    - "pgvector" → PgVectorStore (default, no extra infra)
    - "chroma" → ChromaVectorStore
    """
    store_type = override_type or settings.vectorstore_type

    if store_type == "chroma":
        logger.info("Using ChromaDB vector store")
        return ChromaVectorStore()

    logger.info("Using pgvector vector store")
    return PgVectorStore()


# ---------------------------------------------------------------------------
# Internal Helpers
# ---------------------------------------------------------------------------


def _row_metadata(row: EmbeddingRow) -> dict:
    """
    Flatten an EmbeddingRow into Chroma-compatible metadata.

    ChromaDB only accepts str, int, float and bool values, so None becomes
    "" and datetimes become ISO strings.
    """
    return {
        "video_id": row.video_id,
        "title": row.title,
        "channel_name": row.channel_name,
        "link": row.link,
        "date": row.date.isoformat() if row.date else "",
        "summary": row.summary or "",
        "transcript": row.transcript[:1000],
    }


def _match_from_metadata(metadata: dict, similarity: float) -> VideoMatch:
    raw_date = metadata.get("date") or ""
    return VideoMatch(
        video_id=int(metadata.get("video_id", 0)),
        title=metadata.get("title", ""),
        channel_name=metadata.get("channel_name", ""),
        link=metadata.get("link", ""),
        date=datetime.fromisoformat(raw_date) if raw_date else None,
        summary=metadata.get("summary") or None,
        transcript=metadata.get("transcript", ""),
        similarity_score=similarity,
    )
