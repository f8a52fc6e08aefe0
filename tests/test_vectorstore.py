# =============================================================================
# Unit Tests — Vector Store (ChromaDB backend)
# =============================================================================
#
# Tests ChromaDB vector store operations: upsert, search, threshold
# filtering and the metadata round-trip back into VideoMatch.
# Uses ChromaDB's in-process mode (no external services needed).
# pgvector tests are skipped here — they require a running PostgreSQL instance.
# =============================================================================

import asyncio
import uuid
from datetime import UTC, datetime

import chromadb

from transcript_qa.services.vectorstore import ChromaVectorStore, EmbeddingRow, VideoMatch


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _make_store() -> ChromaVectorStore:
    """Fresh store on its own collection, so vector dimensions never clash."""
    return ChromaVectorStore(
        client=chromadb.EphemeralClient(),
        collection_name=f"test_videos_{uuid.uuid4().hex}",
    )


def _row(video_id: int, embedding: list[float], **overrides) -> EmbeddingRow:
    values = dict(
        video_id=video_id,
        document=f"Title: Video {video_id}",
        embedding=embedding,
        title=f"Video {video_id}",
        channel_name="Alpha",
        link=f"https://youtube.com/watch?v={video_id}",
        date=datetime(2024, 3, video_id, tzinfo=UTC),
        summary=f"Summary {video_id}",
        transcript="t" * 2000,
    )
    values.update(overrides)
    return EmbeddingRow(**values)


class TestChromaVectorStore:
    def test_add_embeddings_returns_count(self):
        store = _make_store()
        assert store.add_embeddings([_row(1, [1.0, 0.0, 0.0]), _row(2, [0.0, 1.0, 0.0])]) == 2

    def test_add_nothing(self):
        assert _make_store().add_embeddings([]) == 0

    def test_search_orders_by_similarity(self):
        store = _make_store()
        store.add_embeddings([_row(1, [1.0, 0.0, 0.0]), _row(2, [0.7, 0.7, 0.0])])

        results = _run(store.search(query_embedding=[1.0, 0.0, 0.0], top_k=2))

        assert len(results) == 2
        assert all(isinstance(r, VideoMatch) for r in results)
        assert [r.video_id for r in results] == [1, 2]
        assert results[0].similarity_score >= results[1].similarity_score

    def test_threshold_filters_weak_matches(self):
        store = _make_store()
        store.add_embeddings([_row(1, [1.0, 0.0, 0.0]), _row(2, [0.0, 1.0, 0.0])])

        results = _run(store.search(query_embedding=[1.0, 0.0, 0.0], top_k=2, threshold=0.7))

        assert [r.video_id for r in results] == [1]

    def test_metadata_round_trip(self):
        store = _make_store()
        store.add_embeddings([_row(3, [1.0, 0.0, 0.0])])

        match = _run(store.search(query_embedding=[1.0, 0.0, 0.0], top_k=1))[0]

        assert match.title == "Video 3"
        assert match.channel_name == "Alpha"
        assert match.link == "https://youtube.com/watch?v=3"
        assert match.date == datetime(2024, 3, 3, tzinfo=UTC)
        assert match.summary == "Summary 3"
        assert len(match.transcript) == 1000

    def test_missing_summary_and_date(self):
        store = _make_store()
        store.add_embeddings([_row(1, [1.0, 0.0, 0.0], summary=None, date=None)])

        match = _run(store.search(query_embedding=[1.0, 0.0, 0.0], top_k=1))[0]

        assert match.summary is None
        assert match.date is None

    def test_upsert_replaces_existing_entry(self):
        store = _make_store()
        store.add_embeddings([_row(1, [1.0, 0.0, 0.0], title="Old title")])
        store.add_embeddings([_row(1, [1.0, 0.0, 0.0], title="New title")])

        results = _run(store.search(query_embedding=[1.0, 0.0, 0.0], top_k=5))

        assert [r.title for r in results] == ["New title"]

    def test_empty_collection(self):
        results = _run(_make_store().search(query_embedding=[1.0, 0.0, 0.0], top_k=3))
        assert results == []
