# =============================================================================
# Unit Tests — Embedding Backfill Task
# =============================================================================
#
# The task body runs synchronously via backfill_embeddings.run(), with the
# database helpers, embedder and vector store patched out.
# =============================================================================

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import Retry

from transcript_qa.workers.tasks import (
    MAX_EMBEDDING_TEXT_CHARS,
    TRANSCRIPT_EXCERPT_CHARS,
    backfill_embeddings,
    build_embedding_text,
)

TASKS = "transcript_qa.workers.tasks"


def _video(video_id: int, *, transcript: str = "A transcript long enough to be worth embedding.") -> SimpleNamespace:
    return SimpleNamespace(
        id=video_id,
        title=f"Video {video_id}",
        channel_name="Alpha",
        link=f"https://youtube.com/watch?v={video_id}",
        date=None,
        summary=None,
        transcript=transcript,
    )


def _fake_embed(texts):
    return [[0.1, 0.2, 0.3] for _ in texts]


class TestBuildEmbeddingText:
    def test_all_parts(self):
        assert build_embedding_text("Ep 1", "About ETH", "Hello") == (
            "Title: Ep 1\nSummary: About ETH\nTranscript: Hello"
        )

    def test_missing_summary(self):
        assert build_embedding_text("Ep 1", None, "Hello") == "Title: Ep 1\nTranscript: Hello"

    def test_transcript_excerpt(self):
        text = build_embedding_text("Ep", None, "x" * 5000)
        assert text.count("x") == TRANSCRIPT_EXCERPT_CHARS

    def test_overall_cap(self):
        text = build_embedding_text("T" * 20000, None, None)
        assert len(text) == MAX_EMBEDDING_TEXT_CHARS


class TestBackfill:
    def test_embeds_pages_and_skips_short_records(self):
        pages = [[_video(1), _video(2, transcript="")], [_video(3)], []]
        vector_store = MagicMock()

        with patch(f"{TASKS}._next_page", side_effect=pages) as next_page, \
             patch(f"{TASKS}._mark_embedded") as mark, \
             patch(f"{TASKS}.embed_batch", side_effect=_fake_embed), \
             patch(f"{TASKS}.get_vector_store", return_value=vector_store):
            result = backfill_embeddings.run()

        assert result == {"processed": 2, "skipped": 1, "failed": 0}
        assert [c.args[0] for c in next_page.call_args_list] == [0, 2, 3]
        assert [c.args[0] for c in mark.call_args_list] == [[1], [3]]

        rows = vector_store.add_embeddings.call_args_list[0].args[0]
        assert [r.video_id for r in rows] == [1]
        assert rows[0].embedding == [0.1, 0.2, 0.3]
        assert rows[0].document.startswith("Title: Video 1")

    def test_failed_page_is_counted_and_left_unmarked(self):
        pages = [[_video(1), _video(2)], [_video(3)], []]
        embed = MagicMock(side_effect=[RuntimeError("rate limited"), [[0.1]]])

        with patch(f"{TASKS}._next_page", side_effect=pages), \
             patch(f"{TASKS}._mark_embedded") as mark, \
             patch(f"{TASKS}.embed_batch", embed), \
             patch(f"{TASKS}.get_vector_store", return_value=MagicMock()):
            result = backfill_embeddings.run()

        assert result == {"processed": 1, "skipped": 0, "failed": 2}
        mark.assert_called_once_with([3])

    def test_retries_after_consecutive_failures(self):
        pages = [[_video(i)] for i in range(1, 10)]

        with patch(f"{TASKS}._next_page", side_effect=pages), \
             patch(f"{TASKS}._mark_embedded") as mark, \
             patch(f"{TASKS}.embed_batch", side_effect=RuntimeError("API down")) as embed, \
             patch(f"{TASKS}.get_vector_store", return_value=MagicMock()), \
             patch.object(backfill_embeddings, "retry", side_effect=Retry()) as retry:
            with pytest.raises(Retry):
                backfill_embeddings.run()

        assert embed.call_count == 5
        mark.assert_not_called()
        assert isinstance(retry.call_args.kwargs["exc"], RuntimeError)

    def test_nothing_to_do(self):
        with patch(f"{TASKS}._next_page", return_value=[]), \
             patch(f"{TASKS}.get_vector_store", return_value=MagicMock()):
            assert backfill_embeddings.run() == {"processed": 0, "skipped": 0, "failed": 0}
