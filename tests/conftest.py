# =============================================================================
# Shared Test Fakes
# =============================================================================
#
# In-memory stand-ins for the collaborators that normally need PostgreSQL,
# an embeddings API or a web provider. They implement the same protocols
# (KnowledgeStore, VectorStore, ConversationStore, SearchProvider), so the
# real resolver, cascade, recorder and coordinator run against them.
# =============================================================================

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime

import pytest

from transcript_qa.models.conversations import ConversationRecord, Message
from transcript_qa.services.knowledge_store import IngestOutcome, VideoRecord
from transcript_qa.services.vectorstore import VideoMatch
from transcript_qa.services.web_search import ProviderFailure, ProviderSuccess


class FakeKnowledgeStore:
    """KnowledgeStore over a list of VideoRecord. Set `error` to make every call raise."""

    def __init__(self, videos: list[VideoRecord] | None = None) -> None:
        self.videos = list(videos or [])
        self.error: Exception | None = None
        self.delay: float = 0.0

    async def _enter(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error

    def _newest_first(self, videos):
        oldest = datetime.min.replace(tzinfo=UTC)
        return sorted(videos, key=lambda v: v.date or oldest, reverse=True)

    async def find_by_title(self, title: str) -> VideoRecord | None:
        await self._enter()
        hits = [v for v in self.videos if title.lower() in v.title.lower()]
        return self._newest_first(hits)[0] if hits else None

    async def list_channels(self) -> list[str]:
        await self._enter()
        return sorted({v.channel_name for v in self.videos if v.channel_name})

    async def count_channel(self, name: str) -> int:
        await self._enter()
        return sum(1 for v in self.videos if name.lower() in v.channel_name.lower())

    async def recent(self, term: str, *, by_channel: bool, limit: int) -> list[VideoRecord]:
        await self._enter()
        needle = term.lower()
        if by_channel:
            hits = [v for v in self.videos if needle in v.channel_name.lower()]
        else:
            hits = [
                v for v in self.videos
                if needle in v.title.lower() or needle in v.channel_name.lower()
            ]
        return self._newest_first(hits)[:limit]

    async def add_videos(self, records: Sequence[VideoRecord]) -> IngestOutcome:
        await self._enter()
        known = {v.link for v in self.videos}
        added = 0
        for record in records:
            if record.link in known:
                continue
            known.add(record.link)
            self.videos.append(record)
            added += 1
        return IngestOutcome(total=len(records), added=added, skipped=len(records) - added)


class FakeVectorStore:
    """VectorStore returning a fixed list of matches and recording each search."""

    def __init__(self, matches: list[VideoMatch] | None = None) -> None:
        self.matches = list(matches or [])
        self.searches: list[dict] = []
        self.error: Exception | None = None

    def add_embeddings(self, rows) -> int:
        return len(rows)

    async def search(self, query_embedding, top_k=5, threshold=0.0):
        self.searches.append(
            {"query_embedding": query_embedding, "top_k": top_k, "threshold": threshold}
        )
        if self.error is not None:
            raise self.error
        return self.matches[:top_k]


class InMemoryConversationStore:
    """
    ConversationStore kept in a dict.

    append() yields to the event loop between its read and its write, the
    way a real store does across its network round-trips.
    """

    def __init__(self) -> None:
        self.records: dict[str, ConversationRecord] = {}
        self.error: Exception | None = None

    async def get(self, conversation_id: str) -> ConversationRecord | None:
        return self.records.get(conversation_id)

    async def append(self, conversation_id: str, messages: Sequence[Message], title: str) -> None:
        if self.error is not None:
            raise self.error
        current = self.records.get(conversation_id)
        existing = list(current.messages) if current else []
        await asyncio.sleep(0)
        self.records[conversation_id] = ConversationRecord(
            id=conversation_id,
            title=current.title if current else title,
            messages=[*existing, *messages],
            created_at=current.created_at if current else datetime.now(UTC),
        )


class FakeProvider:
    """
    SearchProvider with a scripted behaviour.

    Exactly one of `text`, `failure`, `error` or `delay` drives the outcome.
    """

    def __init__(
        self,
        name: str,
        *,
        text: str | None = None,
        references=None,
        failure: str | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        confidence: float = 0.75,
    ) -> None:
        self.name = name
        self.confidence = confidence
        self._text = text
        self._references = list(references or [])
        self._failure = failure
        self._error = error
        self._delay = delay
        self.calls: list[str] = []

    async def answer(self, question: str):
        self.calls.append(question)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        if self._failure is not None or self._text is None:
            return ProviderFailure(self._failure or "no answer")
        return ProviderSuccess(text=self._text, references=self._references)


def make_video(
    title: str,
    channel: str = "Alpha",
    *,
    day: int = 1,
    summary: str | None = "A summary of the video.",
    transcript: str = "Full transcript text.",
) -> VideoRecord:
    slug = title.lower().replace(" ", "-")
    return VideoRecord(
        title=title,
        channel_name=channel,
        link=f"https://youtube.com/watch?v={slug}",
        date=datetime(2024, 3, day, tzinfo=UTC),
        summary=summary,
        transcript=transcript,
    )


def make_match(title: str, score: float | None, summary: str | None = "Matched summary.") -> VideoMatch:
    return VideoMatch(
        video_id=abs(hash(title)) % 1000,
        title=title,
        channel_name="Alpha",
        link=f"https://youtube.com/watch?v={title.lower().replace(' ', '-')}",
        date=datetime(2024, 3, 1, tzinfo=UTC),
        summary=summary,
        transcript="Transcript of " + title,
        similarity_score=score,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def knowledge_store() -> FakeKnowledgeStore:
    return FakeKnowledgeStore()


@pytest.fixture
def vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def conversation_store() -> InMemoryConversationStore:
    return InMemoryConversationStore()


@pytest.fixture
def video_factory():
    return make_video


@pytest.fixture
def match_factory():
    return make_match


@pytest.fixture
def provider_factory():
    return FakeProvider
