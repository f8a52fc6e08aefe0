# =============================================================================
# Internal Knowledge Resolver — Answer from the Video Corpus
# =============================================================================
#
# resolve(intent, question) runs the one lookup the intent calls for and
# returns a Resolution: the internal Answer plus a `needs_fallback` flag
# telling the coordinator the web should be consulted.
#
#   LIST_CHANNELS           → distinct channel names
#   GET_TRANSCRIPT          → transcript of the quoted title
#   GET_SUMMARY             → summary of the quoted title
#   CHECK_CHANNEL_EXISTS    → does the quoted channel exist
#   RECENT_CHANNEL_INFO     → newest videos of the quoted channel
#   RECENT_VIDEO_INFO       → newest videos matching the quoted term
#   GENERIC_SEARCH          → embedding similarity search
#   REQUIRES_EXTERNAL_INFO  → no lookup, fallback flagged immediately
#
# DESIGN DECISION: Never raises.
# Every store / embedding call is bounded by a timeout, and any exception
# (timeout included) becomes a zero-confidence NONE answer with the
# fallback flag set. The coordinator can rely on always getting a
# Resolution back.
#
# Placeholder answers ("I couldn't find…", "Please specify…") are plain
# strings; is_placeholder() lets the coordinator refuse to surface them
# as a last-resort DATABASE_FALLBACK answer.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime

from transcript_qa.agents import confidence
from transcript_qa.agents.answers import (
    Answer,
    AnswerSource,
    Reference,
    Resolution,
    empty_answer,
)
from transcript_qa.agents.classifier import QueryIntent, extract_quoted
from transcript_qa.services.embedder import embed_query
from transcript_qa.services.knowledge_store import KnowledgeStore
from transcript_qa.services.vectorstore import VectorStore

logger = logging.getLogger(__name__)

NOT_FOUND_PREFIX = "I couldn't find"
SPECIFY_PREFIX = "Please specify"
_PLACEHOLDER_PREFIXES = (NOT_FOUND_PREFIX, SPECIFY_PREFIX)

SNIPPET_CHARS = 150
EXCERPT_CHARS = 300
DATE_FORMAT = "%B %d, %Y"


def is_placeholder(text: str) -> bool:
    """True for the canned "couldn't find" / "please specify" answers."""
    return text.startswith(_PLACEHOLDER_PREFIXES)


def format_date(value: datetime | None) -> str | None:
    return value.strftime(DATE_FORMAT) if value else None


def video_reference(video) -> Reference:
    """Reference for a VideoRecord or VideoMatch (same field names)."""
    return Reference(
        title=video.title,
        link=video.link,
        snippet=video.summary[:SNIPPET_CHARS] if video.summary else None,
        date=format_date(video.date),
    )


def _excerpt(video) -> str:
    if video.summary:
        return video.summary
    if video.transcript:
        return video.transcript[:EXCERPT_CHARS]
    return "No summary available."


def _database(text: str, score: float, references: list[Reference] | None = None) -> Answer:
    return Answer(
        text=text,
        references=references or [],
        source=AnswerSource.DATABASE,
        confidence=score,
    )


class InternalKnowledgeResolver:
    """
    Dispatches an intent to its lookup against the knowledge and vector stores.

    Args:
        store: Structured lookups (titles, channels, recency).
        vector_store: Similarity search for GENERIC_SEARCH.
        embed: Sync function embedding the question; run in a worker thread.
        store_timeout: Seconds allowed per store call.
        embedding_timeout: Seconds allowed for embedding the question.
        semantic_top_k: Matches requested from the vector store.
        recent_limit: Records returned by recency lookups.
        similarity_threshold: Minimum similarity passed to the vector store.
    """

    def __init__(
        self,
        store: KnowledgeStore,
        vector_store: VectorStore,
        embed: Callable[[str], list[float]] = embed_query,
        *,
        store_timeout: float = 5.0,
        embedding_timeout: float = 10.0,
        semantic_top_k: int = 5,
        recent_limit: int = 3,
        similarity_threshold: float = 0.7,
    ) -> None:
        self._store = store
        self._vector_store = vector_store
        self._embed = embed
        self._store_timeout = store_timeout
        self._embedding_timeout = embedding_timeout
        self._top_k = semantic_top_k
        self._recent_limit = recent_limit
        self._threshold = similarity_threshold

        self._handlers: dict[QueryIntent, Callable[[str], Awaitable[Resolution]]] = {
            QueryIntent.LIST_CHANNELS: self._list_channels,
            QueryIntent.GET_TRANSCRIPT: self._get_transcript,
            QueryIntent.GET_SUMMARY: self._get_summary,
            QueryIntent.CHECK_CHANNEL_EXISTS: self._check_channel,
            QueryIntent.RECENT_CHANNEL_INFO: self._recent_channel,
            QueryIntent.RECENT_VIDEO_INFO: self._recent_video,
            QueryIntent.GENERIC_SEARCH: self._semantic_search,
            QueryIntent.REQUIRES_EXTERNAL_INFO: self._external_only,
        }

    async def resolve(self, intent: QueryIntent, question: str) -> Resolution:
        handler = self._handlers.get(intent, self._semantic_search)
        try:
            resolution = await handler(question)
        except Exception as exc:
            logger.warning(
                "Internal lookup failed for intent=%s: %s: %s",
                intent.value, type(exc).__name__, exc,
            )
            return Resolution(answer=empty_answer(), needs_fallback=True)

        logger.info(
            "Resolved intent=%s internally: confidence=%.2f needs_fallback=%s",
            intent.value, resolution.answer.confidence, resolution.needs_fallback,
        )
        return resolution

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    async def _bounded(self, awaitable: Awaitable):
        return await asyncio.wait_for(awaitable, timeout=self._store_timeout)

    @staticmethod
    def _missing_name(what: str, example: str) -> Resolution:
        text = f'{SPECIFY_PREFIX} the {what} in quotes, for example: {example}'
        return Resolution(_database(text, confidence.NOT_FOUND), needs_fallback=True)

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------

    async def _list_channels(self, question: str) -> Resolution:
        channels = await self._bounded(self._store.list_channels())
        if not channels:
            return Resolution(
                _database(f"{NOT_FOUND_PREFIX} any channels in the database.",
                          confidence.NOT_FOUND),
                needs_fallback=True,
            )

        lines = "\n".join(f"{i}. **{name}**" for i, name in enumerate(channels, 1))
        return Resolution(
            _database(f"## Available Channels\n\n{lines}", confidence.CHANNEL_LIST),
            needs_fallback=False,
        )

    async def _get_transcript(self, question: str) -> Resolution:
        return await self._title_lookup(question, field="transcript")

    async def _get_summary(self, question: str) -> Resolution:
        return await self._title_lookup(question, field="summary")

    async def _title_lookup(self, question: str, field: str) -> Resolution:
        title = extract_quoted(question)
        if title is None:
            return self._missing_name(
                "video title", f'{field} of "Video Title"',
            )

        video = await self._bounded(self._store.find_by_title(title))
        if video is None:
            return Resolution(
                _database(f'{NOT_FOUND_PREFIX} a video titled "{title}".',
                          confidence.TITLE_MISS),
                needs_fallback=True,
            )

        if field == "transcript":
            body = video.transcript or "No transcript available."
            heading = "Transcript"
        else:
            body = _excerpt(video)
            heading = "Summary"

        return Resolution(
            _database(f"## {heading}: {video.title}\n\n{body}",
                      confidence.TITLE_HIT, [video_reference(video)]),
            needs_fallback=False,
        )

    async def _check_channel(self, question: str) -> Resolution:
        name = extract_quoted(question)
        if name is None:
            return self._missing_name("channel name", 'do you have channel "Name"')

        count = await self._bounded(self._store.count_channel(name))
        if count:
            noun = "video" if count == 1 else "videos"
            return Resolution(
                _database(f'Yes, the channel "{name}" is in the database '
                          f"with {count} {noun}.", confidence.CHANNEL_EXISTS),
                needs_fallback=False,
            )

        # Unknown channel: the user may still want general information about it
        return Resolution(
            _database(f'No, the channel "{name}" is not in the database.',
                      confidence.CHANNEL_ABSENT),
            needs_fallback=True,
        )

    async def _recent_channel(self, question: str) -> Resolution:
        return await self._recent(question, by_channel=True)

    async def _recent_video(self, question: str) -> Resolution:
        return await self._recent(question, by_channel=False)

    async def _recent(self, question: str, by_channel: bool) -> Resolution:
        term = extract_quoted(question)
        if term is None:
            what = "channel name" if by_channel else "video title or channel"
            return self._missing_name(what, 'latest from "Name"')

        videos = await self._bounded(
            self._store.recent(term, by_channel=by_channel, limit=self._recent_limit)
        )
        if not videos:
            return Resolution(
                _database(f'{NOT_FOUND_PREFIX} any recent videos matching "{term}".',
                          confidence.RECENT_MISS),
                needs_fallback=True,
            )

        entries = []
        for i, video in enumerate(videos, 1):
            when = format_date(video.date) or "undated"
            entries.append(
                f"{i}. **{video.title}** ({video.channel_name}, {when})\n"
                f"   {_excerpt(video)[:SNIPPET_CHARS]}"
            )
        text = f'## Latest Videos: "{term}"\n\n' + "\n".join(entries)
        return Resolution(
            _database(text, confidence.RECENT_HIT,
                      [video_reference(v) for v in videos]),
            needs_fallback=False,
        )

    async def _semantic_search(self, question: str) -> Resolution:
        embedding = await asyncio.wait_for(
            asyncio.to_thread(self._embed, question),
            timeout=self._embedding_timeout,
        )
        matches = await self._bounded(
            self._vector_store.search(
                query_embedding=embedding,
                top_k=self._top_k,
                threshold=self._threshold,
            )
        )
        if not matches:
            return Resolution(
                _database(f"{NOT_FOUND_PREFIX} any relevant video content.",
                          confidence.NOT_FOUND),
                needs_fallback=True,
            )

        scores = [
            m.similarity_score if m.similarity_score is not None
            else confidence.SEMANTIC_DEFAULT
            for m in matches
        ]
        score = min(sum(scores) / len(scores), confidence.SEMANTIC_CAP)

        text = (
            "Based on the video content, here's what I found:\n\n"
            f"{_excerpt(matches[0])}"
        )
        return Resolution(
            _database(text, score, [video_reference(m) for m in matches]),
            needs_fallback=score < confidence.LOW_TRUST,
        )

    async def _external_only(self, question: str) -> Resolution:
        return Resolution(answer=empty_answer(), needs_fallback=True)
