# =============================================================================
# Knowledge Store — Structured Lookups over the Video Corpus
# =============================================================================
#
# The internal resolver reads the corpus through the KnowledgeStore
# protocol. Each method maps to one query shape:
#
#   find_by_title()  — case-insensitive substring match on the title
#   list_channels()  — distinct channel names, sorted
#   count_channel()  — number of videos whose channel matches a substring
#   recent()         — newest-first records filtered by channel or title
#   add_videos()     — ingestion with link-based deduplication
#
# Similarity search is not here; it lives behind the VectorStore protocol
# in vectorstore.py so the backend (pgvector / Chroma) can be swapped.
#
# ARCHITECTURE:
#   KnowledgeStore (Protocol)
#   └── SqlKnowledgeStore — async SQLAlchemy over the `videos` table
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transcript_qa.db.models import Video

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data Structures
# ---------------------------------------------------------------------------


@dataclass
class VideoRecord:
    """A video as seen by the query pipeline (no embedding vector)."""

    title: str
    channel_name: str
    link: str
    date: datetime | None = None
    summary: str | None = None
    transcript: str = ""
    video_type: str = "video"

    @classmethod
    def from_orm(cls, video: Video) -> VideoRecord:
        return cls(
            title=video.title,
            channel_name=video.channel_name,
            link=video.link,
            date=video.date,
            summary=video.summary,
            transcript=video.transcript,
            video_type=video.video_type,
        )


@dataclass
class IngestOutcome:
    """Counts returned by add_videos()."""

    total: int
    added: int
    skipped: int


# ---------------------------------------------------------------------------
# Protocol Definition
# ---------------------------------------------------------------------------


class KnowledgeStore(Protocol):
    """Read (and ingest) interface over the video corpus."""

    async def find_by_title(self, title: str) -> VideoRecord | None:
        """Newest video whose title contains `title` (case-insensitive)."""
        ...

    async def list_channels(self) -> list[str]:
        """Distinct, non-empty channel names in alphabetical order."""
        ...

    async def count_channel(self, name: str) -> int:
        """Number of videos whose channel name contains `name`."""
        ...

    async def recent(
        self,
        term: str,
        *,
        by_channel: bool,
        limit: int,
    ) -> list[VideoRecord]:
        """
        Newest-first videos matching `term`.

        by_channel=True matches on channel name only; False matches on
        title or channel name.
        """
        ...

    async def add_videos(self, records: Sequence[VideoRecord]) -> IngestOutcome:
        """Insert records whose link is not already stored."""
        ...


# ---------------------------------------------------------------------------
# Implementation: SQLAlchemy (PostgreSQL)
# ---------------------------------------------------------------------------


def _contains(term: str) -> str:
    """ILIKE pattern for a substring match, with LIKE wildcards escaped."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlKnowledgeStore:
    """
    KnowledgeStore backed by the `videos` table.

    Opens a short-lived session per call from the injected factory.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        if session_factory is None:
            from transcript_qa.db.engine import async_session_factory
            session_factory = async_session_factory
        self._session_factory = session_factory

    async def find_by_title(self, title: str) -> VideoRecord | None:
        stmt = (
            select(Video)
            .where(Video.title.ilike(_contains(title), escape="\\"))
            .order_by(Video.date.desc().nulls_last())
            .limit(1)
        )
        async with self._session_factory() as session:
            video = (await session.execute(stmt)).scalar_one_or_none()
        return VideoRecord.from_orm(video) if video else None

    async def list_channels(self) -> list[str]:
        stmt = (
            select(Video.channel_name)
            .where(Video.channel_name != "")
            .distinct()
            .order_by(Video.channel_name)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [name for name in rows if name]

    async def count_channel(self, name: str) -> int:
        stmt = select(func.count(Video.id)).where(
            Video.channel_name.ilike(_contains(name), escape="\\"),
        )
        async with self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one())

    async def recent(
        self,
        term: str,
        *,
        by_channel: bool,
        limit: int,
    ) -> list[VideoRecord]:
        pattern = _contains(term)
        if by_channel:
            condition = Video.channel_name.ilike(pattern, escape="\\")
        else:
            condition = or_(
                Video.title.ilike(pattern, escape="\\"),
                Video.channel_name.ilike(pattern, escape="\\"),
            )
        stmt = (
            select(Video)
            .where(condition)
            .order_by(Video.date.desc().nulls_last())
            .limit(limit)
        )
        async with self._session_factory() as session:
            videos = (await session.execute(stmt)).scalars().all()
        return [VideoRecord.from_orm(v) for v in videos]

    async def add_videos(self, records: Sequence[VideoRecord]) -> IngestOutcome:
        links = {r.link for r in records}
        async with self._session_factory() as session:
            existing = set(
                (
                    await session.execute(
                        select(Video.link).where(Video.link.in_(links))
                    )
                ).scalars().all()
            )

            added = 0
            for record in records:
                if record.link in existing:
                    continue
                # Also skips duplicates within the same batch
                existing.add(record.link)
                session.add(Video(
                    title=record.title,
                    channel_name=record.channel_name,
                    link=record.link,
                    date=record.date,
                    summary=record.summary,
                    transcript=record.transcript,
                    video_type=record.video_type,
                ))
                added += 1

            await session.commit()

        logger.info(
            "Ingested %d of %d videos (%d skipped as duplicates)",
            added, len(records), len(records) - added,
        )
        return IngestOutcome(
            total=len(records), added=added, skipped=len(records) - added,
        )
