# =============================================================================
# Database Models — SQLAlchemy ORM
# =============================================================================
#
# SCHEMA OVERVIEW:
#
# ┌─────────────────────────────────┐   ┌──────────────────────────────┐
# │  videos                         │   │  conversations               │
# ├─────────────────────────────────┤   ├──────────────────────────────┤
# │ id (PK)                         │   │ id (PK, client-chosen str)   │
# │ title                           │   │ title                        │
# │ channel_name                    │   │ messages (jsonb list)        │
# │ link (unique)                   │   │ created_at                   │
# │ date                            │   │ updated_at                   │
# │ summary / transcript (text)     │   └──────────────────────────────┘
# │ video_type ("video" | "short")  │
# │ embedding (vector(1536))        │
# │ embedded_at                     │
# │ created_at                      │
# └─────────────────────────────────┘
#
# `videos` is the document corpus the pipeline reads. Its rows are written
# by POST /knowledge and enriched with embeddings by the Celery backfill.
#
# `conversations` keeps the whole message list as one JSONB array. The
# conversation store appends to it under a row lock (SELECT ... FOR UPDATE)
# so concurrent exchanges on the same id are serialised.
# =============================================================================

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from transcript_qa.config import settings


class Base(DeclarativeBase):
    """SQLAlchemy declarative base class for all ORM models."""

    pass


class Video(Base):
    """
    One ingested video: its metadata, summary, full transcript and
    (once backfilled) its embedding vector.
    """

    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    channel_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Canonical video URL; ingestion deduplicates on it
    link: Mapped[str] = mapped_column(String(1000), nullable=False, unique=True)

    # Publication date, drives "latest video" lookups
    date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    transcript: Mapped[str] = mapped_column(Text, nullable=False)

    video_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="video",
    )

    # ---------------------------------------------------------------------------
    # Embedding of "Title / Summary / Transcript excerpt", written by the
    # backfill task. Null until the record has been embedded.
    # ---------------------------------------------------------------------------
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(settings.embedding_dimensions),
        nullable=True,
    )

    # Set by the backfill task once the record's vector has been written to
    # the configured vector store (pgvector column or Chroma collection).
    embedded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Video(id={self.id}, title='{self.title}', "
            f"channel='{self.channel_name}')>"
        )


class Conversation(Base):
    """
    A persisted chat session.

    `messages` is an append-only JSON array of serialised
    `transcript_qa.models.conversations.Message` objects, in insertion order.
    """

    __tablename__ = "conversations"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)

    messages: Mapped[list] = mapped_column(
        JSONB, nullable=False, default=list,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id='{self.id}', title='{self.title}', "
            f"messages={len(self.messages or [])})>"
        )


# =============================================================================
# Database Indexes
# =============================================================================

# HNSW index for cosine similarity search over video embeddings
video_embedding_idx = Index(
    "idx_video_embedding_hnsw",
    Video.embedding,
    postgresql_using="hnsw",
    postgresql_with={"m": 16, "ef_construction": 64},
    postgresql_ops={"embedding": "vector_cosine_ops"},
)

# Channel listing / existence checks
video_channel_idx = Index(
    "idx_video_channel_name",
    Video.channel_name,
)

# Recency ordering
video_date_idx = Index(
    "idx_video_date",
    Video.date,
)
