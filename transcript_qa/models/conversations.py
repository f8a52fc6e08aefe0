# =============================================================================
# Conversation Models — Persisted Chat History
# =============================================================================
#
# A Message is immutable once appended. ConversationRecord is the read
# model for GET /conversations/{id}; it is built straight from the ORM row
# (from_attributes) with messages validated out of the JSONB array.
# =============================================================================

import enum
import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ReferenceModel(BaseModel):
    """Wire / storage form of a citation."""

    title: str
    link: str
    snippet: str | None = None
    date: str | None = None


class Message(BaseModel):
    """One chat turn. Assistant turns carry the answer's attribution."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    references: list[ReferenceModel] | None = None
    source: str | None = None
    confidence: float | None = None
    provider: str | None = None

    model_config = ConfigDict(frozen=True)


class ConversationRecord(BaseModel):
    id: str
    title: str
    messages: list[Message] = Field(default_factory=list)
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
