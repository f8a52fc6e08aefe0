# =============================================================================
# Conversation Store — Persistence for Chat History
# =============================================================================
#
# The recorder writes through the ConversationStore protocol:
#   get(id)                      → ConversationRecord | None
#   append(id, messages, title)  → add messages, creating the record if new
#
# DESIGN DECISION: Append under a row lock.
# The message list is one JSONB array, so an append is a read-modify-write.
# SqlConversationStore runs it inside a single transaction:
#
#   INSERT ... ON CONFLICT DO NOTHING     (create the row if absent)
#   SELECT ... FOR UPDATE                 (lock it)
#   UPDATE messages = old + new           (write back)
#
# Two API workers appending to the same conversation therefore queue on
# the row lock instead of overwriting each other's messages. The title is
# only set by the INSERT, i.e. on the first exchange.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transcript_qa.db.models import Conversation
from transcript_qa.models.conversations import ConversationRecord, Message

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    async def get(self, conversation_id: str) -> ConversationRecord | None:
        ...

    async def append(
        self,
        conversation_id: str,
        messages: Sequence[Message],
        title: str,
    ) -> None:
        """Append messages in order; `title` is used only when creating."""
        ...


class SqlConversationStore:
    """ConversationStore backed by the `conversations` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        if session_factory is None:
            from transcript_qa.db.engine import async_session_factory
            session_factory = async_session_factory
        self._session_factory = session_factory

    async def get(self, conversation_id: str) -> ConversationRecord | None:
        async with self._session_factory() as session:
            row = await session.get(Conversation, conversation_id)
        if row is None:
            return None
        return ConversationRecord.model_validate(row)

    async def append(
        self,
        conversation_id: str,
        messages: Sequence[Message],
        title: str,
    ) -> None:
        payload = [m.model_dump(mode="json") for m in messages]

        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(
                    pg_insert(Conversation)
                    .values(id=conversation_id, title=title, messages=[])
                    .on_conflict_do_nothing(index_elements=[Conversation.id])
                )
                row = (
                    await session.execute(
                        select(Conversation)
                        .where(Conversation.id == conversation_id)
                        .with_for_update()
                    )
                ).scalar_one()

                # Reassign rather than mutate: plain JSONB columns do not
                # track in-place list changes.
                row.messages = [*(row.messages or []), *payload]

        logger.debug(
            "Appended %d messages to conversation %s", len(payload), conversation_id,
        )
