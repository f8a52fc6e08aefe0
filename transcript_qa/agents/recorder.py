# =============================================================================
# Interaction Recorder — Persist Each Exchange
# =============================================================================
#
# record() turns one (question, answer) pair into a user Message and an
# assistant Message and appends both to the conversation, creating it on
# the first exchange with a title taken from the hint or the question.
#
# DESIGN DECISION: Best-effort side effect.
# A store failure is logged and swallowed; the caller already has its
# answer and must still receive it.
#
# Writes to the same conversation id are serialised in-process with an
# asyncio.Lock per id (the SQL store adds a row lock for multi-worker
# deployments), so the user/assistant pair of one exchange is never
# interleaved with another's. A lock lives only while some exchange
# for its conversation is waiting on or holding it.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager

from transcript_qa.agents.answers import Answer
from transcript_qa.models.conversations import Message, MessageRole, ReferenceModel
from transcript_qa.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New conversation"


def derive_title(question: str, max_chars: int = 50) -> str:
    """First line of the question, cut to `max_chars` with "..." appended."""
    first_line = question.strip().split("\n", 1)[0].strip()
    if not first_line:
        return DEFAULT_TITLE
    if len(first_line) > max_chars:
        return first_line[:max_chars] + "..."
    return first_line


class InteractionRecorder:
    def __init__(self, store: ConversationStore, title_max_chars: int = 50) -> None:
        self._store = store
        self._title_max_chars = title_max_chars
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: Counter[str] = Counter()

    @asynccontextmanager
    async def _serialised(self, conversation_id: str):
        """Hold the lock for one conversation id; drop it after the last holder."""
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._waiters[conversation_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[conversation_id] -= 1
            if self._waiters[conversation_id] == 0:
                del self._waiters[conversation_id]
                del self._locks[conversation_id]

    async def record(
        self,
        conversation_id: str,
        question: str,
        answer: Answer,
        title_hint: str | None = None,
    ) -> bool:
        """
        Append the exchange to the conversation.

        Returns:
            True if persisted, False if the store failed (already logged).
        """
        user_message = Message(role=MessageRole.USER, content=question)
        assistant_message = Message(
            role=MessageRole.ASSISTANT,
            content=answer.text,
            references=[
                ReferenceModel(
                    title=r.title, link=r.link, snippet=r.snippet, date=r.date,
                )
                for r in answer.references
            ],
            source=answer.source.value,
            confidence=answer.confidence,
            provider=answer.provider,
        )
        title = (title_hint or "").strip() or derive_title(
            question, self._title_max_chars,
        )

        try:
            async with self._serialised(conversation_id):
                await self._store.append(
                    conversation_id, [user_message, assistant_message], title,
                )
        except Exception:
            logger.warning(
                "Failed to record exchange for conversation %s",
                conversation_id, exc_info=True,
            )
            return False

        return True
