# =============================================================================
# Conversations API — Read Back Chat History
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from transcript_qa.api.deps import get_conversation_store
from transcript_qa.models.conversations import ConversationRecord
from transcript_qa.services.conversation_store import ConversationStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Conversations"])


@router.get(
    "/conversations/{conversation_id}",
    response_model=ConversationRecord,
    summary="Get a conversation with its messages in order",
)
async def get_conversation(
    conversation_id: str,
    store: ConversationStore = Depends(get_conversation_store),
) -> ConversationRecord:
    record = await store.get(conversation_id)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail=f"Conversation {conversation_id} not found",
        )
    return record
