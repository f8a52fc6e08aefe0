# =============================================================================
# Ask API — Question Answering Endpoint
# =============================================================================
#
# POST /ask hands the question to the resolution coordinator and maps its
# Answer onto AskResponse.
#
# The endpoint is thin: request validation happens in AskRequest (422 on a
# missing or blank question), and the coordinator never raises. Pipeline
# failures, including a coordinator that cannot be built from the current
# configuration, come back as a normal 200 with source="error".
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from transcript_qa.agents.coordinator import (
    CoordinatorResult,
    ResolutionCoordinator,
    error_answer,
)
from transcript_qa.api.deps import get_optional_coordinator
from transcript_qa.models.conversations import ReferenceModel
from transcript_qa.models.requests import AskRequest
from transcript_qa.models.responses import AskResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Question Answering"])


@router.post(
    "/ask",
    response_model=AskResponse,
    summary="Ask a question about the video library",
    description=(
        "Classifies the question, answers from the video corpus when "
        "confident, otherwise consults external providers in order. The "
        "exchange is appended to the given conversation."
    ),
)
async def ask_endpoint(
    request: AskRequest,
    coordinator: ResolutionCoordinator | None = Depends(get_optional_coordinator),
) -> AskResponse:
    logger.info(
        "Ask request: question='%s', conversation_id=%s",
        request.question[:80], request.conversation_id,
    )

    if coordinator is None:
        result = CoordinatorResult(
            answer=error_answer(), conversation_id=request.conversation_id,
        )
    else:
        result = await coordinator.ask(
            question=request.question,
            conversation_id=request.conversation_id,
            title_hint=request.title_hint,
        )
    answer = result.answer

    return AskResponse(
        answer=answer.text,
        references=[
            ReferenceModel(title=r.title, link=r.link, snippet=r.snippet, date=r.date)
            for r in answer.references
        ],
        source=answer.source.value,
        confidence=answer.confidence,
        provider=answer.provider,
        intent=result.intent.value if result.intent else None,
        conversation_id=result.conversation_id,
    )
