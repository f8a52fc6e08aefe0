# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shapes of data coming INTO the API. FastAPI validates request bodies
# against them and answers 422 before any handler code runs, so a missing
# or blank question never reaches the pipeline.
# =============================================================================

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AskRequest(BaseModel):
    """
    Request body for POST /ask.

    Example:
        {
            "question": "what is the transcript of \\"Episode 12\\"",
            "conversation_id": "3f1c...",
            "title_hint": "Episode 12 questions"
        }
    """

    question: str = Field(
        ...,
        min_length=1,
        max_length=4000,
        description="The question to answer",
        examples=["list the channels"],
    )

    # Omitted → a new conversation is started under a fresh id
    conversation_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        min_length=1,
        max_length=100,
        description="Conversation to append this exchange to. Generated if omitted.",
    )

    title_hint: str | None = Field(
        default=None,
        max_length=200,
        description="Title for a new conversation. Defaults to the question's first line.",
    )

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("question must not be blank")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"question": "list the channels"},
                {
                    "question": 'what is the summary of "Episode 12"',
                    "conversation_id": "c0ffee00-0000-4000-8000-000000000001",
                },
            ]
        }
    )


class KnowledgeItem(BaseModel):
    """One video record submitted to POST /knowledge."""

    title: str = Field(..., min_length=1, max_length=500)
    channel_name: str = Field(..., min_length=1, max_length=255)
    link: str = Field(..., min_length=1, max_length=1000)
    date: datetime | None = None
    summary: str | None = None
    transcript: str = Field(..., min_length=1)
    video_type: Literal["video", "short"] = "video"


class KnowledgeIngestRequest(BaseModel):
    items: list[KnowledgeItem] = Field(..., min_length=1, max_length=1000)
