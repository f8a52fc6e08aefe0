# =============================================================================
# API Tests — Routers with Dependency Overrides
# =============================================================================
#
# Each test mounts the routers on a fresh FastAPI app and swaps the
# coordinator / stores for fakes, so no database, broker or API key is
# touched.
# =============================================================================

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from transcript_qa.agents.answers import Answer, AnswerSource, Reference
from transcript_qa.agents.classifier import QueryIntent
from transcript_qa.agents.coordinator import CoordinatorResult
from transcript_qa.api import ask, conversations, knowledge
from transcript_qa.api.deps import (
    get_conversation_store,
    get_knowledge_store,
    get_optional_coordinator,
)
from transcript_qa.models.conversations import Message, MessageRole


class FakeCoordinator:
    def __init__(self, answer: Answer, intent: QueryIntent | None = QueryIntent.GENERIC_SEARCH):
        self._answer = answer
        self._intent = intent
        self.ask = AsyncMock(side_effect=self._ask)

    async def _ask(self, question, conversation_id, title_hint=None):
        return CoordinatorResult(
            answer=self._answer,
            conversation_id=conversation_id,
            intent=self._intent,
            recorded=True,
        )


@pytest.fixture
def app(knowledge_store, conversation_store):
    application = FastAPI()
    application.include_router(ask.router)
    application.include_router(conversations.router)
    application.include_router(knowledge.router)
    application.dependency_overrides[get_knowledge_store] = lambda: knowledge_store
    application.dependency_overrides[get_conversation_store] = lambda: conversation_store
    return application


def _use_coordinator(app: FastAPI, coordinator: FakeCoordinator) -> TestClient:
    app.dependency_overrides[get_optional_coordinator] = lambda: coordinator
    return TestClient(app)


class TestAskEndpoint:
    def test_returns_answer(self, app):
        coordinator = FakeCoordinator(Answer(
            text="Bitcoin is ...",
            references=[Reference(title="CoinDesk", link="https://coindesk.com", date="2025-01-02")],
            source=AnswerSource.WEB,
            confidence=0.75,
            provider="perplexity",
        ), intent=QueryIntent.REQUIRES_EXTERNAL_INFO)
        client = _use_coordinator(app, coordinator)

        response = client.post("/ask", json={"question": "price of bitcoin", "conversation_id": "c1"})

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "Bitcoin is ..."
        assert body["source"] == "web"
        assert body["provider"] == "perplexity"
        assert body["confidence"] == 0.75
        assert body["intent"] == "requires_external_info"
        assert body["conversation_id"] == "c1"
        assert body["references"] == [
            {"title": "CoinDesk", "link": "https://coindesk.com", "snippet": None, "date": "2025-01-02"},
        ]
        coordinator.ask.assert_awaited_once_with(
            question="price of bitcoin", conversation_id="c1", title_hint=None,
        )

    def test_generates_conversation_id(self, app):
        coordinator = FakeCoordinator(Answer(text="x", source=AnswerSource.DATABASE, confidence=0.95))
        client = _use_coordinator(app, coordinator)

        response = client.post("/ask", json={"question": "list the channels"})

        assert response.status_code == 200
        assert response.json()["conversation_id"]

    def test_error_answer_is_still_200(self, app):
        coordinator = FakeCoordinator(
            Answer(text="Sorry", source=AnswerSource.ERROR, confidence=0.0), intent=None,
        )
        client = _use_coordinator(app, coordinator)

        response = client.post("/ask", json={"question": "q"})
        assert response.status_code == 200
        assert response.json()["source"] == "error"
        assert response.json()["intent"] is None

    def test_unbuildable_pipeline_returns_error_answer(self, app):
        with patch(
            "transcript_qa.api.deps.get_coordinator",
            side_effect=ValueError("Unknown cascade provider 'bogus'"),
        ):
            response = TestClient(app).post(
                "/ask", json={"question": "list the channels", "conversation_id": "c7"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "error"
        assert body["confidence"] == 0.0
        assert body["conversation_id"] == "c7"

    @pytest.mark.parametrize("payload", [{}, {"question": ""}, {"question": "   "}, {"question": 42}])
    def test_invalid_question_rejected(self, app, payload):
        coordinator = FakeCoordinator(Answer(text="x"))
        client = _use_coordinator(app, coordinator)

        response = client.post("/ask", json=payload)

        assert response.status_code == 422
        coordinator.ask.assert_not_awaited()


class TestConversationsEndpoint:
    def test_unknown_conversation(self, app):
        response = TestClient(app).get("/conversations/nope")
        assert response.status_code == 404

    def test_returns_messages_in_order(self, app, conversation_store):
        asyncio.run(conversation_store.append(
            "c1",
            [
                Message(role=MessageRole.USER, content="hi"),
                Message(role=MessageRole.ASSISTANT, content="hello", source="database", confidence=0.95),
            ],
            "Greeting",
        ))

        response = TestClient(app).get("/conversations/c1")

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Greeting"
        assert [m["content"] for m in body["messages"]] == ["hi", "hello"]
        assert body["messages"][1]["source"] == "database"


def _item(link: str, title: str = "Ep") -> dict:
    return {
        "title": title,
        "channel_name": "Alpha",
        "link": link,
        "date": "2024-03-01T00:00:00Z",
        "transcript": "Full transcript text.",
    }


class TestKnowledgeEndpoint:
    def test_ingest_enqueues_backfill(self, app, knowledge_store):
        with patch("transcript_qa.api.knowledge.backfill_embeddings") as task:
            task.delay.return_value = SimpleNamespace(id="task-123")
            response = TestClient(app).post("/knowledge", json={"items": [_item("l1"), _item("l2")]})

        assert response.status_code == 202
        assert response.json() == {"total": 2, "added": 2, "skipped": 0, "task_id": "task-123"}
        assert [v.link for v in knowledge_store.videos] == ["l1", "l2"]
        task.delay.assert_called_once_with()

    def test_duplicates_skipped_and_no_task_when_nothing_added(self, app, knowledge_store, video_factory):
        existing = video_factory("Ep")
        knowledge_store.videos = [existing]

        with patch("transcript_qa.api.knowledge.backfill_embeddings") as task:
            response = TestClient(app).post("/knowledge", json={"items": [_item(existing.link)]})

        assert response.json() == {"total": 1, "added": 0, "skipped": 1, "task_id": None}
        task.delay.assert_not_called()

    def test_broker_outage_still_stores(self, app, knowledge_store):
        with patch("transcript_qa.api.knowledge.backfill_embeddings") as task:
            task.delay.side_effect = ConnectionError("redis down")
            response = TestClient(app).post("/knowledge", json={"items": [_item("l1")]})

        assert response.status_code == 202
        assert response.json()["task_id"] is None
        assert len(knowledge_store.videos) == 1

    def test_empty_batch_rejected(self, app):
        response = TestClient(app).post("/knowledge", json={"items": []})
        assert response.status_code == 422

    def test_invalid_video_type_rejected(self, app):
        item = {**_item("l1"), "video_type": "podcast"}
        response = TestClient(app).post("/knowledge", json={"items": [item]})
        assert response.status_code == 422


class TestHealth:
    def test_health(self):
        from transcript_qa.main import app as main_app

        response = TestClient(main_app).get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
