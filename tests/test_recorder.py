# =============================================================================
# Unit Tests — Interaction Recorder
# =============================================================================

from __future__ import annotations

import asyncio

from transcript_qa.agents.answers import Answer, AnswerSource, Reference
from transcript_qa.agents.recorder import DEFAULT_TITLE, InteractionRecorder, derive_title
from transcript_qa.models.conversations import ConversationRecord, MessageRole


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def _answer(text: str = "An answer.") -> Answer:
    return Answer(
        text=text,
        references=[Reference(title="Ep 1", link="https://youtube.com/watch?v=ep-1", date="March 01, 2024")],
        source=AnswerSource.DATABASE,
        confidence=0.98,
    )


class TestRecord:
    def test_new_conversation_gets_two_messages(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        assert _run(recorder.record("c1", "What is staking?", _answer())) is True

        record = conversation_store.records["c1"]
        assert record.title == "What is staking?"
        user, assistant = record.messages
        assert user.role == MessageRole.USER
        assert user.content == "What is staking?"
        assert assistant.role == MessageRole.ASSISTANT
        assert assistant.content == "An answer."
        assert assistant.source == "database"
        assert assistant.confidence == 0.98
        assert assistant.references[0].link == "https://youtube.com/watch?v=ep-1"

    def test_exchanges_append_in_order(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)

        async def two_exchanges():
            await recorder.record("c1", "first", _answer("one"))
            await recorder.record("c1", "second", _answer("two"))

        _run(two_exchanges())
        record = conversation_store.records["c1"]
        assert [m.content for m in record.messages] == ["first", "one", "second", "two"]
        assert record.title == "first"

    def test_title_hint_wins(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        _run(recorder.record("c1", "What is staking?", _answer(), title_hint="Staking"))
        assert conversation_store.records["c1"].title == "Staking"

    def test_long_question_title_truncated(self, conversation_store):
        recorder = InteractionRecorder(conversation_store, title_max_chars=10)
        _run(recorder.record("c1", "abcdefghijklmnop", _answer()))
        assert conversation_store.records["c1"].title == "abcdefghij..."

    def test_store_failure_returns_false(self, conversation_store):
        conversation_store.error = ConnectionError("database unreachable")
        recorder = InteractionRecorder(conversation_store)
        assert _run(recorder.record("c1", "q", _answer())) is False
        assert "c1" not in conversation_store.records

    def test_message_ids_are_unique(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        _run(recorder.record("c1", "q", _answer()))
        ids = [m.id for m in conversation_store.records["c1"].messages]
        assert len(set(ids)) == 2

    def test_record_survives_json_round_trip(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        _run(recorder.record("c1", "q", _answer()))
        record = conversation_store.records["c1"]

        restored = ConversationRecord.model_validate_json(record.model_dump_json())
        assert restored == record

    def test_concurrent_exchanges_stay_paired(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)

        async def many():
            await asyncio.gather(*(
                recorder.record("c1", f"q{i}", _answer(f"a{i}")) for i in range(10)
            ))

        _run(many())
        messages = conversation_store.records["c1"].messages
        assert len(messages) == 20
        for user, assistant in zip(messages[::2], messages[1::2]):
            assert user.role == MessageRole.USER
            assert assistant.content == "a" + user.content[1:]
        assert recorder._locks == {}

    def test_locks_released_after_sequential_records(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)

        async def three_conversations():
            for conversation_id in ("c1", "c2", "c3"):
                await recorder.record(conversation_id, "q", _answer())

        _run(three_conversations())
        assert set(conversation_store.records) == {"c1", "c2", "c3"}
        assert recorder._locks == {}
        assert not recorder._waiters

    def test_lock_released_when_store_fails(self, conversation_store):
        conversation_store.error = ConnectionError("database unreachable")
        recorder = InteractionRecorder(conversation_store)
        assert _run(recorder.record("c1", "q", _answer())) is False
        assert recorder._locks == {}

    def test_web_answer_keeps_provider(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        answer = Answer(
            text="Bitcoin trades at ...",
            references=[Reference(title="CoinDesk", link="https://coindesk.com/btc")],
            source=AnswerSource.WEB,
            confidence=0.75,
            provider="anthropic_web",
        )
        _run(recorder.record("c1", "price of bitcoin", answer))

        _, assistant = conversation_store.records["c1"].messages
        assert assistant.source == "web"
        assert assistant.provider == "anthropic_web"
        restored = ConversationRecord.model_validate_json(
            conversation_store.records["c1"].model_dump_json(),
        )
        assert restored.messages[1].provider == "anthropic_web"

    def test_database_answer_has_no_provider(self, conversation_store):
        recorder = InteractionRecorder(conversation_store)
        _run(recorder.record("c1", "q", _answer()))
        assert conversation_store.records["c1"].messages[1].provider is None


class TestDeriveTitle:
    def test_short_question(self):
        assert derive_title("What is staking?") == "What is staking?"

    def test_first_line_only(self):
        assert derive_title("Line one\nLine two") == "Line one"

    def test_truncated_at_limit(self):
        assert derive_title("x" * 60) == "x" * 50 + "..."

    def test_exact_limit_not_truncated(self):
        assert derive_title("x" * 50) == "x" * 50

    def test_blank_question(self):
        assert derive_title("   ") == DEFAULT_TITLE
