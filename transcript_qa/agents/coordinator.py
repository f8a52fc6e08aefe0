# =============================================================================
# Resolution Coordinator — LangGraph State Machine
# =============================================================================
#
# Wires classifier → internal resolver → external cascade → recorder into
# a LangGraph StateGraph with conditional edges:
#
#   START ─▶ classify ─▶ resolve ─┬─(accept)───▶ accept ───────────┐
#                                 │                                 ▼
#                                 └─(external)─▶ external ─┬──▶ record ─▶ END
#                                                          │      ▲
#                                                          └─▶ settle
#
#   accept   — internal answer is DATABASE, confidence ≥ 0.95, not flagged
#   external — everything else; the cascade runs
#   settle   — cascade exhausted: keep the internal answer as
#              DATABASE_FALLBACK if confidence > 0.15 and it is not a
#              placeholder, otherwise return the fixed apology
#
# Every terminal path passes through `record` exactly once.
#
# DESIGN DECISION: Collaborators injected, graph compiled per instance.
# The nodes close over the resolver / cascade / recorder given to the
# constructor, so tests build a coordinator around fakes and mocks. The
# API layer keeps one instance for the process lifetime.
#
# DESIGN DECISION: Plain TypedDict state, no checkpointer.
# The state carries Python objects (Resolution, Answer) that are not
# JSON-serialisable; that is fine as long as nothing persists the graph.
#
# An exception escaping the graph becomes an ERROR answer. That answer is
# returned but not recorded.
# =============================================================================

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from transcript_qa.agents import confidence
from transcript_qa.agents.answers import Answer, AnswerSource, Resolution
from transcript_qa.agents.cascade import ExternalSearchCascade
from transcript_qa.agents.classifier import QueryIntent, classify
from transcript_qa.agents.recorder import InteractionRecorder
from transcript_qa.agents.resolver import InternalKnowledgeResolver, is_placeholder

logger = logging.getLogger(__name__)

APOLOGY_TEXT = (
    "Sorry, I couldn't find an answer to that in the video library or on "
    "the web. Try rephrasing the question or naming a specific video or "
    "channel in quotes."
)
ERROR_TEXT = "Sorry, something went wrong while answering your question. Please try again."


def apology_answer() -> Answer:
    return Answer(text=APOLOGY_TEXT, references=[], source=AnswerSource.NONE, confidence=0.0)


def error_answer() -> Answer:
    return Answer(text=ERROR_TEXT, references=[], source=AnswerSource.ERROR, confidence=0.0)


# ---------------------------------------------------------------------------
# Graph State
# ---------------------------------------------------------------------------


class ResolutionState(TypedDict, total=False):
    # --- Input ---
    question: str
    conversation_id: str
    title_hint: str | None

    # --- Intermediate ---
    intent: QueryIntent
    resolution: Resolution

    # --- Output ---
    answer: Answer
    recorded: bool


@dataclass
class CoordinatorResult:
    answer: Answer
    conversation_id: str
    intent: QueryIntent | None = None
    recorded: bool = False


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------


class ResolutionCoordinator:
    def __init__(
        self,
        resolver: InternalKnowledgeResolver,
        cascade: ExternalSearchCascade,
        recorder: InteractionRecorder,
        classifier: Callable[[str], QueryIntent] = classify,
    ) -> None:
        self._resolver = resolver
        self._cascade = cascade
        self._recorder = recorder
        self._classifier = classifier
        self._graph = self._build_graph()

    # -------------------------------------------------------------------
    # Nodes
    # -------------------------------------------------------------------

    async def _classify_node(self, state: ResolutionState) -> dict:
        intent = self._classifier(state["question"])
        logger.info("Classified question as %s: '%s'", intent.value, state["question"][:80])
        return {"intent": intent}

    async def _resolve_node(self, state: ResolutionState) -> dict:
        resolution = await self._resolver.resolve(state["intent"], state["question"])
        return {"resolution": resolution}

    async def _accept_node(self, state: ResolutionState) -> dict:
        return {"answer": state["resolution"].answer.retagged(AnswerSource.DATABASE)}

    async def _external_node(self, state: ResolutionState) -> dict:
        # None when every provider failed; settle decides what to return
        return {"answer": await self._cascade.resolve_externally(state["question"])}

    async def _settle_node(self, state: ResolutionState) -> dict:
        internal = state["resolution"].answer
        if internal.confidence > confidence.FALLBACK_MIN and not is_placeholder(internal.text):
            logger.info(
                "Cascade exhausted; keeping internal answer (confidence=%.2f)",
                internal.confidence,
            )
            return {"answer": internal.retagged(AnswerSource.DATABASE_FALLBACK)}

        logger.info("Cascade exhausted and no usable internal answer")
        return {"answer": apology_answer()}

    async def _record_node(self, state: ResolutionState) -> dict:
        recorded = await self._recorder.record(
            state["conversation_id"],
            state["question"],
            state["answer"],
            state.get("title_hint"),
        )
        return {"recorded": recorded}

    # -------------------------------------------------------------------
    # Routing
    # -------------------------------------------------------------------

    @staticmethod
    def _route_after_resolve(state: ResolutionState) -> str:
        resolution = state["resolution"]
        answer = resolution.answer
        if (
            answer.source == AnswerSource.DATABASE
            and answer.confidence >= confidence.ACCEPT_INTERNAL
            and not resolution.needs_fallback
        ):
            return "accept"
        return "external"

    @staticmethod
    def _route_after_external(state: ResolutionState) -> str:
        return "record" if state.get("answer") is not None else "settle"

    def _build_graph(self):
        builder = StateGraph(ResolutionState)
        builder.add_node("classify", self._classify_node)
        builder.add_node("resolve", self._resolve_node)
        builder.add_node("accept", self._accept_node)
        builder.add_node("external", self._external_node)
        builder.add_node("settle", self._settle_node)
        builder.add_node("record", self._record_node)

        builder.add_edge(START, "classify")
        builder.add_edge("classify", "resolve")
        builder.add_conditional_edges(
            "resolve",
            self._route_after_resolve,
            {"accept": "accept", "external": "external"},
        )
        builder.add_edge("accept", "record")
        builder.add_conditional_edges(
            "external",
            self._route_after_external,
            {"record": "record", "settle": "settle"},
        )
        builder.add_edge("settle", "record")
        builder.add_edge("record", END)
        return builder.compile()

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    async def ask(
        self,
        question: str,
        conversation_id: str,
        title_hint: str | None = None,
    ) -> CoordinatorResult:
        """
        Answer a question and record the exchange.

        Always returns a result; unexpected failures yield an ERROR answer
        that is not recorded.
        """
        initial_state: ResolutionState = {
            "question": question,
            "conversation_id": conversation_id,
            "title_hint": title_hint,
        }

        try:
            final = await self._graph.ainvoke(initial_state)
        except Exception:
            logger.exception(
                "Resolution failed for conversation %s", conversation_id,
            )
            return CoordinatorResult(
                answer=error_answer(), conversation_id=conversation_id,
            )

        answer: Answer = final["answer"]
        logger.info(
            "Answered conversation %s: source=%s provider=%s confidence=%.2f",
            conversation_id, answer.source.value, answer.provider, answer.confidence,
        )
        return CoordinatorResult(
            answer=answer,
            conversation_id=conversation_id,
            intent=final.get("intent"),
            recorded=final.get("recorded", False),
        )
