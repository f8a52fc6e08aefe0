# =============================================================================
# Answer Model — Shared Value Types for the Query Pipeline
# =============================================================================
#
# Every stage of the pipeline speaks in these types:
#   - Reference: one citation shown next to an answer (video or web page)
#   - AnswerSource: where the final answer came from
#   - Answer: text + references + source attribution + confidence
#   - Resolution: an internal Answer plus the resolver's fallback flag
#
# `confidence` is a heuristic routing score in [0, 1], not a calibrated
# probability. See confidence.py for the constants that produce it.
# =============================================================================

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class AnswerSource(str, enum.Enum):
    """Attribution tag carried by every Answer."""

    DATABASE = "database"                    # internal knowledge store
    DATABASE_FALLBACK = "database_fallback"  # low-confidence internal answer kept after the cascade failed
    WEB = "web"                              # an external provider (see Answer.provider)
    HYBRID = "hybrid"                        # internal and external combined
    NONE = "none"                            # nothing usable was found
    ERROR = "error"                          # the pipeline itself failed


@dataclass(frozen=True)
class Reference:
    """A single citation attached to an answer."""

    title: str
    link: str
    snippet: str | None = None
    date: str | None = None


@dataclass(frozen=True)
class Answer:
    """
    The value returned by every resolver, provider and the coordinator.

    `provider` names the winning external provider when
    source is AnswerSource.WEB, and is None otherwise.
    """

    text: str
    references: list[Reference] = field(default_factory=list)
    source: AnswerSource = AnswerSource.NONE
    confidence: float = 0.0
    provider: str | None = None

    def retagged(self, source: AnswerSource) -> Answer:
        """Return a copy of this answer attributed to a different source."""
        return Answer(
            text=self.text,
            references=list(self.references),
            source=source,
            confidence=self.confidence,
            provider=self.provider,
        )


@dataclass(frozen=True)
class Resolution:
    """Outcome of the internal resolver: the answer plus the fallback flag."""

    answer: Answer
    needs_fallback: bool


def empty_answer() -> Answer:
    """Zero-confidence answer with no text, used when nothing was produced."""
    return Answer(text="", references=[], source=AnswerSource.NONE, confidence=0.0)
