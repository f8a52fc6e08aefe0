# =============================================================================
# Intent Classifier — Ordered Rule Table
# =============================================================================
#
# Maps question text to a QueryIntent, which decides which internal lookup
# the resolver runs. Pure, total and deterministic: no I/O, no LLM call,
# and unmatched input degrades to GENERIC_SEARCH.
#
# RULE TABLE (first match wins):
#   1. channel listing               → LIST_CHANNELS
#   2. transcript of "<title>"       → GET_TRANSCRIPT
#   3. summary of "<title>"          → GET_SUMMARY
#   4. do you have channel "<name>"  → CHECK_CHANNEL_EXISTS
#   5. latest from channel "<name>"  → RECENT_CHANNEL_INFO
#   6. latest video "<name>"         → RECENT_VIDEO_INFO
#   7. price / investment phrasing   → REQUIRES_EXTERNAL_INFO
#   8. tabular phrasing              → REQUIRES_EXTERNAL_INFO
#   9. comparison phrasing           → REQUIRES_EXTERNAL_INFO
#  10. definition phrasing           → GENERIC_SEARCH
#  11. trailing question mark        → GENERIC_SEARCH
#
# Predicates receive the question lower-cased with whitespace collapsed.
#
# QUOTED FRAGMENTS: when a question contains several quoted spans, the
# LAST one is the name/title (the leading `.*` in _QUOTED is greedy). The
# resolver relies on this; keep it.
# =============================================================================

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Callable

logger = logging.getLogger(__name__)


class QueryIntent(str, enum.Enum):
    """Classified category of a user question."""

    LIST_CHANNELS = "list_channels"
    GET_TRANSCRIPT = "get_transcript"
    GET_SUMMARY = "get_summary"
    CHECK_CHANNEL_EXISTS = "check_channel_exists"
    RECENT_CHANNEL_INFO = "recent_channel_info"
    RECENT_VIDEO_INFO = "recent_video_info"
    GENERIC_SEARCH = "generic_search"
    REQUIRES_EXTERNAL_INFO = "requires_external_info"


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_QUOTED = re.compile(r'.*["“”]([^"“”]+)["“”]', re.DOTALL)

_CHANNEL_LISTING = [
    re.compile(r"^(?:please )?(?:list|show|display|give me|tell me|get)\b.*\bchannels\b"),
    re.compile(r"\b(?:which|what) channels\b"),
    re.compile(r"\ball (?:the |your |of the )?channels\b"),
    re.compile(r"^channels\W*$"),
]
_TRANSCRIPT = re.compile(r"\btranscripts?\b")
_SUMMARY = re.compile(r"\b(?:summary|summari[sz]e|summari[sz]ation|recap|tl;?dr)\b")
_TARGET_PREPOSITION = re.compile(r"\b(?:of|for|from)\b")
_CHANNEL = re.compile(r"\bchannels?\b")
_EXISTENCE = re.compile(
    r"\b(?:do you have|do you know|do you cover|do you track|is there|are there"
    r"|exists?|have you got|in (?:your|the) (?:database|knowledge base))\b"
)
_RECENCY = re.compile(r"\b(?:latest|recent|newest|last|most recent|new)\b")
_INVESTMENT = re.compile(
    r"\b(?:price|prices|priced|worth|invest|investing|investment|buy|sell"
    r"|market ?cap|marketcap|trading at|all[- ]time high|ath|roi|portfolio"
    r"|should i)\b"
)
_TABULAR = re.compile(r"\b(?:as a table|in a table|table of|tabular|spreadsheet)\b")
_COMPARISON = re.compile(
    r"\b(?:compare|compared|comparison|versus|vs|difference between"
    r"|better than|worse than)\b"
)
_DEFINITION = re.compile(
    r"^(?:what is|what are|what's|whats|define|definition of|meaning of"
    r"|explain|who is|who are)\b"
)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def _has_quote(text: str) -> bool:
    return _QUOTED.match(text) is not None


def _is_channel_listing(text: str) -> bool:
    return any(p.search(text) for p in _CHANNEL_LISTING)


def _is_transcript_request(text: str) -> bool:
    return bool(_TRANSCRIPT.search(text)) and (
        _has_quote(text) or bool(_TARGET_PREPOSITION.search(text))
    )


def _is_summary_request(text: str) -> bool:
    return bool(_SUMMARY.search(text)) and (
        _has_quote(text) or bool(_TARGET_PREPOSITION.search(text))
    )


def _is_channel_existence_check(text: str) -> bool:
    return (
        _has_quote(text)
        and bool(_CHANNEL.search(text))
        and bool(_EXISTENCE.search(text))
    )


def _is_recent_channel_request(text: str) -> bool:
    return (
        _has_quote(text)
        and bool(_RECENCY.search(text))
        and bool(_CHANNEL.search(text))
    )


def _is_recent_video_request(text: str) -> bool:
    return _has_quote(text) and bool(_RECENCY.search(text))


def _is_investment_question(text: str) -> bool:
    return bool(_INVESTMENT.search(text))


def _is_tabular_request(text: str) -> bool:
    return bool(_TABULAR.search(text))


def _is_comparison(text: str) -> bool:
    return bool(_COMPARISON.search(text))


def _is_definition(text: str) -> bool:
    return bool(_DEFINITION.search(text))


def _ends_with_question_mark(text: str) -> bool:
    return text.endswith("?")


_RULES: list[tuple[Callable[[str], bool], QueryIntent]] = [
    (_is_channel_listing, QueryIntent.LIST_CHANNELS),
    (_is_transcript_request, QueryIntent.GET_TRANSCRIPT),
    (_is_summary_request, QueryIntent.GET_SUMMARY),
    (_is_channel_existence_check, QueryIntent.CHECK_CHANNEL_EXISTS),
    (_is_recent_channel_request, QueryIntent.RECENT_CHANNEL_INFO),
    (_is_recent_video_request, QueryIntent.RECENT_VIDEO_INFO),
    (_is_investment_question, QueryIntent.REQUIRES_EXTERNAL_INFO),
    (_is_tabular_request, QueryIntent.REQUIRES_EXTERNAL_INFO),
    (_is_comparison, QueryIntent.REQUIRES_EXTERNAL_INFO),
    (_is_definition, QueryIntent.GENERIC_SEARCH),
    (_ends_with_question_mark, QueryIntent.GENERIC_SEARCH),
]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def normalise(question: str) -> str:
    """Lower-case and collapse runs of whitespace."""
    return " ".join(question.split()).lower()


def classify(question: str) -> QueryIntent:
    """
    Classify a question by walking the rule table top to bottom.

    Examples:
        >>> classify("list the channels")
        <QueryIntent.LIST_CHANNELS: 'list_channels'>
        >>> classify('what is the transcript of "Episode 12"')
        <QueryIntent.GET_TRANSCRIPT: 'get_transcript'>
        >>> classify("should I buy ETH now?")
        <QueryIntent.REQUIRES_EXTERNAL_INFO: 'requires_external_info'>
    """
    text = normalise(question)
    for predicate, intent in _RULES:
        if predicate(text):
            return intent
    return QueryIntent.GENERIC_SEARCH


def extract_quoted(question: str) -> str | None:
    """
    Return the last quoted span in the question, stripped, or None.

    >>> extract_quoted('compare "A" with "B"')
    'B'
    """
    match = _QUOTED.match(question)
    if match is None:
        return None
    value = match.group(1).strip()
    return value or None
