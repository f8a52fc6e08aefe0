# =============================================================================
# Web Providers — Strategies for the External Search Cascade
# =============================================================================
#
# Each provider turns a question into either a ProviderSuccess (answer text
# plus references) or a ProviderFailure. The cascade tries them in the
# order given by settings.cascade_providers:
#
#   "perplexity"     — Perplexity `sonar` (OpenAI-compatible chat API with
#                      built-in web search)
#   "anthropic_web"  — Claude with the server-side `web_search` tool
#   "knowledge_only" — a plain completion from the model's own training
#                      data; no references
#
# Providers report "nothing usable" (no API key, blank answer) as a
# ProviderFailure. Transport and API errors are raised and the cascade
# converts them; timeouts are enforced by the cascade as well.
#
# DESIGN DECISION: SDK clients are created lazily, once per provider, on
# the first answer(). A missing key then fails one provider at call time
# instead of failing application start-up, and later calls reuse the
# client and its connection pool.
# =============================================================================

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

from transcript_qa.agents.answers import Reference
from transcript_qa.config import Settings
from transcript_qa.services.llm import create_provider_from_id

logger = logging.getLogger(__name__)

WEB_SYSTEM_PROMPT = (
    "You are a helpful assistant that provides accurate, current information. "
    "Search the web for the most up-to-date information when needed and "
    "include links to your sources in the answer."
)

KNOWLEDGE_SYSTEM_PROMPT = (
    "You are a knowledgeable assistant. Answer from your training data. "
    "Format the answer in markdown with headers and bullet points where "
    "appropriate, and say so when the information may be out of date."
)

SNIPPET_CHARS = 150

_MARKDOWN_LINK = re.compile(r"\[([^\]]+)\]\(([^)\s]+)\)")
_REFERENCE_LINE = re.compile(r"\[(\d+)\]:\s*(https?://\S+)")


# ---------------------------------------------------------------------------
# Outcome Types
# ---------------------------------------------------------------------------


@dataclass
class ProviderSuccess:
    text: str
    references: list[Reference] = field(default_factory=list)


@dataclass
class ProviderFailure:
    reason: str


ProviderOutcome = ProviderSuccess | ProviderFailure


class SearchProvider(Protocol):
    """One strategy in the external search cascade."""

    name: str
    confidence: float

    async def answer(self, question: str) -> ProviderOutcome:
        ...


# ---------------------------------------------------------------------------
# Source Extraction
# ---------------------------------------------------------------------------


def context_snippet(content: str, index: int, width: int = SNIPPET_CHARS) -> str:
    """
    Text around position `index`, about `width` characters wide.

    "..." marks each side that was cut.
    """
    start = max(0, index - width // 2)
    end = min(len(content), index + width // 2)
    snippet = content[start:end].strip()
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet


def extract_sources_from_content(content: str) -> list[Reference]:
    """
    Pull citations out of answer markdown.

    `[title](url)` links are used first, deduplicated by URL in order of
    appearance. Only when there are none are `[n]: url` reference lines
    parsed, titled "Source n".
    """
    references: list[Reference] = []
    seen: set[str] = set()

    for match in _MARKDOWN_LINK.finditer(content):
        title, link = match.group(1), match.group(2)
        if link in seen:
            continue
        seen.add(link)
        references.append(Reference(
            title=title or "Web Source",
            link=link,
            snippet=context_snippet(content, match.start()),
        ))

    if references:
        return references

    for match in _REFERENCE_LINE.finditer(content):
        number, link = match.group(1), match.group(2)
        if link in seen:
            continue
        seen.add(link)
        references.append(Reference(
            title=f"Source {number}",
            link=link,
            snippet=context_snippet(content, match.start()),
        ))

    return references


def _field(item, key: str):
    """Read `key` from an SDK object or a plain dict."""
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


# ---------------------------------------------------------------------------
# Provider 1: Perplexity
# ---------------------------------------------------------------------------


class PerplexitySearchProvider:
    """
    Perplexity chat completions through the OpenAI SDK.

    The response carries `search_results` (title/url/date dicts) or, on
    older models, a bare `citations` URL list. Neither is part of the
    OpenAI schema; the SDK keeps them as extra attributes.
    """

    name = "perplexity"

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.perplexity_api_key
        self._base_url = settings.perplexity_base_url
        self._model = settings.perplexity_model
        self._max_tokens = settings.llm_max_tokens
        self._temperature = settings.llm_temperature
        self.confidence = settings.web_answer_confidence
        self._client = None

    async def answer(self, question: str) -> ProviderOutcome:
        if not self._api_key:
            return ProviderFailure("PERPLEXITY_API_KEY is not set")

        response = await self._get_client().chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": WEB_SYSTEM_PROMPT},
                {"role": "user", "content": question},
            ],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

        text = (response.choices[0].message.content or "").strip()
        if not text:
            return ProviderFailure("empty answer")

        references = self._structured_references(response)
        if not references:
            references = extract_sources_from_content(text)
        return ProviderSuccess(text=text, references=references)

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)
        return self._client

    @staticmethod
    def _structured_references(response) -> list[Reference]:
        references: list[Reference] = []
        seen: set[str] = set()

        for result in getattr(response, "search_results", None) or []:
            url = _field(result, "url")
            if not url or url in seen:
                continue
            seen.add(url)
            references.append(Reference(
                title=_field(result, "title") or url,
                link=url,
                snippet=_field(result, "snippet"),
                date=_field(result, "date"),
            ))

        if references:
            return references

        for number, url in enumerate(getattr(response, "citations", None) or [], 1):
            if not isinstance(url, str) or url in seen:
                continue
            seen.add(url)
            references.append(Reference(title=f"Source {number}", link=url))

        return references


# ---------------------------------------------------------------------------
# Provider 2: Claude with web_search
# ---------------------------------------------------------------------------


class AnthropicWebSearchProvider:
    """
    Claude answering with its server-side web_search tool.

    Search hits come back as `web_search_tool_result` content blocks
    interleaved with the text blocks of the answer.
    """

    name = "anthropic_web"

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.anthropic_api_key or settings.llm_api_key
        self._model = settings.web_search_model
        self._max_tokens = settings.llm_max_tokens
        self._tool = {
            "type": "web_search_20250305",
            "name": "web_search",
            "max_uses": settings.web_search_max_uses,
        }
        self.confidence = settings.web_answer_confidence
        self._client = None

    def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic

            self._client = AsyncAnthropic(api_key=self._api_key)
        return self._client

    async def answer(self, question: str) -> ProviderOutcome:
        if not self._api_key:
            return ProviderFailure("ANTHROPIC_API_KEY is not set")

        response = await self._get_client().messages.create(
            model=self._model,
            max_tokens=self._max_tokens,
            system=WEB_SYSTEM_PROMPT,
            tools=[self._tool],
            messages=[{"role": "user", "content": question}],
        )

        text_parts: list[str] = []
        references: list[Reference] = []
        seen: set[str] = set()

        for block in response.content:
            block_type = getattr(block, "type", None)
            if block_type == "text":
                text_parts.append(block.text)
            elif block_type == "web_search_tool_result":
                # content is a list of hits, or an error object
                for result in getattr(block, "content", None) or []:
                    if getattr(result, "type", None) != "web_search_result":
                        continue
                    url = getattr(result, "url", "")
                    if not url or url in seen:
                        continue
                    seen.add(url)
                    references.append(Reference(
                        title=getattr(result, "title", "") or url,
                        link=url,
                        date=getattr(result, "page_age", None),
                    ))

        text = "".join(text_parts).strip()
        if not text:
            return ProviderFailure("empty answer")
        if not references:
            references = extract_sources_from_content(text)
        return ProviderSuccess(text=text, references=references)


# ---------------------------------------------------------------------------
# Provider 3: Knowledge-only completion
# ---------------------------------------------------------------------------


class KnowledgeOnlyProvider:
    """Answer from the model's training data. Never returns references."""

    name = "knowledge_only"

    def __init__(self, settings: Settings) -> None:
        self._provider_id = settings.knowledge_provider_id
        self.confidence = settings.knowledge_only_confidence
        self._llm = None

    async def answer(self, question: str) -> ProviderOutcome:
        if self._llm is None:
            try:
                self._llm = create_provider_from_id(self._provider_id)
            except ValueError as exc:
                return ProviderFailure(str(exc))
        llm = self._llm

        response = await llm.complete(
            messages=[{"role": "user", "content": question}],
            system=KNOWLEDGE_SYSTEM_PROMPT,
        )
        text = response.content.strip()
        if not text:
            return ProviderFailure("empty answer")
        return ProviderSuccess(text=text, references=[])


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_PROVIDER_TYPES: dict[str, type] = {
    PerplexitySearchProvider.name: PerplexitySearchProvider,
    AnthropicWebSearchProvider.name: AnthropicWebSearchProvider,
    KnowledgeOnlyProvider.name: KnowledgeOnlyProvider,
}


def build_providers(settings: Settings) -> list[SearchProvider]:
    """
    Instantiate the cascade in settings.cascade_providers order.

    Raises:
        ValueError: On an unknown provider name.
    """
    providers: list[SearchProvider] = []
    for name in settings.cascade_providers:
        provider_cls = _PROVIDER_TYPES.get(name)
        if provider_cls is None:
            raise ValueError(
                f"Unknown cascade provider '{name}'. "
                f"Supported: {sorted(_PROVIDER_TYPES)}"
            )
        providers.append(provider_cls(settings))

    logger.info("External search cascade: %s", " → ".join(settings.cascade_providers))
    return providers
