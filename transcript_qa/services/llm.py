# =============================================================================
# Chat-Completion Providers — Anthropic and OpenAI-Compatible
# =============================================================================
#
# A thin, uniform `complete()` over the two SDK families. The cascade's
# last tier (knowledge-only answering) is built on top of it, with the
# model picked from a provider id string such as:
#
#     "openai_compatible/gpt-4o"
#     "anthropic/claude-sonnet-4-6"
#     "openai_compatible/deepseek-chat@https://api.deepseek.com/v1"
#
# DESIGN DECISION: Native SDKs, no LangChain chat wrappers.
# The only features used are system prompt + messages + sampling params;
# the wrappers would add a translation layer without adding capability.
#
# ARCHITECTURE:
#   LLMProvider (Protocol)
#   ├── AnthropicProvider        — system prompt as top-level kwarg
#   ├── OpenAICompatibleProvider — system prompt as first message
#   └── create_provider_from_id() — builds a fresh instance per id
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from transcript_qa.config import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Provider-neutral completion result."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


class LLMProvider(Protocol):
    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Generate a completion.

        Args:
            messages: {"role": "user" | "assistant", "content": ...} dicts.
            system: System prompt, placed however the provider expects it.
            temperature: Overrides settings.llm_temperature.
            max_tokens: Overrides settings.llm_max_tokens.
        """
        ...


# ---------------------------------------------------------------------------
# Implementation 1: Anthropic (Claude)
# ---------------------------------------------------------------------------


class AnthropicProvider:
    """
    Claude via AsyncAnthropic.

    Anthropic takes the system prompt as a top-level `system=` kwarg,
    NOT as a message with role "system".
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.anthropic_api_key or settings.llm_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set ANTHROPIC_API_KEY or "
                "LLM_API_KEY in .env"
            )

        self._client = AsyncAnthropic(api_key=resolved_key)
        self._model = model or settings.llm_model
        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        kwargs: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens or settings.llm_max_tokens,
            "temperature": (
                settings.llm_temperature if temperature is None else temperature
            ),
        }
        if system:
            kwargs["system"] = system

        response = await self._client.messages.create(**kwargs)

        text = "".join(
            block.text for block in response.content if block.type == "text"
        )
        return LLMResponse(
            content=text,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Implementation 2: OpenAI-Compatible
# ---------------------------------------------------------------------------


class OpenAICompatibleProvider:
    """
    Any chat-completions API that follows the OpenAI wire format.

    Switching vendor is a matter of model + base_url, e.g.
    LLM_BASE_URL=https://api.deepseek.com/v1 with LLM_MODEL=deepseek-chat.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for OpenAI-compatible provider. "
                "Set OPENAI_API_KEY or LLM_API_KEY in .env"
            )

        client_kwargs: dict = {"api_key": resolved_key}
        resolved_base_url = base_url or settings.llm_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model or settings.llm_model
        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=all_messages,
            max_tokens=max_tokens or settings.llm_max_tokens,
            temperature=(
                settings.llm_temperature if temperature is None else temperature
            ),
        )

        usage = response.usage
        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=response.model or self._model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_KNOWN_PROVIDER_TYPES = {"anthropic", "openai_compatible"}


def parse_provider_id(provider_id: str) -> tuple[str, str, str | None]:
    """
    Split "type/model[@base_url]" into (type, model, base_url).

    >>> parse_provider_id("openai_compatible/gpt-4o")
    ('openai_compatible', 'gpt-4o', None)

    Raises:
        ValueError: If the id is malformed or the type is unknown.
    """
    if "/" not in provider_id:
        raise ValueError(
            f"Invalid provider_id '{provider_id}'. "
            "Expected 'provider_type/model' or 'provider_type/model@base_url'"
        )

    provider_type, rest = provider_id.split("/", 1)
    model, _, base_url = rest.partition("@")

    if provider_type not in _KNOWN_PROVIDER_TYPES:
        raise ValueError(
            f"Unknown provider type '{provider_type}'. "
            f"Supported types: {sorted(_KNOWN_PROVIDER_TYPES)}"
        )
    if not model:
        raise ValueError(f"Missing model in provider_id '{provider_id}'")

    return provider_type, model, base_url or None


def create_provider_from_id(
    provider_id: str,
    api_key: str | None = None,
) -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Build a fresh provider for `provider_id`.

    Raises:
        ValueError: If the id is invalid or no API key is configured.
    """
    provider_type, model, base_url = parse_provider_id(provider_id)

    if provider_type == "anthropic":
        return AnthropicProvider(api_key=api_key, model=model)

    return OpenAICompatibleProvider(api_key=api_key, model=model, base_url=base_url)
