# =============================================================================
# External Search Cascade — Ordered Provider Fallback
# =============================================================================
#
# Tries each SearchProvider strictly in order, one at a time, and returns
# the first successful answer. The order is data (settings.cascade_providers),
# so adding, removing or reordering tiers needs no code change.
#
# A provider is skipped when it:
#   - exceeds the per-provider timeout
#   - raises (HTTP error, malformed payload, missing SDK field, ...)
#   - returns ProviderFailure (no key configured, blank answer)
#
# DESIGN DECISION: Sequential, never raced.
# Racing providers would bill every tier on every question. Sequential
# calls cost one provider in the common case.
#
# DESIGN DECISION: No retries here. A failed tier is simply skipped; SDK
# transport retries happen below this layer.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
import time

from transcript_qa.agents.answers import Answer, AnswerSource
from transcript_qa.services.web_search import ProviderFailure, SearchProvider

logger = logging.getLogger(__name__)


class ExternalSearchCascade:
    def __init__(
        self,
        providers: list[SearchProvider],
        timeout: float = 20.0,
    ) -> None:
        self._providers = list(providers)
        self._timeout = timeout

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self._providers]

    async def resolve_externally(self, question: str) -> Answer | None:
        """
        Return the first provider's answer, or None when every tier failed.

        Never raises.
        """
        for provider in self._providers:
            start = time.monotonic()
            try:
                outcome = await asyncio.wait_for(
                    provider.answer(question), timeout=self._timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Provider %s timed out after %.1fs", provider.name, self._timeout,
                )
                continue
            except Exception as exc:
                logger.warning(
                    "Provider %s failed: %s: %s",
                    provider.name, type(exc).__name__, exc,
                )
                continue

            if isinstance(outcome, ProviderFailure):
                logger.info("Provider %s declined: %s", provider.name, outcome.reason)
                continue

            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                "Provider %s answered in %dms with %d references",
                provider.name, elapsed_ms, len(outcome.references),
            )
            return Answer(
                text=outcome.text,
                references=list(outcome.references),
                source=AnswerSource.WEB,
                confidence=provider.confidence,
                provider=provider.name,
            )

        logger.warning(
            "External cascade exhausted (%s)", ", ".join(self.provider_names) or "no providers",
        )
        return None
