# =============================================================================
# Routing Agent — Query Classification
# =============================================================================
#
# Classifies a query into exactly one of six categories with one LLM call.
# The model answers in a pipe-delimited line:
#
#   category|confidence|explanation
#
# PARSE RULES (each failure is terminal, never retried):
#   - not exactly 3 fields          → INVALID_RESPONSE
#   - unknown category              → INVALID_CATEGORY
#   - confidence not a number in [0,1] → INVALID_CONFIDENCE
#   - confidence below min_confidence  → LOW_CONFIDENCE
#   - empty explanation             → INVALID_RESPONSE
#
# Transport failures (connection, timeout, rate limit) are retried by the
# shared RetryPolicy; each retry re-sends the same prompt.
# =============================================================================

from __future__ import annotations

import logging
import re

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.prompts import RoutingPromptBuilder
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.types import QueryCategory, RoutingResult
from shariah_qa.config import settings
from shariah_qa.services.llm import LLMProvider, user_message

logger = logging.getLogger(__name__)

_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)")


def parse_confidence(raw: str) -> float | None:
    """
    Leading decimal number of `raw`, or None.

    Models sometimes append punctuation ("0.92." or "0.9 (high)"); only the
    numeric prefix is used.
    """
    match = _LEADING_NUMBER.match(raw.strip())
    return float(match.group(0)) if match else None


class RoutingAgent:
    def __init__(
        self,
        llm: LLMProvider,
        retry: RetryPolicy | None = None,
        min_confidence: float | None = None,
        temperature: float | None = None,
    ) -> None:
        self._llm = llm
        self._retry = retry or RetryPolicy()
        self._prompts = RoutingPromptBuilder()
        self.min_confidence = (
            settings.routing_min_confidence if min_confidence is None else min_confidence
        )
        self._temperature = (
            settings.routing_temperature if temperature is None else temperature
        )

    async def classify(self, query: str) -> RoutingResult:
        """
        Classify `query`.

        Raises:
            AgentError: EMPTY_QUERY, a parse code from above, or a transport
                code once retries are exhausted.
        """
        if not query or not query.strip():
            raise AgentError("Query cannot be empty", code="EMPTY_QUERY", agent="routing")

        prompt = self._prompts.build_prompt(query)

        async def _attempt() -> RoutingResult:
            response = await self._llm.complete(
                user_message(prompt), temperature=self._temperature,
            )
            return self._parse(response.content)

        result = await self._retry.run(_attempt, agent="routing", action="classify query")
        logger.info(
            "Routed query to %s (confidence=%.2f)",
            result.category.value, result.confidence,
        )
        return result

    def _parse(self, content: str) -> RoutingResult:
        trimmed = content.strip()
        parts = [p.strip() for p in trimmed.split("|")]

        if len(parts) != 3:
            raise AgentError(
                'Invalid response format: expected "category|confidence|explanation", '
                f'got "{trimmed}"',
                code="INVALID_RESPONSE",
                agent="routing",
            )

        category_str, confidence_str, explanation = parts

        try:
            category = QueryCategory(category_str)
        except ValueError:
            raise AgentError(
                f'Invalid category: "{category_str}". Must be one of: '
                + ", ".join(c.value for c in QueryCategory),
                code="INVALID_CATEGORY",
                agent="routing",
            ) from None

        confidence = parse_confidence(confidence_str)
        if confidence is None or not 0 <= confidence <= 1:
            raise AgentError(
                f'Invalid confidence: "{confidence_str}". '
                "Must be a number between 0 and 1",
                code="INVALID_CONFIDENCE",
                agent="routing",
            )

        if confidence < self.min_confidence:
            raise AgentError(
                f"Low confidence classification: {confidence:.2f}. "
                "Query classification is too uncertain.",
                code="LOW_CONFIDENCE",
                agent="routing",
            )

        if not explanation:
            raise AgentError(
                "Explanation cannot be empty", code="INVALID_RESPONSE", agent="routing",
            )

        return RoutingResult(category=category, confidence=confidence, explanation=explanation)
