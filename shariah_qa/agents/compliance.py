# =============================================================================
# Compliance Agent — Five-Rule Shariah Validation
# =============================================================================
#
# Validates a generated answer against the rulebook in the compliance
# prompt (no riba promotion, no excessive gharar, no haram activities,
# respectful terminology, accurate concepts). The model replies:
#
#   status|confidence|reasoning[|violations][|suggestions]
#
# `violations` and `suggestions` are comma-separated; "NONE" means absent.
# Confidence below the threshold is rejected rather than trusted.
# =============================================================================

from __future__ import annotations

import logging

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.prompts import CompliancePromptBuilder
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.routing import parse_confidence
from shariah_qa.agents.types import ComplianceResult, ComplianceStatus
from shariah_qa.config import settings
from shariah_qa.services.llm import LLMProvider, user_message

logger = logging.getLogger(__name__)


def _split_list(raw: str | None) -> list[str] | None:
    if not raw or raw == "NONE":
        return None
    return [item.strip() for item in raw.split(",")]


class ComplianceAgent:
    def __init__(
        self,
        llm: LLMProvider,
        retry: RetryPolicy | None = None,
        confidence_threshold: float | None = None,
        temperature: float | None = None,
    ) -> None:
        self._llm = llm
        self._retry = retry or RetryPolicy()
        self._prompts = CompliancePromptBuilder()
        self.confidence_threshold = (
            settings.compliance_confidence_threshold
            if confidence_threshold is None
            else confidence_threshold
        )
        self._temperature = (
            settings.compliance_temperature if temperature is None else temperature
        )

    async def validate(self, response_text: str) -> ComplianceResult:
        """Check `response_text` against the five Shariah rules."""
        if not response_text or not response_text.strip():
            raise AgentError(
                "Response cannot be empty", code="EMPTY_RESPONSE", agent="compliance",
            )

        prompt = self._prompts.build_prompt(response_text)

        async def _attempt() -> ComplianceResult:
            response = await self._llm.complete(
                user_message(prompt), temperature=self._temperature,
            )
            return self._parse(response.content)

        result = await self._retry.run(
            _attempt, agent="compliance", action="validate response",
        )
        logger.info(
            "Compliance verdict %s (confidence=%.2f)",
            result.status.value, result.confidence,
        )
        return result

    def _parse(self, content: str) -> ComplianceResult:
        trimmed = content.strip()
        parts = [p.strip() for p in trimmed.split("|")]

        if not 3 <= len(parts) <= 5:
            raise AgentError(
                "Invalid response format: expected "
                '"status|confidence|reasoning[|violations][|suggestions]", '
                f'got "{trimmed}"',
                code="INVALID_RESPONSE",
                agent="compliance",
            )

        parts += [None] * (5 - len(parts))
        status_str, confidence_str, reasoning, violations_str, suggestions_str = parts

        try:
            status = ComplianceStatus(status_str)
        except ValueError:
            raise AgentError(
                f'Invalid status: "{status_str}". Must be COMPLIANT or FLAGGED',
                code="INVALID_STATUS",
                agent="compliance",
            ) from None

        confidence = parse_confidence(confidence_str)
        if confidence is None or not 0 <= confidence <= 1:
            raise AgentError(
                f'Invalid confidence: "{confidence_str}". '
                "Must be a number between 0 and 1",
                code="INVALID_CONFIDENCE",
                agent="compliance",
            )

        if confidence < self.confidence_threshold:
            raise AgentError(
                f"Low confidence validation: {confidence:.2f}. "
                "Validation too uncertain.",
                code="LOW_CONFIDENCE_VALIDATION",
                agent="compliance",
            )

        if not reasoning:
            raise AgentError(
                "Reasoning cannot be empty", code="INVALID_RESPONSE", agent="compliance",
            )

        return ComplianceResult(
            status=status,
            confidence=confidence,
            reasoning=reasoning,
            violations=_split_list(violations_str),
            suggestions=_split_list(suggestions_str),
        )
