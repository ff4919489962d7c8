# =============================================================================
# Agent Errors — Code-Tagged Exceptions
# =============================================================================
#
# Every failure inside an agent or boundary is an AgentError carrying a
# string code. Whether a code may be retried is decided by
# is_retryable_code(), a pure function over the code.
#
# The orchestrator re-wraps AgentErrors into OrchestratorErrors that also
# record which pipeline step failed.
#
#   AgentError(code, agent, cause)
#     ├── validation codes   → terminal, caller must rephrase/fix input
#     ├── transient codes    → CONNECTION_FAILED / TIMEOUT / RATE_LIMIT
#     └── UNKNOWN_ERROR      → surfaced once
#   OrchestratorError(code, step, cause)
# =============================================================================

from __future__ import annotations

from typing import Literal

AgentName = Literal["routing", "knowledge", "calculation", "compliance", "embedding"]
PipelineStep = Literal["routing", "knowledge", "calculation", "compliance"]

# Codes that mean "the input or the model output was unusable". Never retried.
VALIDATION_CODES = frozenset({
    "EMPTY_QUERY",
    "EMPTY_RESPONSE",
    "EMPTY_TEXT",
    "EMPTY_ARRAY",
    "INVALID_RESPONSE",
    "INVALID_CATEGORY",
    "INVALID_CONFIDENCE",
    "INVALID_STATUS",
    "INVALID_DIMENSIONS",
    "LOW_CONFIDENCE",
    "LOW_CONFIDENCE_VALIDATION",
    "NO_RESULTS",
    "EXTRACTION_PARSE_ERROR",
    "VALIDATION_ERROR",
})

TRANSIENT_CODES = frozenset({"CONNECTION_FAILED", "TIMEOUT", "RATE_LIMIT"})


def is_retryable_code(code: str) -> bool:
    """True for codes that describe a transport failure, never for validation."""
    return code in TRANSIENT_CODES


class AgentError(Exception):
    """Failure raised by an agent or one of its boundaries."""

    def __init__(
        self,
        message: str,
        code: str,
        agent: AgentName | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.agent = agent
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return is_retryable_code(self.code)

    @property
    def is_validation(self) -> bool:
        return self.code in VALIDATION_CODES

    def __repr__(self) -> str:
        return (
            f"AgentError(code={self.code!r}, agent={self.agent!r}, "
            f"message={self.message!r})"
        )


# Orchestrator-level code for each failing step.
STEP_ERROR_CODES: dict[str, str] = {
    "routing": "ROUTING_FAILED",
    "knowledge": "KNOWLEDGE_FAILED",
    "calculation": "CALCULATION_FAILED",
    "compliance": "COMPLIANCE_FAILED",
}


class OrchestratorError(Exception):
    """Terminal failure of one query, as reported in the `error` event."""

    def __init__(
        self,
        message: str,
        code: str,
        step: PipelineStep | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.step = step
        self.cause = cause

    def to_payload(self) -> dict:
        return {"message": self.message, "code": self.code, "step": self.step}


class SessionNotFoundError(KeyError):
    """Raised by SessionStore.update() for an unknown or expired session."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session not found: {self.session_id}"
