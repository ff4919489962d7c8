# =============================================================================
# Retry Policy — One Backoff Discipline for Every Agent
# =============================================================================
#
# Every external round trip made by an agent (LLM call, calculation tool
# call, embedding request) goes through RetryPolicy.run(). Observable
# behaviour is therefore identical across agents:
#
#   attempt 1 ──fail(transient)──▶ sleep 1s ──▶ attempt 2 ──fail──▶ sleep 2s
#       ──▶ attempt 3 ──fail──▶ AgentError(CONNECTION_FAILED | TIMEOUT |
#                                          RATE_LIMIT | UNKNOWN_ERROR)
#
# Transient failures are recognised by substring match on the lower-cased
# exception message. Validation AgentErrors pass straight through.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from shariah_qa.agents.errors import AgentError, AgentName
from shariah_qa.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_MARKERS = (
    "connection",
    "timeout",
    "econnrefused",
    "enotfound",
    "rate limit",
    "429",
    "503",
    "network",
)


def error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def is_transient(exc: BaseException) -> bool:
    """Whether a failure looks like a connection, timeout or rate-limit issue."""
    if isinstance(exc, AgentError):
        return exc.retryable
    message = error_message(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def error_code_for(exc: BaseException) -> str:
    """Canonical code for a failure that exhausted (or skipped) retries."""
    if isinstance(exc, AgentError):
        return exc.code

    message = error_message(exc).lower()
    if "connection" in message or "econnrefused" in message:
        return "CONNECTION_FAILED"
    if "timeout" in message:
        return "TIMEOUT"
    if "rate limit" in message or "429" in message:
        return "RATE_LIMIT"
    return "UNKNOWN_ERROR"


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Seconds to wait after failed `attempt` (1-based)."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


class RetryPolicy:
    """
    Bounded exponential-backoff retry around one awaitable operation.

    The sleep function is injectable so tests can run without real delays
    and assert on the schedule.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.max_attempts = (
            settings.retry_max_attempts if max_attempts is None else max_attempts
        )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        self.base_delay = (
            settings.retry_base_delay if base_delay is None else base_delay
        )
        self.max_delay = settings.retry_max_delay if max_delay is None else max_delay
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        agent: AgentName,
        action: str = "complete request",
    ) -> T:
        """
        Await `operation()` with retries.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt.
            agent: Name recorded on any AgentError raised from here.
            action: Human-readable verb phrase used in the final error message.

        Raises:
            AgentError: the operation's own non-retryable AgentError, or a
                wrapped error once retries are exhausted or the failure is
                not transient.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except AgentError as exc:
                if not exc.retryable:
                    raise
                failure: BaseException = exc
            except Exception as exc:
                failure = exc

            last_attempt = attempt == self.max_attempts
            if not is_transient(failure) or last_attempt:
                raise AgentError(
                    f"Failed to {action} after {attempt} attempt(s): "
                    f"{error_message(failure)}",
                    code=error_code_for(failure),
                    agent=agent,
                    cause=failure,
                ) from failure

            delay = backoff_delay(attempt, self.base_delay, self.max_delay)
            logger.warning(
                "%s agent attempt %d/%d failed (%s); retrying in %.1fs",
                agent, attempt, self.max_attempts, error_message(failure), delay,
            )
            await self._sleep(delay)

        # range() above always returns or raises
        raise AssertionError("unreachable")
