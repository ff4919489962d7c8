# =============================================================================
# Calculation Tool Boundary — call_tool(name, args) → ToolResult
# =============================================================================
#
# The calculation agent never imports the calculators directly. It calls a
# named tool with a JSON-style argument dict and gets back text plus an
# error flag, the same shape whether the calculators run in this process
# or in a Celery worker:
#
#   CalculationTool (Protocol)
#   ├── LocalCalculationTool  — execute_tool() in a worker thread
#   └── CeleryCalculationTool — send_task() to a worker, await the result
#
# Tool-level failures (bad arguments, unknown tool) are returned as
# ToolResult(is_error=True). Transport failures (broker down, result
# timeout) are raised with "connection"/"timeout" in the message so the
# agent's RetryPolicy treats them as transient.
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from typing import Protocol

from celery import Celery
from celery.exceptions import TimeoutError as CeleryTimeoutError
from kombu.exceptions import OperationalError
from pydantic import ValidationError

from shariah_qa.config import settings
from shariah_qa.services.calculator import (
    MudharabahInput,
    MusharakahInput,
    calculate_mudharabah,
    calculate_musharakah,
    format_validation_error,
)

logger = logging.getLogger(__name__)

MUSHARAKAH_TOOL = "calculate_musharakah"
MUDHARABAH_TOOL = "calculate_mudharabah"
CALCULATION_TASK = "shariah_qa.workers.tasks.call_calculation_tool"


@dataclass
class ToolResult:
    result_text: str
    is_error: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class CalculationTool(Protocol):
    async def call_tool(self, name: str, args: dict) -> ToolResult:
        ...


# ---------------------------------------------------------------------------
# Tool Registry
# ---------------------------------------------------------------------------

_TOOLS = {
    MUSHARAKAH_TOOL: (MusharakahInput, calculate_musharakah),
    MUDHARABAH_TOOL: (MudharabahInput, calculate_mudharabah),
}


def execute_tool(name: str, args: dict) -> ToolResult:
    """
    Validate `args` against the tool's schema and run the calculator.

    Synchronous and side-effect free; shared by the in-process transport
    and the Celery task.
    """
    if name not in _TOOLS:
        return ToolResult(f"Unknown tool: {name}", is_error=True)

    schema, calculator = _TOOLS[name]
    try:
        validated = schema.model_validate(args)
    except ValidationError as exc:
        return ToolResult(format_validation_error(exc), is_error=True)

    output = calculator(validated)
    return ToolResult(json.dumps(output, indent=2, ensure_ascii=False))


# ---------------------------------------------------------------------------
# Transport 1: In-Process
# ---------------------------------------------------------------------------


class LocalCalculationTool:
    async def call_tool(self, name: str, args: dict) -> ToolResult:
        return await asyncio.to_thread(execute_tool, name, args)


# ---------------------------------------------------------------------------
# Transport 2: Celery Worker
# ---------------------------------------------------------------------------


class CeleryCalculationTool:
    """
    Runs the calculation tool as a Celery task.

    The broker connection is verified lazily on first use and again after
    any transport failure, so a restarted Redis is picked up without
    restarting the API process.
    """

    def __init__(self, app: Celery | None = None, timeout: float | None = None) -> None:
        if app is None:
            from shariah_qa.workers.celery_app import celery_app

            app = celery_app
        self._app = app
        self._timeout = (
            settings.calculation_tool_timeout_seconds if timeout is None else timeout
        )
        self._connected = False

    def _ensure_connection(self) -> None:
        if self._connected:
            return
        with self._app.connection_for_write() as conn:
            conn.ensure_connection(max_retries=1)
        self._connected = True
        logger.info("Connected to calculation tool broker")

    def _call_sync(self, name: str, args: dict) -> ToolResult:
        try:
            self._ensure_connection()
            async_result = self._app.send_task(CALCULATION_TASK, args=[name, args])
            payload = async_result.get(timeout=self._timeout)
        except CeleryTimeoutError as exc:
            raise TimeoutError(
                f"Calculation tool timeout after {self._timeout}s"
            ) from exc
        except OperationalError as exc:
            self._connected = False
            raise ConnectionError(
                f"Calculation tool connection failed: {exc}"
            ) from exc

        return ToolResult(
            result_text=payload["result_text"],
            is_error=bool(payload.get("is_error", False)),
        )

    async def call_tool(self, name: str, args: dict) -> ToolResult:
        return await asyncio.to_thread(self._call_sync, name, args)


def create_calculation_tool(
    transport: str | None = None,
) -> LocalCalculationTool | CeleryCalculationTool:
    """Build the configured transport ("local" | "celery")."""
    resolved = transport or settings.calculation_tool_transport
    if resolved == "local":
        return LocalCalculationTool()
    if resolved == "celery":
        return CeleryCalculationTool()
    raise ValueError(
        f"Unknown calculation tool transport '{resolved}'. "
        "Supported: 'local', 'celery'"
    )
