# =============================================================================
# Unit Tests — Calculation Tool Boundary
# =============================================================================
#
# The Celery transport is tested against a MagicMock app; no broker needed.
# =============================================================================

from __future__ import annotations

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from celery.exceptions import TimeoutError as CeleryTimeoutError
from kombu.exceptions import OperationalError

from shariah_qa.services.tools import (
    CALCULATION_TASK,
    MUDHARABAH_TOOL,
    MUSHARAKAH_TOOL,
    CeleryCalculationTool,
    LocalCalculationTool,
    create_calculation_tool,
    execute_tool,
)
from shariah_qa.workers.tasks import call_calculation_tool

MUSHARAKAH_ARGS = {
    "partners": [
        {"name": "A", "investment": 60000},
        {"name": "B", "investment": 40000},
    ],
    "totalProfit": 20000,
}


def _run(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class TestExecuteTool:
    def test_success_is_json(self):
        result = execute_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS)
        assert result.is_error is False
        output = json.loads(result.result_text)
        assert output["distribution"][0]["share"] == "12000.00"

    def test_arabic_kept_unescaped(self):
        result = execute_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS)
        assert "شراكة" in result.result_text

    def test_unknown_tool(self):
        result = execute_tool("calculate_ijarah", {})
        assert result.is_error is True
        assert result.result_text == "Unknown tool: calculate_ijarah"

    def test_validation_error_reported(self):
        result = execute_tool(MUDHARABAH_TOOL, {"capitalAmount": -5})
        assert result.is_error is True
        assert result.result_text.startswith("Validation Error: ")


class TestLocalTransport:
    def test_call_tool(self):
        result = _run(LocalCalculationTool().call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))
        assert not result.is_error

    def test_factory(self):
        assert isinstance(create_calculation_tool("local"), LocalCalculationTool)

    def test_factory_rejects_unknown(self):
        with pytest.raises(ValueError):
            create_calculation_tool("grpc")


class TestCeleryTransport:
    def _app(self) -> MagicMock:
        app = MagicMock()
        app.send_task.return_value.get.return_value = {
            "result_text": "{}", "is_error": False,
        }
        return app

    def test_sends_named_task(self):
        app = self._app()
        tool = CeleryCalculationTool(app=app, timeout=5)

        result = _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))

        assert result.result_text == "{}"
        app.send_task.assert_called_once_with(
            CALCULATION_TASK, args=[MUSHARAKAH_TOOL, MUSHARAKAH_ARGS],
        )
        app.send_task.return_value.get.assert_called_once_with(timeout=5)

    def test_connection_checked_once(self):
        app = self._app()
        tool = CeleryCalculationTool(app=app, timeout=5)
        _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))
        _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))
        assert app.connection_for_write.call_count == 1

    def test_result_timeout_is_transient_timeout(self):
        app = self._app()
        app.send_task.return_value.get.side_effect = CeleryTimeoutError("late")
        tool = CeleryCalculationTool(app=app, timeout=5)

        with pytest.raises(TimeoutError, match="timeout after 5s"):
            _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))

    def test_broker_failure_is_connection_error(self):
        app = self._app()
        app.send_task.side_effect = OperationalError("Error 111 connecting to redis")
        tool = CeleryCalculationTool(app=app, timeout=5)

        with pytest.raises(ConnectionError, match="connection failed"):
            _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))

        app.send_task.side_effect = None
        _run(tool.call_tool(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS))
        assert app.connection_for_write.call_count == 2


class TestCeleryTask:
    def test_task_returns_plain_dict(self):
        payload = call_calculation_tool.run(MUSHARAKAH_TOOL, MUSHARAKAH_ARGS)
        assert payload["is_error"] is False
        assert json.loads(payload["result_text"])["total_investment"] == 100000

    def test_task_reports_validation_error(self):
        payload = call_calculation_tool.run(MUSHARAKAH_TOOL, {"partners": []})
        assert payload["is_error"] is True
