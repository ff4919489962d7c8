# =============================================================================
# Calculation Agent — Extract, Compute, Render
# =============================================================================
#
# Natural-language profit-sharing questions are answered in three steps:
#
#   1. EXTRACT  one LLM call → strict JSON {type, parameters}
#   2. COMPUTE  call_tool("calculate_musharakah" | "calculate_mudharabah")
#               on the deterministic calculation tool
#   3. RENDER   markdown answer + flat inputs/outputs maps
#
# The LLM never does arithmetic; it only turns prose into parameters.
# Steps 1 and 2 are retried independently on transport failures, so a
# flaky tool transport never triggers a second extraction call.
#
# ERRORS:
#   EXTRACTION_PARSE_ERROR — unusable extraction output (terminal)
#   VALIDATION_ERROR       — the tool rejected the parameters (terminal)
#   TOOL_ERROR             — any other tool failure or unusable output (terminal)
# =============================================================================

from __future__ import annotations

import json
import logging
import re

from shariah_qa.agents.errors import AgentError
from shariah_qa.agents.prompts import CalculationPromptBuilder
from shariah_qa.agents.retry import RetryPolicy
from shariah_qa.agents.types import CalculationResult, CalculationType
from shariah_qa.config import settings
from shariah_qa.services.calculator import MudharabahInput, MusharakahInput
from shariah_qa.services.llm import LLMProvider, user_message
from shariah_qa.services.tools import (
    MUDHARABAH_TOOL,
    MUSHARAKAH_TOOL,
    CalculationTool,
    ToolResult,
)

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```json\n?|\n?```")

EXTRACTION_PARSE_MESSAGE = (
    "Failed to parse extraction response. Please rephrase your query with "
    "clear investment amounts and profit/loss values."
)

_TOOL_FOR_TYPE = {
    CalculationType.MUSHARAKAH: MUSHARAKAH_TOOL,
    CalculationType.MUDHARABAH: MUDHARABAH_TOOL,
}

_SCHEMA_FOR_TYPE = {
    CalculationType.MUSHARAKAH: MusharakahInput,
    CalculationType.MUDHARABAH: MudharabahInput,
}


class CalculationAgent:
    def __init__(
        self,
        llm: LLMProvider,
        tool: CalculationTool,
        retry: RetryPolicy | None = None,
        temperature: float | None = None,
    ) -> None:
        self._llm = llm
        self._tool = tool
        self._retry = retry or RetryPolicy()
        self._prompts = CalculationPromptBuilder()
        self._temperature = (
            settings.calculation_temperature if temperature is None else temperature
        )

    async def calculate(self, query: str) -> CalculationResult:
        """Answer a Musharakah/Mudharabah distribution question."""
        if not query or not query.strip():
            raise AgentError("Query cannot be empty", code="EMPTY_QUERY", agent="calculation")

        calc_type, parameters = await self._retry.run(
            lambda: self._extract(query),
            agent="calculation",
            action="extract calculation parameters",
        )
        logger.info("Extracted %s parameters: %s", calc_type.value, parameters)

        tool_name = _TOOL_FOR_TYPE[calc_type]
        tool_result = await self._retry.run(
            lambda: self._tool.call_tool(tool_name, parameters),
            agent="calculation",
            action="run calculation tool",
        )
        output = self._check_tool_result(tool_result)

        try:
            return CalculationResult(
                type=calc_type,
                inputs=extract_inputs(calc_type, parameters),
                outputs=extract_outputs(output),
                steps=list(output.get("calculation_steps") or []),
                rendered_text=render_markdown(output),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            # pydantic.ValidationError is a ValueError subclass
            raise AgentError(
                f"Calculation tool returned an unexpected result: {exc!r}",
                code="TOOL_ERROR",
                agent="calculation",
                cause=exc,
            ) from exc

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _extract(self, query: str) -> tuple[CalculationType, dict]:
        response = await self._llm.complete(
            user_message(self._prompts.build_prompt(query)),
            temperature=self._temperature,
        )
        return parse_extraction(response.content)

    @staticmethod
    def _check_tool_result(result: ToolResult) -> dict:
        if result.is_error:
            text = result.result_text or "Calculation tool returned error"
            if "Validation Error" in text:
                raise AgentError(text, code="VALIDATION_ERROR", agent="calculation")
            raise AgentError(
                f"Calculation tool failed: {text}", code="TOOL_ERROR", agent="calculation",
            )

        try:
            return json.loads(result.result_text)
        except json.JSONDecodeError as exc:
            raise AgentError(
                f"Calculation tool returned invalid JSON: {exc}",
                code="TOOL_ERROR",
                agent="calculation",
                cause=exc,
            ) from exc


# ---------------------------------------------------------------------------
# Parsing & Rendering
# ---------------------------------------------------------------------------


def parse_extraction(content: str) -> tuple[CalculationType, dict]:
    """Parse `{type, parameters}` from the extraction reply, fences allowed."""
    cleaned = _CODE_FENCE.sub("", content).strip()
    try:
        parsed = json.loads(cleaned)
        if not isinstance(parsed, dict):
            raise ValueError("Extraction response is not a JSON object")
        if not parsed.get("type") or not parsed.get("parameters"):
            raise ValueError("Missing type or parameters in response")
        calc_type = CalculationType(parsed["type"])
        parameters = parsed["parameters"]
        if not isinstance(parameters, dict):
            raise ValueError("parameters must be a JSON object")
    except ValueError as exc:
        # json.JSONDecodeError is a ValueError subclass
        raise AgentError(
            EXTRACTION_PARSE_MESSAGE,
            code="EXTRACTION_PARSE_ERROR",
            agent="calculation",
            cause=exc,
        ) from exc
    return calc_type, parameters


def extract_inputs(calc_type: CalculationType, parameters: dict) -> dict[str, float]:
    """
    Flat inputs map read through the tool's own schema, so camelCase and
    snake_case parameter keys both work.
    """
    data = _SCHEMA_FOR_TYPE[calc_type].model_validate(parameters)
    if isinstance(data, MusharakahInput):
        inputs = {f"{p.name}_investment": p.investment for p in data.partners}
        inputs["total_profit"] = data.total_profit
        return inputs
    return {
        "capital_amount": data.capital_amount,
        "profit": data.profit,
        "capital_provider_ratio": data.capital_provider_ratio,
        "entrepreneur_ratio": data.entrepreneur_ratio,
    }


def extract_outputs(output: dict) -> dict[str, float]:
    distribution = output["distribution"]
    if isinstance(distribution, list):
        return {d["partner"]: float(d["share"]) for d in distribution}
    return {
        "capital_provider": float(distribution["capital_provider_rabb_al_mal"]["share"]),
        "entrepreneur": float(distribution["entrepreneur_mudarib"]["share"]),
    }


def format_currency(value: float) -> str:
    """12000 → '$12,000.00'; negatives as '-$1,500.00'."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percentage(ratio: float) -> str:
    """0.6 → '60.00%'."""
    return f"{ratio * 100:.2f}%"


def _percent_string(raw: str) -> str:
    """'60%' or '60.00%' as '60.00%'."""
    return format_percentage(float(raw.rstrip("%")) / 100)


def render_markdown(output: dict) -> str:
    lines = [
        f"## {output['summary']}",
        "",
        f"**Contract Type**: {output['contract_type']}",
        "",
    ]

    if "total_investment" in output:
        lines.append(f"**Total Investment**: {format_currency(output['total_investment'])}")
    if "capital_amount" in output:
        lines.append(f"**Capital Amount**: {format_currency(output['capital_amount'])}")

    amount = output.get("total_profit_loss", output.get("profit_loss", 0))
    label = "Loss" if output["is_loss"] else "Profit"
    lines.append(f"**{label}**: {format_currency(abs(amount))}")
    lines.append("")

    lines.append("### Distribution:")
    distribution = output["distribution"]
    if isinstance(distribution, list):
        for d in distribution:
            lines.append(
                f"- **{d['partner']}**: {format_currency(float(d['share']))} "
                f"({_percent_string(d['capitalRatio'])} capital)"
            )
    else:
        roles = (
            ("Capital Provider (Rabb al-Mal)", distribution["capital_provider_rabb_al_mal"]),
            ("Entrepreneur (Mudarib)", distribution["entrepreneur_mudarib"]),
        )
        for title, entry in roles:
            line = f"- **{title}**: {format_currency(float(entry['share']))}"
            if entry.get("ratio"):
                line += f" ({_percent_string(entry['ratio'])})"
            elif entry.get("explanation"):
                line += f" ({entry['explanation']})"
            lines.append(line)
    lines.append("")

    lines.append("### Shariah Compliance:")
    lines.append(output["shariah_explanation"])
    lines.append("")

    steps = output.get("calculation_steps") or []
    if steps:
        lines.append("### Calculation Steps:")
        # steps carry their own numbering
        lines.extend(steps)

    return "\n".join(lines)
