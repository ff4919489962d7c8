"""Parameter-extraction prompt for the calculation agent."""

from __future__ import annotations

import json

from shariah_qa.agents.prompts.base import Example, PromptBuilder


def _json_example(query: str, payload: dict, description: str) -> Example:
    return Example(query, json.dumps(payload, indent=2), description)


_EXAMPLES = (
    _json_example(
        "Calculate Musharakah with Ali investing $50k, Sara $30k, profit $20k",
        {
            "type": "musharakah",
            "parameters": {
                "partners": [
                    {"name": "Ali", "investment": 50000},
                    {"name": "Sara", "investment": 30000},
                ],
                "totalProfit": 20000,
            },
        },
        "Musharakah without custom profit ratio",
    ),
    _json_example(
        "Partnership: $100k and $200k investment, profit $30k split 60-40",
        {
            "type": "musharakah",
            "parameters": {
                "partners": [
                    {"name": "Partner A", "investment": 100000},
                    {"name": "Partner B", "investment": 200000},
                ],
                "totalProfit": 30000,
                "profitRatio": [0.6, 0.4],
            },
        },
        "Musharakah with custom profit ratio",
    ),
    _json_example(
        "Three partners: $100k, $200k, $150k with loss of $45k",
        {
            "type": "musharakah",
            "parameters": {
                "partners": [
                    {"name": "Partner A", "investment": 100000},
                    {"name": "Partner B", "investment": 200000},
                    {"name": "Partner C", "investment": 150000},
                ],
                "totalProfit": -45000,
            },
        },
        "Musharakah with loss (negative profit)",
    ),
    _json_example(
        "Mudharabah: capital $100k, 60-40 split, profit $30k",
        {
            "type": "mudharabah",
            "parameters": {
                "capitalAmount": 100000,
                "profit": 30000,
                "capitalProviderRatio": 0.6,
                "entrepreneurRatio": 0.4,
            },
        },
        "Mudharabah with explicit ratio",
    ),
    _json_example(
        "Capital provider invests $500k, entrepreneur gets 30%, profit $80k",
        {
            "type": "mudharabah",
            "parameters": {
                "capitalAmount": 500000,
                "profit": 80000,
                "capitalProviderRatio": 0.7,
                "entrepreneurRatio": 0.3,
            },
        },
        "Mudharabah with entrepreneur ratio (calculate provider ratio)",
    ),
    _json_example(
        "Mudharabah with $200k capital, Rabb al-Mal gets 70%, loss of $20k",
        {
            "type": "mudharabah",
            "parameters": {
                "capitalAmount": 200000,
                "profit": -20000,
                "capitalProviderRatio": 0.7,
                "entrepreneurRatio": 0.3,
            },
        },
        "Mudharabah with loss scenario",
    ),
    _json_example(
        "Calculate 70:30 Mudharabah for $1.5M profit, capital was $5M",
        {
            "type": "mudharabah",
            "parameters": {
                "capitalAmount": 5000000,
                "profit": 1500000,
                "capitalProviderRatio": 0.7,
                "entrepreneurRatio": 0.3,
            },
        },
        "Large numbers with ratio notation",
    ),
    _json_example(
        "Four-way Musharakah: Ahmed $25k, Fatima $35k, Omar $40k, Aisha $20k. "
        "Profit $24k with custom split 30-25-25-20",
        {
            "type": "musharakah",
            "parameters": {
                "partners": [
                    {"name": "Ahmed", "investment": 25000},
                    {"name": "Fatima", "investment": 35000},
                    {"name": "Omar", "investment": 40000},
                    {"name": "Aisha", "investment": 20000},
                ],
                "totalProfit": 24000,
                "profitRatio": [0.3, 0.25, 0.25, 0.2],
            },
        },
        "Multiple partners with names and custom ratio",
    ),
    _json_example(
        "Mudarib receives 25% in a Mudharabah with $750k capital and $150k profit",
        {
            "type": "mudharabah",
            "parameters": {
                "capitalAmount": 750000,
                "profit": 150000,
                "capitalProviderRatio": 0.75,
                "entrepreneurRatio": 0.25,
            },
        },
        "Islamic terminology (Mudarib)",
    ),
)


class CalculationPromptBuilder(PromptBuilder[str]):
    def system_prompt(self) -> str:
        return """You are a parameter extractor for Islamic finance calculations.
Extract calculation type and numerical parameters from user queries.

CALCULATION TYPES:
1. musharakah - Partnership where multiple partners invest capital and share profit/loss
   - All partners contribute capital
   - Profits distributed by pre-agreed ratio (or capital ratio if not specified)
   - Losses ALWAYS distributed by capital ratio (Shariah requirement)

2. mudharabah - Capital provider (Rabb al-Mal) + Entrepreneur (Mudarib)
   - Capital provider supplies 100% capital
   - Entrepreneur provides labor and expertise
   - Profits shared by pre-agreed ratio
   - Losses borne entirely by capital provider (Shariah requirement)

PARAMETERS TO EXTRACT:

For Musharakah:
  - partners: Array of {name: string, investment: number}
  - totalProfit: number (negative for loss)
  - profitRatio: Array of numbers (optional, must sum to 1.0)

For Mudharabah:
  - capitalAmount: number
  - profit: number (negative for loss)
  - capitalProviderRatio: number (0-1)
  - entrepreneurRatio: number (0-1, must sum to 1.0 with capitalProviderRatio)

EXTRACTION RULES:
1. Convert all percentages to decimals (60% -> 0.6, 25% -> 0.25)
2. Normalize ratios that don't sum to 1:
   - "3 to 2 ratio" -> 3/(3+2) = 0.6, 2/(3+2) = 0.4
   - "60:40" -> 0.6, 0.4
3. Infer partner names if not specified (use "Partner A", "Partner B", "Partner C", etc.)
4. If profit ratio not specified in Musharakah, omit profitRatio field (will default to capital ratio)
5. For Mudharabah, if only one ratio given (e.g., "entrepreneur gets 30%"), calculate the other (0.7, 0.3)
6. Negative amounts indicate losses
7. Extract numerical values accurately, including decimals and large numbers"""

    def output_format(self) -> str:
        return """OUTPUT FORMAT (strict JSON only, no markdown):
{
  "type": "musharakah" | "mudharabah",
  "parameters": {
    // For musharakah:
    "partners": [{"name": string, "investment": number}, ...],
    "totalProfit": number,
    "profitRatio"?: [number, ...]  // optional

    // For mudharabah:
    "capitalAmount": number,
    "profit": number,
    "capitalProviderRatio": number,
    "entrepreneurRatio": number
  }
}"""

    def examples(self) -> str:
        return self.format_examples(_EXAMPLES)

    def task_section(self, task_input: str) -> str:
        return (
            "Extract parameters from this query. Return ONLY the JSON object, "
            "no markdown formatting.\n\n"
            f'Query: "{task_input}"\n\n'
            "Output:"
        )
