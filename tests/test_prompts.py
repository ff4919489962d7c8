# =============================================================================
# Unit Tests — Prompt Builders
# =============================================================================

from __future__ import annotations

import json

from shariah_qa.agents.prompts import (
    CalculationPromptBuilder,
    CompliancePromptBuilder,
    Example,
    KnowledgeInput,
    KnowledgePromptBuilder,
    PromptBuilder,
    RoutingPromptBuilder,
    build_general_prompt,
)
from shariah_qa.agents.prompts.compliance import VALIDATION_RULES


class _EchoBuilder(PromptBuilder[str]):
    def system_prompt(self) -> str:
        return "SYSTEM"

    def output_format(self) -> str:
        return "FORMAT"

    def examples(self) -> str:
        return "EXAMPLES"

    def task_section(self, task_input: str) -> str:
        return f"TASK {task_input}"


class TestPromptBuilderBase:
    def test_sections_joined_in_order(self):
        assert _EchoBuilder().build_prompt("q") == "SYSTEM\n\nFORMAT\n\nEXAMPLES\n\nTASK q"

    def test_format_example_without_description(self):
        text = PromptBuilder.format_example(Example("What is Riba?", "principles|0.9|x"))
        assert text == 'Query: "What is Riba?"\nOutput: principles|0.9|x'

    def test_format_example_with_description(self):
        text = PromptBuilder.format_example(Example("q", "o", "note"))
        assert text.endswith("\n// note")

    def test_deterministic(self):
        builder = RoutingPromptBuilder()
        assert builder.build_prompt("What is Sukuk?") == builder.build_prompt("What is Sukuk?")


class TestRoutingPrompt:
    def test_lists_every_category(self):
        prompt = RoutingPromptBuilder().build_prompt("hi")
        for category in ("principles", "products", "compliance",
                         "comparison", "calculation", "general"):
            assert f"- {category}:" in prompt

    def test_output_format_and_task(self):
        prompt = RoutingPromptBuilder().build_prompt("What is Riba?")
        assert "OUTPUT FORMAT: category|confidence|explanation" in prompt
        assert prompt.endswith('Now classify this query:\nQuery: "What is Riba?"\nOutput:')

    def test_contains_examples(self):
        prompt = RoutingPromptBuilder().build_prompt("x")
        assert "How does Murabaha financing work?" in prompt


class TestKnowledgePrompt:
    def test_task_includes_query_and_context(self):
        prompt = KnowledgePromptBuilder().build_prompt(
            KnowledgeInput(query="What is Riba?", context="[Source 1]\nRiba is interest.")
        )
        assert prompt.endswith(
            'Now answer this query using the provided context:\n'
            'Query: "What is Riba?"\n'
            "Context: [Source 1]\nRiba is interest.\n"
            "Answer:"
        )
        assert "ONLY the provided context" in prompt

    def test_general_prompt(self):
        prompt = build_general_prompt("Hello")
        assert "Question: Hello" in prompt
        assert "Islamic finance" in prompt


class TestCalculationPrompt:
    def test_task_section(self):
        prompt = CalculationPromptBuilder().build_prompt("Split $20,000")
        assert prompt.endswith('Query: "Split $20,000"\n\nOutput:')
        assert "Return ONLY the JSON object" in prompt

    def test_examples_are_valid_json(self):
        examples = CalculationPromptBuilder().examples()
        outputs = [
            block.split("Output: ", 1)[1].split("\n// ")[0]
            for block in examples.split("\n\nQuery: ")
        ]
        assert outputs
        for output in outputs:
            parsed = json.loads(output)
            assert parsed["type"] in ("musharakah", "mudharabah")
            assert isinstance(parsed["parameters"], dict)


class TestCompliancePrompt:
    def test_rules_between_system_and_format(self):
        prompt = CompliancePromptBuilder().build_prompt("Murabaha is cost-plus sale.")
        assert prompt.index("Shariah compliance validator") < prompt.index(VALIDATION_RULES)
        assert prompt.index(VALIDATION_RULES) < prompt.index("OUTPUT FORMAT:")

    def test_task_section(self):
        prompt = CompliancePromptBuilder().build_prompt("Sukuk are certificates.")
        assert prompt.endswith(
            'Now validate this response:\n'
            'Response to validate: "Sukuk are certificates."\n'
            "Validation:"
        )
