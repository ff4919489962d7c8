# =============================================================================
# Prompt Builders
# =============================================================================
# One builder per agent. Each assembles system instructions, output format,
# fixed few-shot examples and the task input into a single prompt string.
# =============================================================================

from shariah_qa.agents.prompts.base import Example, PromptBuilder
from shariah_qa.agents.prompts.calculation import CalculationPromptBuilder
from shariah_qa.agents.prompts.compliance import CompliancePromptBuilder
from shariah_qa.agents.prompts.knowledge import (
    INSUFFICIENT_INFORMATION,
    KnowledgeInput,
    KnowledgePromptBuilder,
    build_general_prompt,
)
from shariah_qa.agents.prompts.routing import RoutingPromptBuilder

__all__ = [
    "INSUFFICIENT_INFORMATION",
    "CalculationPromptBuilder",
    "CompliancePromptBuilder",
    "Example",
    "KnowledgeInput",
    "KnowledgePromptBuilder",
    "PromptBuilder",
    "RoutingPromptBuilder",
    "build_general_prompt",
]
