"""Shared template assembly for the agent prompt builders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

InputT = TypeVar("InputT")


@dataclass(frozen=True)
class Example:
    input: str
    output: str
    description: str | None = None


class PromptBuilder(ABC, Generic[InputT]):
    """
    Deterministic prompt assembly: system instructions, output format,
    fixed few-shot examples, then the task input.

    Builders hold no state and do no I/O; the same input always yields the
    same prompt.
    """

    section_separator = "\n\n"

    def build_prompt(self, task_input: InputT) -> str:
        return self.section_separator.join(self.sections(task_input))

    def sections(self, task_input: InputT) -> list[str]:
        return [
            self.system_prompt(),
            self.output_format(),
            self.examples(),
            self.task_section(task_input),
        ]

    @abstractmethod
    def system_prompt(self) -> str: ...

    @abstractmethod
    def output_format(self) -> str: ...

    @abstractmethod
    def examples(self) -> str: ...

    @abstractmethod
    def task_section(self, task_input: InputT) -> str: ...

    @staticmethod
    def format_example(example: Example) -> str:
        lines = [f'Query: "{example.input}"', f"Output: {example.output}"]
        if example.description:
            lines.append(f"// {example.description}")
        return "\n".join(lines)

    @classmethod
    def format_examples(cls, examples: Sequence[Example]) -> str:
        return "\n\n".join(cls.format_example(ex) for ex in examples)
