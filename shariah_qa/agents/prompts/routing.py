"""Classification prompt for the routing agent."""

from __future__ import annotations

from shariah_qa.agents.prompts.base import Example, PromptBuilder

_EXAMPLES = (
    Example("What is riba and why is it prohibited?",
            "principles|0.95|Query asks about fundamental prohibition in Islamic finance"),
    Example("How does Murabaha financing work?",
            "products|0.92|Query about specific Islamic finance product"),
    Example("Is my investment Shariah-compliant?",
            "compliance|0.90|Query about checking Shariah compliance"),
    Example("What's the difference between Islamic and conventional banking?",
            "comparison|0.93|Direct comparison between two systems"),
    Example("Calculate profit distribution for 60-40 Mudharabah with $100,000 profit",
            "calculation|0.95|Requires profit-sharing calculation"),
    Example("Hello, can you help me?",
            "general|0.85|Greeting without specific Islamic finance question"),
    Example("Why is gharar prohibited in transactions?",
            "principles|0.94|Question about core Islamic finance principle"),
    Example("Explain how Sukuk bonds work",
            "products|0.91|Query about specific Islamic financial instrument"),
    Example("Does my portfolio meet Islamic standards?",
            "compliance|0.89|Question about Shariah compliance verification"),
    Example("Compare Takaful vs conventional insurance",
            "comparison|0.92|Comparing Islamic and conventional products"),
    Example("What's 70-30 split of $50,000 profit in Musharakah?",
            "calculation|0.94|Specific profit-sharing calculation"),
    Example("Thanks for your help!",
            "general|0.88|Gratitude expression"),
    Example("What is maqasid al-shariah?",
            "principles|0.93|Question about foundational Islamic law concept"),
    Example("How does Ijarah leasing structure work?",
            "products|0.90|Query about specific Islamic lease product"),
    Example("Shariah board certification process requirements?",
            "compliance|0.87|Question about compliance governance"),
    Example("Islamic mortgage vs conventional - key differences?",
            "comparison|0.91|Direct comparison of financing methods"),
    Example("Musharakah profit-sharing formula?",
            "calculation|0.86|Question about calculation methodology"),
    Example("Hi there", "general|0.90|Simple greeting"),
    Example("Explain the maslaha principle",
            "principles|0.92|Question about Islamic jurisprudence principle"),
    Example("What is Wakalah in Islamic finance?",
            "products|0.89|Query about Islamic finance product/contract"),
)


class RoutingPromptBuilder(PromptBuilder[str]):
    def system_prompt(self) -> str:
        return (
            "You are a query classifier for Islamic finance. Classify each "
            "query into exactly ONE category.\n\n"
            "CATEGORIES:\n"
            "- principles: Questions about Islamic finance fundamentals, "
            "concepts, Shariah principles, halal/haram rules\n"
            "- products: Questions about specific Islamic financial products "
            "(Murabaha, Ijarah, Sukuk, Takaful, etc.)\n"
            "- compliance: Questions about Shariah compliance verification, "
            "auditing, governance\n"
            "- comparison: Questions comparing Islamic vs conventional finance, "
            "or comparing Islamic products\n"
            "- calculation: Questions requiring profit-sharing calculations "
            "(Mudharabah, Musharakah profit distribution)\n"
            "- general: Greetings, small talk, unclear queries not fitting "
            "other categories"
        )

    def output_format(self) -> str:
        return "OUTPUT FORMAT: category|confidence|explanation"

    def examples(self) -> str:
        return "EXAMPLES:\n" + self.format_examples(_EXAMPLES)

    def task_section(self, task_input: str) -> str:
        return f'Now classify this query:\nQuery: "{task_input}"\nOutput:'
