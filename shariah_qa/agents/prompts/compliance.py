"""Five-rule Shariah compliance validation prompt."""

from __future__ import annotations

from shariah_qa.agents.prompts.base import Example, PromptBuilder

_EXAMPLES = (
    Example(
        "Murabaha is an Islamic financing method where the bank buys an asset "
        "and sells it to the customer at a profit margin, with payment deferred.",
        "COMPLIANT|0.95|Accurate description of Murabaha without promoting "
        "prohibited practices|NONE|NONE",
    ),
    Example(
        "Islamic banking is just conventional banking with Arabic names. "
        "Interest and profit are essentially the same thing.",
        "FLAGGED|0.92|Misrepresents Islamic finance and equates riba with halal "
        "profit|Promotes riba,Inaccurate Islamic concepts|Explain fundamental "
        "difference between riba and profit-sharing",
    ),
    Example(
        "Riba (interest) is strictly prohibited in Islam as it exploits "
        "borrowers and creates unjust wealth transfer.",
        "COMPLIANT|0.97|Correctly explains riba prohibition with clear "
        "reasoning|NONE|NONE",
    ),
    Example(
        "You can invest in any stock as long as you avoid companies that "
        "directly deal with alcohol, gambling, or pork.",
        "FLAGGED|0.85|Oversimplified and potentially misleading guidance on "
        "stock screening|Inaccurate Islamic concepts|Mention additional "
        "criteria: debt ratios, revenue sources, Shariah screening",
    ),
    Example(
        "Gharar refers to excessive uncertainty in contracts, which Islam "
        "prohibits to ensure fairness and transparency in transactions.",
        "COMPLIANT|0.94|Accurate definition of gharar with proper Islamic "
        "context|NONE|NONE",
    ),
    Example(
        "Taking a conventional mortgage is fine if you have no other option. "
        "Allah is forgiving.",
        "FLAGGED|0.96|Promotes riba and misuses Islamic concept of divine mercy "
        "to justify prohibited action|Promotes riba,Misleading use of Islamic "
        "teachings|Suggest Islamic financing alternatives, explain necessity "
        "exceptions require scholarly guidance",
    ),
    Example(
        "Takaful is Islamic insurance based on mutual cooperation and shared "
        "responsibility, not commercial insurance with interest-bearing "
        "investments.",
        "COMPLIANT|0.93|Correctly distinguishes Takaful from conventional "
        "insurance|NONE|NONE",
    ),
    Example(
        "In Mudharabah, the capital provider gets 60% of profits, and if "
        "there's a loss, both parties share it equally.",
        "FLAGGED|0.91|Contains factual error about Mudharabah loss "
        "distribution|Inaccurate Islamic concepts|Clarify that capital provider "
        "bears all loss in Mudharabah, entrepreneur loses time/effort",
    ),
    Example(
        "Sukuk are Islamic bonds that represent ownership in assets, not debt "
        "obligations with guaranteed interest.",
        "COMPLIANT|0.96|Accurate explanation differentiating Sukuk from "
        "conventional bonds|NONE|NONE",
    ),
    Example(
        "Musharakah profit-sharing: Partner A invested $60k, Partner B $40k. "
        "From $100k profit: Partner A gets $60k, Partner B gets $40k.",
        "COMPLIANT|0.94|Correct Musharakah calculation based on capital "
        "ratio|NONE|NONE",
    ),
    Example(
        "Islamic finance scholars are too strict. Most Muslims just use "
        "conventional banks anyway.",
        "FLAGGED|0.93|Disrespectful to Islamic scholarship and dismissive of "
        "Shariah principles|Disrespectful Islamic terminology|Present Islamic "
        "finance as valid alternative, respect scholarly guidance",
    ),
    Example(
        "You can speculate on crypto as much as you want - it's the future of "
        "finance.",
        "FLAGGED|0.90|Promotes excessive speculation without Islamic "
        "framework|Excessive gharar,Ignores Shariah considerations|Discuss "
        "gharar in speculation, mention scholarly views on crypto, emphasize "
        "due diligence",
    ),
)

VALIDATION_RULES = """VALIDATION RULES (5 checks):

1. NO RIBA PROMOTION
   - Must not promote interest-based transactions
   - Must not normalize conventional banking practices
   - Must not present riba as acceptable

2. NO EXCESSIVE GHARAR
   - Must not promote high-uncertainty transactions
   - Must not encourage speculation without Islamic framework
   - Calculated risk in valid contracts is acceptable

3. NO HARAM ACTIVITIES
   - Must not involve alcohol, gambling, pork, weapons
   - Must not promote prohibited industries
   - Must clearly state these are prohibited

4. RESPECTFUL ISLAMIC TERMINOLOGY
   - Use proper Islamic finance terms correctly
   - Respect Islamic concepts and principles
   - No mockery or disrespect of Islamic teachings

5. ACCURATE ISLAMIC CONCEPTS
   - Islamic principles explained correctly
   - No factual errors about Shariah rulings
   - Proper distinction between halal/haram"""


class CompliancePromptBuilder(PromptBuilder[str]):
    def sections(self, task_input: str) -> list[str]:
        return [
            self.system_prompt(),
            VALIDATION_RULES,
            self.output_format(),
            self.examples(),
            self.task_section(task_input),
        ]

    def system_prompt(self) -> str:
        return (
            "You are a Shariah compliance validator for Islamic finance "
            "responses.\n"
            "Your role is to validate that responses are compliant with "
            "Islamic principles.\n\n"
            "You validate responses ONLY - you do not generate new responses.\n"
            "If compliant, return COMPLIANT. If violations found, return "
            "FLAGGED with details."
        )

    def output_format(self) -> str:
        return (
            "OUTPUT FORMAT:\n"
            "status|confidence|reasoning|violations|suggestions\n\n"
            "status: COMPLIANT or FLAGGED\n"
            "confidence: 0.0-1.0 (your confidence in this assessment)\n"
            "reasoning: Why compliant or flagged (1-2 sentences)\n"
            "violations: Comma-separated list of violations (or NONE if compliant)\n"
            "suggestions: Comma-separated fixes (or NONE if compliant)"
        )

    def examples(self) -> str:
        rendered = "\n\n".join(
            f'Response to validate: "{ex.input}"\nValidation: {ex.output}'
            for ex in _EXAMPLES
        )
        return f"EXAMPLES:\n{rendered}"

    def task_section(self, task_input: str) -> str:
        return (
            "Now validate this response:\n"
            f'Response to validate: "{task_input}"\n'
            "Validation:"
        )
