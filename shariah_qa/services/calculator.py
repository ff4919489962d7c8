# =============================================================================
# Islamic Finance Calculators — Musharakah & Mudharabah
# =============================================================================
#
# Deterministic profit/loss distribution for the two partnership contracts
# the calculation agent supports. Pure functions: validated input in,
# JSON-ready dict out. No I/O, safe to run in the API process or in a
# Celery worker.
#
# SHARIAH RULES ENCODED HERE:
#   Musharakah (all partners contribute capital)
#     - profit → agreed profit ratio, or capital ratio when none agreed
#     - loss   → capital ratio, ALWAYS (an agreed profit ratio is ignored)
#   Mudharabah (Rabb al-Mal supplies capital, Mudarib supplies labour)
#     - profit → agreed ratio
#     - loss   → borne entirely by the capital provider; Mudarib gets 0
#
# Inputs arrive with the camelCase keys the extraction prompt produces
# (totalProfit, profitRatio, capitalAmount, ...). Pydantic validates them;
# any failure is reported as "Validation Error: <path>: <msg>, ...".
# =============================================================================

from __future__ import annotations

from typing import Annotated

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

RATIO_TOLERANCE = 1e-4


# ---------------------------------------------------------------------------
# Input Schemas
# ---------------------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Partner(_CamelModel):
    name: str
    investment: float = Field(gt=0, description="Investment amount (must be positive)")


class MusharakahInput(_CamelModel):
    partners: list[Partner] = Field(min_length=2)
    total_profit: float = Field(description="Total profit or loss (negative for loss)")
    profit_ratio: list[Annotated[float, Field(ge=0, le=1)]] | None = Field(
        default=None,
        description="Optional custom profit sharing ratios (must sum to 1)",
    )

    @model_validator(mode="after")
    def _check_profit_ratio(self) -> MusharakahInput:
        if not self.profit_ratio:
            return self
        if len(self.profit_ratio) != len(self.partners):
            raise ValueError(
                f"Profit ratio array length ({len(self.profit_ratio)}) must match "
                f"number of partners ({len(self.partners)})"
            )
        ratio_sum = sum(self.profit_ratio)
        if abs(ratio_sum - 1) > RATIO_TOLERANCE:
            raise ValueError(f"Profit ratios must sum to 1, got {_num(ratio_sum)}")
        return self


class MudharabahInput(_CamelModel):
    capital_amount: float = Field(gt=0)
    profit: float = Field(description="Profit or loss (negative for loss)")
    capital_provider_ratio: float = Field(ge=0, le=1)
    entrepreneur_ratio: float = Field(ge=0, le=1)

    @model_validator(mode="after")
    def _check_ratios(self) -> MudharabahInput:
        ratio_sum = self.capital_provider_ratio + self.entrepreneur_ratio
        if abs(ratio_sum - 1) > RATIO_TOLERANCE:
            raise ValueError(
                f"Capital provider ratio ({_num(self.capital_provider_ratio)}) + "
                f"Entrepreneur ratio ({_num(self.entrepreneur_ratio)}) must equal 1, "
                f"got {_num(ratio_sum)}"
            )
        return self


# ---------------------------------------------------------------------------
# Calculators
# ---------------------------------------------------------------------------


def calculate_musharakah(data: MusharakahInput) -> dict:
    """Distribute a Musharakah profit or loss across the partners."""
    steps: list[str] = []

    total_investment = sum(p.investment for p in data.partners)
    steps.append(
        "1. Total Investment = "
        + " + ".join(_num(p.investment) for p in data.partners)
        + f" = {_num(total_investment)}"
    )

    is_loss = data.total_profit < 0
    steps.append(
        f"2. {'Loss' if is_loss else 'Profit'} Amount = {_num(abs(data.total_profit))}"
    )

    use_custom_ratio = not is_loss and bool(data.profit_ratio)
    if is_loss:
        method = "Capital Ratio (Shariah requirement for losses)"
    elif use_custom_ratio:
        method = "Custom Profit Ratio"
    else:
        method = "Capital Ratio"
    steps.append(f"3. Distribution Method: {method}")

    distribution = []
    for index, partner in enumerate(data.partners):
        capital_ratio = partner.investment / total_investment
        applied = data.profit_ratio[index] if use_custom_ratio else capital_ratio
        share = data.total_profit * applied

        steps.append(
            f"   {partner.name}: {_num(data.total_profit)} × "
            f"{applied * 100:.2f}% = {share:.2f}"
        )
        distribution.append({
            "partner": partner.name,
            "investment": _as_number(partner.investment),
            "capitalRatio": f"{capital_ratio * 100:.2f}%",
            "share": f"{share:.2f}",
        })

    if is_loss:
        explanation = (
            "In Musharakah, losses MUST be distributed according to capital "
            "ratio (Shariah requirement). Each partner bears losses "
            "proportional to their investment."
        )
    elif data.profit_ratio:
        explanation = (
            "Profits distributed according to the agreed custom ratio between "
            "partners."
        )
    else:
        explanation = (
            "Profits distributed according to capital ratio (proportional to "
            "investment)."
        )

    return {
        "summary": f"MUSHARAKAH - {'Loss' if is_loss else 'Profit'} Distribution",
        "contract_type": "Musharakah (شراكة - Partnership)",
        "total_investment": _as_number(total_investment),
        "total_profit_loss": _as_number(data.total_profit),
        "is_loss": is_loss,
        "distribution": distribution,
        "shariah_explanation": explanation,
        "calculation_steps": steps,
    }


def calculate_mudharabah(data: MudharabahInput) -> dict:
    """Split a Mudharabah profit, or assign a loss to the capital provider."""
    steps = [f"1. Capital Amount = {_num(data.capital_amount)}"]

    is_loss = data.profit < 0
    steps.append(f"2. {'Loss' if is_loss else 'Profit'} Amount = {_num(abs(data.profit))}")

    if is_loss:
        steps.append(
            "3. Loss Distribution Rule: Capital provider (Rabb al-Mal) bears all losses"
        )
        steps.append(f"   Capital Provider (Rabb al-Mal) Loss: {_num(data.profit)}")
        steps.append("   Entrepreneur (Mudarib) Share: 0 (loses time/effort only)")
        distribution = {
            "capital_provider_rabb_al_mal": {
                "share": f"{data.profit:.2f}",
                "explanation": "Bears all financial losses (Shariah requirement)",
            },
            "entrepreneur_mudarib": {
                "share": "0",
                "explanation": "Receives nothing, loses time and effort invested",
            },
        }
        explanation = (
            "In Mudharabah, the capital provider (Rabb al-Mal) bears all "
            "financial losses as per Shariah. The entrepreneur (Mudarib) "
            "receives nothing but loses their time and effort."
        )
    else:
        provider_share = data.profit * data.capital_provider_ratio
        entrepreneur_share = data.profit * data.entrepreneur_ratio
        steps.append("3. Profit Distribution:")
        steps.append(
            f"   Capital Provider (Rabb al-Mal): {_num(data.profit)} × "
            f"{data.capital_provider_ratio * 100:.0f}% = {provider_share:.2f}"
        )
        steps.append(
            f"   Entrepreneur (Mudarib): {_num(data.profit)} × "
            f"{data.entrepreneur_ratio * 100:.0f}% = {entrepreneur_share:.2f}"
        )
        distribution = {
            "capital_provider_rabb_al_mal": {
                "ratio": f"{data.capital_provider_ratio * 100:.0f}%",
                "share": f"{provider_share:.2f}",
            },
            "entrepreneur_mudarib": {
                "ratio": f"{data.entrepreneur_ratio * 100:.0f}%",
                "share": f"{entrepreneur_share:.2f}",
            },
        }
        explanation = (
            "In Mudharabah, profits are distributed according to the "
            "pre-agreed ratio between the capital provider (Rabb al-Mal) and "
            "the entrepreneur (Mudarib)."
        )

    return {
        "summary": f"MUDHARABAH - {'Loss' if is_loss else 'Profit'} Distribution",
        "contract_type": "Mudharabah (مضاربة)",
        "capital_amount": _as_number(data.capital_amount),
        "profit_loss": _as_number(data.profit),
        "is_loss": is_loss,
        "distribution": distribution,
        "shariah_explanation": explanation,
        "calculation_steps": steps,
    }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_validation_error(exc: ValidationError) -> str:
    """'Validation Error: partners.0.investment: Input should be greater than 0, ...'"""
    parts = []
    for error in exc.errors():
        path = ".".join(str(p) for p in error["loc"])
        parts.append(f"{path}: {error['msg']}" if path else error["msg"])
    return "Validation Error: " + ", ".join(parts)


def _as_number(value: float) -> int | float:
    """Integral floats as ints, so 50000.0 prints as 50000."""
    return int(value) if float(value).is_integer() else value


def _num(value: float) -> str:
    return str(_as_number(value))
