# =============================================================================
# Unit Tests — Musharakah & Mudharabah Calculators
# =============================================================================

from __future__ import annotations

import pytest
from pydantic import ValidationError

from shariah_qa.services.calculator import (
    MudharabahInput,
    MusharakahInput,
    calculate_mudharabah,
    calculate_musharakah,
    format_validation_error,
)


def _musharakah(**params) -> dict:
    return calculate_musharakah(MusharakahInput.model_validate(params))


def _mudharabah(**params) -> dict:
    return calculate_mudharabah(MudharabahInput.model_validate(params))


# ---------------------------------------------------------------------------
# Test: Musharakah
# ---------------------------------------------------------------------------


class TestMusharakah:
    def test_profit_by_capital_ratio(self):
        output = _musharakah(
            partners=[
                {"name": "A", "investment": 60000},
                {"name": "B", "investment": 40000},
            ],
            totalProfit=20000,
        )

        assert output["summary"] == "MUSHARAKAH - Profit Distribution"
        assert output["total_investment"] == 100000
        assert output["is_loss"] is False
        assert output["distribution"] == [
            {"partner": "A", "investment": 60000, "capitalRatio": "60.00%", "share": "12000.00"},
            {"partner": "B", "investment": 40000, "capitalRatio": "40.00%", "share": "8000.00"},
        ]
        assert "capital ratio" in output["shariah_explanation"]

    def test_profit_by_custom_ratio(self):
        output = _musharakah(
            partners=[
                {"name": "A", "investment": 100000},
                {"name": "B", "investment": 200000},
            ],
            totalProfit=30000,
            profitRatio=[0.6, 0.4],
        )
        shares = [d["share"] for d in output["distribution"]]
        assert shares == ["18000.00", "12000.00"]
        assert "3. Distribution Method: Custom Profit Ratio" in output["calculation_steps"]

    def test_loss_ignores_custom_ratio(self):
        output = _musharakah(
            partners=[
                {"name": "A", "investment": 100000},
                {"name": "B", "investment": 200000},
                {"name": "C", "investment": 150000},
            ],
            totalProfit=-45000,
            profitRatio=[0.5, 0.3, 0.2],
        )

        assert output["is_loss"] is True
        assert output["summary"] == "MUSHARAKAH - Loss Distribution"
        for entry in output["distribution"]:
            assert float(entry["share"]) / entry["investment"] == pytest.approx(
                -45000 / 450000
            )
        assert "MUST be distributed according to capital ratio" in output["shariah_explanation"]

    def test_steps_record_totals(self):
        output = _musharakah(
            partners=[
                {"name": "Ali", "investment": 50000},
                {"name": "Sara", "investment": 30000},
            ],
            totalProfit=20000,
        )
        assert output["calculation_steps"][0] == "1. Total Investment = 50000 + 30000 = 80000"
        assert output["calculation_steps"][1] == "2. Profit Amount = 20000"

    def test_single_partner_rejected(self):
        with pytest.raises(ValidationError):
            MusharakahInput.model_validate({
                "partners": [{"name": "A", "investment": 1000}],
                "totalProfit": 100,
            })

    def test_non_positive_investment_rejected(self):
        with pytest.raises(ValidationError):
            MusharakahInput.model_validate({
                "partners": [
                    {"name": "A", "investment": 0},
                    {"name": "B", "investment": 1000},
                ],
                "totalProfit": 100,
            })

    def test_ratio_length_mismatch_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            MusharakahInput.model_validate({
                "partners": [
                    {"name": "A", "investment": 1000},
                    {"name": "B", "investment": 1000},
                ],
                "totalProfit": 100,
                "profitRatio": [1.0],
            })
        assert "must match number of partners" in str(exc_info.value)

    def test_ratio_sum_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            MusharakahInput.model_validate({
                "partners": [
                    {"name": "A", "investment": 1000},
                    {"name": "B", "investment": 1000},
                ],
                "totalProfit": 100,
                "profitRatio": [0.7, 0.4],
            })
        assert "must sum to 1" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Test: Mudharabah
# ---------------------------------------------------------------------------


class TestMudharabah:
    def test_profit_split(self):
        output = _mudharabah(
            capitalAmount=100000, profit=30000,
            capitalProviderRatio=0.6, entrepreneurRatio=0.4,
        )
        distribution = output["distribution"]
        assert distribution["capital_provider_rabb_al_mal"] == {"ratio": "60%", "share": "18000.00"}
        assert distribution["entrepreneur_mudarib"] == {"ratio": "40%", "share": "12000.00"}
        assert output["summary"] == "MUDHARABAH - Profit Distribution"

    def test_loss_borne_by_capital_provider(self):
        output = _mudharabah(
            capitalAmount=100000, profit=-20000,
            capitalProviderRatio=0.6, entrepreneurRatio=0.4,
        )
        distribution = output["distribution"]
        assert output["is_loss"] is True
        assert float(distribution["capital_provider_rabb_al_mal"]["share"]) == -20000
        assert float(distribution["entrepreneur_mudarib"]["share"]) == 0
        assert "ratio" not in distribution["entrepreneur_mudarib"]

    def test_ratios_must_sum_to_one(self):
        with pytest.raises(ValidationError) as exc_info:
            MudharabahInput.model_validate({
                "capitalAmount": 1000, "profit": 100,
                "capitalProviderRatio": 0.6, "entrepreneurRatio": 0.6,
            })
        assert "must equal 1" in str(exc_info.value)

    def test_ratio_out_of_range(self):
        with pytest.raises(ValidationError):
            MudharabahInput.model_validate({
                "capitalAmount": 1000, "profit": 100,
                "capitalProviderRatio": 1.2, "entrepreneurRatio": -0.2,
            })


class TestFormatValidationError:
    def test_field_paths(self):
        with pytest.raises(ValidationError) as exc_info:
            MudharabahInput.model_validate({"profit": 100})
        message = format_validation_error(exc_info.value)
        assert message.startswith("Validation Error: ")
        assert "capitalAmount: Field required" in message
