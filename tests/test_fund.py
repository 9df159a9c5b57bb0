"""Tests for vc_forecast.fund — configuration economics and schedules."""
from __future__ import annotations

import numpy as np
import pytest

from vc_forecast.fund import (
    DEFAULT_STAGE_STRATEGIES,
    ExitProbabilities,
    FeeProfile,
    FundConfiguration,
    FundExpense,
    default_configuration,
    expense_schedule,
    management_fee_schedule,
    to_decimal,
)


class TestFundEconomics:
    def test_commitments(self, base_config):
        assert base_config.gp_commitment == pytest.approx(400_000)
        assert base_config.lp_commitment == pytest.approx(19_600_000)

    def test_fee_base_excludes_gp_by_default(self, base_config):
        assert base_config.fee_base == pytest.approx(19_600_000)
        assert base_config.total_management_fees == pytest.approx(3_920_000)

    def test_fee_base_includes_gp_when_requested(self):
        config = default_configuration(include_gp_in_fees=True)
        assert config.total_management_fees == pytest.approx(4_000_000)

    def test_investable_capital(self, base_config):
        assert base_config.investable_capital == pytest.approx(16_080_000)

    def test_fund_life_years(self, base_config):
        assert base_config.fund_life_years == 10

    def test_strategy_lookup(self, base_config):
        assert base_config.strategy_for("Seed").avg_check_size == 400_000
        assert base_config.strategy_for("Growth") is None

    def test_list_inputs_stored_as_tuples(self):
        config = FundConfiguration(stage_strategies=list(DEFAULT_STAGE_STRATEGIES))
        assert isinstance(config.stage_strategies, tuple)
        assert config == default_configuration()

    def test_with_overrides_leaves_original_untouched(self, base_config):
        changed = base_config.with_overrides(carry_pct=0.25)
        assert changed.carry_pct == 0.25
        assert base_config.carry_pct == 0.20

    def test_repr(self, base_config):
        assert "$20,000,000" in repr(base_config)

    def test_to_decimal_uses_string_form(self):
        assert str(to_decimal(0.1)) == "0.1"


class TestExitProbabilities:
    def test_cumulative_pins_last_bucket(self):
        probs = ExitProbabilities(0.5, 0.2, 0.1, 0.1, 0.05)
        cumulative = probs.cumulative()
        assert [name for name, _ in cumulative][-1] == "mega_multiple"
        assert cumulative[-1][1] == 1.0
        assert cumulative[0][1] == pytest.approx(0.5)
        assert cumulative[1][1] == pytest.approx(0.7)

    def test_total(self):
        assert ExitProbabilities(0.8, 0.1, 0.05, 0.03, 0.02).total == pytest.approx(1.0)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

class TestManagementFeeSchedule:
    def test_flat_fee_after_quarter_zero(self, base_config):
        fees = management_fee_schedule(base_config)
        assert len(fees) == base_config.fund_life_quarters + 1
        assert fees[0] == 0.0
        assert np.allclose(fees[1:], 98_000)
        assert fees.sum() == pytest.approx(base_config.total_management_fees)

    def test_fee_profiles_step_down(self):
        config = default_configuration(
            fee_profiles=(
                FeeProfile("investment period", 0.02, start_quarter=1, end_quarter=20),
                FeeProfile("harvest", 0.01, start_quarter=21),
            )
        )
        fees = management_fee_schedule(config)
        assert fees[20] == pytest.approx(98_000)
        assert fees[21] == pytest.approx(49_000)
        assert config.total_management_fees == pytest.approx(2_940_000)

    def test_fund_size_basis(self):
        config = default_configuration(fee_profiles=(FeeProfile("flat", 0.02, basis="fund_size"),))
        assert management_fee_schedule(config)[1] == pytest.approx(100_000)


class TestExpenseSchedule:
    def test_no_expenses(self, base_config):
        assert expense_schedule(base_config).sum() == 0.0
        assert base_config.total_expenses == 0.0

    def test_timings(self):
        config = default_configuration(
            expenses=(
                FundExpense("formation", 100_000, "upfront"),
                FundExpense("audit", 25_000, "annual"),
                FundExpense("admin", 5_000, "quarterly"),
            )
        )
        schedule = expense_schedule(config)
        assert schedule[0] == pytest.approx(100_000)
        assert schedule[1] == pytest.approx(30_000)
        assert schedule[2] == pytest.approx(5_000)
        assert schedule[5] == pytest.approx(30_000)
        assert config.total_expenses == pytest.approx(550_000)

    def test_expenses_reduce_investable_capital(self):
        config = default_configuration(expenses=(FundExpense("formation", 80_000),))
        assert config.investable_capital == pytest.approx(16_000_000)
