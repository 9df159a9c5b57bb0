"""Tests for vc_forecast.waterfall — American carried-interest split."""
from __future__ import annotations

import pytest

from vc_forecast.waterfall import clear_waterfall_cache, compute_waterfall


class TestComputeWaterfall:
    def test_profit_split_without_hurdle(self):
        w = compute_waterfall(10_000_000, 30_000_000, 0.20)
        assert w.total_profit == pytest.approx(20_000_000)
        assert w.lp_return_of_capital == pytest.approx(10_000_000)
        assert w.gp_carry == pytest.approx(4_000_000)
        assert w.lp_carry == pytest.approx(16_000_000)
        assert w.final_lp_proceeds == pytest.approx(26_000_000)
        assert w.final_gp_proceeds == pytest.approx(4_000_000)
        assert w.gp_catch_up == 0.0

    def test_preferred_return(self):
        w = compute_waterfall(10_000_000, 30_000_000, 0.20, hurdle_rate=0.08)
        assert w.lp_preferred_return == pytest.approx(800_000)
        assert w.gp_carry == pytest.approx(3_840_000)
        assert w.final_lp_proceeds == pytest.approx(26_160_000)

    def test_no_profit_everything_to_lps(self):
        w = compute_waterfall(10_000_000, 6_000_000, 0.20)
        assert w.total_profit == 0.0
        assert w.lp_return_of_capital == pytest.approx(6_000_000)
        assert w.final_lp_proceeds == pytest.approx(6_000_000)
        assert w.gp_carry == 0.0
        assert w.final_gp_proceeds == 0.0

    def test_hurdle_above_profit_earns_no_carry(self):
        w = compute_waterfall(10_000_000, 10_500_000, 0.20, hurdle_rate=0.08)
        assert w.gp_carry == 0.0
        assert w.final_lp_proceeds == pytest.approx(10_500_000)

    @pytest.mark.parametrize(
        "invested, exit_value, carry, hurdle",
        [
            (10_000_000, 30_000_000, 0.20, 0.0),
            (10_000_000, 30_000_000, 0.25, 0.08),
            (15_350_000, 42_123_456.78, 0.20, 0.0),
            (10_000_000, 4_000_000, 0.20, 0.0),
            (10_000_000, 0.0, 0.20, 0.0),
        ],
    )
    def test_proceeds_are_conserved(self, invested, exit_value, carry, hurdle):
        w = compute_waterfall(invested, exit_value, carry, hurdle)
        assert w.final_lp_proceeds + w.final_gp_proceeds == pytest.approx(exit_value, abs=1e-6)

    def test_memoised_on_inputs(self):
        first = compute_waterfall(1_000_000, 2_000_000, 0.20)
        assert compute_waterfall(1_000_000, 2_000_000, 0.20) is first

    def test_clear_cache(self):
        first = compute_waterfall(1_000_000, 3_000_000, 0.20)
        clear_waterfall_cache()
        second = compute_waterfall(1_000_000, 3_000_000, 0.20)
        assert second is not first
        assert second == first

    def test_as_dict(self):
        d = compute_waterfall(1.0, 2.0, 0.2).as_dict()
        assert set(d) >= {"gp_carry", "final_lp_proceeds", "lp_return_of_capital"}
