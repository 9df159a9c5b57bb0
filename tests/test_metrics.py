"""Tests for vc_forecast.metrics — IRR solver and ratio helpers."""
from __future__ import annotations

import numpy as np
import pytest

from vc_forecast.metrics import (
    annualize_rate,
    calc_dpi,
    calc_moic,
    calc_npv,
    calc_rvpi,
    calc_tvpi,
    compute_irr,
)


# ---------------------------------------------------------------------------
# IRR tests
# ---------------------------------------------------------------------------

class TestComputeIrr:
    def test_simple_doubling(self):
        """$1 in, $2 back one quarter later → 100% per quarter."""
        assert compute_irr([-1.0, 2.0]) == pytest.approx(1.0, rel=1e-4)

    @pytest.mark.parametrize("n", [1, 10, 40])
    @pytest.mark.parametrize("rate", [-0.5, -0.25, 0.0, 0.5, 2.0])
    def test_recovers_rate_from_single_exit(self, rate, n):
        """[-100, 0, ..., 100 * (1 + r)**n] solves back to r across the clamp band."""
        flows = [-100.0] + [0.0] * (n - 1) + [100.0 * (1.0 + rate) ** n]
        assert compute_irr(flows) == pytest.approx(rate, abs=1e-4)

    def test_known_quarterly_rate(self):
        flows = [-100.0, 0.0, 0.0, 0.0, 100.0 * 1.05**4]
        assert compute_irr(flows) == pytest.approx(0.05, abs=1e-6)

    def test_round_trip_npv_is_zero(self):
        flows = np.array([-100.0, 30.0, 40.0, 50.0, 20.0])
        irr = compute_irr(flows)
        assert calc_npv(flows, irr) == pytest.approx(0.0, abs=1e-4)

    def test_typical_fund_profile(self):
        flows = [-20.0] + [0.0] * 11 + [1.5] * 29
        irr = compute_irr(flows)
        assert 0.0 < irr < 0.10
        assert calc_npv(flows, irr) == pytest.approx(0.0, abs=1e-4)

    def test_negative_irr(self):
        assert compute_irr([-100.0, 30.0, 30.0]) < 0

    @pytest.mark.parametrize(
        "flows",
        [
            [],
            [-100.0, -50.0],
            [100.0, 50.0],
            [0.0, 0.0, 0.0],
            [-100.0, float("nan"), 150.0],
        ],
    )
    def test_degenerate_inputs_return_zero(self, flows):
        assert compute_irr(flows) == 0.0

    def test_result_stays_inside_clamp_band(self):
        irr = compute_irr([-1.0, 1000.0])
        assert -0.99 <= irr <= 10.0


# ---------------------------------------------------------------------------
# NPV and annualisation
# ---------------------------------------------------------------------------

class TestCalcNpv:
    def test_zero_rate(self):
        assert calc_npv([-100.0, 50.0, 50.0, 50.0], rate=0.0) == pytest.approx(50.0)

    def test_positive_npv(self):
        assert calc_npv([-100.0, 60.0, 60.0], rate=0.10) > 0

    def test_custom_periods(self):
        npv = calc_npv([-1.0, 1.21], rate=0.10, periods=np.array([0.0, 2.0]))
        assert npv == pytest.approx(0.0, abs=1e-12)


class TestAnnualizeRate:
    def test_compounds_four_quarters(self):
        assert annualize_rate(0.05) == pytest.approx(1.05**4 - 1)

    def test_total_loss_floor(self):
        assert annualize_rate(-1.0) == -1.0


# ---------------------------------------------------------------------------
# Ratios
# ---------------------------------------------------------------------------

class TestRatios:
    def test_dpi(self):
        assert calc_dpi(100.0, 50.0) == pytest.approx(0.5)

    def test_rvpi(self):
        assert calc_rvpi(100.0, 80.0) == pytest.approx(0.8)

    def test_tvpi_is_dpi_plus_rvpi(self):
        assert calc_tvpi(100.0, 80.0, 50.0) == pytest.approx(
            calc_dpi(100.0, 50.0) + calc_rvpi(100.0, 80.0)
        )

    def test_moic(self):
        assert calc_moic(10.0, 35.0) == pytest.approx(3.5)

    @pytest.mark.parametrize("func", [calc_dpi, calc_rvpi, calc_moic])
    def test_non_positive_denominator_returns_zero(self, func):
        assert func(0.0, 10.0) == 0.0
        assert func(-5.0, 10.0) == 0.0
