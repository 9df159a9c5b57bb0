"""Tests for vc_forecast.forecast — orchestration, caching and settlement."""
from __future__ import annotations

import logging

import pytest

from vc_forecast.exceptions import CalculationError
from vc_forecast.fund import DEFAULT_GRADUATION_MATRIX, ExitProbabilities, default_configuration
from vc_forecast.forecast import ForecastCache, FundForecaster, company_results, run_forecast
from vc_forecast.lifecycle import CompanyLifecycleSimulator
from vc_forecast.metrics import annualize_rate
from vc_forecast.portfolio import CompanyStatus, Investment, PortfolioCompany
from vc_forecast.rng import LehmerRandom


def _all_failures_config():
    stages = ["Pre-Seed", "Seed", "Series A", "Series B", "Series C", "Series D+"]
    probs = {stage: ExitProbabilities(1.0, 0.0, 0.0, 0.0, 0.0) for stage in stages}
    return default_configuration(exit_probabilities=probs)


# ---------------------------------------------------------------------------
# Base case
# ---------------------------------------------------------------------------

class TestBaseForecast:
    def test_portfolio_and_simulator(self, base_forecast):
        assert len(base_forecast.portfolio) == 47
        assert base_forecast.simulator == "company"
        assert base_forecast.cohort_metrics is None
        assert base_forecast.cohort_snapshots == ()

    def test_timeline_length(self, base_config, base_forecast):
        assert len(base_forecast.timeline) == base_config.fund_life_quarters + 1
        assert base_forecast.fund_life_quarters == 40

    def test_totals_match_portfolio(self, base_forecast):
        portfolio = base_forecast.portfolio
        assert base_forecast.total_invested == pytest.approx(sum(c.total_invested for c in portfolio))
        assert base_forecast.total_exit_value == pytest.approx(sum(c.value for c in portfolio))
        assert base_forecast.total_management_fees == pytest.approx(3_920_000)

    def test_tvpi_is_exit_over_fund_size(self, base_config, base_forecast):
        assert base_forecast.tvpi == pytest.approx(
            base_forecast.total_exit_value / base_config.fund_size
        )
        assert base_forecast.tvpi == pytest.approx(base_forecast.dpi + base_forecast.rvpi)

    def test_waterfall_conserves_proceeds(self, base_forecast):
        w = base_forecast.waterfall
        assert w.final_lp_proceeds + w.final_gp_proceeds == pytest.approx(w.total_exit_value)
        assert base_forecast.total_gp_carry == w.gp_carry

    def test_lp_profit_is_against_fund_size(self, base_config, base_forecast):
        expected = base_forecast.waterfall.final_lp_proceeds - base_config.fund_size
        assert base_forecast.total_lp_profit == pytest.approx(expected)

    def test_net_moic(self, base_config, base_forecast):
        net = max(
            0.0,
            base_forecast.total_exit_value
            - base_forecast.total_management_fees
            - base_forecast.total_gp_carry,
        )
        assert base_forecast.net_moic == pytest.approx(net / base_config.fund_size)

    def test_timeline_net_moic_is_on_invested_capital(self, base_forecast):
        expected = (
            base_forecast.total_exit_value - base_forecast.total_management_fees
        ) / base_forecast.total_invested
        assert base_forecast.timeline[-1].net_moic == pytest.approx(expected)

    def test_headline_irr_comes_from_final_quarter(self, base_forecast):
        final = base_forecast.timeline[-1]
        assert base_forecast.gross_irr == final.gross_irr
        assert base_forecast.net_irr == final.net_irr

    def test_annualized_irr(self, base_forecast):
        assert base_forecast.annualized_gross_irr == pytest.approx(
            annualize_rate(base_forecast.gross_irr)
        )

    def test_intermediates(self, base_forecast):
        inter = base_forecast.intermediates
        assert len(inter.quarterly_navs) == 41
        assert sum(inter.quarterly_deployments) == pytest.approx(base_forecast.total_invested)
        assert inter.companies_created == 47
        assert inter.companies_exited + inter.companies_written_off <= 47

    def test_calculation_date_is_timezone_aware(self, base_forecast):
        assert base_forecast.calculation_date.tzinfo is not None

    def test_summary_and_frames(self, base_forecast):
        summary = base_forecast.summary()
        assert summary["companies"] == 47
        assert summary["simulator"] == "company"
        assert len(base_forecast.timeline_frame()) == 41
        assert len(base_forecast.portfolio_frame()) == 47


class TestCohortForecast:
    def test_uses_cohort_simulator(self, cohort_forecast):
        assert cohort_forecast.simulator == "cohort"
        assert cohort_forecast.cohort_metrics is not None
        assert len(cohort_forecast.cohort_snapshots) == 41

    def test_exported_portfolio_drives_totals(self, cohort_forecast):
        final = cohort_forecast.cohort_snapshots[-1]
        assert len(cohort_forecast.portfolio) == final.total_companies
        assert cohort_forecast.total_exit_value == pytest.approx(final.total_value, rel=1e-9)


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------

class TestEdgeCases:
    def test_zero_profit_fund(self, forecaster):
        result = forecaster.forecast(_all_failures_config())
        assert result.total_exit_value == 0
        assert result.total_gp_carry == 0
        assert result.gross_moic == 0
        assert result.net_moic == 0
        assert result.tvpi == 0
        assert result.gross_irr == 0.0
        assert result.total_lp_profit == pytest.approx(-20_000_000)
        assert all(c.status is CompanyStatus.WRITTEN_OFF for c in result.portfolio)

    def test_invalid_configuration_is_refused(self, forecaster):
        with pytest.raises(CalculationError) as excinfo:
            forecaster.forecast(default_configuration(fund_size=0))
        assert "INVALID_FUND_SIZE" in excinfo.value.codes
        assert len(forecaster.cache) == 0
        assert forecaster.get_performance_metrics()["total_calculations"] == 1

    @pytest.mark.parametrize("size", [float("inf"), float("nan"), -1.0])
    def test_non_finite_fund_size_is_refused(self, forecaster, size):
        with pytest.raises(CalculationError) as excinfo:
            forecaster.forecast(default_configuration(fund_size=size))
        assert excinfo.value.codes == ["INVALID_FUND_SIZE"]
        assert len(forecaster.cache) == 0

    def test_failed_forecast_not_timed(self, forecaster):
        with pytest.raises(CalculationError):
            forecaster.forecast(default_configuration(fund_size=0))
        assert forecaster.get_performance_metrics()["avg_calc_time_ms"] == 0.0
        assert forecaster.monitor.cache_misses == 1

    def test_missing_cohort_stage_raises(self, large_config):
        matrix = {k: v for k, v in DEFAULT_GRADUATION_MATRIX.items() if k != "Seed"}
        with pytest.raises(CalculationError):
            FundForecaster().forecast(large_config.with_overrides(graduation_matrix=matrix))

    def test_warnings_are_logged_not_raised(self, caplog):
        with caplog.at_level(logging.WARNING, logger="vc_forecast.forecast"):
            result = run_forecast(default_configuration(carry_pct=0.6))
        assert result.total_gp_carry >= 0
        assert any("INVALID_CARRY_RANGE" in record.getMessage() for record in caplog.records)


# ---------------------------------------------------------------------------
# Determinism and caching
# ---------------------------------------------------------------------------

class TestDeterminism:
    def test_separate_forecasters_agree(self, base_config, base_forecast):
        other = FundForecaster().forecast(base_config)
        assert other is not base_forecast
        assert other.summary() == base_forecast.summary()
        assert other.portfolio == base_forecast.portfolio

    def test_explicit_random_source(self, base_config):
        first = run_forecast(base_config, CompanyLifecycleSimulator(), LehmerRandom(99))
        second = run_forecast(base_config, CompanyLifecycleSimulator(), LehmerRandom(99))
        assert first.portfolio == second.portfolio
        assert first.summary() == second.summary()

    def test_random_source_factory(self, base_config):
        forecaster = FundForecaster(random_source_factory=lambda: LehmerRandom(99))
        expected = run_forecast(base_config, CompanyLifecycleSimulator(), LehmerRandom(99))
        assert forecaster.forecast(base_config).summary() == expected.summary()


class TestCaching:
    def test_repeat_returns_same_object(self, forecaster, base_config):
        first = forecaster.forecast(base_config)
        assert forecaster.forecast(base_config) is first
        metrics = forecaster.get_performance_metrics()
        assert metrics["cache_hit_rate"] == pytest.approx(0.5)
        assert metrics["cache_size"] == 1
        assert metrics["total_calculations"] == 2

        forecaster.forecast(base_config)
        assert forecaster.get_performance_metrics()["cache_hit_rate"] == pytest.approx(2 / 3)

    def test_equal_configs_share_an_entry(self, forecaster):
        first = forecaster.forecast(default_configuration())
        assert forecaster.forecast(default_configuration()) is first

    def test_different_config_misses(self, forecaster, base_config):
        forecaster.forecast(base_config)
        forecaster.forecast(base_config.with_overrides(carry_pct=0.25))
        assert forecaster.get_performance_metrics()["cache_size"] == 2
        assert forecaster.monitor.cache_hits == 0

    def test_latency_recorded_on_misses_only(self, forecaster, base_config):
        forecaster.forecast(base_config)
        forecaster.forecast(base_config)
        assert len(forecaster.monitor._latencies_ms) == 1
        assert forecaster.get_performance_metrics()["avg_calc_time_ms"] > 0

    def test_clear_cache(self, forecaster, base_config):
        first = forecaster.forecast(base_config)
        forecaster.clear_cache()
        assert len(forecaster.cache) == 0
        second = forecaster.forecast(base_config)
        assert second is not first
        assert second.summary() == first.summary()

    def test_empty_metrics(self, forecaster):
        assert forecaster.get_performance_metrics() == {
            "avg_calc_time_ms": 0.0,
            "cache_hit_rate": 0.0,
            "total_calculations": 0,
            "cache_size": 0,
        }


class TestForecastCache:
    def test_fifo_eviction(self):
        cache = ForecastCache(capacity=2)
        a, b, c = object(), object(), object()
        cache.put("a", a)
        cache.put("b", b)
        cache.get("a")
        cache.put("c", c)
        assert "a" not in cache
        assert cache.get("b") is b
        assert cache.get("c") is c
        assert len(cache) == 2

    def test_existing_key_is_kept(self):
        cache = ForecastCache(capacity=2)
        first, second = object(), object()
        cache.put("k", first)
        cache.put("k", second)
        assert cache.get("k") is first

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            ForecastCache(capacity=0)


# ---------------------------------------------------------------------------
# Deal-level results
# ---------------------------------------------------------------------------

class TestCompanyResults:
    def _company(self, invested, exit_value):
        return PortfolioCompany(
            id="seed-0-1",
            name="Seed Company 1",
            entry_stage="Seed",
            current_stage="Seed",
            investments=[Investment("Seed", invested, 0)],
            total_invested=invested,
            exit_value=exit_value,
        )

    def test_carry_on_profit(self):
        [row] = company_results([self._company(100.0, 600.0)], 0.20)
        assert row.profit == pytest.approx(500.0)
        assert row.carry == pytest.approx(100.0)
        assert row.lp_profit == pytest.approx(400.0)
        assert row.multiple == pytest.approx(6.0)

    def test_no_carry_on_loss(self):
        [row] = company_results([self._company(100.0, 40.0)], 0.20)
        assert row.profit == pytest.approx(-60.0)
        assert row.carry == 0.0
        assert row.lp_profit == pytest.approx(-60.0)
