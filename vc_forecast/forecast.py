"""
forecast.py — Forecast orchestrator: validate, simulate, settle, report.

Depends on: every other core module. This is the entry point the rest of
the world calls.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict, deque
from datetime import datetime, timezone
from typing import Callable, Optional

from vc_forecast.exceptions import CalculationError
from vc_forecast.fund import FundConfiguration
from vc_forecast.lifecycle import LifecycleSimulator, simulator_for
from vc_forecast.metrics import calc_moic
from vc_forecast.portfolio import CompanyStatus, PortfolioCompany
from vc_forecast.results import CompanyResult, ForecastIntermediates, ForecastResult
from vc_forecast.rng import RandomSource, default_random_source
from vc_forecast.serialization import configuration_fingerprint
from vc_forecast.timeline import build_timeline, deployment_schedule
from vc_forecast.validation import ValidationIssue, errors_only, validate_configuration
from vc_forecast.waterfall import clear_waterfall_cache, compute_waterfall

logger = logging.getLogger(__name__)

CACHE_CAPACITY = 100
LATENCY_WINDOW = 100


# ---------------------------------------------------------------------------
# Cache and performance counters
# ---------------------------------------------------------------------------

class ForecastCache:
    """
    Bounded FIFO map from configuration fingerprint to ForecastResult.

    When full, the oldest inserted entry is evicted. Reads are lock-free;
    insertions and clears are serialised so eviction order stays FIFO when
    several threads finish forecasts at once.
    """

    def __init__(self, capacity: int = CACHE_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._entries: OrderedDict[str, ForecastResult] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[ForecastResult]:
        return self._entries.get(key)

    def put(self, key: str, result: ForecastResult) -> None:
        with self._lock:
            if key in self._entries:
                return
            while len(self._entries) >= self.capacity:
                self._entries.popitem(last=False)
            self._entries[key] = result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class PerformanceMonitor:
    """Cache hit/miss counters plus a rolling window of calculation times."""

    def __init__(self, window: int = LATENCY_WINDOW) -> None:
        self._latencies_ms: deque[float] = deque(maxlen=window)
        self.cache_hits = 0
        self.cache_misses = 0
        self._lock = threading.Lock()

    def record_hit(self) -> None:
        with self._lock:
            self.cache_hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self.cache_misses += 1

    def record_calculation(self, elapsed_ms: float) -> None:
        with self._lock:
            self._latencies_ms.append(elapsed_ms)

    @property
    def average_calculation_time_ms(self) -> float:
        if not self._latencies_ms:
            return 0.0
        return sum(self._latencies_ms) / len(self._latencies_ms)

    @property
    def cache_hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        return self.cache_hits / total if total > 0 else 0.0

    @property
    def total_calculations(self) -> int:
        return self.cache_hits + self.cache_misses


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def company_results(
    portfolio: list[PortfolioCompany],
    carry_pct: float,
) -> list[CompanyResult]:
    """Per-company profit and deal-by-deal carry (no carry on losses)."""
    results = []
    for company in portfolio:
        proceeds = company.value
        profit = proceeds - company.total_invested
        carry = max(0.0, profit * carry_pct)
        results.append(
            CompanyResult(
                company_id=company.id,
                invested=company.total_invested,
                exit_proceeds=proceeds,
                profit=profit,
                carry=carry,
                lp_profit=profit - carry,
                multiple=calc_moic(company.total_invested, proceeds),
            )
        )
    return results


def _refuse_invalid(issues: list[ValidationIssue]) -> None:
    errors = errors_only(issues)
    if errors:
        codes = ", ".join(issue.code for issue in errors)
        raise CalculationError(f"Configuration is invalid: {codes}", issues=errors)


def run_forecast(
    config: FundConfiguration,
    simulator: Optional[LifecycleSimulator] = None,
    rng: Optional[RandomSource] = None,
) -> ForecastResult:
    """
    Run the full pipeline once, without caching.

    Parameters
    ----------
    config:
        Fund configuration.
    simulator:
        Lifecycle strategy; chosen by portfolio size when omitted.
    rng:
        Random source; a fresh default-seeded source when omitted.

    Returns
    -------
    ForecastResult

    Raises
    ------
    CalculationError
        If validation reports any error, or a simulator hits a stage that
        the matrices do not cover.
    """
    issues = validate_configuration(config)
    _refuse_invalid(issues)
    for issue in issues:
        logger.warning("%s: %s (%s)", issue.field, issue.message, issue.code)

    simulator = simulator if simulator is not None else simulator_for(config)
    rng = rng if rng is not None else default_random_source()

    outcome = simulator.simulate(config, rng)
    portfolio = outcome.portfolio

    per_company = company_results(portfolio, config.carry_pct)
    total_invested = sum(c.total_invested for c in portfolio)
    total_exit_value = sum(c.value for c in portfolio)

    waterfall = compute_waterfall(
        total_invested, total_exit_value, config.carry_pct, config.hurdle_rate
    )
    total_fees = config.total_management_fees
    gp_carry = waterfall.gp_carry
    lp_profit = waterfall.final_lp_proceeds - config.fund_size

    timeline = build_timeline(config, total_invested, total_exit_value, total_fees)
    final = timeline[-1]

    net_proceeds = max(0.0, total_exit_value - total_fees - gp_carry)
    intermediates = ForecastIntermediates(
        quarterly_deployments=tuple(float(x) for x in deployment_schedule(config, total_invested)),
        quarterly_navs=tuple(p.nav for p in timeline),
        quarterly_distributions=tuple(p.distributions for p in timeline),
        quarterly_management_fees=tuple(p.management_fees for p in timeline),
        companies_created=len(portfolio),
        companies_exited=sum(1 for c in portfolio if c.status is CompanyStatus.EXITED),
        companies_written_off=sum(1 for c in portfolio if c.status is CompanyStatus.WRITTEN_OFF),
    )

    return ForecastResult(
        configuration=config,
        simulator=simulator.name,
        timeline=tuple(timeline),
        portfolio=tuple(portfolio),
        company_results=tuple(per_company),
        waterfall=waterfall,
        total_invested=total_invested,
        total_exit_value=total_exit_value,
        total_management_fees=total_fees,
        total_gp_carry=gp_carry,
        total_lp_profit=lp_profit,
        gross_moic=calc_moic(total_invested, total_exit_value),
        net_moic=calc_moic(config.fund_size, net_proceeds),
        gross_irr=final.gross_irr,
        net_irr=final.net_irr,
        tvpi=final.tvpi,
        dpi=final.dpi,
        rvpi=final.rvpi,
        calculation_date=datetime.now(timezone.utc),
        fund_life_quarters=config.fund_life_quarters,
        intermediates=intermediates,
        cohort_snapshots=tuple(outcome.snapshots),
        cohort_metrics=outcome.cohort_metrics,
    )


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class FundForecaster:
    """
    Cached entry point for fund forecasts.

    Usage:
        forecaster = FundForecaster()
        result = forecaster.forecast(default_configuration())
        forecaster.get_performance_metrics()

    Each instance owns its cache and counters. Results are keyed by the
    configuration's fingerprint plus the simulator name, so a repeated call
    with an equal configuration returns the very same ForecastResult
    object. With an entropy-seeded ``random_source_factory`` that means the
    first sample is returned for every later equal call.
    """

    def __init__(
        self,
        simulator: Optional[LifecycleSimulator] = None,
        cache: Optional[ForecastCache] = None,
        random_source_factory: Optional[Callable[[], RandomSource]] = None,
    ) -> None:
        self.simulator = simulator
        self.cache = cache if cache is not None else ForecastCache()
        self.random_source_factory = random_source_factory or default_random_source
        self.monitor = PerformanceMonitor()

    def _simulator_for(self, config: FundConfiguration) -> LifecycleSimulator:
        return self.simulator if self.simulator is not None else simulator_for(config)

    def forecast(self, config: FundConfiguration) -> ForecastResult:
        """
        Return the forecast for ``config``, from cache when available.

        Raises
        ------
        CalculationError
            On validation errors or missing matrix stages. Failed runs are
            never cached and never counted in the calculation time.
        """
        # Simulator choice and fingerprinting assume a well-formed configuration
        try:
            _refuse_invalid(validate_configuration(config))
        except CalculationError:
            self.monitor.record_miss()
            raise

        simulator = self._simulator_for(config)
        key = configuration_fingerprint(config, simulator.name)

        cached = self.cache.get(key)
        if cached is not None:
            self.monitor.record_hit()
            logger.debug("Forecast cache hit for %s", key[:12])
            return cached

        self.monitor.record_miss()
        logger.debug("Forecast cache miss for %s", key[:12])
        logger.info("Forecasting %r with the %s simulator", config.fund_name, simulator.name)

        start = time.perf_counter()
        result = run_forecast(config, simulator, self.random_source_factory())
        self.monitor.record_calculation((time.perf_counter() - start) * 1000.0)

        self.cache.put(key, result)
        logger.info(
            "Forecast complete: %d companies, gross MOIC %.2fx, net MOIC %.2fx",
            len(result.portfolio),
            result.gross_moic,
            result.net_moic,
        )
        return result

    def clear_cache(self) -> None:
        """Drop cached forecasts and memoised waterfalls."""
        self.cache.clear()
        clear_waterfall_cache()

    def get_performance_metrics(self) -> dict[str, float | int]:
        return {
            "avg_calc_time_ms": self.monitor.average_calculation_time_ms,
            "cache_hit_rate": self.monitor.cache_hit_rate,
            "total_calculations": self.monitor.total_calculations,
            "cache_size": len(self.cache),
        }

    def __repr__(self) -> str:
        return (
            f"FundForecaster(simulator={self.simulator!r}, "
            f"cached={len(self.cache)}/{self.cache.capacity})"
        )
