"""
batch.py — Parameter sweeps over a rectangular grid of configurations.

Depends on: fund.py, forecast.py, lifecycle.py
"""
from __future__ import annotations

import itertools
import logging
import math
import threading
from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, replace
from functools import partial
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from vc_forecast.exceptions import CalculationError
from vc_forecast.forecast import FundForecaster
from vc_forecast.fund import FundConfiguration
from vc_forecast.lifecycle import get_simulator
from vc_forecast.results import ForecastResult

logger = logging.getLogger(__name__)

SUMMARY_METRICS = ("gross_moic", "net_moic", "gross_irr", "net_irr", "tvpi")

ProgressCallback = Callable[[float, str], None]


# ---------------------------------------------------------------------------
# Field selectors
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSelector:
    """
    Typed accessor pair for one sweepable input.

    ``get`` reads the current value from a configuration; ``set`` returns a
    new configuration with the value replaced.
    """

    get: Callable[[FundConfiguration], float]
    set: Callable[[FundConfiguration, float], FundConfiguration]


def _get_field(name: str, config: FundConfiguration) -> float:
    return getattr(config, name)


def _set_field(name: str, config: FundConfiguration, value: float) -> FundConfiguration:
    return replace(config, **{name: value})


def _get_stage_field(index: int, attr: str, config: FundConfiguration) -> float:
    return getattr(config.stage_strategies[index], attr)


def _set_stage_field(
    index: int,
    attr: str,
    config: FundConfiguration,
    value: float,
) -> FundConfiguration:
    strategies = list(config.stage_strategies)
    strategies[index] = replace(strategies[index], **{attr: value})
    return replace(config, stage_strategies=tuple(strategies))


def field_selector(name: str) -> FieldSelector:
    """Selector for a top-level numeric configuration field."""
    if not hasattr(FundConfiguration(), name):
        raise ValueError(f"Unknown configuration field {name!r}")
    return FieldSelector(get=partial(_get_field, name), set=partial(_set_field, name))


def stage_field_selector(index: int, attr: str) -> FieldSelector:
    """Selector for ``stage_strategies[index].<attr>``."""
    if index < 0:
        raise ValueError("index must be non-negative")
    return FieldSelector(
        get=partial(_get_stage_field, index, attr),
        set=partial(_set_stage_field, index, attr),
    )


@dataclass(frozen=True)
class SweepDimension:
    """One axis of the grid: inclusive ``minimum..maximum`` in ``step`` increments."""

    name: str
    minimum: float
    maximum: float
    step: float
    selector: FieldSelector

    def __post_init__(self) -> None:
        if not self.step > 0:
            raise ValueError(f"{self.name}: step must be positive")
        if self.maximum < self.minimum:
            raise ValueError(f"{self.name}: maximum must not be below minimum")

    @property
    def n_steps(self) -> int:
        # Tolerance keeps 0.1..0.3 step 0.1 at three points despite float error
        return math.floor((self.maximum - self.minimum) / self.step + 1e-9) + 1

    def values(self) -> list[float]:
        return [round(self.minimum + i * self.step, 10) for i in range(self.n_steps)]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BatchResult:
    """One grid point: the varied values, its forecast and flat metrics."""

    scenario_id: str
    scenario_name: str
    variations: dict[str, float]
    result: ForecastResult
    metrics: dict[str, float]


@dataclass(frozen=True)
class BatchFailure:
    scenario_name: str
    variations: dict[str, float]
    error: str


@dataclass(frozen=True)
class BatchSummary:
    """Comparative statistics; best/median/worst are ranked by net IRR."""

    best: Optional[BatchResult]
    median: Optional[BatchResult]
    worst: Optional[BatchResult]
    mean: dict[str, float]
    std_dev: dict[str, float]


def result_metrics(result: ForecastResult) -> dict[str, float]:
    return {
        "gross_moic": result.gross_moic,
        "net_moic": result.net_moic,
        "gross_irr": result.gross_irr,
        "net_irr": result.net_irr,
        "tvpi": result.tvpi,
        "dpi": result.dpi,
        "total_invested": result.total_invested,
        "total_exit_value": result.total_exit_value,
        "lp_profit": result.total_lp_profit,
    }


@dataclass(frozen=True)
class _Scenario:
    scenario_id: str
    name: str
    variations: dict[str, float]
    config: FundConfiguration


# ---------------------------------------------------------------------------
# Worker (module-level for ProcessPoolExecutor compatibility)
# ---------------------------------------------------------------------------

def _run_scenario(args: tuple[FundConfiguration, Optional[str]]) -> ForecastResult:
    """Forecast one configuration with a private forecaster."""
    config, simulator_name = args
    simulator = get_simulator(simulator_name) if simulator_name else None
    return FundForecaster(simulator=simulator).forecast(config)


# ---------------------------------------------------------------------------
# BatchRunner
# ---------------------------------------------------------------------------

class BatchRunner:
    """
    Runs the forecast once per point of the cartesian grid of dimensions.

    Usage:
        runner = BatchRunner(
            default_configuration(),
            [SweepDimension("carry_pct", 0.15, 0.25, 0.05, field_selector("carry_pct"))],
        )
        results = runner.run()
        runner.summary_statistics().best

    Scenarios that raise ``CalculationError`` are logged and collected in
    ``failures``; the rest of the grid still runs. Cancellation is checked
    between scenarios, never inside one.
    """

    def __init__(
        self,
        base_config: FundConfiguration,
        dimensions: Sequence[SweepDimension],
        forecaster: Optional[FundForecaster] = None,
        simulator_name: Optional[str] = None,
        parallel: bool = False,
        max_workers: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        names = [d.name for d in dimensions]
        if len(set(names)) != len(names):
            raise ValueError("dimension names must be unique")

        self.base_config = base_config
        self.dimensions = list(dimensions)
        self.simulator_name = simulator_name
        self.forecaster = forecaster or FundForecaster(
            simulator=get_simulator(simulator_name) if simulator_name else None
        )
        self.parallel = parallel
        self.max_workers = max_workers
        self.on_progress = on_progress
        self.cancel_event = cancel_event or threading.Event()

        self.results: list[BatchResult] = []
        self.failures: list[BatchFailure] = []
        self._completed = 0

    @property
    def total_scenarios(self) -> int:
        return math.prod(d.n_steps for d in self.dimensions)

    def cancel(self) -> None:
        self.cancel_event.set()

    def scenarios(self) -> list[_Scenario]:
        out = []
        grids = [d.values() for d in self.dimensions]
        for combo in itertools.product(*grids):
            config = self.base_config
            variations: dict[str, float] = {}
            for dimension, value in zip(self.dimensions, combo):
                config = dimension.selector.set(config, value)
                variations[dimension.name] = value
            out.append(
                _Scenario(
                    scenario_id="_".join(f"{k}_{v}" for k, v in variations.items()),
                    name=", ".join(f"{k}: {v:g}" for k, v in variations.items()),
                    variations=variations,
                    config=config,
                )
            )
        return out

    def run(self) -> list[BatchResult]:
        """Run every scenario and return the successful results in grid order."""
        self.results = []
        self.failures = []
        self._completed = 0

        scenarios = self.scenarios()
        logger.info("Batch run: %d scenarios over %s", len(scenarios), [d.name for d in self.dimensions])
        if self.parallel:
            self._run_parallel(scenarios)
        else:
            self._run_sequential(scenarios)

        logger.info(
            "Batch finished: %d succeeded, %d failed%s",
            len(self.results),
            len(self.failures),
            " (cancelled)" if self.cancel_event.is_set() else "",
        )
        return self.results

    def _run_sequential(self, scenarios: list[_Scenario]) -> None:
        for scenario in scenarios:
            if self.cancel_event.is_set():
                break
            try:
                result = self.forecaster.forecast(scenario.config)
            except CalculationError as exc:
                self._record_failure(scenario, exc)
            else:
                self._record_result(scenario, result)
            self._advance(scenario)

    def _run_parallel(self, scenarios: list[_Scenario]) -> None:
        by_index: dict[int, BatchResult] = {}
        with ProcessPoolExecutor(max_workers=self.max_workers) as executor:
            futures: dict[Future[ForecastResult], int] = {
                executor.submit(_run_scenario, (s.config, self.simulator_name)): i
                for i, s in enumerate(scenarios)
            }
            for future in as_completed(futures):
                i = futures[future]
                scenario = scenarios[i]
                try:
                    result = future.result()
                except CalculationError as exc:
                    self._record_failure(scenario, exc)
                else:
                    by_index[i] = self._make_result(scenario, result)
                self._advance(scenario)
                if self.cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    break
        self.results = [by_index[i] for i in sorted(by_index)]

    def _make_result(self, scenario: _Scenario, result: ForecastResult) -> BatchResult:
        return BatchResult(
            scenario_id=scenario.scenario_id,
            scenario_name=scenario.name,
            variations=dict(scenario.variations),
            result=result,
            metrics=result_metrics(result),
        )

    def _record_result(self, scenario: _Scenario, result: ForecastResult) -> None:
        self.results.append(self._make_result(scenario, result))

    def _record_failure(self, scenario: _Scenario, exc: CalculationError) -> None:
        logger.warning("Scenario %r failed: %s", scenario.name, exc)
        self.failures.append(BatchFailure(scenario.name, dict(scenario.variations), str(exc)))

    def _advance(self, scenario: _Scenario) -> None:
        self._completed += 1
        if self.on_progress is not None:
            total = self.total_scenarios
            self.on_progress(self._completed / total * 100.0, scenario.name)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def summary_statistics(self) -> BatchSummary:
        """Mean and population standard deviation of the headline metrics."""
        if not self.results:
            zeros = {m: 0.0 for m in SUMMARY_METRICS}
            return BatchSummary(None, None, None, zeros, dict(zeros))

        ranked = sorted(self.results, key=lambda r: r.metrics["net_irr"], reverse=True)
        table = np.array(
            [[r.metrics[m] for m in SUMMARY_METRICS] for r in self.results],
            dtype=np.float64,
        )
        mean = table.mean(axis=0)
        std = table.std(axis=0)
        return BatchSummary(
            best=ranked[0],
            median=ranked[len(ranked) // 2],
            worst=ranked[-1],
            mean={m: float(v) for m, v in zip(SUMMARY_METRICS, mean)},
            std_dev={m: float(v) for m, v in zip(SUMMARY_METRICS, std)},
        )

    def compare(self) -> pd.DataFrame:
        """One row per successful scenario: its variations then its metrics."""
        rows = [
            {"scenario": r.scenario_name, **r.variations, **r.metrics}
            for r in self.results
        ]
        return pd.DataFrame(rows)


def run_batch(
    base_config: FundConfiguration,
    dimensions: Sequence[SweepDimension],
    **options: object,
) -> list[BatchResult]:
    """Convenience wrapper: build a BatchRunner with ``options`` and run it."""
    return BatchRunner(base_config, dimensions, **options).run()  # type: ignore[arg-type]
