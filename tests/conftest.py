"""
conftest.py — Shared pytest fixtures for the vc_forecast test suite.
"""
from __future__ import annotations

from typing import Iterable

import pytest

from vc_forecast.forecast import FundForecaster
from vc_forecast.fund import FundConfiguration, default_configuration
from vc_forecast.results import ForecastResult


class ScriptedRandom:
    """Random source that replays a fixed list of draws, then fails loudly."""

    def __init__(self, values: Iterable[float]) -> None:
        self._values = list(values)
        self.consumed = 0

    def next(self) -> float:
        if self.consumed >= len(self._values):
            raise AssertionError("random source exhausted")
        value = self._values[self.consumed]
        self.consumed += 1
        return value


@pytest.fixture
def scripted_rng():
    """Factory: ``scripted_rng(0.1, 0.5)`` yields those draws in order."""

    def make(*values: float) -> ScriptedRandom:
        return ScriptedRandom(values)

    return make


@pytest.fixture(scope="session")
def base_config() -> FundConfiguration:
    """The $20M three-stage seed fund (47 first checks)."""
    return default_configuration()


@pytest.fixture(scope="session")
def large_config() -> FundConfiguration:
    """$1B fund: enough companies to route through the cohort simulator."""
    return default_configuration(fund_name="Scale Fund I", fund_size=1_000_000_000)


@pytest.fixture(scope="session")
def base_forecast(base_config: FundConfiguration) -> ForecastResult:
    return FundForecaster().forecast(base_config)


@pytest.fixture(scope="session")
def cohort_forecast(large_config: FundConfiguration) -> ForecastResult:
    return FundForecaster().forecast(large_config)


@pytest.fixture
def forecaster() -> FundForecaster:
    """A fresh forecaster with an empty cache."""
    return FundForecaster()
