"""
portfolio.py — Portfolio companies and strategy-driven portfolio generation.

Depends on: fund.py, rng.py, exceptions.py
"""
from __future__ import annotations

import enum
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Optional, Sequence

import pandas as pd

from vc_forecast.exceptions import CalculationError
from vc_forecast.fund import (
    DEFAULT_EXIT_PROBABILITIES,
    EXIT_MULTIPLE_RANGES,
    ExitProbabilities,
    FundConfiguration,
    to_decimal,
)
from vc_forecast.rng import RandomSource

logger = logging.getLogger(__name__)

# Simplified ownership bought with a first check
INITIAL_OWNERSHIP = 0.05
EXIT_QUARTER_JITTER = 8


class CompanyStatus(str, enum.Enum):
    ACTIVE = "active"
    EXITED = "exited"
    WRITTEN_OFF = "written-off"


@dataclass
class Investment:
    """A single check written into a company."""

    stage: str
    amount: float
    quarter: int
    ownership: float = INITIAL_OWNERSHIP
    is_follow_on: bool = False


@dataclass
class PortfolioCompany:
    """A simulated investee, owned by the run that created it."""

    id: str
    name: str
    entry_stage: str
    current_stage: str
    investments: list[Investment] = field(default_factory=list)
    total_invested: float = 0.0
    status: CompanyStatus = CompanyStatus.ACTIVE
    exit_value: Optional[float] = None
    exit_quarter: Optional[int] = None
    current_valuation: Optional[float] = None

    @property
    def entry_quarter(self) -> int:
        return self.investments[0].quarter if self.investments else 0

    @property
    def last_investment_quarter(self) -> int:
        return max((inv.quarter for inv in self.investments), default=0)

    @property
    def is_resolved(self) -> bool:
        return self.status is not CompanyStatus.ACTIVE

    @property
    def value(self) -> float:
        """Exit value when one is set, otherwise the latest mark."""
        if self.exit_value is not None:
            return self.exit_value
        return self.current_valuation or 0.0

    def copy(self) -> "PortfolioCompany":
        return PortfolioCompany(
            id=self.id,
            name=self.name,
            entry_stage=self.entry_stage,
            current_stage=self.current_stage,
            investments=[
                Investment(i.stage, i.amount, i.quarter, i.ownership, i.is_follow_on)
                for i in self.investments
            ],
            total_invested=self.total_invested,
            status=self.status,
            exit_value=self.exit_value,
            exit_quarter=self.exit_quarter,
            current_valuation=self.current_valuation,
        )


# ---------------------------------------------------------------------------
# Exit sampling
# ---------------------------------------------------------------------------

def exit_probabilities_for(config: FundConfiguration, stage: str) -> ExitProbabilities:
    """Configured distribution for ``stage``, else the built-in default."""
    probs = config.exit_probabilities.get(stage) or DEFAULT_EXIT_PROBABILITIES.get(stage)
    if probs is None:
        raise CalculationError(f"Stage {stage!r} has no exit probability distribution")
    return probs


def sample_exit_outcome(probs: ExitProbabilities, rng: RandomSource) -> tuple[str, float]:
    """
    Draw an outcome bucket, then a multiple uniformly within its range.

    One draw selects the bucket by cumulative comparison; a second draw is
    taken only for non-failure buckets.
    """
    draw = rng.next()
    bucket = "mega_multiple"
    for name, threshold in probs.cumulative():
        if draw <= threshold:
            bucket = name
            break

    low, high = EXIT_MULTIPLE_RANGES[bucket]
    if high <= 0:
        return bucket, 0.0
    return bucket, low + rng.next() * (high - low)


def _slug(stage: str) -> str:
    return re.sub(r"\s+", "-", stage.strip().lower())


# ---------------------------------------------------------------------------
# Portfolio generation
# ---------------------------------------------------------------------------

def build_portfolio(config: FundConfiguration, rng: RandomSource) -> list[PortfolioCompany]:
    """
    Instantiate first-check companies for every stage strategy.

    Stage capital is ``investable_capital * allocation_pct`` and the company
    count is its floor division by the average check; fractional companies
    are dropped. Each company gets an investment quarter inside the
    investment period and a projected exit (value and quarter) sampled from
    its stage's exit distribution. Failures are written off immediately.

    Parameters
    ----------
    config:
        Fund configuration.
    rng:
        Random source; the same seeded source yields an identical portfolio.

    Returns
    -------
    list[PortfolioCompany]
    """
    investable = to_decimal(config.investable_capital)
    portfolio: list[PortfolioCompany] = []

    for strategy_index, strategy in enumerate(config.stage_strategies):
        if strategy.avg_check_size <= 0:
            raise CalculationError(f"Stage {strategy.stage!r} has a non-positive check size")
        probs = exit_probabilities_for(config, strategy.stage)

        stage_capital = investable * to_decimal(strategy.allocation_pct)
        n_companies = max(0, math.floor(stage_capital / to_decimal(strategy.avg_check_size)))
        check = float(strategy.avg_check_size)
        slug = _slug(strategy.stage)

        for i in range(n_companies):
            quarter = math.floor(rng.next() * config.investment_period_quarters)
            _, multiple = sample_exit_outcome(probs, rng)

            company = PortfolioCompany(
                id=f"{slug}-{strategy_index}-{i + 1}",
                name=f"{strategy.stage} Company {i + 1}",
                entry_stage=strategy.stage,
                current_stage=strategy.stage,
                investments=[Investment(strategy.stage, check, quarter)],
                total_invested=check,
            )
            if multiple > 0:
                jitter = math.floor(rng.next() * EXIT_QUARTER_JITTER)
                company.exit_value = check * multiple
                company.exit_quarter = max(quarter + 1, strategy.avg_exit_quarter + jitter)
            else:
                company.exit_value = 0.0
                company.status = CompanyStatus.WRITTEN_OFF
            portfolio.append(company)

        logger.debug("Generated %d %s companies", n_companies, strategy.stage)

    return portfolio


# ---------------------------------------------------------------------------
# Portfolio analytics
# ---------------------------------------------------------------------------

def portfolio_frame(companies: Sequence[PortfolioCompany]) -> pd.DataFrame:
    """Return a company-level breakdown DataFrame."""
    columns = [
        "id",
        "name",
        "entry_stage",
        "current_stage",
        "status",
        "entry_quarter",
        "n_investments",
        "total_invested",
        "exit_value",
        "exit_quarter",
        "current_valuation",
    ]
    rows = [
        {
            "id": c.id,
            "name": c.name,
            "entry_stage": c.entry_stage,
            "current_stage": c.current_stage,
            "status": c.status.value,
            "entry_quarter": c.entry_quarter,
            "n_investments": len(c.investments),
            "total_invested": c.total_invested,
            "exit_value": c.exit_value,
            "exit_quarter": c.exit_quarter,
            "current_valuation": c.current_valuation,
        }
        for c in companies
    ]
    return pd.DataFrame(rows, columns=columns)


def status_counts(companies: Sequence[PortfolioCompany]) -> dict[str, int]:
    counts = Counter(c.status.value for c in companies)
    return {status.value: counts.get(status.value, 0) for status in CompanyStatus}
