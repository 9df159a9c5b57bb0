"""
fund.py — Fund configuration, economics and fee/expense schedules.

Depends on nothing else inside this library. All periods are quarters and
all percentages are fractions (0.02 = 2%).
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Literal, Mapping, Optional

import numpy as np
import numpy.typing as npt

EXIT_STAGE = "Exit"

ExitBucket = Literal["failure", "low_multiple", "medium_multiple", "high_multiple", "mega_multiple"]

EXIT_BUCKETS: tuple[str, ...] = (
    "failure",
    "low_multiple",
    "medium_multiple",
    "high_multiple",
    "mega_multiple",
)

# Uniform sampling range of the gross exit multiple within each bucket
EXIT_MULTIPLE_RANGES: dict[str, tuple[float, float]] = {
    "failure": (0.0, 0.0),
    "low_multiple": (1.0, 3.0),
    "medium_multiple": (3.0, 10.0),
    "high_multiple": (10.0, 50.0),
    "mega_multiple": (50.0, 150.0),
}


def to_decimal(value: float | int | Decimal) -> Decimal:
    """Convert via ``str`` so 0.1 stays 0.1 rather than its binary expansion."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# ---------------------------------------------------------------------------
# Strategy inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExitProbabilities:
    """Discrete distribution over the five exit outcome buckets of a stage."""

    failure: float
    low_multiple: float
    medium_multiple: float
    high_multiple: float
    mega_multiple: float

    def as_dict(self) -> dict[str, float]:
        return {bucket: getattr(self, bucket) for bucket in EXIT_BUCKETS}

    @property
    def total(self) -> float:
        return float(sum(self.as_dict().values()))

    def cumulative(self) -> list[tuple[str, float]]:
        """Running totals in bucket order; the last bucket is pinned to 1.0."""
        running = 0.0
        out = []
        for bucket in EXIT_BUCKETS[:-1]:
            running += getattr(self, bucket)
            out.append((bucket, running))
        out.append((EXIT_BUCKETS[-1], 1.0))
        return out


@dataclass(frozen=True)
class StageStrategy:
    """One financing stage the fund writes first checks into."""

    stage: str
    allocation_pct: float
    avg_check_size: float
    graduation_rate: float = 0.0
    num_first_checks: int = 0  # 0 = derive from allocation
    weighted_exit_value: float = 0.0  # insight only
    exit_multiple: float = 0.0  # insight only
    avg_exit_quarter: int = 20


@dataclass(frozen=True)
class FeeProfile:
    """
    A management-fee tranche active between two quarters (inclusive).

    ``basis`` is ``"committed"`` for the fund's fee base (LP commitment, or
    the whole fund when GP capital pays fees) or ``"fund_size"``.
    """

    name: str
    rate: float
    basis: Literal["committed", "fund_size"] = "committed"
    start_quarter: int = 1
    end_quarter: Optional[int] = None


@dataclass(frozen=True)
class FundExpense:
    """A fund-level expense charged on top of management fees."""

    name: str
    amount: float
    timing: Literal["upfront", "annual", "quarterly"] = "upfront"
    start_quarter: Optional[int] = None
    end_quarter: Optional[int] = None


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_STAGE_STRATEGIES: tuple[StageStrategy, ...] = (
    StageStrategy(
        stage="Pre-Seed",
        allocation_pct=0.43,
        avg_check_size=250_000,
        graduation_rate=0.30,
        num_first_checks=24,
        weighted_exit_value=17_500_000,
        exit_multiple=15,
        avg_exit_quarter=16,
    ),
    StageStrategy(
        stage="Seed",
        allocation_pct=0.43,
        avg_check_size=400_000,
        graduation_rate=0.35,
        num_first_checks=15,
        weighted_exit_value=39_500_000,
        exit_multiple=20,
        avg_exit_quarter=20,
    ),
    StageStrategy(
        stage="Series A",
        allocation_pct=0.14,
        avg_check_size=600_000,
        graduation_rate=0.50,
        num_first_checks=3,
        weighted_exit_value=71_750_000,
        exit_multiple=12,
        avg_exit_quarter=24,
    ),
)

DEFAULT_GRADUATION_MATRIX: dict[str, dict[str, float]] = {
    "Pre-Seed": {"Seed": 0.30, "Series A": 0.12, "Series B": 0.06},
    "Seed": {"Series A": 0.35, "Series B": 0.20, "Series C": 0.12},
    "Series A": {"Series B": 0.50, "Series C": 0.30, "Series D+": 0.20},
    "Series B": {"Series C": 0.50, "Series D+": 0.35},
    "Series C": {"Series D+": 0.60},
    "Series D+": {EXIT_STAGE: 1.00},
}

DEFAULT_EXIT_PROBABILITIES: dict[str, ExitProbabilities] = {
    "Pre-Seed": ExitProbabilities(0.90, 0.06, 0.02, 0.01, 0.01),
    "Seed": ExitProbabilities(0.80, 0.10, 0.05, 0.03, 0.02),
    "Series A": ExitProbabilities(0.65, 0.15, 0.10, 0.07, 0.03),
    "Series B": ExitProbabilities(0.50, 0.20, 0.15, 0.10, 0.05),
    "Series C": ExitProbabilities(0.35, 0.25, 0.20, 0.15, 0.05),
    "Series D+": ExitProbabilities(0.10, 0.20, 0.30, 0.25, 0.15),
}

# Markup applied to a company's projected exit value when it graduates into a stage
STAGE_EXIT_MARKUPS: dict[str, float] = {
    "Seed": 1.2,
    "Series A": 1.5,
    "Series B": 1.8,
    "Series C": 2.0,
    "Series D+": 2.5,
}


def _default_graduation_matrix() -> dict[str, dict[str, float]]:
    return {src: dict(row) for src, row in DEFAULT_GRADUATION_MATRIX.items()}


def _default_exit_probabilities() -> dict[str, ExitProbabilities]:
    return dict(DEFAULT_EXIT_PROBABILITIES)


# ---------------------------------------------------------------------------
# Fund configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FundConfiguration:
    """Immutable input to a forecast run."""

    fund_name: str = "Press On Ventures Fund I"
    fund_size: float = 20_000_000
    vintage_year: int = 2024
    management_fee_rate: float = 0.02
    carry_pct: float = 0.20
    hurdle_rate: float = 0.0
    gp_commitment_pct: float = 0.02
    include_gp_in_fees: bool = False
    investment_period_quarters: int = 20
    fund_life_quarters: int = 40
    stage_strategies: tuple[StageStrategy, ...] = DEFAULT_STAGE_STRATEGIES
    graduation_matrix: Mapping[str, Mapping[str, float]] = field(
        default_factory=_default_graduation_matrix
    )
    exit_probabilities: Mapping[str, ExitProbabilities] = field(
        default_factory=_default_exit_probabilities
    )
    follow_on_reserve_ratio: float = 0.30
    recycling_enabled: bool = False
    recycling_cap: float = 0.20
    fee_profiles: tuple[FeeProfile, ...] = ()
    expenses: tuple[FundExpense, ...] = ()
    distribution_start_quarter: int = 12

    def __post_init__(self) -> None:
        # Accept lists from callers and loaders; store tuples.
        object.__setattr__(self, "stage_strategies", tuple(self.stage_strategies))
        object.__setattr__(self, "fee_profiles", tuple(self.fee_profiles))
        object.__setattr__(self, "expenses", tuple(self.expenses))

    # ------------------------------------------------------------------
    # Derived economics
    # ------------------------------------------------------------------

    @property
    def fund_life_years(self) -> float:
        return self.fund_life_quarters / 4

    @property
    def stages(self) -> list[str]:
        return [s.stage for s in self.stage_strategies]

    def strategy_for(self, stage: str) -> Optional[StageStrategy]:
        for strategy in self.stage_strategies:
            if strategy.stage == stage:
                return strategy
        return None

    @property
    def gp_commitment(self) -> float:
        return float(to_decimal(self.fund_size) * to_decimal(self.gp_commitment_pct))

    @property
    def lp_commitment(self) -> float:
        return float(to_decimal(self.fund_size) - to_decimal(self.gp_commitment))

    @property
    def fee_base(self) -> float:
        return self.fund_size if self.include_gp_in_fees else self.lp_commitment

    @property
    def quarterly_management_fee(self) -> float:
        """Flat fee per active quarter when no fee profiles are configured."""
        return float(to_decimal(self.fee_base) * to_decimal(self.management_fee_rate) / 4)

    @property
    def total_management_fees(self) -> float:
        if self.fee_profiles:
            return float(np.sum(management_fee_schedule(self)))
        return float(
            to_decimal(self.fee_base)
            * to_decimal(self.management_fee_rate)
            * to_decimal(self.fund_life_years)
        )

    @property
    def total_expenses(self) -> float:
        if not self.expenses:
            return 0.0
        return float(np.sum(expense_schedule(self)))

    @property
    def investable_capital(self) -> float:
        return float(
            to_decimal(self.fund_size)
            - to_decimal(self.total_management_fees)
            - to_decimal(self.total_expenses)
        )

    def with_overrides(self, **changes: object) -> "FundConfiguration":
        return replace(self, **changes)

    def __repr__(self) -> str:
        return (
            f"FundConfiguration(name={self.fund_name!r}, "
            f"size=${self.fund_size:,.0f}, stages={self.stages}, "
            f"life={self.fund_life_quarters}q)"
        )


def default_configuration(**overrides: object) -> FundConfiguration:
    """The $20M three-stage seed fund used throughout the examples and tests."""
    return FundConfiguration(**overrides)


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------

def management_fee_schedule(config: FundConfiguration) -> npt.NDArray[np.float64]:
    """
    Management fee charged in each quarter 0..fund_life (inclusive).

    Without fee profiles the fee is a constant ``fee_base * rate / 4`` for
    every quarter after quarter 0. With profiles, each active profile adds
    ``basis * profile.rate / 4`` for the quarters it covers.
    """
    n = config.fund_life_quarters + 1
    fees = np.zeros(n, dtype=np.float64)
    if n <= 1:
        return fees

    if not config.fee_profiles:
        fees[1:] = config.quarterly_management_fee
        return fees

    for profile in config.fee_profiles:
        base = config.fund_size if profile.basis == "fund_size" else config.fee_base
        start = max(1, profile.start_quarter)
        end = config.fund_life_quarters if profile.end_quarter is None else profile.end_quarter
        end = min(end, config.fund_life_quarters)
        if end < start:
            continue
        fees[start : end + 1] += base * profile.rate / 4
    return fees


def expense_schedule(config: FundConfiguration) -> npt.NDArray[np.float64]:
    """Fund expenses charged in each quarter 0..fund_life (inclusive)."""
    n = config.fund_life_quarters + 1
    out = np.zeros(n, dtype=np.float64)

    for expense in config.expenses:
        if expense.timing == "upfront":
            quarter = 0 if expense.start_quarter is None else expense.start_quarter
            if 0 <= quarter < n:
                out[quarter] += expense.amount
            continue

        start = 1 if expense.start_quarter is None else max(0, expense.start_quarter)
        end = config.fund_life_quarters if expense.end_quarter is None else expense.end_quarter
        end = min(end, config.fund_life_quarters)
        step = 4 if expense.timing == "annual" else 1
        for quarter in range(start, end + 1, step):
            out[quarter] += expense.amount
    return out
