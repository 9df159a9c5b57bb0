"""
lifecycle.py — Stage graduation and exit simulation.

Two interchangeable strategies behind one interface:

    CompanyLifecycleSimulator  per-company sampling, O(companies)
    CohortLifecycleSimulator   vintage cohorts advanced quarter by quarter,
                               O(stages x quarters), deterministic

Depends on: fund.py, portfolio.py, rng.py, exceptions.py
"""
from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from vc_forecast.exceptions import CalculationError
from vc_forecast.fund import (
    EXIT_BUCKETS,
    EXIT_STAGE,
    STAGE_EXIT_MARKUPS,
    ExitProbabilities,
    FundConfiguration,
    to_decimal,
)
from vc_forecast.portfolio import (
    CompanyStatus,
    Investment,
    PortfolioCompany,
    build_portfolio,
    exit_probabilities_for,
)
from vc_forecast.rng import RandomSource

logger = logging.getLogger(__name__)

FOLLOW_ON_OWNERSHIP = 0.03
FOLLOW_ON_MIN_DELAY = 4  # quarters after the prior check
FOLLOW_ON_DELAY_SPREAD = 5  # delay drawn from 4..8 inclusive

# Cohort model parameters
GRADUATION_WINDOW = (4, 20)  # cohort ages (quarters) in which graduations happen
COHORT_FOLLOW_ON_FRACTION = 0.5
BASE_QUARTERLY_EXIT_RATE = 0.05
EXIT_AGE_SCALE = 20
MAX_EXIT_AGE_MULTIPLIER = 2.0
DEFAULT_MIN_EXIT_AGE = 16
DEFAULT_ANNUAL_STEP_UP = 0.15

MIN_EXIT_AGE: dict[str, int] = {
    "Pre-Seed": 12,
    "Seed": 16,
    "Series A": 20,
    "Series B": 16,
    "Series C": 12,
    "Series D+": 8,
}

ANNUAL_STEP_UP: dict[str, float] = {
    "Pre-Seed": 0.30,
    "Seed": 0.25,
    "Series A": 0.20,
    "Series B": 0.15,
    "Series C": 0.12,
    "Series D+": 0.10,
}

# Representative gross multiple realised by a cohort exit in each bucket
COHORT_EXIT_MULTIPLES: dict[str, float] = {
    "failure": 0.0,
    "low_multiple": 2.0,
    "medium_multiple": 5.0,
    "high_multiple": 20.0,
    "mega_multiple": 100.0,
}


@dataclass
class Cohort:
    """Companies sharing an entry stage and a vintage quarter."""

    id: str
    stage: str
    vintage: int
    initial_companies: int
    current_companies: int
    total_invested: float
    current_value: float
    realized_value: float = 0.0
    write_offs: int = 0
    graduates: dict[str, int] = field(default_factory=dict)
    exits: dict[str, int] = field(default_factory=lambda: {b: 0 for b in EXIT_BUCKETS})
    # (quarter, bucket, count, proceeds per company)
    exit_events: list[tuple[int, str, int, float]] = field(default_factory=list)

    @property
    def graduated_count(self) -> int:
        return sum(self.graduates.values())

    @property
    def avg_invested_per_company(self) -> float:
        if self.initial_companies <= 0:
            return 0.0
        return self.total_invested / self.initial_companies

    def age(self, quarter: int) -> int:
        return quarter - self.vintage


@dataclass(frozen=True)
class CohortSnapshot:
    """Aggregate state of all cohorts at the end of a quarter."""

    quarter: int
    cohort_count: int
    total_companies: int
    active_companies: int
    total_invested: float
    unrealized_value: float
    realized_value: float

    @property
    def total_value(self) -> float:
        return self.unrealized_value + self.realized_value


@dataclass(frozen=True)
class CohortMetrics:
    total_deployed: float
    total_realized: float
    total_recycled: float
    capital_efficiency: float
    success_rate: float


@dataclass
class SimulationOutcome:
    """What a simulator hands back to the orchestrator."""

    portfolio: list[PortfolioCompany]
    snapshots: list[CohortSnapshot] = field(default_factory=list)
    cohort_metrics: Optional[CohortMetrics] = None


class LifecycleSimulator(ABC):
    """Common contract of the per-company and cohort strategies."""

    name: str = "abstract"

    @abstractmethod
    def simulate(self, config: FundConfiguration, rng: RandomSource) -> SimulationOutcome:
        """Build and advance a portfolio for ``config``."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


# ---------------------------------------------------------------------------
# Per-company simulation
# ---------------------------------------------------------------------------

class CompanyLifecycleSimulator(LifecycleSimulator):
    """
    Samples graduation independently for each company.

    Each destination in the company's graduation row gets one draw; the
    first destination whose draw falls under its probability wins. A company
    graduates at most once per pass, so multi-round progressions (Seed ->
    Series A -> Series B) are not modelled.
    """

    name = "company"

    def simulate(self, config: FundConfiguration, rng: RandomSource) -> SimulationOutcome:
        portfolio = build_portfolio(config, rng)
        return SimulationOutcome(portfolio=self.progress(portfolio, config, rng))

    def progress(
        self,
        portfolio: list[PortfolioCompany],
        config: FundConfiguration,
        rng: RandomSource,
    ) -> list[PortfolioCompany]:
        """
        Apply one graduation pass and resolve exits inside the fund life.

        The input companies are not modified; updated copies are returned.
        """
        progressed = []
        graduated = 0
        for company in portfolio:
            updated = company.copy()
            if not updated.is_resolved:
                graduated += self._graduate_once(updated, config, rng)
                self._resolve(updated, config)
            progressed.append(updated)

        logger.debug("Company pass: %d of %d companies graduated", graduated, len(portfolio))
        return progressed

    def _graduate_once(
        self,
        company: PortfolioCompany,
        config: FundConfiguration,
        rng: RandomSource,
    ) -> int:
        row = config.graduation_matrix.get(company.current_stage)
        if row is None:
            raise CalculationError(
                f"Stage {company.current_stage!r} is missing from the graduation matrix"
            )

        for destination, probability in row.items():
            if rng.next() < probability:
                self._apply_graduation(company, destination, rng)
                return 1
        return 0

    def _apply_graduation(
        self,
        company: PortfolioCompany,
        destination: str,
        rng: RandomSource,
    ) -> None:
        prior_quarter = company.last_investment_quarter

        if destination == EXIT_STAGE:
            exit_quarter = prior_quarter + FOLLOW_ON_MIN_DELAY + math.floor(
                rng.next() * FOLLOW_ON_DELAY_SPREAD
            )
            if company.exit_value is None:
                company.exit_value = company.total_invested
            company.exit_quarter = exit_quarter
            company.status = CompanyStatus.EXITED
            return

        amount = company.investments[0].amount * (0.5 + rng.next())
        quarter = prior_quarter + FOLLOW_ON_MIN_DELAY + math.floor(
            rng.next() * FOLLOW_ON_DELAY_SPREAD
        )
        company.investments.append(
            Investment(destination, amount, quarter, FOLLOW_ON_OWNERSHIP, is_follow_on=True)
        )
        company.total_invested += amount
        company.current_stage = destination

        if company.exit_value:
            company.exit_value *= STAGE_EXIT_MARKUPS.get(destination, 1.0)
        if company.exit_quarter is not None and company.exit_quarter <= quarter:
            company.exit_quarter = quarter + 1

    def _resolve(self, company: PortfolioCompany, config: FundConfiguration) -> None:
        if (
            company.status is CompanyStatus.ACTIVE
            and company.exit_value
            and company.exit_quarter is not None
            and company.exit_quarter <= config.fund_life_quarters
        ):
            company.status = CompanyStatus.EXITED


# ---------------------------------------------------------------------------
# Cohort simulation
# ---------------------------------------------------------------------------

def distribute_exit_outcomes(count: int, probs: ExitProbabilities) -> dict[str, int]:
    """
    Split ``count`` exiting companies across outcome buckets.

    Each bucket receives the floor of its probability-weighted share; any
    remainder goes to the low-multiple bucket. The result always sums to
    ``count``.
    """
    outcomes = {bucket: math.floor(count * getattr(probs, bucket)) for bucket in EXIT_BUCKETS}

    # Probabilities summing slightly above 1 can overshoot
    while sum(outcomes.values()) > count:
        largest = max(outcomes, key=outcomes.__getitem__)
        outcomes[largest] -= 1

    remainder = count - sum(outcomes.values())
    if remainder > 0:
        outcomes["low_multiple"] += remainder
    return outcomes


def quarterly_exit_rate(age: int) -> float:
    """Exit rate grows with cohort age, up to twice the base rate."""
    return BASE_QUARTERLY_EXIT_RATE * min(age / EXIT_AGE_SCALE, MAX_EXIT_AGE_MULTIPLIER)


class CohortEngine:
    """
    Quarter-by-quarter state of one cohort simulation run.

    Capital is split into a first-check pool (``1 - follow_on_reserve_ratio``
    of investable capital, plus anything recycled) and a follow-on reserve.
    Create a new engine per run; ``CohortLifecycleSimulator`` does this.
    """

    def __init__(self, config: FundConfiguration) -> None:
        self.config = config
        self.investable = config.investable_capital
        self.initial_pool = self.investable * (1.0 - config.follow_on_reserve_ratio)
        self.reserve_pool = self.investable * config.follow_on_reserve_ratio

        self.cohorts: dict[str, Cohort] = {}
        self.snapshots: list[CohortSnapshot] = []
        self.initial_deployed = 0.0
        self.follow_on_deployed = 0.0
        self.capital_realized = 0.0
        self.capital_recycled = 0.0

        self._exit_probs: dict[str, ExitProbabilities] = {}
        for strategy in config.stage_strategies:
            if strategy.stage not in config.graduation_matrix:
                raise CalculationError(
                    f"Stage {strategy.stage!r} is missing from the graduation matrix"
                )
            self._exit_probs[strategy.stage] = exit_probabilities_for(config, strategy.stage)

    @property
    def capital_deployed(self) -> float:
        return self.initial_deployed + self.follow_on_deployed

    def run(self) -> list[CohortSnapshot]:
        cfg = self.config
        for quarter in range(cfg.fund_life_quarters + 1):
            if quarter < cfg.investment_period_quarters:
                self._deploy_capital(quarter)
            self._progress_cohorts(quarter)
            self._process_exits(quarter)
            self._snapshot(quarter)
        return self.snapshots

    # ------------------------------------------------------------------
    # Quarterly steps
    # ------------------------------------------------------------------

    def _deploy_capital(self, quarter: int) -> None:
        remaining = self.initial_pool + self.capital_recycled - self.initial_deployed
        quarters_remaining = self.config.investment_period_quarters - quarter
        if quarters_remaining <= 0 or remaining <= 0:
            return

        target = remaining / quarters_remaining
        for strategy in self.config.stage_strategies:
            stage_amount = to_decimal(target) * to_decimal(strategy.allocation_pct)
            n_companies = math.floor(stage_amount / to_decimal(strategy.avg_check_size))
            if n_companies <= 0:
                continue

            invested = n_companies * strategy.avg_check_size
            cohort = Cohort(
                id=f"{strategy.stage}-Q{quarter}",
                stage=strategy.stage,
                vintage=quarter,
                initial_companies=n_companies,
                current_companies=n_companies,
                total_invested=invested,
                current_value=invested,
            )
            self.cohorts[cohort.id] = cohort
            self.initial_deployed += invested

    def _progress_cohorts(self, quarter: int) -> None:
        lo, hi = GRADUATION_WINDOW
        for cohort in self.cohorts.values():
            if cohort.current_companies <= 0:
                continue
            if lo <= cohort.age(quarter) <= hi:
                self._process_graduations(cohort)
            step_up = ANNUAL_STEP_UP.get(cohort.stage, DEFAULT_ANNUAL_STEP_UP)
            cohort.current_value *= (1.0 + step_up) ** 0.25

    def _process_graduations(self, cohort: Cohort) -> None:
        row = self.config.graduation_matrix[cohort.stage]
        eligible = max(0, cohort.current_companies - cohort.graduated_count)
        if eligible <= 0:
            return

        for destination, probability in row.items():
            graduating = min(
                math.floor(eligible * probability),
                cohort.current_companies - cohort.graduated_count,
            )
            if graduating <= 0:
                continue
            cohort.graduates[destination] = cohort.graduates.get(destination, 0) + graduating
            if destination == EXIT_STAGE:
                continue

            share = graduating / cohort.current_companies
            markup = STAGE_EXIT_MARKUPS.get(destination, 1.0)
            cohort.current_value *= 1.0 + share * (markup - 1.0)

            strategy = self.config.strategy_for(destination)
            check = strategy.avg_check_size if strategy else cohort.avg_invested_per_company
            follow_on = graduating * check * COHORT_FOLLOW_ON_FRACTION
            if self._reserve_available(follow_on):
                cohort.total_invested += follow_on
                cohort.current_value += follow_on
                self.follow_on_deployed += follow_on

    def _reserve_available(self, amount: float) -> bool:
        return amount > 0 and self.follow_on_deployed + amount <= self.reserve_pool

    def _process_exits(self, quarter: int) -> None:
        cfg = self.config
        for cohort in self.cohorts.values():
            age = cohort.age(quarter)
            if cohort.current_companies <= 0:
                continue
            if age < MIN_EXIT_AGE.get(cohort.stage, DEFAULT_MIN_EXIT_AGE):
                continue

            exiting = min(
                math.floor(cohort.current_companies * quarterly_exit_rate(age)),
                cohort.current_companies,
            )
            if exiting <= 0:
                continue

            outcomes = distribute_exit_outcomes(exiting, self._exit_probs[cohort.stage])
            avg = cohort.avg_invested_per_company
            proceeds = sum(
                count * avg * COHORT_EXIT_MULTIPLES[bucket] for bucket, count in outcomes.items()
            )

            cohort.current_value -= cohort.current_value * exiting / cohort.current_companies
            cohort.current_value = max(0.0, cohort.current_value)
            cohort.current_companies -= exiting
            cohort.realized_value += proceeds
            cohort.write_offs += outcomes["failure"]
            for bucket, count in outcomes.items():
                if count > 0:
                    cohort.exits[bucket] += count
                    cohort.exit_events.append(
                        (quarter, bucket, count, avg * COHORT_EXIT_MULTIPLES[bucket])
                    )
            self.capital_realized += proceeds

            if cfg.recycling_enabled and quarter < cfg.investment_period_quarters:
                headroom = self.investable * cfg.recycling_cap - self.capital_recycled
                recyclable = min(proceeds, headroom)
                if recyclable > 0:
                    self.capital_recycled += recyclable

    def _snapshot(self, quarter: int) -> None:
        cohorts = list(self.cohorts.values())
        self.snapshots.append(
            CohortSnapshot(
                quarter=quarter,
                cohort_count=len(cohorts),
                total_companies=sum(c.initial_companies for c in cohorts),
                active_companies=sum(c.current_companies for c in cohorts),
                total_invested=sum(c.total_invested for c in cohorts),
                unrealized_value=sum(c.current_value for c in cohorts),
                realized_value=sum(c.realized_value for c in cohorts),
            )
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def final_metrics(self) -> CohortMetrics:
        total_exits = sum(sum(c.exits.values()) for c in self.cohorts.values())
        successful = sum(
            sum(n for bucket, n in c.exits.items() if bucket != "failure")
            for c in self.cohorts.values()
        )
        deployed = self.capital_deployed
        return CohortMetrics(
            total_deployed=deployed,
            total_realized=self.capital_realized,
            total_recycled=self.capital_recycled,
            capital_efficiency=self.capital_realized / deployed if deployed > 0 else 0.0,
            success_rate=successful / total_exits if total_exits > 0 else 0.0,
        )

    def export_to_portfolio(self) -> list[PortfolioCompany]:
        """
        Materialise every cohort member as a PortfolioCompany.

        Active members carry an even share of the cohort's unrealized value;
        exited members carry their bucket's realised value. Pooled follow-on
        capital is spread evenly over the cohort, so totals match the cohort
        aggregates exactly.
        """
        portfolio: list[PortfolioCompany] = []
        for cohort in self.cohorts.values():
            slug = re.sub(r"\s+", "-", cohort.stage.lower())
            avg = cohort.avg_invested_per_company
            seq = 0

            def make(stage: str) -> PortfolioCompany:
                nonlocal seq
                seq += 1
                return PortfolioCompany(
                    id=f"{slug}-q{cohort.vintage}-{seq}",
                    name=f"{cohort.stage} Company {seq} ({cohort.id})",
                    entry_stage=cohort.stage,
                    current_stage=stage,
                    investments=[Investment(cohort.stage, avg, cohort.vintage)],
                    total_invested=avg,
                )

            destinations = [
                dest
                for dest, n in cohort.graduates.items()
                if dest != EXIT_STAGE
                for _ in range(n)
            ]
            valuation = (
                cohort.current_value / cohort.current_companies
                if cohort.current_companies > 0
                else 0.0
            )
            for i in range(cohort.current_companies):
                company = make(destinations[i] if i < len(destinations) else cohort.stage)
                company.current_valuation = valuation
                portfolio.append(company)

            for quarter, bucket, count, proceeds in cohort.exit_events:
                for _ in range(count):
                    company = make(cohort.stage)
                    company.exit_quarter = quarter
                    company.exit_value = proceeds
                    company.status = (
                        CompanyStatus.WRITTEN_OFF if bucket == "failure" else CompanyStatus.EXITED
                    )
                    portfolio.append(company)
        return portfolio


class CohortLifecycleSimulator(LifecycleSimulator):
    """
    Deterministic cohort-level simulation.

    Graduations and exits are applied fractionally (floor of count x rate),
    so the random source is accepted for interface parity but not consumed.
    Suited to large portfolios where per-company sampling is too slow.
    """

    name = "cohort"

    def simulate(self, config: FundConfiguration, rng: RandomSource) -> SimulationOutcome:
        engine = CohortEngine(config)
        snapshots = engine.run()
        metrics = engine.final_metrics()
        logger.debug(
            "Cohort run: %d cohorts, deployed %.0f, realized %.0f, recycled %.0f",
            len(engine.cohorts),
            metrics.total_deployed,
            metrics.total_realized,
            metrics.total_recycled,
        )
        return SimulationOutcome(
            portfolio=engine.export_to_portfolio(),
            snapshots=snapshots,
            cohort_metrics=metrics,
        )


SIMULATORS: dict[str, type[LifecycleSimulator]] = {
    CompanyLifecycleSimulator.name: CompanyLifecycleSimulator,
    CohortLifecycleSimulator.name: CohortLifecycleSimulator,
}

COHORT_THRESHOLD = 500


def get_simulator(name: str) -> LifecycleSimulator:
    try:
        return SIMULATORS[name]()
    except KeyError:
        raise ValueError(f"Unknown simulator {name!r}; expected one of {sorted(SIMULATORS)}") from None


def simulator_for(config: FundConfiguration, threshold: int = COHORT_THRESHOLD) -> LifecycleSimulator:
    """Pick the per-company variant for small portfolios, cohorts for large ones."""
    investable = config.investable_capital
    expected = sum(
        investable * s.allocation_pct / s.avg_check_size
        for s in config.stage_strategies
        if isinstance(s.avg_check_size, (int, float))
        and isinstance(s.allocation_pct, (int, float))
        and s.avg_check_size > 0
    )
    if expected > threshold:
        return CohortLifecycleSimulator()
    return CompanyLifecycleSimulator()
