"""
results.py — Read-only output bundle of a forecast run.

Depends on: fund.py, portfolio.py, lifecycle.py, waterfall.py, timeline.py
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pandas as pd

from vc_forecast.fund import FundConfiguration
from vc_forecast.lifecycle import CohortMetrics, CohortSnapshot
from vc_forecast.metrics import annualize_rate
from vc_forecast.portfolio import PortfolioCompany, portfolio_frame
from vc_forecast.timeline import CashFlowPoint, jcurve_shape, timeline_frame
from vc_forecast.waterfall import WaterfallSummary


@dataclass(frozen=True)
class CompanyResult:
    """Deal-level economics of one company."""

    company_id: str
    invested: float
    exit_proceeds: float
    profit: float
    carry: float
    lp_profit: float
    multiple: float


@dataclass(frozen=True)
class ForecastIntermediates:
    """Per-quarter series and counts kept for charts and insights."""

    quarterly_deployments: tuple[float, ...]
    quarterly_navs: tuple[float, ...]
    quarterly_distributions: tuple[float, ...]
    quarterly_management_fees: tuple[float, ...]
    companies_created: int
    companies_exited: int
    companies_written_off: int


@dataclass(frozen=True)
class ForecastResult:
    """
    Everything one forecast produces.

    Created once per orchestrator invocation and shared through the cache,
    so treat it as read-only. IRR fields are per-quarter rates; use the
    ``annualized_*`` properties for yearly figures.

    ``net_moic`` is the LP view: ``(exit - fees - gp_carry) / fund_size``,
    floored at 0. It differs from ``CashFlowPoint.net_moic`` on the
    timeline, which is ``(exit - fees) / invested`` with no carry.
    """

    configuration: FundConfiguration
    simulator: str
    timeline: tuple[CashFlowPoint, ...]
    portfolio: tuple[PortfolioCompany, ...]
    company_results: tuple[CompanyResult, ...]
    waterfall: WaterfallSummary
    total_invested: float
    total_exit_value: float
    total_management_fees: float
    total_gp_carry: float
    total_lp_profit: float
    gross_moic: float
    net_moic: float
    gross_irr: float
    net_irr: float
    tvpi: float
    dpi: float
    rvpi: float
    calculation_date: datetime
    fund_life_quarters: int
    intermediates: ForecastIntermediates
    cohort_snapshots: tuple[CohortSnapshot, ...] = ()
    cohort_metrics: Optional[CohortMetrics] = None

    @property
    def annualized_gross_irr(self) -> float:
        return annualize_rate(self.gross_irr)

    @property
    def annualized_net_irr(self) -> float:
        return annualize_rate(self.net_irr)

    def timeline_frame(self) -> pd.DataFrame:
        return timeline_frame(self.timeline)

    def portfolio_frame(self) -> pd.DataFrame:
        return portfolio_frame(self.portfolio)

    def jcurve_shape(self) -> dict[str, float | int]:
        return jcurve_shape(self.timeline)

    def summary(self) -> dict[str, float | str | int]:
        """Return a flat dict of headline metrics."""
        return {
            "fund_name": self.configuration.fund_name,
            "simulator": self.simulator,
            "companies": len(self.portfolio),
            "total_invested": self.total_invested,
            "total_exit_value": self.total_exit_value,
            "total_management_fees": self.total_management_fees,
            "gp_carry": self.total_gp_carry,
            "lp_profit": self.total_lp_profit,
            "gross_moic": self.gross_moic,
            "net_moic": self.net_moic,
            "gross_irr": self.gross_irr,
            "net_irr": self.net_irr,
            "tvpi": self.tvpi,
            "dpi": self.dpi,
            "rvpi": self.rvpi,
        }

    def __repr__(self) -> str:
        return (
            f"ForecastResult(fund={self.configuration.fund_name!r}, "
            f"companies={len(self.portfolio)}, gross_moic={self.gross_moic:.2f}x, "
            f"net_moic={self.net_moic:.2f}x, tvpi={self.tvpi:.2f}x)"
        )
