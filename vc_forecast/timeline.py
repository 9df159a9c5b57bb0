"""
timeline.py — Quarterly cash flow, NAV and ratio series for a fund.

Depends on: fund.py, metrics.py
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np
import numpy.typing as npt
import pandas as pd

from vc_forecast.fund import FundConfiguration, expense_schedule, management_fee_schedule
from vc_forecast.metrics import calc_dpi, calc_moic, calc_rvpi, compute_irr


@dataclass(frozen=True)
class CashFlowPoint:
    """
    One quarter of the fund timeline.

    ``moic`` and ``net_moic`` are portfolio multiples on invested capital:
    ``net_moic`` is ``(exit - fees) / invested`` and ignores carry. The
    headline ``ForecastResult.net_moic`` instead divides
    ``exit - fees - gp_carry`` by the fund size.
    """

    quarter: int
    year: float
    period_label: str
    contributions: float
    distributions: float
    management_fees: float
    expenses: float
    cumulative_contributions: float
    cumulative_distributions: float
    nav: float
    dpi: float
    rvpi: float
    tvpi: float
    moic: float
    net_moic: float
    gross_irr: float
    net_irr: float


def period_label(quarter: int) -> str:
    """``Y1Q1`` for quarter 0, ``Y1Q2`` for quarter 1, and so on."""
    return f"Y{quarter // 4 + 1}Q{quarter % 4 + 1}"


def deployment_schedule(
    config: FundConfiguration,
    total_invested: float,
) -> npt.NDArray[np.float64]:
    """Invested capital spread evenly over the investment-period quarters."""
    n = config.fund_life_quarters + 1
    out = np.zeros(n, dtype=np.float64)
    ip = min(config.investment_period_quarters, n)
    if ip > 0:
        out[:ip] = total_invested / ip
    return out


def distribution_schedule(
    config: FundConfiguration,
    total_exit_value: float,
) -> npt.NDArray[np.float64]:
    """
    Exit proceeds spread evenly from the distribution start quarter through
    the final quarter (inclusive), so cumulative distributions end exactly
    at ``total_exit_value``.
    """
    n = config.fund_life_quarters + 1
    out = np.zeros(n, dtype=np.float64)
    start = max(0, min(config.distribution_start_quarter, config.fund_life_quarters))
    out[start:] = total_exit_value / (n - start)
    return out


def build_timeline(
    config: FundConfiguration,
    total_invested: float,
    total_exit_value: float,
    total_management_fees: float,
) -> list[CashFlowPoint]:
    """
    Assemble the quarterly timeline for quarters 0..fund_life (inclusive).

    Model:
        - The whole fund is called at quarter 0 (single capital call).
        - Distributions are level from the distribution start quarter on.
        - Management fees follow the fee schedule; expenses the expense
          schedule.
        - NAV is the undistributed remainder of total exit value.
        - TVPI is always DPI + RVPI.
        - Gross IRR at quarter q uses the net contribution/distribution
          flows up to q with that quarter's NAV as a terminal inflow; net
          IRR also subtracts each quarter's fees and expenses. Both are
          per-quarter rates.

    Parameters
    ----------
    config:
        Fund configuration.
    total_invested:
        Capital invested across the portfolio (drives MOIC).
    total_exit_value:
        Gross exit value across the portfolio.
    total_management_fees:
        Fees charged over the fund life (drives net MOIC).

    Returns
    -------
    list[CashFlowPoint]
        ``fund_life_quarters + 1`` points.
    """
    n = config.fund_life_quarters + 1

    contributions = np.zeros(n, dtype=np.float64)
    contributions[0] = config.fund_size
    distributions = distribution_schedule(config, total_exit_value)
    fees = management_fee_schedule(config)
    expenses = expense_schedule(config)

    cum_contrib = np.cumsum(contributions)
    cum_dist = np.cumsum(distributions)
    nav = np.maximum(0.0, total_exit_value - cum_dist)

    gross_flows = distributions - contributions
    net_flows = gross_flows - fees - expenses

    moic = calc_moic(total_invested, total_exit_value)
    net_moic = calc_moic(total_invested, max(0.0, total_exit_value - total_management_fees))

    timeline: list[CashFlowPoint] = []
    for q in range(n):
        dpi = calc_dpi(cum_contrib[q], cum_dist[q])
        rvpi = calc_rvpi(cum_contrib[q], nav[q])

        gross_slice = gross_flows[: q + 1].copy()
        gross_slice[q] += nav[q]
        net_slice = net_flows[: q + 1].copy()
        net_slice[q] += nav[q]

        timeline.append(
            CashFlowPoint(
                quarter=q,
                year=q / 4,
                period_label=period_label(q),
                contributions=float(contributions[q]),
                distributions=float(distributions[q]),
                management_fees=float(fees[q]),
                expenses=float(expenses[q]),
                cumulative_contributions=float(cum_contrib[q]),
                cumulative_distributions=float(cum_dist[q]),
                nav=float(nav[q]),
                dpi=dpi,
                rvpi=rvpi,
                tvpi=dpi + rvpi,
                moic=moic,
                net_moic=net_moic,
                gross_irr=compute_irr(gross_slice),
                net_irr=compute_irr(net_slice),
            )
        )
    return timeline


def timeline_frame(timeline: Sequence[CashFlowPoint]) -> pd.DataFrame:
    """Return the timeline as a DataFrame, one row per quarter."""
    return pd.DataFrame([asdict(point) for point in timeline])


def jcurve_shape(timeline: Sequence[CashFlowPoint]) -> dict[str, float | int]:
    """
    Identify key J-curve inflection points.

    Returns
    -------
    dict with:
        trough_quarter: quarter of the lowest net position
            (NAV + distributions - contributions - fees to date)
        trough_value: net position at the trough
        breakeven_quarter: first quarter with TVPI >= 1 (-1 if never)
        peak_nav: maximum NAV
        peak_nav_quarter: quarter of maximum NAV
    """
    df = timeline_frame(timeline)
    if df.empty:
        return {}

    cum_fees = (df["management_fees"] + df["expenses"]).cumsum()
    net_position = (
        df["nav"] + df["cumulative_distributions"] - df["cumulative_contributions"] - cum_fees
    )
    trough_idx = int(net_position.idxmin())
    peak_idx = int(df["nav"].idxmax())

    breakeven = -1
    for point in timeline:
        if point.tvpi >= 1.0 and point.cumulative_contributions > 0:
            breakeven = point.quarter
            break

    return {
        "trough_quarter": int(df["quarter"].iloc[trough_idx]),
        "trough_value": float(net_position.iloc[trough_idx]),
        "breakeven_quarter": breakeven,
        "peak_nav": float(df["nav"].iloc[peak_idx]),
        "peak_nav_quarter": int(df["quarter"].iloc[peak_idx]),
    }
