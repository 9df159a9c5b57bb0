"""
waterfall.py — American (deal-by-deal) carried interest distribution.

Depends only on: fund.py (for Decimal conversion).
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from functools import lru_cache

from vc_forecast.fund import to_decimal

WATERFALL_CACHE_SIZE = 100


@dataclass(frozen=True)
class WaterfallSummary:
    """Aggregate split of exit proceeds between LPs and the GP."""

    total_invested: float
    total_exit_value: float
    total_profit: float
    lp_return_of_capital: float
    lp_preferred_return: float
    gp_catch_up: float
    gp_carry: float
    lp_carry: float
    final_lp_proceeds: float
    final_gp_proceeds: float

    def as_dict(self) -> dict[str, float]:
        return asdict(self)


def compute_waterfall(
    invested: float,
    exit_value: float,
    carry_pct: float,
    hurdle_rate: float = 0.0,
) -> WaterfallSummary:
    """
    Split aggregate exit proceeds under an American waterfall with no catch-up.

    Tiers:
        1. Return of capital to LPs.
        2. Preferred return: ``invested * hurdle_rate`` to LPs.
        3. Remaining profit split ``carry_pct`` to the GP, the rest to LPs.

    If ``exit_value <= invested`` everything goes to LPs as return of capital
    and no carry is earned. All currency math runs in ``Decimal``. Results
    are memoised on the four inputs; the returned summary is immutable so a
    cached instance can be shared safely.

    Parameters
    ----------
    invested:
        Total capital invested across the portfolio.
    exit_value:
        Total exit proceeds.
    carry_pct:
        GP carried interest (e.g. 0.20 = 20%).
    hurdle_rate:
        Preferred return as a simple fraction of invested capital.
    """
    return _cached_waterfall(float(invested), float(exit_value), float(carry_pct), float(hurdle_rate))


@lru_cache(maxsize=WATERFALL_CACHE_SIZE)
def _cached_waterfall(
    invested: float,
    exit_value: float,
    carry_pct: float,
    hurdle_rate: float,
) -> WaterfallSummary:
    inv = to_decimal(invested)
    exv = to_decimal(exit_value)
    profit = exv - inv

    if profit <= 0:
        return WaterfallSummary(
            total_invested=invested,
            total_exit_value=exit_value,
            total_profit=0.0,
            lp_return_of_capital=min(exit_value, invested),
            lp_preferred_return=0.0,
            gp_catch_up=0.0,
            gp_carry=0.0,
            lp_carry=0.0,
            final_lp_proceeds=exit_value,
            final_gp_proceeds=0.0,
        )

    preferred = inv * to_decimal(hurdle_rate)
    remaining = profit - preferred
    gp_carry = max(Decimal(0), remaining * to_decimal(carry_pct))
    lp_carry = remaining - gp_carry
    final_lp = inv + preferred + lp_carry

    return WaterfallSummary(
        total_invested=invested,
        total_exit_value=exit_value,
        total_profit=float(profit),
        lp_return_of_capital=float(inv),
        lp_preferred_return=float(preferred),
        gp_catch_up=0.0,
        gp_carry=float(gp_carry),
        lp_carry=float(lp_carry),
        final_lp_proceeds=float(final_lp),
        final_gp_proceeds=float(gp_carry),
    )


def clear_waterfall_cache() -> None:
    _cached_waterfall.cache_clear()
