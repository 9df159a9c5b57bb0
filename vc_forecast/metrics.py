"""
metrics.py — Pure mathematical functions for fund return analysis.

No imports from within this library. All functions are stateless and
have no side effects. Safe to import from any module.
"""
from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt
from scipy import optimize

IRR_GUESS = 0.10
IRR_TOLERANCE = 1e-6
IRR_MAX_ITERATIONS = 100
IRR_MIN_RATE = -0.99
IRR_MAX_RATE = 10.0


# ---------------------------------------------------------------------------
# IRR
# ---------------------------------------------------------------------------

def _npv_and_derivative(
    cashflows: npt.NDArray[np.float64],
    periods: npt.NDArray[np.float64],
    rate: float,
) -> tuple[float, float]:
    discount = (1.0 + rate) ** periods
    npv = float(np.sum(cashflows / discount))
    dnpv = float(np.sum(-periods * cashflows / (discount * (1.0 + rate))))
    return npv, dnpv


def compute_irr(cashflows: Sequence[float] | npt.NDArray[np.float64]) -> float:
    """
    Internal Rate of Return per period (quarters in this library).

    Newton-Raphson from a 10% guess. Each iteration stops early once
    ``|NPV| < 1e-6`` or ``|dNPV/dr| < 1e-6`` and clamps the next rate into
    [-0.99, 10] so a bad step cannot diverge. When Newton ends without
    meeting the NPV tolerance and that band brackets a root, the rate is
    refined with Brent's method.

    Parameters
    ----------
    cashflows:
        One entry per period. Negative = outflows, positive = inflows.

    Returns
    -------
    float
        IRR as a decimal per period. Returns exactly ``0.0`` when the input
        is empty, has no sign change, or the solver produces a non-finite
        rate. Callers must read 0 from an all-same-signed sequence as
        "unable to compute", not as breakeven.
    """
    flows = np.asarray(cashflows, dtype=np.float64)
    if flows.size == 0 or not np.all(np.isfinite(flows)):
        return 0.0

    # Need at least one sign change
    if not (np.any(flows > 0) and np.any(flows < 0)):
        return 0.0

    periods = np.arange(flows.size, dtype=np.float64)
    rate = IRR_GUESS
    converged = False

    for _ in range(IRR_MAX_ITERATIONS):
        npv, dnpv = _npv_and_derivative(flows, periods, rate)
        if abs(npv) < IRR_TOLERANCE:
            converged = True
            break
        if abs(dnpv) < IRR_TOLERANCE:
            break
        rate = min(max(rate - npv / dnpv, IRR_MIN_RATE), IRR_MAX_RATE)

    if not converged:
        rate = _bracketed_irr(flows, periods, fallback=rate)

    if not math.isfinite(rate):
        return 0.0
    return float(rate)


def _bracketed_irr(
    flows: npt.NDArray[np.float64],
    periods: npt.NDArray[np.float64],
    fallback: float,
) -> float:
    """Brent fallback within the clamp band; returns ``fallback`` if no bracket."""

    def npv_func(r: float) -> float:
        return float(np.sum(flows / (1.0 + r) ** periods))

    try:
        lo, hi = IRR_MIN_RATE, IRR_MAX_RATE
        if npv_func(lo) * npv_func(hi) < 0:
            return float(optimize.brentq(npv_func, lo, hi, xtol=1e-12, maxiter=500))
    except (ValueError, RuntimeError, OverflowError):
        return fallback
    return fallback


def calc_npv(
    cashflows: Sequence[float] | npt.NDArray[np.float64],
    rate: float,
    periods: Optional[npt.NDArray[np.float64]] = None,
) -> float:
    """Net Present Value at given discount rate."""
    flows = np.asarray(cashflows, dtype=np.float64)
    if periods is None:
        periods = np.arange(len(flows), dtype=np.float64)
    else:
        periods = np.asarray(periods, dtype=np.float64)
    return float(np.sum(flows / (1 + rate) ** periods))


def annualize_rate(quarterly_rate: float, periods_per_year: int = 4) -> float:
    """Compound a per-period rate to an annual one."""
    if quarterly_rate <= -1.0:
        return -1.0
    return (1.0 + quarterly_rate) ** periods_per_year - 1.0


# ---------------------------------------------------------------------------
# Basic return metrics
# ---------------------------------------------------------------------------

def calc_dpi(paid_in: float, distributions: float) -> float:
    """Distributions to Paid-In capital (DPI). 0 when nothing is paid in."""
    if paid_in <= 0:
        return 0.0
    return distributions / paid_in


def calc_rvpi(paid_in: float, nav: float) -> float:
    """Residual Value to Paid-In capital (RVPI). 0 when nothing is paid in."""
    if paid_in <= 0:
        return 0.0
    return nav / paid_in


def calc_tvpi(paid_in: float, nav: float, distributions: float) -> float:
    """
    Total Value to Paid-In capital.

    Always built as DPI + RVPI so the decomposition holds exactly.
    """
    return calc_dpi(paid_in, distributions) + calc_rvpi(paid_in, nav)


def calc_moic(invested: float, total_value: float) -> float:
    """Multiple on Invested Capital. 0 when nothing was invested."""
    if invested <= 0:
        return 0.0
    return total_value / invested
