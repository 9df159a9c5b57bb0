"""
validation.py — Structural and numeric checks on a FundConfiguration.

Issues are returned as data and never raised. Error-severity issues block a
forecast; warnings are advisory.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Iterable

from vc_forecast.fund import EXIT_BUCKETS, FundConfiguration, StageStrategy

ALLOCATION_TOLERANCE = 0.01
PROBABILITY_TOLERANCE = 0.01
MAX_MANAGEMENT_FEE = 0.10
MAX_CARRY = 0.50
MIN_RESERVE_RATIO = 0.10


class Severity(str, enum.Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single problem found in a configuration, scoped to a field path."""

    field: str
    message: str
    code: str
    severity: Severity

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR


def _is_finite(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _strategy_is_well_formed(strategy: StageStrategy) -> bool:
    return isinstance(strategy.stage, str) and all(
        _is_finite(getattr(strategy, name))
        for name in (
            "allocation_pct",
            "avg_check_size",
            "graduation_rate",
            "weighted_exit_value",
            "exit_multiple",
            "avg_exit_quarter",
        )
    )


def validate_configuration(config: FundConfiguration) -> list[ValidationIssue]:
    """
    Check a configuration for consistency.

    Returns
    -------
    list[ValidationIssue]
        Empty when the configuration is clean. See ``has_errors`` to decide
        whether a forecast may run.
    """
    issues: list[ValidationIssue] = []

    def error(field: str, message: str, code: str) -> None:
        issues.append(ValidationIssue(field, message, code, Severity.ERROR))

    def warning(field: str, message: str, code: str) -> None:
        issues.append(ValidationIssue(field, message, code, Severity.WARNING))

    fund_size_ok = _is_finite(config.fund_size) and config.fund_size > 0
    if not fund_size_ok:
        error("fund_size", "Fund size must be a positive number", "INVALID_FUND_SIZE")

    if config.fund_life_quarters <= 0:
        error("fund_life_quarters", "Fund life must be at least one quarter", "INVALID_FUND_TERM")
    elif not 1 <= config.investment_period_quarters <= config.fund_life_quarters:
        error(
            "investment_period_quarters",
            "Investment period must be between 1 quarter and the fund life",
            "INVALID_FUND_TERM",
        )

    # Stage strategies
    strategies = config.stage_strategies
    if not strategies:
        error("stage_strategies", "At least one stage strategy is required", "MISSING_STAGE_STRATEGIES")
    else:
        well_formed = []
        for i, strategy in enumerate(strategies):
            path = f"stage_strategies[{i}]"
            if not _strategy_is_well_formed(strategy):
                error(path, f"Invalid stage strategy at index {i}", "INVALID_STAGE_STRATEGY")
                continue
            well_formed.append(strategy)

            if strategy.avg_check_size <= 0:
                error(
                    f"{path}.avg_check_size",
                    f"Average investment size must be positive for {strategy.stage}",
                    "INVALID_INVESTMENT_SIZE",
                )
            if not 0 <= strategy.allocation_pct <= 1:
                error(
                    f"{path}.allocation_pct",
                    f"Allocation percentage must be between 0 and 1 for {strategy.stage}",
                    "INVALID_ALLOCATION_PCT",
                )

        total_allocation = sum(s.allocation_pct for s in well_formed)
        if abs(total_allocation - 1.0) > ALLOCATION_TOLERANCE:
            error(
                "stage_strategies",
                f"Stage allocations must sum to 100% (currently {total_allocation * 100:.1f}%)",
                "INVALID_ALLOCATION_SUM",
            )

    # Fee and carry
    if not _is_finite(config.management_fee_rate):
        error("management_fee_rate", "Management fee rate must be a valid number", "INVALID_MGMT_FEE")
    elif not 0 <= config.management_fee_rate <= MAX_MANAGEMENT_FEE:
        warning(
            "management_fee_rate",
            "Management fee rate should be between 0% and 10%",
            "INVALID_MGMT_FEE_RANGE",
        )

    if not _is_finite(config.carry_pct):
        error("carry_pct", "Carry percentage must be a valid number", "INVALID_CARRY")
    elif not 0 <= config.carry_pct <= MAX_CARRY:
        warning("carry_pct", "Carry percentage should be between 0% and 50%", "INVALID_CARRY_RANGE")

    issues.extend(_validate_matrices(config))

    if fund_size_ok and strategies and _is_finite(config.management_fee_rate):
        issues.extend(_validate_reserves(config))

    return issues


def _validate_matrices(config: FundConfiguration) -> Iterable[ValidationIssue]:
    for source, row in config.graduation_matrix.items():
        path = f"graduation_matrix[{source!r}]"
        if any(not _is_finite(p) or not 0 <= p <= 1 for p in row.values()):
            yield ValidationIssue(
                path,
                f"Graduation probabilities from {source} must lie in [0, 1]",
                "INVALID_GRADUATION_RATES",
                Severity.ERROR,
            )
        elif sum(row.values()) > 1.0 + 1e-9:
            yield ValidationIssue(
                path,
                f"Graduation probabilities from {source} sum to {sum(row.values()):.2f} (> 1.0)",
                "INVALID_GRADUATION_RATES",
                Severity.ERROR,
            )

    for stage, probs in config.exit_probabilities.items():
        path = f"exit_probabilities[{stage!r}]"
        values = [getattr(probs, bucket) for bucket in EXIT_BUCKETS]
        if any(not _is_finite(p) or not 0 <= p <= 1 for p in values):
            yield ValidationIssue(
                path,
                f"Exit probabilities for {stage} must lie in [0, 1]",
                "INVALID_EXIT_PROBABILITIES",
                Severity.ERROR,
            )
        elif abs(sum(values) - 1.0) > PROBABILITY_TOLERANCE:
            yield ValidationIssue(
                path,
                f"Exit probabilities for {stage} must sum to 100% (currently {sum(values) * 100:.1f}%)",
                "INVALID_EXIT_PROBABILITIES",
                Severity.ERROR,
            )


def _validate_reserves(config: FundConfiguration) -> Iterable[ValidationIssue]:
    investable = config.investable_capital
    if investable <= 0:
        yield ValidationIssue(
            "reserves",
            "Fees and expenses consume the whole fund; nothing is left to invest",
            "LOW_RESERVES",
            Severity.WARNING,
        )
        return

    planned = 0.0
    for strategy in config.stage_strategies:
        if not _strategy_is_well_formed(strategy):
            continue
        if strategy.num_first_checks > 0:
            planned += strategy.num_first_checks * strategy.avg_check_size
        else:
            planned += strategy.allocation_pct * investable

    reserve_ratio = (investable - planned) / investable
    if reserve_ratio < MIN_RESERVE_RATIO:
        yield ValidationIssue(
            "reserves",
            f"Low reserve ratio: {reserve_ratio * 100:.1f}%. Consider reserving 20-30% for follow-ons.",
            "LOW_RESERVES",
            Severity.WARNING,
        )


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    return any(issue.is_error for issue in issues)


def errors_only(issues: Iterable[ValidationIssue]) -> list[ValidationIssue]:
    return [issue for issue in issues if issue.is_error]
