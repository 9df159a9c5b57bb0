"""
exceptions.py — Exception taxonomy for the forecasting engine.

Validation problems are never raised; they are returned as
:class:`vc_forecast.validation.ValidationIssue` data. Exceptions here mark
a refused or broken forecast.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from vc_forecast.validation import ValidationIssue


class VCForecastError(Exception):
    """Base class for all errors raised by vc_forecast."""


class CalculationError(VCForecastError):
    """
    A forecast could not be produced.

    Raised when the orchestrator is invoked on a configuration with
    error-severity validation issues (carried in ``issues``), or when an
    internal invariant is broken, e.g. a strategy stage that is missing
    from the graduation or exit-probability matrices.
    """

    def __init__(
        self,
        message: str,
        issues: Sequence["ValidationIssue"] = (),
    ) -> None:
        super().__init__(message)
        self.issues: tuple["ValidationIssue", ...] = tuple(issues)

    @property
    def codes(self) -> list[str]:
        return [issue.code for issue in self.issues]
