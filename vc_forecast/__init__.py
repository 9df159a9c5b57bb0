"""
vc_forecast — Venture fund forecasting: portfolio simulation, waterfall and
fund return metrics.

Public API surface:

    from vc_forecast import FundConfiguration, default_configuration
    from vc_forecast import validate_configuration
    from vc_forecast import FundForecaster, run_forecast
    from vc_forecast import compute_waterfall, compute_irr
    from vc_forecast import run_batch, SweepDimension, field_selector
    from vc_forecast import load_configuration, dumps_forecast_result
    from vc_forecast import visualization as viz
"""
from __future__ import annotations

# Core data classes and engines
from vc_forecast.batch import (
    BatchResult,
    BatchRunner,
    BatchSummary,
    FieldSelector,
    SweepDimension,
    field_selector,
    run_batch,
    stage_field_selector,
)
from vc_forecast.exceptions import CalculationError, VCForecastError
from vc_forecast.forecast import ForecastCache, FundForecaster, PerformanceMonitor, run_forecast
from vc_forecast.fund import (
    DEFAULT_EXIT_PROBABILITIES,
    DEFAULT_GRADUATION_MATRIX,
    DEFAULT_STAGE_STRATEGIES,
    ExitProbabilities,
    FeeProfile,
    FundConfiguration,
    FundExpense,
    StageStrategy,
    default_configuration,
)
from vc_forecast.lifecycle import (
    CohortLifecycleSimulator,
    CompanyLifecycleSimulator,
    LifecycleSimulator,
    get_simulator,
)
from vc_forecast.metrics import compute_irr
from vc_forecast.portfolio import CompanyStatus, Investment, PortfolioCompany
from vc_forecast.results import ForecastResult
from vc_forecast.rng import LehmerRandom, NumpyRandomSource, RandomSource
from vc_forecast.serialization import (
    configuration_from_dict,
    configuration_to_dict,
    dumps_forecast_result,
    forecast_result_from_dict,
    forecast_result_to_dict,
    load_configuration,
    loads_forecast_result,
)
from vc_forecast.timeline import CashFlowPoint
from vc_forecast.validation import Severity, ValidationIssue, validate_configuration
from vc_forecast.waterfall import WaterfallSummary, compute_waterfall

# Submodules available for direct import
from vc_forecast import metrics
from vc_forecast import visualization

__version__ = "0.2.0"

__all__ = [
    # Configuration
    "FundConfiguration",
    "StageStrategy",
    "ExitProbabilities",
    "FeeProfile",
    "FundExpense",
    "DEFAULT_STAGE_STRATEGIES",
    "DEFAULT_GRADUATION_MATRIX",
    "DEFAULT_EXIT_PROBABILITIES",
    "default_configuration",
    # Validation
    "validate_configuration",
    "ValidationIssue",
    "Severity",
    # Errors
    "VCForecastError",
    "CalculationError",
    # Randomness
    "RandomSource",
    "LehmerRandom",
    "NumpyRandomSource",
    # Simulation
    "PortfolioCompany",
    "Investment",
    "CompanyStatus",
    "LifecycleSimulator",
    "CompanyLifecycleSimulator",
    "CohortLifecycleSimulator",
    "get_simulator",
    # Settlement and metrics
    "compute_waterfall",
    "WaterfallSummary",
    "compute_irr",
    "CashFlowPoint",
    # Orchestration
    "FundForecaster",
    "ForecastCache",
    "PerformanceMonitor",
    "ForecastResult",
    "run_forecast",
    # Batch
    "run_batch",
    "BatchRunner",
    "BatchResult",
    "BatchSummary",
    "SweepDimension",
    "FieldSelector",
    "field_selector",
    "stage_field_selector",
    # Serialization
    "configuration_to_dict",
    "configuration_from_dict",
    "forecast_result_to_dict",
    "forecast_result_from_dict",
    "dumps_forecast_result",
    "loads_forecast_result",
    "load_configuration",
    # Submodules
    "metrics",
    "visualization",
    # Version
    "__version__",
]
