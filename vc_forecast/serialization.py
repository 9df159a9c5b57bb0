"""
serialization.py — Lossless JSON interchange for configurations and results.

Currency values are plain numbers, percentages stay fractions and dates are
ISO-8601 strings. Configurations can also be read from YAML files.
"""
from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping

import yaml

from vc_forecast.fund import (
    ExitProbabilities,
    FeeProfile,
    FundConfiguration,
    FundExpense,
    StageStrategy,
)
from vc_forecast.lifecycle import CohortMetrics, CohortSnapshot
from vc_forecast.portfolio import CompanyStatus, Investment, PortfolioCompany
from vc_forecast.results import CompanyResult, ForecastIntermediates, ForecastResult
from vc_forecast.timeline import CashFlowPoint
from vc_forecast.waterfall import WaterfallSummary

_CONFIG_FIELDS = {f.name for f in fields(FundConfiguration)}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def configuration_to_dict(config: FundConfiguration) -> dict[str, Any]:
    data: dict[str, Any] = {name: getattr(config, name) for name in _CONFIG_FIELDS}
    data["stage_strategies"] = [asdict(s) for s in config.stage_strategies]
    data["graduation_matrix"] = {
        source: {dest: float(p) for dest, p in row.items()}
        for source, row in config.graduation_matrix.items()
    }
    data["exit_probabilities"] = {
        stage: probs.as_dict() for stage, probs in config.exit_probabilities.items()
    }
    data["fee_profiles"] = [asdict(p) for p in config.fee_profiles]
    data["expenses"] = [asdict(e) for e in config.expenses]
    return data


def configuration_from_dict(data: Mapping[str, Any]) -> FundConfiguration:
    """
    Build a configuration from plain data; missing keys take their defaults.

    Raises
    ------
    ValueError
        On keys that are not configuration fields.
    """
    unknown = set(data) - _CONFIG_FIELDS
    if unknown:
        raise ValueError(f"Unknown configuration fields: {sorted(unknown)}")

    kwargs: dict[str, Any] = dict(data)
    if "stage_strategies" in data:
        kwargs["stage_strategies"] = tuple(StageStrategy(**s) for s in data["stage_strategies"])
    if "graduation_matrix" in data:
        kwargs["graduation_matrix"] = {
            source: dict(row) for source, row in data["graduation_matrix"].items()
        }
    if "exit_probabilities" in data:
        kwargs["exit_probabilities"] = {
            stage: ExitProbabilities(**probs) for stage, probs in data["exit_probabilities"].items()
        }
    if "fee_profiles" in data:
        kwargs["fee_profiles"] = tuple(FeeProfile(**p) for p in data["fee_profiles"])
    if "expenses" in data:
        kwargs["expenses"] = tuple(FundExpense(**e) for e in data["expenses"])
    return FundConfiguration(**kwargs)


def configuration_fingerprint(config: FundConfiguration, *extra: str) -> str:
    """SHA-256 of the canonical JSON form of ``config`` (plus any extra tags)."""
    canonical = json.dumps(
        {"configuration": configuration_to_dict(config), "extra": list(extra)},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def load_configuration(path: str | Path) -> FundConfiguration:
    """Read a configuration from a ``.json``, ``.yaml`` or ``.yml`` file."""
    path = Path(path)
    suffix = path.suffix.lower()
    with path.open("r", encoding="utf-8") as fh:
        if suffix == ".json":
            data = json.load(fh)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(fh) or {}
        else:
            raise ValueError(f"Unsupported configuration format: {path.suffix!r}")
    return configuration_from_dict(data)


def dump_configuration(config: FundConfiguration, path: str | Path) -> Path:
    """Write ``config`` as JSON or YAML depending on the file suffix."""
    path = Path(path)
    data = configuration_to_dict(config)
    suffix = path.suffix.lower()
    with path.open("w", encoding="utf-8") as fh:
        if suffix == ".json":
            json.dump(data, fh, indent=2)
        elif suffix in (".yaml", ".yml"):
            yaml.safe_dump(data, fh, sort_keys=False)
        else:
            raise ValueError(f"Unsupported configuration format: {path.suffix!r}")
    return path


# ---------------------------------------------------------------------------
# Portfolio companies
# ---------------------------------------------------------------------------

def company_to_dict(company: PortfolioCompany) -> dict[str, Any]:
    data = asdict(company)
    data["status"] = company.status.value
    return data


def company_from_dict(data: Mapping[str, Any]) -> PortfolioCompany:
    kwargs = dict(data)
    kwargs["investments"] = [Investment(**i) for i in data.get("investments", [])]
    kwargs["status"] = CompanyStatus(data.get("status", CompanyStatus.ACTIVE.value))
    return PortfolioCompany(**kwargs)


# ---------------------------------------------------------------------------
# Forecast results
# ---------------------------------------------------------------------------

_SCALAR_RESULT_FIELDS = (
    "simulator",
    "total_invested",
    "total_exit_value",
    "total_management_fees",
    "total_gp_carry",
    "total_lp_profit",
    "gross_moic",
    "net_moic",
    "gross_irr",
    "net_irr",
    "tvpi",
    "dpi",
    "rvpi",
    "fund_life_quarters",
)


def forecast_result_to_dict(result: ForecastResult) -> dict[str, Any]:
    data: dict[str, Any] = {name: getattr(result, name) for name in _SCALAR_RESULT_FIELDS}
    data["configuration"] = configuration_to_dict(result.configuration)
    data["timeline"] = [asdict(p) for p in result.timeline]
    data["portfolio"] = [company_to_dict(c) for c in result.portfolio]
    data["company_results"] = [asdict(r) for r in result.company_results]
    data["waterfall"] = result.waterfall.as_dict()
    data["calculation_date"] = result.calculation_date.isoformat()
    intermediates = asdict(result.intermediates)
    data["intermediates"] = {
        k: list(v) if isinstance(v, tuple) else v for k, v in intermediates.items()
    }
    data["cohort_snapshots"] = [asdict(s) for s in result.cohort_snapshots]
    data["cohort_metrics"] = (
        asdict(result.cohort_metrics) if result.cohort_metrics is not None else None
    )
    return data


def forecast_result_from_dict(data: Mapping[str, Any]) -> ForecastResult:
    intermediates = dict(data["intermediates"])
    for key in (
        "quarterly_deployments",
        "quarterly_navs",
        "quarterly_distributions",
        "quarterly_management_fees",
    ):
        intermediates[key] = tuple(intermediates[key])

    metrics = data.get("cohort_metrics")
    return ForecastResult(
        configuration=configuration_from_dict(data["configuration"]),
        timeline=tuple(CashFlowPoint(**p) for p in data["timeline"]),
        portfolio=tuple(company_from_dict(c) for c in data["portfolio"]),
        company_results=tuple(CompanyResult(**r) for r in data["company_results"]),
        waterfall=WaterfallSummary(**data["waterfall"]),
        calculation_date=datetime.fromisoformat(data["calculation_date"]),
        intermediates=ForecastIntermediates(**intermediates),
        cohort_snapshots=tuple(CohortSnapshot(**s) for s in data.get("cohort_snapshots", [])),
        cohort_metrics=CohortMetrics(**metrics) if metrics is not None else None,
        **{name: data[name] for name in _SCALAR_RESULT_FIELDS},
    )


def dumps_forecast_result(result: ForecastResult, indent: int | None = None) -> str:
    return json.dumps(forecast_result_to_dict(result), indent=indent)


def loads_forecast_result(text: str) -> ForecastResult:
    return forecast_result_from_dict(json.loads(text))
