"""
cohort_forecast.py — A $1B fund routed through the cohort simulator,
loaded from and saved to plain files.

Run:
    python examples/cohort_forecast.py
"""
from __future__ import annotations

import tempfile
from pathlib import Path

from vc_forecast import FundForecaster, default_configuration, dumps_forecast_result
from vc_forecast.serialization import dump_configuration, load_configuration


def main() -> None:
    # -------------------------------------------------------------------
    # 1. Round-trip the configuration through YAML
    # -------------------------------------------------------------------
    config = default_configuration(
        fund_name="Scale Fund I",
        fund_size=1_000_000_000,
        recycling_enabled=True,
        recycling_cap=0.15,
    )
    workdir = Path(tempfile.mkdtemp(prefix="vc_forecast_"))
    path = dump_configuration(config, workdir / "scale_fund.yaml")
    config = load_configuration(path)
    print(f"Configuration written to {path}")

    # -------------------------------------------------------------------
    # 2. Forecast
    # -------------------------------------------------------------------
    result = FundForecaster().forecast(config)
    metrics = result.cohort_metrics

    print("=" * 60)
    print(f"  {config.fund_name} — {result.simulator} simulator")
    print("=" * 60)
    print(f"  Companies:          {len(result.portfolio):>15d}")
    print(f"  Capital Deployed:   ${metrics.total_deployed:>15,.0f}")
    print(f"  Realized:           ${metrics.total_realized:>15,.0f}")
    print(f"  Recycled:           ${metrics.total_recycled:>15,.0f}")
    print(f"  Capital Efficiency: {metrics.capital_efficiency:>14.2f}x")
    print(f"  Success Rate:       {metrics.success_rate:>14.1%}")
    print("-" * 60)
    print(f"  Net MOIC:           {result.net_moic:>14.2f}x")
    print(f"  TVPI:               {result.tvpi:>14.2f}x")
    print("=" * 60)

    # -------------------------------------------------------------------
    # 3. Cohort snapshots, yearly
    # -------------------------------------------------------------------
    print("\nYear  Active  Unrealized          Realized")
    for snap in result.cohort_snapshots[::4]:
        print(
            f"  {snap.quarter // 4 + 1:>2}  {snap.active_companies:>6}"
            f"  ${snap.unrealized_value:>15,.0f}  ${snap.realized_value:>15,.0f}"
        )

    # -------------------------------------------------------------------
    # 4. Save the result
    # -------------------------------------------------------------------
    out = workdir / "scale_fund_result.json"
    out.write_text(dumps_forecast_result(result, indent=2), encoding="utf-8")
    print(f"\nForecast written to {out}")


if __name__ == "__main__":
    main()
