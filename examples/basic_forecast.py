"""
basic_forecast.py — Forecasts the default seed fund end to end.

Run:
    python examples/basic_forecast.py
"""
from __future__ import annotations

import logging

from vc_forecast import FundForecaster, default_configuration, validate_configuration
from vc_forecast import visualization as viz


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -------------------------------------------------------------------
    # 1. Configure and validate a $20M three-stage fund
    # -------------------------------------------------------------------
    config = default_configuration(fund_name="Acme Seed Fund I", hurdle_rate=0.08)

    issues = validate_configuration(config)
    for issue in issues:
        print(f"  [{issue.severity.value}] {issue.field}: {issue.message}")

    # -------------------------------------------------------------------
    # 2. Forecast (a repeat call is served from the cache)
    # -------------------------------------------------------------------
    forecaster = FundForecaster()
    result = forecaster.forecast(config)
    assert forecaster.forecast(config) is result

    summary = result.summary()

    print("=" * 60)
    print(f"  {summary['fund_name']} — Forecast ({summary['simulator']} simulator)")
    print("=" * 60)
    print(f"  Companies:          {summary['companies']:>15d}")
    print(f"  Total Invested:     ${summary['total_invested']:>15,.0f}")
    print(f"  Total Exit Value:   ${summary['total_exit_value']:>15,.0f}")
    print(f"  Management Fees:    ${summary['total_management_fees']:>15,.0f}")
    print(f"  Carry (GP):         ${summary['gp_carry']:>15,.0f}")
    print(f"  LP Profit:          ${summary['lp_profit']:>15,.0f}")
    print("-" * 60)
    print(f"  Gross IRR (annual): {result.annualized_gross_irr:>14.1%}")
    print(f"  Net IRR (annual):   {result.annualized_net_irr:>14.1%}")
    print(f"  Gross MOIC:         {summary['gross_moic']:>14.2f}x")
    print(f"  Net MOIC:           {summary['net_moic']:>14.2f}x")
    print(f"  TVPI:               {summary['tvpi']:>14.2f}x")
    print("=" * 60)

    # -------------------------------------------------------------------
    # 3. Waterfall
    # -------------------------------------------------------------------
    print("\nWaterfall:")
    for tier, amount in result.waterfall.as_dict().items():
        print(f"  {tier:<24} ${amount:>15,.0f}")

    # -------------------------------------------------------------------
    # 4. Yearly timeline
    # -------------------------------------------------------------------
    df = result.timeline_frame()
    yearly = df[df["quarter"] % 4 == 0]
    print("\nTimeline (first quarter of each year):")
    print(
        yearly[["period_label", "cumulative_distributions", "nav", "dpi", "tvpi"]].to_string(
            index=False,
            formatters={
                "cumulative_distributions": "${:,.0f}".format,
                "nav": "${:,.0f}".format,
                "dpi": "{:.2f}x".format,
                "tvpi": "{:.2f}x".format,
            },
        )
    )

    shape = result.jcurve_shape()
    print(f"\nJ-curve trough: quarter {shape['trough_quarter']} (${shape['trough_value']:,.0f})")
    print(f"Cache metrics: {forecaster.get_performance_metrics()}")

    # -------------------------------------------------------------------
    # 5. Visualize
    # -------------------------------------------------------------------
    print("\nOpening J-curve chart...")
    viz.jcurve_figure(result).show()

    print("\nOpening exit outcome chart...")
    viz.exit_outcome_figure(result).show()


if __name__ == "__main__":
    main()
