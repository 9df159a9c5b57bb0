"""
batch_sweep.py — Sweeps carry and management fee over a grid of forecasts.

Run:
    python examples/batch_sweep.py
"""
from __future__ import annotations

from vc_forecast import BatchRunner, SweepDimension, default_configuration, field_selector
from vc_forecast import visualization as viz


def main() -> None:
    # -------------------------------------------------------------------
    # 1. Define the grid
    # -------------------------------------------------------------------
    base = default_configuration(fund_name="Acme Seed Fund I")
    dimensions = [
        SweepDimension("carry_pct", 0.15, 0.25, 0.05, field_selector("carry_pct")),
        SweepDimension(
            "management_fee_rate", 0.015, 0.025, 0.005, field_selector("management_fee_rate")
        ),
    ]

    def report(pct: float, name: str) -> None:
        print(f"  [{pct:5.1f}%] {name}")

    # -------------------------------------------------------------------
    # 2. Run it across worker processes
    # -------------------------------------------------------------------
    runner = BatchRunner(base, dimensions, parallel=True, on_progress=report)
    print(f"Running {runner.total_scenarios} scenarios...")
    runner.run()

    # -------------------------------------------------------------------
    # 3. Compare
    # -------------------------------------------------------------------
    df = runner.compare()
    print("\nScenario comparison:")
    print(
        df[["scenario", "net_moic", "net_irr", "tvpi"]].to_string(
            index=False,
            float_format=lambda x: f"{x:.4f}",
        )
    )

    stats = runner.summary_statistics()
    print("\nRanked by net IRR:")
    print(f"  Best:   {stats.best.scenario_name}")
    print(f"  Median: {stats.median.scenario_name}")
    print(f"  Worst:  {stats.worst.scenario_name}")
    print(f"  Net IRR mean {stats.mean['net_irr']:.4f}, std {stats.std_dev['net_irr']:.4f}")

    # -------------------------------------------------------------------
    # 4. Visualize
    # -------------------------------------------------------------------
    print("\nOpening sweep heatmap...")
    viz.batch_sweep_figure(runner.results, metric="net_moic").show()


if __name__ == "__main__":
    main()
