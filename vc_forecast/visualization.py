"""
visualization.py — Plotly figure factories for forecast results.

Depends on: results.py, batch.py
All functions return plotly.graph_objects.Figure objects.
"""
from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from vc_forecast.batch import BatchResult
from vc_forecast.results import ForecastResult


# ---------------------------------------------------------------------------
# Theme
# ---------------------------------------------------------------------------

_VC_COLORS = {
    "background": "#0D1117",
    "paper": "#161B22",
    "grid": "#21262D",
    "text": "#C9D1D9",
    "text_secondary": "#8B949E",
    "accent": "#58A6FF",
    "positive": "#3FB950",
    "negative": "#F85149",
    "neutral": "#FFA657",
}

_STATUS_COLORS = {
    "active": _VC_COLORS["accent"],
    "exited": _VC_COLORS["positive"],
    "written-off": _VC_COLORS["negative"],
}

_STAGE_PALETTE = [
    "#58A6FF", "#3FB950", "#FFA657", "#F85149",
    "#A371F7", "#39D353", "#FF7B72", "#79C0FF",
]

_PLOTLY_TEMPLATE = "plotly_dark"


def _apply_vc_theme(fig: go.Figure) -> go.Figure:
    """Apply the shared dark styling in place and return the figure."""
    fig.update_layout(
        template=_PLOTLY_TEMPLATE,
        paper_bgcolor=_VC_COLORS["paper"],
        plot_bgcolor=_VC_COLORS["background"],
        font=dict(
            family="Inter, -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif",
            color=_VC_COLORS["text"],
            size=12,
        ),
        title_font=dict(size=16, color=_VC_COLORS["text"]),
        legend=dict(
            bgcolor=_VC_COLORS["paper"],
            bordercolor=_VC_COLORS["grid"],
            borderwidth=1,
            font=dict(color=_VC_COLORS["text_secondary"]),
        ),
    )
    fig.update_xaxes(gridcolor=_VC_COLORS["grid"], zerolinecolor=_VC_COLORS["grid"])
    fig.update_yaxes(gridcolor=_VC_COLORS["grid"], zerolinecolor=_VC_COLORS["grid"])
    return fig


# ---------------------------------------------------------------------------
# J-curve
# ---------------------------------------------------------------------------

def jcurve_figure(result: ForecastResult, title: Optional[str] = None) -> go.Figure:
    """
    NAV and cumulative distributions per quarter, with TVPI/DPI on a
    secondary axis.

    Parameters
    ----------
    result:
        Output of FundForecaster.forecast().
    title:
        Chart title; defaults to the fund name.

    Returns
    -------
    go.Figure
    """
    df = result.timeline_frame()
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    if df.empty:
        return _apply_vc_theme(fig)

    labels = df["period_label"]
    fig.add_trace(
        go.Scatter(
            x=labels,
            y=df["nav"],
            name="NAV",
            fill="tozeroy",
            line=dict(color=_VC_COLORS["accent"], width=2),
            fillcolor="rgba(88, 166, 255, 0.15)",
            hovertemplate="%{x}<br>NAV: $%{y:,.0f}<extra></extra>",
        ),
        secondary_y=False,
    )
    fig.add_trace(
        go.Scatter(
            x=labels,
            y=df["cumulative_distributions"],
            name="Cumulative Distributions",
            line=dict(color=_VC_COLORS["positive"], width=2),
            hovertemplate="%{x}<br>Distributed: $%{y:,.0f}<extra></extra>",
        ),
        secondary_y=False,
    )
    for column, color, dash in (("tvpi", "neutral", "solid"), ("dpi", "text_secondary", "dash")):
        fig.add_trace(
            go.Scatter(
                x=labels,
                y=df[column],
                name=column.upper(),
                line=dict(color=_VC_COLORS[color], width=2, dash=dash),
                hovertemplate=f"%{{x}}<br>{column.upper()}: %{{y:.2f}}x<extra></extra>",
            ),
            secondary_y=True,
        )

    fig.update_layout(
        title=title or f"{result.configuration.fund_name} — J-Curve",
        xaxis_title="Quarter",
        hovermode="x unified",
    )
    fig.update_yaxes(title_text="Value ($)", secondary_y=False)
    fig.update_yaxes(title_text="Multiple (x)", secondary_y=True)
    return _apply_vc_theme(fig)


# ---------------------------------------------------------------------------
# Exit outcomes
# ---------------------------------------------------------------------------

def exit_outcome_figure(result: ForecastResult) -> go.Figure:
    """
    Company outcomes: invested vs. value per entry stage (bars) and the
    status mix (donut).
    """
    df = result.portfolio_frame()
    fig = make_subplots(
        rows=1,
        cols=2,
        specs=[[{"type": "bar"}, {"type": "domain"}]],
        subplot_titles=["Invested vs. Value by Entry Stage", "Company Status"],
    )
    if df.empty:
        return _apply_vc_theme(fig)

    df = df.assign(
        value=[c.value for c in result.portfolio],
    )
    by_stage = df.groupby("entry_stage", sort=False)[["total_invested", "value"]].sum()

    fig.add_trace(
        go.Bar(
            x=by_stage.index,
            y=by_stage["total_invested"],
            name="Invested",
            marker_color=_VC_COLORS["neutral"],
            hovertemplate="%{x}<br>Invested: $%{y:,.0f}<extra></extra>",
        ),
        row=1,
        col=1,
    )
    fig.add_trace(
        go.Bar(
            x=by_stage.index,
            y=by_stage["value"],
            name="Exit / Current Value",
            marker_color=_VC_COLORS["positive"],
            hovertemplate="%{x}<br>Value: $%{y:,.0f}<extra></extra>",
        ),
        row=1,
        col=1,
    )

    status = df["status"].value_counts()
    fig.add_trace(
        go.Pie(
            labels=status.index,
            values=status.values,
            hole=0.5,
            marker=dict(colors=[_STATUS_COLORS.get(s, _VC_COLORS["accent"]) for s in status.index]),
            textinfo="label+percent",
            showlegend=False,
        ),
        row=1,
        col=2,
    )

    fig.update_layout(title="Portfolio Exit Outcomes", barmode="group")
    return _apply_vc_theme(fig)


# ---------------------------------------------------------------------------
# Batch sweeps
# ---------------------------------------------------------------------------

def batch_sweep_figure(
    results: Sequence[BatchResult],
    metric: str = "net_irr",
    title: Optional[str] = None,
) -> go.Figure:
    """
    Plot ``metric`` across a sweep.

    One varied dimension gives a line; two give a heatmap over the grid.
    With more dimensions, scenarios are plotted as ranked bars.

    Raises
    ------
    ValueError
        If ``metric`` is not one of the batch metrics.
    """
    fig = go.Figure()
    if not results:
        return _apply_vc_theme(fig)
    if metric not in results[0].metrics:
        raise ValueError(f"Unknown metric {metric!r}; expected one of {sorted(results[0].metrics)}")

    dims = list(results[0].variations)
    df = pd.DataFrame([{**r.variations, metric: r.metrics[metric], "scenario": r.scenario_name} for r in results])
    label = metric.replace("_", " ").upper()

    if len(dims) == 1:
        df = df.sort_values(dims[0])
        fig.add_trace(
            go.Scatter(
                x=df[dims[0]],
                y=df[metric],
                mode="lines+markers",
                name=label,
                line=dict(color=_VC_COLORS["accent"], width=3),
            )
        )
        fig.update_layout(xaxis_title=dims[0], yaxis_title=label)
    elif len(dims) == 2:
        grid = df.pivot_table(index=dims[1], columns=dims[0], values=metric)
        fig.add_trace(
            go.Heatmap(
                z=grid.values,
                x=grid.columns,
                y=grid.index,
                colorscale="RdYlGn",
                colorbar=dict(title=label),
                hovertemplate=f"{dims[0]}: %{{x}}<br>{dims[1]}: %{{y}}<br>{label}: %{{z:.3f}}<extra></extra>",
            )
        )
        fig.update_layout(xaxis_title=dims[0], yaxis_title=dims[1])
    else:
        df = df.sort_values(metric, ascending=False)
        fig.add_trace(
            go.Bar(
                x=df["scenario"],
                y=df[metric],
                marker_color=[
                    _VC_COLORS["positive"] if v >= 0 else _VC_COLORS["negative"] for v in df[metric]
                ],
                name=label,
            )
        )
        fig.update_layout(xaxis_title="Scenario", yaxis_title=label)

    fig.update_layout(title=title or f"Sweep — {label}")
    return _apply_vc_theme(fig)
