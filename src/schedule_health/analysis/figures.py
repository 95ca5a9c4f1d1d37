# schedule_health/analysis/figures.py

"""Plotly figures for the dashboard, built from chart_engine Series."""

from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from schedule_health.analysis.chart_engine import Series

MARGIN = dict(l=20, r=20, t=40, b=20)

STATUS_TO_COLOR = {
    "pass": "#2ED573",
    "warn": "#FF9F43",
    "fail": "#FF6B6B",
    "info": "#A4B0BE",
}


def timeline_figure(series: Iterable[Series], title: str = "Cumulative Progress") -> go.Figure:
    """Overlay current and baseline timelines on one month axis."""
    fig = go.Figure()
    for s in series:
        if s.is_empty:
            continue
        fig.add_trace(go.Scatter(
            x=s.labels,
            y=s.values,
            mode="lines+markers",
            name=s.label,
            line=dict(color=s.colors[0] if s.colors else None),
            customdata=[len(a) for a in s.activities] if s.activities else None,
            hovertemplate="%{x}<br>%{y:.2f}% complete<br>%{customdata} finishing<extra></extra>"
            if s.activities else None,
        ))
    fig.update_layout(
        title=title,
        yaxis=dict(title="% of activities", range=[0, 100]),
        margin=MARGIN,
    )
    return fig


def distribution_figure(series: Series, kind: str = "pie", title: Optional[str] = None) -> go.Figure:
    df = pd.DataFrame({"Label": series.labels, "Count": series.values})
    color_map = dict(zip(series.labels, series.colors)) if len(series.colors) >= len(series.labels) else None

    if kind == "bar":
        fig = px.bar(df, x="Label", y="Count", color="Label", color_discrete_map=color_map)
        fig.update_layout(showlegend=False)
    else:
        fig = px.pie(df, names="Label", values="Count", color="Label", color_discrete_map=color_map, hole=0.3)

    fig.update_layout(title=title or series.label, margin=MARGIN)
    return fig


def radar_figure(series: Series, title: Optional[str] = None) -> go.Figure:
    fig = go.Figure(go.Scatterpolar(
        r=list(series.values) + list(series.values[:1]),
        theta=list(series.labels) + list(series.labels[:1]),
        fill="toself",
        name=series.label,
    ))
    fig.update_layout(title=title or series.label, margin=MARGIN)
    return fig


def directive_figure(chart_type: str, series: Series) -> go.Figure:
    """Figure for a narrative chart directive (line, bar, pie or radar)."""
    if chart_type == "line":
        return timeline_figure([series], title=series.label)
    if chart_type == "radar":
        return radar_figure(series)
    return distribution_figure(series, kind=chart_type)


def metric_status_figure(metrics_df: pd.DataFrame) -> go.Figure:
    """Count of DCMA checks per status."""
    counts = (
        metrics_df["Status"]
        .value_counts()
        .reindex(list(STATUS_TO_COLOR), fill_value=0)
        .rename_axis("Status")
        .reset_index(name="Checks")
    )
    fig = px.bar(
        counts,
        x="Status",
        y="Checks",
        color="Status",
        color_discrete_map=STATUS_TO_COLOR,
        title="DCMA checks by status",
    )
    fig.update_layout(showlegend=False, margin=MARGIN)
    return fig
