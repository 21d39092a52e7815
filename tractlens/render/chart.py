"""Bar chart of a single tract's category breakdown."""

from __future__ import annotations

import pandas as pd
import plotly.graph_objects as go

from tractlens.models import DetailDataset

BAR_COLOR = "darkgreen"
BAR_OPACITY = 0.8
PLACEHOLDER_TEXT = "Click the map to show a chart"


def placeholder_chart(message: str = PLACEHOLDER_TEXT) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(text=message, showarrow=False, x=0.5, y=0.5, xref="paper", yref="paper")
    fig.update_layout(
        template="plotly_white",
        xaxis={"visible": False},
        yaxis={"visible": False},
    )
    return fig


def chart_rows(
    detail: DetailDataset,
    order: list[str] | None = None,
    labels: dict[str, str] | None = None,
) -> list[tuple[str, float | None]]:
    """(label, percent) pairs in display order.

    A category missing from the data keeps its slot with a None value.
    """
    values = detail.as_series(order)
    labels = labels or detail.variables.labels
    return [
        (labels.get(code, code), None if pd.isna(value) else float(value))
        for code, value in values.items()
    ]


def render_detail_chart(
    detail: DetailDataset | None,
    order: list[str] | None = None,
    labels: dict[str, str] | None = None,
) -> go.Figure:
    """Render the breakdown as bars in a fixed order, y axis in percent."""
    if detail is None or len(detail) == 0:
        return placeholder_chart()

    rows = chart_rows(detail, order=order, labels=labels)
    x = [label for label, _ in rows]
    fig = go.Figure(go.Bar(
        x=x,
        y=[value for _, value in rows],
        marker_color=BAR_COLOR,
        opacity=BAR_OPACITY,
        hovertemplate="%{x}: %{y:.1f}%<extra></extra>",
        name=detail.feature_id,
    ))
    fig.update_layout(
        template="plotly_white",
        font={"size": 16},
        xaxis={
            "title": {"text": "Age cohort in Census tract"},
            "categoryorder": "array",
            "categoryarray": x,
            "tickangle": -45,
        },
        yaxis={"title": {"text": "Percent"}, "ticksuffix": "%", "rangemode": "tozero"},
        margin={"l": 40, "r": 10, "t": 10, "b": 40},
    )
    return fig
