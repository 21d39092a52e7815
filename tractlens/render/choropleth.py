"""Choropleth map of a FeatureDataset."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass

import pandas as pd
import plotly.graph_objects as go
from plotly.colors import sample_colorscale

from tractlens.models import FeatureDataset

PALETTE = "Viridis"
NA_COLOR = "#bdbdbd"
STROKE_WEIGHT = 0.5
FILL_OPACITY = 0.5
MAP_STYLE = "carto-positron"

# Contiguous US, used when there is nothing to fit the view to
DEFAULT_CENTER = {"lat": 39.8, "lon": -98.6}
DEFAULT_ZOOM = 3


@dataclass(frozen=True)
class ColorScale:
    """Continuous color scale over the observed range of one dataset."""

    vmin: float | None
    vmax: float | None
    palette: str = PALETTE

    def position(self, value: float) -> float:
        if self.vmin is None or self.vmax is None:
            return 0.0
        span = self.vmax - self.vmin
        if span == 0:
            return 0.5
        return min(1.0, max(0.0, (value - self.vmin) / span))

    def __call__(self, value: float | None) -> str:
        if value is None or pd.isna(value) or self.vmin is None:
            return NA_COLOR
        return sample_colorscale(self.palette, [self.position(float(value))])[0]


def build_color_scale(values: pd.Series) -> ColorScale:
    values = pd.to_numeric(values, errors="coerce").dropna()
    if values.empty:
        return ColorScale(vmin=None, vmax=None)
    return ColorScale(vmin=float(values.min()), vmax=float(values.max()))


def _view(dataset: FeatureDataset) -> tuple[dict[str, float], float]:
    if dataset.is_empty:
        return DEFAULT_CENTER, DEFAULT_ZOOM
    minx, miny, maxx, maxy = dataset.frame.total_bounds
    span = max(maxx - minx, (maxy - miny) * 2, 1e-6)
    zoom = min(12.0, max(1.0, math.log2(360.0 / span) - 0.5))
    return {"lat": (miny + maxy) / 2, "lon": (minx + maxx) / 2}, round(zoom, 2)


def legend_title(dataset: FeatureDataset) -> str:
    return f"{dataset.variables.name}<br>{dataset.variables.year} US Census"


def render_choropleth(dataset: FeatureDataset, style: str = MAP_STYLE) -> go.Figure:
    """Color every tract by its value and key it by GEOID.

    The GEOID is both the location key and the customdata of each feature,
    so a click on the map reports it. ``uirevision`` is tied to the region:
    re-rendering the same state keeps the user's pan and zoom.
    """
    frame = dataset.frame
    scale = build_color_scale(frame["value"])
    geojson = json.loads(frame[["GEOID", "geometry"]].to_json())
    geoids = frame["GEOID"].tolist()

    trace = go.Choroplethmap(
        geojson=geojson,
        featureidkey="properties.GEOID",
        locations=geoids,
        z=frame["value"].tolist(),
        zmin=scale.vmin,
        zmax=scale.vmax,
        colorscale=scale.palette,
        customdata=geoids,
        text=[f"{v:g}" for v in frame["value"]],
        hovertemplate="Tract %{location}<br>%{text}<extra></extra>",
        marker={"opacity": FILL_OPACITY, "line": {"width": STROKE_WEIGHT}},
        colorbar={"title": {"text": legend_title(dataset)}},
        showscale=not dataset.is_empty,
        name=dataset.region,
    )

    center, zoom = _view(dataset)
    fig = go.Figure(trace)
    fig.update_layout(
        map={"style": style, "center": center, "zoom": zoom},
        margin={"l": 0, "r": 0, "t": 0, "b": 0},
        uirevision=dataset.region,
        clickmode="event+select",
    )
    return fig
