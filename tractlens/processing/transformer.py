"""Joining Census values onto tract geometry and narrowing detail rows."""

from __future__ import annotations

import logging

import geopandas as gpd
import pandas as pd

from tractlens.ingestion.datasets import VariableSet
from tractlens.models import DETAIL_COLUMNS, FEATURE_COLUMNS, DetailDataset, FeatureDataset

logger = logging.getLogger(__name__)


def _require(df: pd.DataFrame, columns: list[str]) -> None:
    for col in columns:
        if col not in df.columns:
            raise KeyError(f"Missing required column: {col}")


def build_feature_dataset(
    values: pd.DataFrame,
    geometry: gpd.GeoDataFrame,
    region: str,
    variables: VariableSet,
) -> FeatureDataset:
    """Attach one metric value to every tract polygon.

    *values* holds tidy rows for a single variable. Tracts without a
    geometry or without a value are dropped. Row order follows GEOID.
    """
    _require(values, ["GEOID", "NAME", "variable", "value"])
    _require(geometry, ["GEOID", "geometry"])

    metric = variables.variables[0]
    values = values[values["variable"] == metric]
    values = values.dropna(subset=["value"])[["GEOID", "NAME", "value"]]

    merged = geometry.merge(values, on="GEOID", how="inner")
    dropped = len(geometry) - len(merged)
    if dropped:
        logger.info("%d tract(s) have no %s value and were dropped", dropped, metric)

    merged = merged.sort_values("GEOID", kind="stable").reset_index(drop=True)
    frame = gpd.GeoDataFrame(merged[FEATURE_COLUMNS], geometry="geometry", crs=geometry.crs)
    return FeatureDataset(region=region, variables=variables, frame=frame)


def select_feature_rows(df: pd.DataFrame, feature_id: str) -> pd.DataFrame:
    """Keep only the rows that belong to *feature_id*.

    The Census API answers county- or state-wide; sibling tracts are discarded.
    """
    _require(df, ["GEOID"])
    selected = df[df["GEOID"] == feature_id]
    discarded = len(df) - len(selected)
    if discarded:
        logger.debug("Discarded %d row(s) for tracts other than %s", discarded, feature_id)
    return selected.reset_index(drop=True)


def build_detail_dataset(
    rows: pd.DataFrame,
    region: str,
    feature_id: str,
    variables: VariableSet,
) -> DetailDataset:
    """Narrow tidy rows to one tract and to the registry's variables."""
    _require(rows, DETAIL_COLUMNS)
    rows = select_feature_rows(rows, feature_id)
    rows = rows[rows["variable"].isin(variables.variables)]
    return DetailDataset(
        region=region,
        feature_id=feature_id,
        variables=variables,
        frame=rows[DETAIL_COLUMNS].reset_index(drop=True),
    )


def summarize_values(dataset: FeatureDataset) -> dict[str, float | int | None]:
    """Count, min, max and median of the mapped metric."""
    values = dataset.values.dropna()
    if values.empty:
        return {"count": 0, "min": None, "max": None, "median": None}
    return {
        "count": int(values.count()),
        "min": float(values.min()),
        "max": float(values.max()),
        "median": round(float(values.median()), 2),
    }


def tract_table(dataset: FeatureDataset) -> pd.DataFrame:
    """Plain (non-spatial) table of tract values for export."""
    return pd.DataFrame(dataset.frame.drop(columns="geometry"))
