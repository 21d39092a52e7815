"""Datasets that flow through the map / chart pipeline."""

from __future__ import annotations

from dataclasses import dataclass

import geopandas as gpd
import pandas as pd

from tractlens.ingestion.datasets import VariableSet

FEATURE_COLUMNS = ["GEOID", "NAME", "value", "geometry"]
DETAIL_COLUMNS = ["GEOID", "variable", "value"]


@dataclass(frozen=True)
class FeatureDataset:
    """Tract polygons for one state, each carrying one metric value."""

    region: str
    variables: VariableSet
    frame: gpd.GeoDataFrame

    @classmethod
    def empty(cls, region: str, variables: VariableSet) -> FeatureDataset:
        frame = gpd.GeoDataFrame(
            {"GEOID": pd.Series(dtype=str), "NAME": pd.Series(dtype=str), "value": pd.Series(dtype=float)},
            geometry=gpd.GeoSeries([], crs="EPSG:4326"),
        )
        return cls(region=region, variables=variables, frame=frame)

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def is_empty(self) -> bool:
        return self.frame.empty

    @property
    def feature_ids(self) -> list[str]:
        return self.frame["GEOID"].tolist()

    @property
    def values(self) -> pd.Series:
        return self.frame["value"]


@dataclass(frozen=True)
class DetailDataset:
    """Breakdown of a single tract: one (variable, value) row per category."""

    region: str
    feature_id: str
    variables: VariableSet
    frame: pd.DataFrame

    def __len__(self) -> int:
        return len(self.frame)

    def as_series(self, order: list[str] | None = None) -> pd.Series:
        """Values indexed by variable code, in *order* or the registry's display order."""
        return self.frame.set_index("variable")["value"].reindex(order or self.variables.variables)
