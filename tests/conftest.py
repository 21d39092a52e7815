"""Shared builders for synthetic tract datasets. No test touches the network."""

from __future__ import annotations

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from tractlens.ingestion.datasets import AGE_PROFILE, MEDIAN_AGE
from tractlens.ingestion.states import resolve_state
from tractlens.models import DetailDataset, FeatureDataset


def tract_ids(region: str, n: int, county: str = "003") -> list[str]:
    fips = resolve_state(region).fips
    return [f"{fips}{county}{100 * (i + 1):06d}" for i in range(n)]


def make_geometry(geoids: list[str]) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(
        {"GEOID": geoids},
        geometry=[box(-75.6 + i * 0.01, 39.1, -75.59 + i * 0.01, 39.11) for i in range(len(geoids))],
        crs="EPSG:4326",
    )


def make_features(
    region: str = "Delaware",
    n: int = 3,
    values: list[float] | None = None,
    geoids: list[str] | None = None,
) -> FeatureDataset:
    name = resolve_state(region).name
    geoids = geoids or tract_ids(name, n)
    n = len(geoids)
    if values is None:
        values = [30.0 + i for i in range(n)]
    frame = make_geometry(geoids)
    frame["NAME"] = [f"Census Tract {g[-6:]}" for g in geoids]
    frame["value"] = values
    frame = frame[["GEOID", "NAME", "value", "geometry"]]
    return FeatureDataset(region=name, variables=MEDIAN_AGE, frame=frame)


def make_detail_rows(geoids: list[str]) -> pd.DataFrame:
    rows = []
    for g, geoid in enumerate(geoids):
        for i, variable in enumerate(AGE_PROFILE.variables):
            rows.append({
                "GEOID": geoid,
                "NAME": f"Census Tract {geoid[-6:]}",
                "variable": variable,
                "value": round(2.0 + i * 0.5 + g, 1),
            })
    return pd.DataFrame(rows)


def make_detail(region: str, geoid: str) -> DetailDataset:
    frame = make_detail_rows([geoid])[["GEOID", "variable", "value"]]
    return DetailDataset(
        region=resolve_state(region).name,
        feature_id=geoid,
        variables=AGE_PROFILE,
        frame=frame,
    )


@pytest.fixture
def features():
    return make_features


@pytest.fixture
def detail():
    return make_detail


@pytest.fixture
def detail_rows():
    return make_detail_rows


@pytest.fixture
def geometry():
    return make_geometry
