"""Tract boundary geometry from the Census cartographic boundary files."""

from __future__ import annotations

import logging
import os

import geopandas as gpd

from tractlens.errors import RemoteFetchError

logger = logging.getLogger(__name__)

BASE_URL = os.getenv("TRACTLENS_BOUNDARY_URL", "https://www2.census.gov/geo/tiger")

# Web maps expect WGS84 lon/lat
WEB_CRS = "EPSG:4326"


def boundary_url(state_fips: str, year: int = 2020, resolution: str = "500k") -> str:
    """URL of the generalized (cartographic) tract shapefile for one state."""
    return f"{BASE_URL}/GENZ{year}/shp/cb_{year}_{state_fips}_tract_{resolution}.zip"


def get_tract_geometry(state_fips: str, year: int = 2020) -> gpd.GeoDataFrame:
    """Download tract polygons for a state.

    Returns a GeoDataFrame with ``GEOID`` and ``geometry`` columns in EPSG:4326.
    """
    url = boundary_url(state_fips, year=year)
    logger.info("Fetching tract boundaries from %s", url)
    try:
        gdf = gpd.read_file(url)
    except Exception as exc:
        # pyogrio/fiona surface network and archive errors with their own types
        raise RemoteFetchError(f"Could not read boundary file: {exc}", url=url) from exc

    if "GEOID" not in gdf.columns:
        raise RemoteFetchError("Boundary file has no GEOID column", url=url)

    if gdf.crs is not None and gdf.crs != WEB_CRS:
        gdf = gdf.to_crs(WEB_CRS)

    gdf["GEOID"] = gdf["GEOID"].astype(str)
    logger.info("Loaded %d tract polygons", len(gdf))
    return gdf[["GEOID", "geometry"]]
