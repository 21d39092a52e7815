"""Client for the US Census Bureau Data API.

Handles URL construction, the header-row JSON payload, and reshaping the
response into one row per (GEOID, variable).
"""

from __future__ import annotations

import logging
import os
from typing import Any

import httpx
import pandas as pd

from tractlens.errors import RemoteFetchError
from tractlens.processing.cleaner import build_geoid, clean_census_values

logger = logging.getLogger(__name__)

BASE_URL = os.getenv("TRACTLENS_CENSUS_URL", "https://api.census.gov/data")
API_KEY = os.getenv("CENSUS_API_KEY")

# Timeouts (connect, read) in seconds
TIMEOUT = httpx.Timeout(15.0, read=120.0)

# Geography columns the API appends after the requested variables
GEO_COLUMNS = ["state", "county", "tract", "block group"]


def dataset_url(year: int, dataset: str) -> str:
    return f"{BASE_URL}/{year}/{dataset}"


def build_params(
    geography: str,
    variables: list[str],
    state_fips: str,
    county: str | None = None,
    tract: str | None = None,
) -> list[tuple[str, str]]:
    """Build the query string for a tract-level request within a state."""
    if not variables:
        raise ValueError("At least one variable is required")
    params = [("get", ",".join(["NAME", *variables]))]
    params.append(("for", f"{geography}:{tract or '*'}"))
    params.append(("in", f"state:{state_fips}"))
    if county:
        params.append(("in", f"county:{county}"))
    if API_KEY:
        params.append(("key", API_KEY))
    return params


def fetch_rows(url: str, params: list[tuple[str, str]]) -> list[list[Any]]:
    """GET a Census endpoint and return the raw header + data rows."""
    try:
        resp = httpx.get(url, params=params, timeout=TIMEOUT)
        resp.raise_for_status()
    except httpx.HTTPStatusError as exc:
        # The API explains bad variable codes in a plain-text body
        detail = exc.response.text.strip()[:200]
        raise RemoteFetchError(
            f"Census API returned {exc.response.status_code}: {detail}", url=url
        ) from exc
    except httpx.HTTPError as exc:
        raise RemoteFetchError(f"Census API request failed: {exc}", url=url) from exc

    if resp.status_code == 204 or not resp.content:
        raise RemoteFetchError("Census API returned no rows for this filter", url=url)

    try:
        payload = resp.json()
    except ValueError as exc:
        raise RemoteFetchError("Census API returned malformed JSON", url=url) from exc

    if not isinstance(payload, list) or len(payload) < 2:
        raise RemoteFetchError("Census API returned no rows for this filter", url=url)
    return payload


def rows_to_frame(
    rows: list[list[Any]], variables: list[str], url: str | None = None
) -> pd.DataFrame:
    """Reshape a header-row payload into GEOID / NAME / variable / value rows."""
    header = rows[0]
    if not isinstance(header, list) or any(
        not isinstance(row, list) or len(row) != len(header) for row in rows[1:]
    ):
        raise RemoteFetchError("Census API returned rows that do not match the header", url=url)
    geo_columns = [c for c in GEO_COLUMNS if c in header]
    if not geo_columns or "NAME" not in header:
        raise RemoteFetchError("Census API response has no geography columns", url=url)

    wide = pd.DataFrame(rows[1:], columns=header)
    missing = [v for v in variables if v not in wide.columns]
    if missing:
        raise RemoteFetchError(f"Census API response is missing variables: {missing}", url=url)

    wide["GEOID"] = build_geoid(wide, geo_columns)
    long = wide.melt(
        id_vars=["GEOID", "NAME"],
        value_vars=variables,
        var_name="variable",
        value_name="value",
    )
    return clean_census_values(long)


def query(
    geography: str,
    variables: list[str],
    state_fips: str,
    year: int,
    dataset: str,
    county: str | None = None,
    tract: str | None = None,
) -> pd.DataFrame:
    """Query one Census dataset and return tidy rows.

    The result has one row per (GEOID, variable), ordered by GEOID then by
    the order of *variables*.
    """
    url = dataset_url(year, dataset)
    params = build_params(geography, variables, state_fips, county=county, tract=tract)
    logger.info(
        "Querying %s for %d variable(s), %s in state %s", url, len(variables), geography, state_fips
    )
    rows = fetch_rows(url, params)
    df = rows_to_frame(rows, variables, url=url)
    order = {v: i for i, v in enumerate(variables)}
    df = (
        df.assign(_order=df["variable"].map(order))
        .sort_values(["GEOID", "_order"], kind="stable")
        .drop(columns="_order")
        .reset_index(drop=True)
    )
    logger.info("Received %d rows (%d geographies)", len(df), df["GEOID"].nunique())
    return df
