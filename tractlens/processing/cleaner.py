"""Cleaning helpers for raw Census API rows."""

from __future__ import annotations

import logging

import pandas as pd

logger = logging.getLogger(__name__)

# Census annotation values (e.g. -666666666 "estimate not available") are
# all large negative sentinels; anything at or below this is treated as missing.
SENTINEL_THRESHOLD = -999_999.0

# Width of each geography component in a GEOID
GEOID_WIDTHS = {"state": 2, "county": 3, "tract": 6, "block group": 1}


def build_geoid(df: pd.DataFrame, geo_columns: list[str]) -> pd.Series:
    """Concatenate zero-padded geography columns into a GEOID string."""
    if not geo_columns:
        raise KeyError("No geography columns to build a GEOID from")
    parts = [
        df[col].astype(str).str.strip().str.zfill(GEOID_WIDTHS.get(col, 0))
        for col in geo_columns
    ]
    geoid = parts[0]
    for part in parts[1:]:
        geoid = geoid + part
    return geoid


def strip_strings(df: pd.DataFrame) -> pd.DataFrame:
    """Strip leading/trailing whitespace from string columns."""
    df = df.copy()
    str_cols = df.select_dtypes(include=["object", "string"]).columns
    for col in str_cols:
        df[col] = df[col].str.strip()
    return df


def coerce_numeric(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Force columns to numeric, coercing errors and Census sentinels to NaN."""
    df = df.copy()
    for col in columns:
        if col in df.columns:
            values = pd.to_numeric(df[col], errors="coerce")
            df[col] = values.mask(values <= SENTINEL_THRESHOLD)
    return df


def drop_duplicates(df: pd.DataFrame, subset: list[str] | None = None) -> pd.DataFrame:
    """Remove duplicate rows."""
    before = len(df)
    df = df.drop_duplicates(subset=subset)
    removed = before - len(df)
    if removed:
        logger.info("Removed %d duplicate rows", removed)
    return df


def clean_census_values(df: pd.DataFrame) -> pd.DataFrame:
    """Clean tidy GEOID / NAME / variable / value rows.

    Missing values are kept as NaN so that callers decide whether a tract
    without an estimate is dropped or shown.
    """
    df = coerce_numeric(df, ["value"])
    df = strip_strings(df)
    df = drop_duplicates(df, subset=["GEOID", "variable"])
    missing = int(df["value"].isna().sum())
    if missing:
        logger.info("%d value(s) missing or annotated as unavailable", missing)
    return df.reset_index(drop=True)
