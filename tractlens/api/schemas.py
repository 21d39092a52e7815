"""Pydantic schemas for API response serialization."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


class StateOut(BaseModel):
    name: str
    abbr: str
    fips: str

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Tracts
# ---------------------------------------------------------------------------


class TractSummaryOut(BaseModel):
    count: int
    min: float | None = None
    max: float | None = None
    median: float | None = None


class TractCollectionOut(BaseModel):
    state: str
    variable: str
    label: str
    year: int
    summary: TractSummaryOut
    geojson: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Age profile
# ---------------------------------------------------------------------------


class CohortOut(BaseModel):
    variable: str
    label: str
    percent: float | None = None


class AgeProfileOut(BaseModel):
    state: str
    geoid: str
    year: int
    cohorts: list[CohortOut]


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthOut(BaseModel):
    status: str
    cached_entries: int
    uptime_seconds: float
