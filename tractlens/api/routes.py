"""FastAPI REST endpoints for TractLens."""

from __future__ import annotations

import io
import json
import time
from typing import Any, Callable

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from tractlens.api.auth import verify_api_key
from tractlens.api.cache import cache_size, cached, clear_cache
from tractlens.api.schemas import (
    AgeProfileOut,
    CohortOut,
    HealthOut,
    StateOut,
    TractCollectionOut,
    TractSummaryOut,
)
from tractlens.errors import RemoteFetchError, UnknownRegionError
from tractlens.fetchers import fetch_detail_dataset, fetch_region_dataset
from tractlens.ingestion.states import STATES, resolve_state
from tractlens.processing.transformer import summarize_values, tract_table
from tractlens.render.chart import chart_rows

router = APIRouter(prefix="/api/v1", tags=["TractLens API"])

_start_time = time.time()


@cached()
def _region_dataset(state_name: str):
    return fetch_region_dataset(state_name)


@cached()
def _detail_dataset(state_name: str, geoid: str):
    return fetch_detail_dataset(state_name, geoid)


def _call(fn: Callable[..., Any], *args: Any) -> Any:
    try:
        return fn(*args)
    except UnknownRegionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RemoteFetchError as exc:
        raise HTTPException(status_code=502, detail=f"Census data unavailable: {exc}") from exc


def _state_name(state: str) -> str:
    return _call(resolve_state, state).name


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------


@router.get("/states", summary="List states", response_model=list[StateOut])
def list_states(_key: str = Depends(verify_api_key)) -> list[StateOut]:
    return [StateOut.model_validate(s) for s in STATES]


# ---------------------------------------------------------------------------
# Tracts
# ---------------------------------------------------------------------------


@router.get(
    "/states/{state}/tracts",
    summary="Median age by tract, with GeoJSON geometry",
    response_model=TractCollectionOut,
)
def get_tracts(
    state: str,
    geometry: bool = Query(True, description="Include the GeoJSON FeatureCollection"),
    _key: str = Depends(verify_api_key),
) -> TractCollectionOut:
    name = _state_name(state)
    dataset = _call(_region_dataset, name)
    variables = dataset.variables
    return TractCollectionOut(
        state=name,
        variable=variables.variables[0],
        label=variables.name,
        year=variables.year,
        summary=TractSummaryOut(**summarize_values(dataset)),
        geojson=json.loads(dataset.frame.to_json()) if geometry else None,
    )


@router.get(
    "/states/{state}/tracts/{geoid}/age-profile",
    summary="Age cohort breakdown of one tract",
    response_model=AgeProfileOut,
)
def get_age_profile(
    state: str,
    geoid: str,
    _key: str = Depends(verify_api_key),
) -> AgeProfileOut:
    name = _state_name(state)
    detail = _call(_detail_dataset, name, geoid)
    if len(detail) == 0:
        raise HTTPException(status_code=404, detail=f"No age profile for tract {geoid} in {name}")
    cohorts = [
        CohortOut(variable=code, label=label, percent=value)
        for code, (label, value) in zip(detail.variables.variables, chart_rows(detail))
    ]
    return AgeProfileOut(state=name, geoid=geoid, year=detail.variables.year, cohorts=cohorts)


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@router.get("/export/{state}/tracts.csv", summary="Export tract values as CSV")
def export_tracts_csv(state: str, _key: str = Depends(verify_api_key)):
    name = _state_name(state)
    dataset = _call(_region_dataset, name)
    buf = io.StringIO()
    tract_table(dataset).to_csv(buf, index=False)
    buf.seek(0)
    filename = f"{resolve_state(name).abbr.lower()}_tracts.csv"
    return StreamingResponse(
        iter([buf.getvalue()]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


# ---------------------------------------------------------------------------
# Cache management
# ---------------------------------------------------------------------------


@router.post("/cache/clear", summary="Clear the fetch cache")
def flush_cache(_key: str = Depends(verify_api_key)) -> dict[str, Any]:
    evicted = clear_cache()
    return {"evicted": evicted}


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", summary="Health check", response_model=HealthOut)
def health() -> HealthOut:
    return HealthOut(
        status="ok",
        cached_entries=cache_size(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
