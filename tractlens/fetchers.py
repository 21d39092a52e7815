"""The two remote stages of the pipeline: state-wide tract values and a single tract's profile."""

from __future__ import annotations

import logging

from tractlens.errors import EmptySelectionError
from tractlens.ingestion import boundaries, census
from tractlens.ingestion.datasets import AGE_PROFILE, MEDIAN_AGE, VariableSet
from tractlens.ingestion.states import resolve_state
from tractlens.models import DetailDataset, FeatureDataset
from tractlens.processing.transformer import build_detail_dataset, build_feature_dataset

logger = logging.getLogger(__name__)


def fetch_region_dataset(region: str, variables: VariableSet = MEDIAN_AGE) -> FeatureDataset:
    """Fetch tract geometry and one metric value for every tract in *region*.

    Raises UnknownRegionError for an unresolvable state and RemoteFetchError
    when either the Census API or the boundary download fails.
    """
    state = resolve_state(region)
    values = census.query(
        geography=variables.geography,
        variables=variables.variables[:1],
        state_fips=state.fips,
        year=variables.year,
        dataset=variables.dataset,
    )
    geometry = boundaries.get_tract_geometry(state.fips, year=variables.year)
    dataset = build_feature_dataset(values, geometry, region=state.name, variables=variables)
    logger.info("%s: %d tracts with %s", state.name, len(dataset), variables.name.lower())
    return dataset


def fetch_detail_dataset(
    region: str,
    feature_id: str | None,
    variables: VariableSet = AGE_PROFILE,
) -> DetailDataset:
    """Fetch the category breakdown for one tract.

    The request is narrowed to the tract's county; any rows returned for
    other tracts are discarded before the dataset is built.
    """
    if not feature_id:
        raise EmptySelectionError("No tract selected")
    state = resolve_state(region)
    feature_id = str(feature_id)
    if not feature_id.startswith(state.fips):
        logger.warning("Tract %s is not in %s; result will be empty", feature_id, state.name)
    county = feature_id[2:5] if len(feature_id) >= 5 and feature_id.startswith(state.fips) else None
    rows = census.query(
        geography=variables.geography,
        variables=variables.variables,
        state_fips=state.fips,
        year=variables.year,
        dataset=variables.dataset,
        county=county,
    )
    detail = build_detail_dataset(rows, region=state.name, feature_id=feature_id, variables=variables)
    logger.info("%s / %s: %d %s rows", state.name, feature_id, len(detail), variables.name.lower())
    return detail
