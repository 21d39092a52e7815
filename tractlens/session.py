"""Per-user dashboard session: state selection, tract clicks and the two fetch stages.

Every user gets their own ``DashboardSession``; nothing here is module-level
state. Fetches are the only suspension points. Each stage keeps a request
token and a result is applied only if its token is still the latest, so a
slow early fetch can never overwrite a later one.
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import logging
from typing import Any, Callable

from tractlens.errors import RemoteFetchError, StaleResultDiscarded
from tractlens.fetchers import fetch_detail_dataset, fetch_region_dataset
from tractlens.ingestion.states import resolve_state
from tractlens.models import DetailDataset, FeatureDataset
from tractlens.reactive import ReactiveGraph
from tractlens.render.chart import render_detail_chart
from tractlens.render.choropleth import render_choropleth

logger = logging.getLogger(__name__)

REGION = "region"
DETAIL = "detail"


class SessionState(str, enum.Enum):
    NO_REGION = "no_region"
    REGION_LOADING = "region_loading"
    REGION_READY = "region_ready"
    REGION_FAILED = "region_failed"
    SELECTION_LOADING = "selection_loading"
    SELECTION_READY = "selection_ready"


def _point_id(point: Any) -> Any:
    if not isinstance(point, dict):
        return point
    for key in ("id", "location", "customdata"):
        value = point.get(key)
        if isinstance(value, (list, tuple)):
            value = value[0] if value else None
        if value not in (None, ""):
            return value
    return None


def extract_feature_id(event: Any) -> str | None:
    """Return the tract id carried by a click event, or None.

    Accepts a bare id, a point dict (``id``, ``location`` or ``customdata``)
    or a plotly selection payload (``{"selection": {"points": [...]}}``).
    Clicks on empty map area produce None.
    """
    if isinstance(event, dict):
        if "selection" in event:
            event = event["selection"] or {}
        if "points" in event:
            points = event.get("points") or []
            event = points[0] if points else None
        else:
            event = _point_id(event)
        if isinstance(event, dict):
            event = _point_id(event)

    if event is None or isinstance(event, bool):
        return None
    if isinstance(event, (str, int)):
        text = str(event).strip()
        return text or None
    return None


def _selection_text(region: str | None, selection: str | None) -> str:
    if region is None:
        return "Select a state to map"
    if selection is None:
        return f"Click a Census tract in {region}"
    return f"Selected Census tract: {selection}, {region}"


class DashboardSession:
    """Linked map + chart state for one user.

    ``fetch_region`` and ``fetch_detail`` may be plain functions (run in a
    worker thread) or coroutine functions (awaited on the session's loop).
    """

    def __init__(
        self,
        fetch_region: Callable[[str], Any] = fetch_region_dataset,
        fetch_detail: Callable[[str, str], Any] = fetch_detail_dataset,
    ) -> None:
        self._fetch_region = fetch_region
        self._fetch_detail = fetch_detail
        self._tokens = {REGION: 0, DETAIL: 0}

        g = self.graph = ReactiveGraph()
        g.signal("region")
        g.signal("selection")
        g.signal("features")
        g.signal("detail")
        g.signal("state", SessionState.NO_REGION)
        g.signal("notice")
        g.derived("map", ["features"], lambda f: None if f is None else render_choropleth(f))
        g.derived("chart", ["detail"], render_detail_chart)
        g.derived("selection_text", ["region", "selection"], _selection_text)

    # -- read access --------------------------------------------------------

    @property
    def region(self) -> str | None:
        return self.graph.get("region")

    @property
    def selection(self) -> str | None:
        return self.graph.get("selection")

    @property
    def features(self) -> FeatureDataset | None:
        return self.graph.get("features")

    @property
    def detail(self) -> DetailDataset | None:
        return self.graph.get("detail")

    @property
    def state(self) -> SessionState:
        return self.graph.get("state")

    @property
    def notice(self) -> str | None:
        return self.graph.get("notice")

    @property
    def map_figure(self):
        return self.graph.get("map")

    @property
    def chart_figure(self):
        return self.graph.get("chart")

    @property
    def selection_text(self) -> str:
        return self.graph.get("selection_text")

    # -- request bookkeeping ------------------------------------------------

    def _issue(self, stage: str) -> int:
        self._tokens[stage] += 1
        return self._tokens[stage]

    def _ensure_current(self, stage: str, token: int) -> None:
        latest = self._tokens[stage]
        if token != latest:
            raise StaleResultDiscarded(stage, token, latest)

    async def _run(self, stage: str, token: int, fetcher: Callable[..., Any], *args: Any) -> Any:
        try:
            if inspect.iscoroutinefunction(fetcher):
                result = await fetcher(*args)
            else:
                result = await asyncio.to_thread(fetcher, *args)
                if inspect.isawaitable(result):
                    result = await result
        except Exception:
            # a failure of a superseded request is as irrelevant as its result
            self._ensure_current(stage, token)
            raise
        self._ensure_current(stage, token)
        return result

    def _region_failed(self, name: str, exc: Exception) -> None:
        self.graph.update({
            "state": SessionState.REGION_FAILED,
            "notice": f"Could not load data for {name}: {exc}",
        })

    def _detail_failed(self, feature_id: str, exc: Exception) -> None:
        # selection is kept
        self.graph.update({
            "state": SessionState.REGION_READY,
            "notice": f"Could not load the profile of tract {feature_id}: {exc}",
        })

    # -- events -------------------------------------------------------------

    async def select_region(self, region: str) -> None:
        """Switch to *region* and load its tracts.

        Clears the selection and any detail data immediately. Re-selecting
        the current region is a no-op unless its last fetch failed.
        """
        name = resolve_state(region).name
        if name == self.region and self.state is not SessionState.REGION_FAILED:
            return

        token = self._issue(REGION)
        # in-flight detail requests belong to the previous region
        self._issue(DETAIL)
        self.graph.update({
            "region": name,
            "selection": None,
            "features": None,
            "detail": None,
            "state": SessionState.REGION_LOADING,
            "notice": None,
        })

        try:
            dataset = await self._run(REGION, token, self._fetch_region, name)
        except StaleResultDiscarded as exc:
            logger.debug("Discarded %s", exc)
            return
        except RemoteFetchError as exc:
            logger.warning("Could not load tracts for %s: %s", name, exc)
            self._region_failed(name, exc)
            return
        except Exception as exc:
            logger.exception("Unexpected error loading tracts for %s", name)
            self._region_failed(name, exc)
            return

        self.graph.update({"features": dataset, "state": SessionState.REGION_READY})

    async def click_feature(self, event: Any) -> bool:
        """Handle a map click. Returns False when the click was ignored.

        A click with a tract id replaces the selection, even while the
        previous tract's detail is still loading.
        """
        feature_id = extract_feature_id(event)
        if feature_id is None:
            logger.debug("Ignoring click without a feature id")
            return False
        if self.features is None:
            logger.debug("Ignoring click on %s: no map is loaded", feature_id)
            return False

        region = self.region
        token = self._issue(DETAIL)
        self.graph.update({
            "selection": feature_id,
            "detail": None,
            "state": SessionState.SELECTION_LOADING,
            "notice": None,
        })

        try:
            detail = await self._run(DETAIL, token, self._fetch_detail, region, feature_id)
        except StaleResultDiscarded as exc:
            logger.debug("Discarded %s", exc)
            return True
        except RemoteFetchError as exc:
            logger.warning("Could not load detail for tract %s: %s", feature_id, exc)
            self._detail_failed(feature_id, exc)
            return True
        except Exception as exc:
            logger.exception("Unexpected error loading detail for tract %s", feature_id)
            self._detail_failed(feature_id, exc)
            return True

        self.graph.update({"detail": detail, "state": SessionState.SELECTION_READY})
        return True
