"""Tests for the per-session map → click → chart flow.

Fetchers are replaced by coroutines gated on asyncio events so each test
decides in which order in-flight requests complete.
"""

from __future__ import annotations

import asyncio

import pytest

from tractlens.errors import RemoteFetchError
from tractlens.session import DashboardSession, SessionState, extract_feature_id

from conftest import make_detail, make_features, tract_ids


class Gates:
    """Fetchers that block until the test releases them."""

    def __init__(
        self,
        fail: set[str] | None = None,
        sizes: dict[str, int] | None = None,
        broken: dict[str, Exception] | None = None,
    ):
        self.events: dict[str, asyncio.Event] = {}
        self.calls: list[tuple] = []
        self.fail = fail or set()
        self.sizes = sizes or {}
        self.broken = broken or {}
        self.held: set[str] = set()

    def hold(self, key: str) -> None:
        self.held.add(key)

    def release(self, key: str) -> None:
        self.held.discard(key)
        self._event(key).set()

    def _event(self, key: str) -> asyncio.Event:
        if key not in self.events:
            self.events[key] = asyncio.Event()
        return self.events[key]

    async def _wait(self, key: str) -> None:
        if key in self.held:
            await self._event(key).wait()
        if key in self.fail:
            raise RemoteFetchError(f"{key} unavailable")
        if key in self.broken:
            raise self.broken[key]

    async def region(self, region: str):
        self.calls.append(("region", region))
        await self._wait(region)
        return make_features(region, n=self.sizes.get(region, 3))

    async def detail(self, region: str, geoid: str):
        self.calls.append(("detail", region, geoid))
        await self._wait(geoid)
        return make_detail(region, geoid)


def new_session(gates: Gates) -> DashboardSession:
    return DashboardSession(fetch_region=gates.region, fetch_detail=gates.detail)


async def settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


DELAWARE_TRACT = "10003014500"


class TestExtractFeatureId:
    @pytest.mark.parametrize("event, expected", [
        ("10003014500", "10003014500"),
        ("  10003014500 ", "10003014500"),
        (None, None),
        ("", None),
        ({"id": "10003014500"}, "10003014500"),
        ({"id": None}, None),
        ({"selection": {"points": []}}, None),
        ({"selection": {"points": [{"location": "10003014500"}]}}, "10003014500"),
        ({"selection": {"points": [{"customdata": ["10003014500"]}]}}, "10003014500"),
        ({"points": [{"location": "10003014500", "z": 38.1}]}, "10003014500"),
    ])
    def test_forms(self, event, expected):
        assert extract_feature_id(event) == expected


class TestRegionSelection:
    def test_initial_state(self):
        session = new_session(Gates())
        assert session.state is SessionState.NO_REGION
        assert session.map_figure is None
        assert session.selection_text == "Select a state to map"

    def test_region_loads(self):
        async def scenario():
            session = new_session(Gates())
            await session.select_region("DE")
            return session

        session = asyncio.run(scenario())
        assert session.region == "Delaware"
        assert session.state is SessionState.REGION_READY
        assert session.features.region == "Delaware"
        assert session.map_figure.layout.uirevision == "Delaware"

    @pytest.mark.parametrize("finish_order", [["Delaware", "Texas"], ["Texas", "Delaware"]])
    def test_last_request_wins(self, finish_order):
        async def scenario():
            gates = Gates()
            gates.hold("Delaware")
            gates.hold("Texas")
            session = new_session(gates)
            first = asyncio.create_task(session.select_region("Delaware"))
            await settle()
            second = asyncio.create_task(session.select_region("Texas"))
            await settle()
            for region in finish_order:
                gates.release(region)
                await settle()
            await asyncio.gather(first, second)
            return session

        session = asyncio.run(scenario())
        assert session.region == "Texas"
        assert session.features.region == "Texas"
        assert session.state is SessionState.REGION_READY

    def test_reselecting_same_region_is_noop(self):
        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            await session.select_region("delaware")
            return gates

        gates = asyncio.run(scenario())
        assert gates.calls == [("region", "Delaware")]

    def test_failed_region_keeps_session_alive(self):
        async def scenario():
            gates = Gates(fail={"Delaware"})
            session = new_session(gates)
            await session.select_region("Delaware")
            failed = (session.state, session.notice, session.map_figure)
            gates.fail.clear()
            await session.select_region("Delaware")
            return session, failed

        session, (state, notice, figure) = asyncio.run(scenario())
        assert state is SessionState.REGION_FAILED
        assert "Delaware" in notice
        assert figure is None
        assert session.state is SessionState.REGION_READY
        assert session.notice is None

    def test_region_change_clears_selection_and_detail(self):
        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            assert session.detail is not None

            gates.hold("Texas")
            task = asyncio.create_task(session.select_region("Texas"))
            await settle()
            during = (session.state, session.selection, session.detail, session.features)
            gates.release("Texas")
            await task
            return session, during

        session, (state, selection, detail, features) = asyncio.run(scenario())
        assert state is SessionState.REGION_LOADING
        assert selection is None
        assert detail is None
        assert features is None
        assert session.chart_figure.layout.annotations[0].text.startswith("Click the map")


class TestClicks:
    def test_click_sets_selection_and_loads_detail(self):
        async def scenario():
            session = new_session(Gates())
            await session.select_region("Delaware")
            handled = await session.click_feature({"id": DELAWARE_TRACT})
            return session, handled

        session, handled = asyncio.run(scenario())
        assert handled is True
        assert session.selection == DELAWARE_TRACT
        assert session.detail.feature_id == DELAWARE_TRACT
        assert session.state is SessionState.SELECTION_READY
        assert session.selection_text == f"Selected Census tract: {DELAWARE_TRACT}, Delaware"

    @pytest.mark.parametrize("empty_click", [None, "", {"id": None}, {"selection": {"points": []}}])
    def test_click_without_id_is_ignored(self, empty_click):
        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            handled = await session.click_feature(empty_click)
            return session, gates, handled

        session, gates, handled = asyncio.run(scenario())
        assert handled is False
        assert session.selection == DELAWARE_TRACT
        assert len([c for c in gates.calls if c[0] == "detail"]) == 1

    def test_click_before_map_is_ignored(self):
        async def scenario():
            session = new_session(Gates())
            return session, await session.click_feature(DELAWARE_TRACT)

        session, handled = asyncio.run(scenario())
        assert handled is False
        assert session.selection is None

    def test_new_click_overrides_pending_detail(self):
        other = "10003014400"

        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            gates.hold(DELAWARE_TRACT)
            slow = asyncio.create_task(session.click_feature(DELAWARE_TRACT))
            await settle()
            mid_state = session.state
            await session.click_feature(other)
            gates.release(DELAWARE_TRACT)
            await slow
            return session, mid_state

        session, mid_state = asyncio.run(scenario())
        assert mid_state is SessionState.SELECTION_LOADING
        assert session.selection == other
        assert session.detail.feature_id == other

    def test_stale_detail_after_region_change_is_discarded(self):
        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            gates.hold(DELAWARE_TRACT)
            slow = asyncio.create_task(session.click_feature(DELAWARE_TRACT))
            await settle()
            await session.select_region("Texas")
            gates.release(DELAWARE_TRACT)
            await slow
            return session

        session = asyncio.run(scenario())
        assert session.region == "Texas"
        assert session.selection is None
        assert session.detail is None
        assert session.state is SessionState.REGION_READY

    def test_detail_failure_keeps_selection(self):
        async def scenario():
            session = new_session(Gates(fail={DELAWARE_TRACT}))
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            return session

        session = asyncio.run(scenario())
        assert session.state is SessionState.REGION_READY
        assert session.selection == DELAWARE_TRACT
        assert session.detail is None
        assert DELAWARE_TRACT in session.notice
        assert session.map_figure is not None

    def test_repeated_click_gives_same_chart(self):
        async def scenario():
            gates = Gates()
            session = new_session(gates)
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            first = session.chart_figure.to_dict()
            await session.click_feature(DELAWARE_TRACT)
            return first, session.chart_figure.to_dict(), gates

        first, second, gates = asyncio.run(scenario())
        assert first == second
        assert len([c for c in gates.calls if c[0] == "detail"]) == 2


class TestUnexpectedErrors:
    def test_region_bug_becomes_failed_state(self):
        async def scenario():
            session = new_session(Gates(broken={"Delaware": ValueError("bad geometry")}))
            await session.select_region("Delaware")
            return session

        session = asyncio.run(scenario())
        assert session.state is SessionState.REGION_FAILED
        assert "bad geometry" in session.notice
        assert session.map_figure is None

    def test_detail_bug_returns_to_region_ready(self):
        async def scenario():
            session = new_session(Gates(broken={DELAWARE_TRACT: ValueError("bad cohort")}))
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            return session

        session = asyncio.run(scenario())
        assert session.state is SessionState.REGION_READY
        assert session.selection == DELAWARE_TRACT
        assert session.detail is None
        assert "bad cohort" in session.notice

    def test_superseded_bug_is_discarded(self):
        async def scenario():
            gates = Gates(broken={"Delaware": ValueError("bad geometry")})
            gates.hold("Delaware")
            session = new_session(gates)
            slow = asyncio.create_task(session.select_region("Delaware"))
            await settle()
            await session.select_region("Texas")
            gates.release("Delaware")
            await slow
            return session

        session = asyncio.run(scenario())
        assert session.region == "Texas"
        assert session.state is SessionState.REGION_READY
        assert session.notice is None


class TestStateMachine:
    def test_transitions(self):
        async def scenario():
            session = new_session(Gates())
            seen = []
            session.graph.observe("state", lambda name, value: seen.append(value))
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            await session.select_region("Texas")
            return seen

        assert asyncio.run(scenario()) == [
            SessionState.REGION_LOADING,
            SessionState.REGION_READY,
            SessionState.SELECTION_LOADING,
            SessionState.SELECTION_READY,
            SessionState.REGION_LOADING,
            SessionState.REGION_READY,
        ]

    def test_sync_fetchers_run_in_thread(self):
        def fetch_region(region):
            return make_features(region)

        def fetch_detail(region, geoid):
            return make_detail(region, geoid)

        async def scenario():
            session = DashboardSession(fetch_region=fetch_region, fetch_detail=fetch_detail)
            await session.select_region("Delaware")
            await session.click_feature(DELAWARE_TRACT)
            return session

        session = asyncio.run(scenario())
        assert session.state is SessionState.SELECTION_READY


class TestTexasScenario:
    def test_five_thousand_tracts_to_eighteen_bars(self):
        clicked = "48201100100"
        geoids = tract_ids("Texas", 4999) + [clicked]

        async def fetch_region(region):
            return make_features(region, geoids=geoids)

        async def fetch_detail(region, geoid):
            return make_detail(region, geoid)

        async def scenario():
            session = DashboardSession(fetch_region=fetch_region, fetch_detail=fetch_detail)
            await session.select_region("Texas")
            await session.click_feature({"selection": {"points": [{"location": clicked}]}})
            return session

        session = asyncio.run(scenario())
        assert len(session.features) == 5000
        assert len(session.map_figure.data[0].locations) == 5000
        assert session.selection == clicked
        assert set(session.detail.frame["GEOID"]) == {clicked}
        bars = session.chart_figure.data[0]
        assert len(bars.x) == 18
        assert bars.x[0] == "0-4"
        assert bars.x[-1] == "85+"
