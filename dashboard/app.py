"""TractLens: Streamlit median age explorer.

Run with:  streamlit run dashboard/app.py
"""

from __future__ import annotations

import asyncio
import io
from typing import Any

import pandas as pd
import streamlit as st

from tractlens.api.cache import DEFAULT_TTL
from tractlens.fetchers import fetch_detail_dataset, fetch_region_dataset
from tractlens.ingestion.states import STATE_NAMES, resolve_state
from tractlens.processing.transformer import summarize_values, tract_table
from tractlens.session import DashboardSession, SessionState, extract_feature_id

DEFAULT_STATE = "Delaware"

st.set_page_config(
    page_title="Median age explorer",
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded",
)


# Shared across sessions: fetch results only, never session state
@st.cache_resource(ttl=DEFAULT_TTL, show_spinner=False)
def load_region(state: str):
    return fetch_region_dataset(state)


@st.cache_resource(ttl=DEFAULT_TTL, show_spinner=False)
def load_detail(state: str, geoid: str):
    return fetch_detail_dataset(state, geoid)


def get_session() -> DashboardSession:
    if "session" not in st.session_state:
        st.session_state["session"] = DashboardSession(
            fetch_region=load_region,
            fetch_detail=load_detail,
        )
    return st.session_state["session"]


def download_button_csv(df: pd.DataFrame, filename: str, label: str = "Download CSV"):
    """Render a CSV download button."""
    buf = io.BytesIO()
    df.to_csv(buf, index=False)
    st.download_button(label, buf.getvalue(), file_name=filename, mime="text/csv")


def download_button_excel(df: pd.DataFrame, filename: str, label: str = "Download Excel"):
    """Render an Excel download button."""
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="xlsxwriter") as writer:
        df.to_excel(writer, index=False, sheet_name="tracts")
    st.download_button(label, buf.getvalue(), file_name=filename, mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")


def clicked_geoid(event: Any, session: DashboardSession) -> str | None:
    """Tract id of a map selection event, falling back to the point index."""
    geoid = extract_feature_id(event)
    if geoid is not None or not event:
        return geoid
    points = (event.get("selection") or {}).get("points") or []
    index = points[0].get("point_index") if points else None
    if index is None or session.features is None:
        return None
    ids = session.features.feature_ids
    return ids[index] if 0 <= index < len(ids) else None


session = get_session()

# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

st.sidebar.title("Median age explorer")
st.sidebar.markdown(
    "This app allows you to visualize median age by Census tract in a state of your choice."
)
state = st.sidebar.selectbox(
    "Select a state to map",
    STATE_NAMES,
    index=STATE_NAMES.index(DEFAULT_STATE),
)
tract_text = st.sidebar.empty()
st.sidebar.markdown("---")
st.sidebar.caption(
    "Source: [US Census Bureau](https://data.census.gov), "
    "2020 Decennial Census DHC and Demographic Profile."
)

if state != session.region:
    with st.spinner(f"Loading Census tracts for {state} ..."):
        asyncio.run(session.select_region(state))

if session.state is SessionState.REGION_FAILED:
    st.warning(session.notice)
    if st.button("Retry"):
        with st.spinner(f"Loading Census tracts for {state} ..."):
            asyncio.run(session.select_region(state))

# ---------------------------------------------------------------------------
# Map
# ---------------------------------------------------------------------------

if session.map_figure is not None:
    summary = summarize_values(session.features)
    c1, c2, c3 = st.columns(3)
    c1.metric("Tracts", f"{summary['count']:,}")
    c2.metric("Youngest tract (median)", summary["min"] if summary["min"] is not None else "–")
    c3.metric("Oldest tract (median)", summary["max"] if summary["max"] is not None else "–")

    # One widget per state, so a selection on the previous map is not replayed
    event = st.plotly_chart(
        session.map_figure,
        use_container_width=True,
        on_select="rerun",
        selection_mode="points",
        key=f"map-{resolve_state(session.region).abbr}",
    )

    click_key = repr(event.get("selection")) if event else None
    if click_key and click_key != st.session_state.get("last_click"):
        st.session_state["last_click"] = click_key
        geoid = clicked_geoid(event, session)
        if geoid is not None:
            with st.spinner(f"Loading age profile for tract {geoid} ..."):
                asyncio.run(session.click_feature(geoid))

# ---------------------------------------------------------------------------
# Chart
# ---------------------------------------------------------------------------

tract_text.markdown(f"**{session.selection_text}**")

with st.container(border=True):
    st.subheader("Click the map to show a chart")
    if session.notice and session.state is not SessionState.REGION_FAILED:
        st.warning(session.notice)
    st.plotly_chart(session.chart_figure, use_container_width=True)

# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

if session.features is not None:
    table = tract_table(session.features)
    with st.expander("Tract data"):
        st.dataframe(table, use_container_width=True, hide_index=True)
        abbr = resolve_state(session.region).abbr.lower()
        col1, col2 = st.columns(2)
        with col1:
            download_button_csv(table, f"{abbr}_median_age.csv")
        with col2:
            download_button_excel(table, f"{abbr}_median_age.xlsx")
