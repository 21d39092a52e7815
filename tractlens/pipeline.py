"""Headless run of the map → click → chart pipeline.

Run with:  python -m tractlens.pipeline Delaware 10003014500 --out output
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from tractlens.session import DashboardSession, SessionState

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


async def run_session(session: DashboardSession, state: str, geoid: str | None = None) -> DashboardSession:
    """Drive *session* through a state selection and an optional tract click."""
    await session.select_region(state)
    if session.state is SessionState.REGION_FAILED:
        return session
    if geoid is not None:
        await session.click_feature(geoid)
    return session


def run_pipeline(state: str, geoid: str | None = None, out_dir: str | Path = "output") -> dict[str, Path]:
    """Fetch, render and write the figures. Returns the written paths."""
    session = asyncio.run(run_session(DashboardSession(), state, geoid))
    if session.notice:
        logger.warning(session.notice)

    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: dict[str, Path] = {}

    if session.map_figure is not None:
        written["map"] = out / "map.html"
        session.map_figure.write_html(written["map"], include_plotlyjs="cdn")
    if session.detail is not None:
        written["chart"] = out / "chart.html"
        session.chart_figure.write_html(written["chart"], include_plotlyjs="cdn")

    logger.info("=== %s ===", session.selection_text)
    for name, path in written.items():
        logger.info("Wrote %s to %s", name, path)
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Render a state's tract map and a tract's age profile.")
    parser.add_argument("state", help="State name, USPS abbreviation or FIPS code")
    parser.add_argument("geoid", nargs="?", help="11-digit tract GEOID to chart")
    parser.add_argument("--out", default="output", help="Output directory (default: output)")
    args = parser.parse_args(argv)
    written = run_pipeline(args.state, args.geoid, args.out)
    return 0 if written else 1


if __name__ == "__main__":
    raise SystemExit(main())
