"""TractLens: FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tractlens.api.auth import configured_keys
from tractlens.api.routes import router
from tractlens.ingestion import census
from tractlens.ingestion.datasets import VARIABLE_REGISTRY
from tractlens.ingestion.states import STATES

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if census.API_KEY is None:
        logger.info("CENSUS_API_KEY not set; using keyless Census API access")
    if not configured_keys():
        logger.info("TRACTLENS_API_KEYS not set; API is open")
    logger.info("TractLens API is ready.")
    yield
    logger.info("Shutting down TractLens API.")


app = FastAPI(
    title="TractLens",
    description=(
        "Median age by Census tract for any US state, with a per-tract "
        "age cohort breakdown from the 2020 Decennial Census."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/", tags=["Root"])
def root():
    return {
        "name": "TractLens",
        "version": "1.0.0",
        "docs": "/docs",
        "states": len(STATES),
        "variable_sets": {
            key: {"dataset": f"{vs.year}/{vs.dataset}", "variables": len(vs.variables), "unit": vs.unit}
            for key, vs in VARIABLE_REGISTRY.items()
        },
        "census_api_key": census.API_KEY is not None,
    }
