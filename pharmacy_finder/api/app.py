"""
Pharmacy Finder API

Dual-mode FastAPI server:
  • Database mode: reads from PostgreSQL when available
  • JSON fallback: reads from the JSON tables under PF_DATA_DIR otherwise

Usage:
    uvicorn pharmacy_finder.api.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__, db, store
from .routes import analytics, appointments, health, pharmacies, regions

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Pharmacy Finder",
    version=__version__,
    description="Proximity search over the pharmacy directory, MedMe partners and national datasets",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(regions.router)
app.include_router(pharmacies.router)
app.include_router(analytics.router)
app.include_router(appointments.router)

app.state.server_started_at = datetime.now(timezone.utc)


@app.on_event("startup")
async def startup():
    # Always load JSON (fallback data)
    store.load_tables()
    app.state.server_started_at = datetime.now(timezone.utc)
    if db.init_pool():
        logger.info("Running in DATABASE mode")
    else:
        logger.info("Running in JSON FALLBACK mode")


@app.on_event("shutdown")
async def shutdown():
    db.close_pool()
