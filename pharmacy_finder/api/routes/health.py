"""Service health: storage mode, directory size, uptime."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone

import psycopg2
from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from ... import db, store
from ...geo import SUPPORTED_COUNTRIES
from ..helpers import iso

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_database() -> tuple[int, float] | None:
    """(directory count, latency ms) from Postgres, or None when it is not usable."""
    if not db.is_available():
        return None
    started = time.monotonic()
    try:
        count = db.scalar("SELECT count(*) FROM pharmacies")
    except psycopg2.Error as e:
        logger.warning("Health check query failed: %s", e)
        return None
    return int(count or 0), round((time.monotonic() - started) * 1000, 1)


@router.get("/api/health")
async def health(request: Request):
    """200 when Postgres answers, 503 while serving the JSON snapshots."""
    check = _check_database()
    if check is None:
        mode, record_count, latency_ms = "json_fallback", store.record_count(), None
    else:
        mode, (record_count, latency_ms) = "database", check

    db_ok = check is not None
    started_at = request.app.state.server_started_at
    body = {
        "status": "healthy" if db_ok else "degraded",
        "mode": mode,
        "record_count": record_count,
        "version": request.app.version,
        "database_connected": db_ok,
        "countries": list(SUPPORTED_COUNTRIES),
        "started_at": iso(started_at),
        "uptime_seconds": round((datetime.now(timezone.utc) - started_at).total_seconds()),
        "checks": {"database": {"status": "up" if db_ok else "down", "latency_ms": latency_ms}},
    }
    return JSONResponse(status_code=200 if db_ok else 503, content=body)
