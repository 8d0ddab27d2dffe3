"""Analytics endpoints: event and impression ingestion, dashboard reports."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from fastapi import APIRouter, HTTPException, Query
from starlette.responses import JSONResponse

from ... import analytics, analytics_reports
from ..helpers import iso
from ..models import AnalyticsEventRequest, PharmacyImpressionRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _range_query():
    return Query(
        analytics_reports.DEFAULT_RANGE,
        alias="range",
        description="Trailing window: 7d, 30d or 90d",
    )


@router.post("/api/analytics/events")
async def post_event(req: AnalyticsEventRequest):
    """Record a user analytics event. Tracking failures never surface to the caller."""
    analytics.track_event(
        req.event_type,
        event_data=req.event_data,
        pharmacy_id=req.pharmacy_id,
        service_type=req.service_type,
        is_medme_pharmacy=req.is_medme_pharmacy,
        user_id=req.user_id,
    )
    return JSONResponse(
        status_code=202,
        content={"status": "accepted", "session_id": analytics.get_session_id()},
    )


@router.post("/api/analytics/impressions")
async def post_impression(req: PharmacyImpressionRequest):
    """Record a pharmacy impression (view or contact/booking click)."""
    if req.impression_type not in analytics.IMPRESSION_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid impression_type '{req.impression_type}'. "
            f"Valid types: {list(analytics.IMPRESSION_TYPES)}",
        )
    analytics.track_pharmacy_impression(
        req.pharmacy_id,
        req.impression_type,
        service_context=req.service_context,
        is_medme_pharmacy=req.is_medme_pharmacy,
        metadata=req.metadata,
        user_id=req.user_id,
    )
    return JSONResponse(
        status_code=202,
        content={"status": "accepted", "session_id": analytics.get_session_id()},
    )


# ---------------------------------------------------------------------------
# Dashboard reports
# ---------------------------------------------------------------------------


def _report(name: str, build: Callable[..., Any], date_range: str) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    try:
        start = analytics_reports.range_start(date_range, now)
        data = build(date_range, now)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Failed to build %s report", name)
        raise HTTPException(status_code=500, detail=str(e))
    return {"meta": {"report": name, "range": date_range, "since": iso(start)}, "data": data}


@router.get("/api/analytics/top-services")
async def get_top_services(date_range: str = _range_query()):
    return _report("top_services", analytics_reports.top_services, date_range)


@router.get("/api/analytics/medme-metrics")
async def get_medme_metrics(date_range: str = _range_query()):
    return _report("medme_metrics", analytics_reports.medme_metrics, date_range)


@router.get("/api/analytics/booking-funnel")
async def get_booking_funnel(date_range: str = _range_query()):
    return _report("booking_funnel", analytics_reports.booking_funnel, date_range)


@router.get("/api/analytics/pharmacy-performance")
async def get_pharmacy_performance(date_range: str = _range_query()):
    return _report("pharmacy_performance", analytics_reports.pharmacy_performance, date_range)


@router.get("/api/analytics/locations")
async def get_search_locations(date_range: str = _range_query()):
    return _report("search_locations", analytics_reports.search_locations, date_range)


@router.get("/api/analytics/activity")
async def get_activity(date_range: str = _range_query()):
    return _report("activity", analytics_reports.activity_over_time, date_range)
