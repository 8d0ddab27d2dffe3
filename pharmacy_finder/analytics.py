"""
Pharmacy Finder — Analytics Tracking

Write-only telemetry for searches, result impressions, profile views,
booking steps and contact clicks. Rows go to `user_analytics_events` and
`pharmacy_impressions` (or the JSON fallback store when the database is
down). Tracking never raises: a failed write is logged and dropped.

All events of one process share a single session id, created on first use
and kept for the lifetime of the process.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from . import db, store

logger = logging.getLogger(__name__)

IMPRESSION_TYPES = ("view", "click_call", "click_directions", "click_website", "click_book")
BOOKING_STEPS = ("book_start", "book_confirmed")
CLICK_TYPES = ("call", "directions", "website")

# ---------------------------------------------------------------------------
# Session id (process lifetime)
# ---------------------------------------------------------------------------

_session_lock = threading.Lock()
_session_id: str | None = None


def get_session_id() -> str:
    """Return the process-wide analytics session id, creating it on first use."""
    global _session_id
    with _session_lock:
        if _session_id is None:
            _session_id = str(uuid.uuid4())
        return _session_id


# ---------------------------------------------------------------------------
# Writers
# ---------------------------------------------------------------------------


def _insert(table: str, row: dict[str, Any]) -> None:
    if db.is_available():
        db.insert_row(table, row)
    else:
        store.get_table(table).append(
            {"id": str(uuid.uuid4()), "created_at": datetime.now(timezone.utc).isoformat(), **row}
        )


def track_event(
    event_type: str,
    *,
    event_data: dict[str, Any] | None = None,
    pharmacy_id: str | None = None,
    service_type: str | None = None,
    is_medme_pharmacy: bool = False,
    user_id: str | None = None,
) -> None:
    """Record a general user analytics event (search, booking, view...)."""
    try:
        _insert(
            "user_analytics_events",
            {
                "user_id": user_id,
                "session_id": get_session_id(),
                "event_type": event_type,
                "event_data": event_data or {},
                "pharmacy_id": pharmacy_id,
                "service_type": service_type,
                "is_medme_pharmacy": bool(is_medme_pharmacy),
            },
        )
    except Exception as e:
        logger.warning("Analytics tracking failed: %s", e)


def track_pharmacy_impression(
    pharmacy_id: str,
    impression_type: str,
    *,
    service_context: str | None = None,
    is_medme_pharmacy: bool = False,
    metadata: dict[str, Any] | None = None,
    user_id: str | None = None,
) -> None:
    """Record a pharmacy-specific impression or interaction."""
    if impression_type not in IMPRESSION_TYPES:
        logger.warning("Ignoring unknown impression type %r", impression_type)
        return
    try:
        _insert(
            "pharmacy_impressions",
            {
                "pharmacy_id": pharmacy_id,
                "user_id": user_id,
                "session_id": get_session_id(),
                "impression_type": impression_type,
                "service_context": service_context,
                "is_medme_pharmacy": bool(is_medme_pharmacy),
                "metadata": metadata or {},
            },
        )
    except Exception as e:
        logger.warning("Pharmacy impression tracking failed: %s", e)


# ---------------------------------------------------------------------------
# Convenience events
# ---------------------------------------------------------------------------


def track_search(service_type: str | None, location: str | None, results_count: int) -> None:
    track_event(
        "search",
        event_data={"location": location or "", "results_count": results_count},
        service_type=service_type,
    )


def track_results_shown(service_type: str | None, results_count: int, medme_count: int) -> None:
    track_event(
        "results_shown",
        event_data={
            "total_results": results_count,
            "medme_results": medme_count,
            "medme_percentage": (medme_count / results_count * 100) if results_count > 0 else 0,
        },
        service_type=service_type,
    )


def track_pharmacy_view(
    pharmacy_id: str,
    is_medme_pharmacy: bool,
    service_context: str | None = None,
) -> None:
    track_event(
        "profile_view",
        pharmacy_id=pharmacy_id,
        service_type=service_context,
        is_medme_pharmacy=is_medme_pharmacy,
    )
    track_pharmacy_impression(
        pharmacy_id,
        "view",
        service_context=service_context,
        is_medme_pharmacy=is_medme_pharmacy,
    )


def track_booking_step(
    step: str,
    pharmacy_id: str,
    service_type: str,
    is_medme_pharmacy: bool,
    user_id: str | None = None,
) -> None:
    if step not in BOOKING_STEPS:
        logger.warning("Ignoring unknown booking step %r", step)
        return
    track_event(
        step,
        pharmacy_id=pharmacy_id,
        service_type=service_type,
        is_medme_pharmacy=is_medme_pharmacy,
        user_id=user_id,
    )
    track_pharmacy_impression(
        pharmacy_id,
        "click_book",
        service_context=service_type,
        is_medme_pharmacy=is_medme_pharmacy,
        metadata={"step": step},
        user_id=user_id,
    )


def track_pharmacy_click(
    click_type: str,
    pharmacy_id: str,
    is_medme_pharmacy: bool,
    service_context: str | None = None,
) -> None:
    if click_type not in CLICK_TYPES:
        logger.warning("Ignoring unknown click type %r", click_type)
        return
    track_pharmacy_impression(
        pharmacy_id,
        f"click_{click_type}",
        service_context=service_context,
        is_medme_pharmacy=is_medme_pharmacy,
    )
