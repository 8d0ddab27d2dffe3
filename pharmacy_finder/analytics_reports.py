"""
Pharmacy Finder — Analytics Reports

Read side of the telemetry written by `pharmacy_finder.analytics`: the
aggregations behind the analytics dashboard. Every report covers a trailing
window ("7d", "30d" or "90d") ending now.

Rows are read from Postgres when available, otherwise from the JSON
fallback tables, and aggregated in Python the same way in both modes.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable

from . import db, store
from .search.adapters import RegularPharmacySource

logger = logging.getLogger(__name__)

DATE_RANGES: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90}
DEFAULT_RANGE = "30d"

CLICK_IMPRESSIONS = ("click_call", "click_directions", "click_website", "click_book")

FUNNEL_STEPS: tuple[tuple[str, str], ...] = (
    ("search", "Search"),
    ("results_shown", "Results Viewed"),
    ("profile_view", "Profile Viewed"),
    ("book_start", "Booking Started"),
    ("book_confirmed", "Booking Confirmed"),
)

TOP_SERVICES_LIMIT = 10
TOP_PHARMACIES_LIMIT = 20
TOP_LOCATIONS_LIMIT = 20


# ---------------------------------------------------------------------------
# Windows and rounding
# ---------------------------------------------------------------------------


def range_days(date_range: str) -> int:
    try:
        return DATE_RANGES[date_range]
    except KeyError:
        raise ValueError(
            f"Invalid date range '{date_range}'. Valid ranges: {list(DATE_RANGES)}"
        ) from None


def range_start(date_range: str, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=range_days(date_range))


def _round(value: float, places: int = 0) -> float | int:
    """Round half away from zero (the dashboard's rounding), not to even."""
    exp = Decimal(1).scaleb(-places)
    rounded = Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP)
    return int(rounded) if places == 0 else float(rounded)


def _percent(part: int, whole: int, places: int = 0) -> float | int:
    return _round(part / whole * 100, places) if whole > 0 else 0


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Row access
# ---------------------------------------------------------------------------


def _rows(table: str, start: datetime, end: datetime | None = None) -> list[dict[str, Any]]:
    """Rows of `table` created in [start, end)."""
    if db.is_available():
        sql = f"SELECT * FROM {table} WHERE created_at >= %s"
        params: list[Any] = [start]
        if end is not None:
            sql += " AND created_at < %s"
            params.append(end)
        return db.fetch_all(sql + " ORDER BY created_at", params)

    rows = []
    for row in store.get_table(table):
        created = _as_datetime(row.get("created_at"))
        if created is None or created < start:
            continue
        if end is not None and created >= end:
            continue
        rows.append(row)
    return rows


def _events(start: datetime, end: datetime | None = None) -> list[dict[str, Any]]:
    return _rows("user_analytics_events", start, end)


def _impressions(start: datetime, end: datetime | None = None) -> list[dict[str, Any]]:
    return _rows("pharmacy_impressions", start, end)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def top_services(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> list[dict]:
    """Most searched services, with each one's share of service searches."""
    start = range_start(date_range, now)
    counts = Counter(
        e["service_type"]
        for e in _events(start)
        if e.get("event_type") == "search" and e.get("service_type")
    )
    total = sum(counts.values())
    return [
        {"service_type": service, "search_count": n, "percentage": _percent(n, total)}
        for service, n in counts.most_common(TOP_SERVICES_LIMIT)
    ]


def medme_metrics(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> dict:
    """
    Share of pharmacy impressions that went to MedMe pharmacies.

    `trend` is the change in percentage points against the window of the
    same length immediately before this one.
    """
    now = now or datetime.now(timezone.utc)
    start = range_start(date_range, now)
    previous_start = start - timedelta(days=range_days(date_range))

    current = _impressions(start)
    medme = sum(1 for i in current if i.get("is_medme_pharmacy"))
    click_percentage = _percent(medme, len(current))

    previous = _impressions(previous_start, start)
    previous_medme = sum(1 for i in previous if i.get("is_medme_pharmacy"))
    previous_percentage = previous_medme / len(previous) * 100 if previous else 0

    return {
        "total_impressions": len(current),
        "medme_impressions": medme,
        "click_percentage": click_percentage,
        "trend": _round(click_percentage - previous_percentage, 1),
    }


def booking_funnel(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> list[dict]:
    """
    Sessions reaching each booking step. Percentages are relative to the
    sessions that searched.
    """
    start = range_start(date_range, now)
    funnel_types = {event_type for event_type, _ in FUNNEL_STEPS}
    by_session: dict[str, set[str]] = defaultdict(set)
    for e in _events(start):
        if e.get("event_type") in funnel_types:
            by_session[str(e.get("session_id"))].add(e["event_type"])

    counts = {
        event_type: sum(1 for seen in by_session.values() if event_type in seen)
        for event_type, _ in FUNNEL_STEPS
    }
    searched = counts["search"]
    return [
        {"step": label, "count": counts[event_type], "percentage": _percent(counts[event_type], searched)}
        for event_type, label in FUNNEL_STEPS
    ]


def _pharmacy_name(pharmacy_id: str, lookup: Callable[[str], dict | None]) -> str:
    row = lookup(pharmacy_id)
    if row and row.get("name"):
        return row["name"]
    return f"Pharmacy {pharmacy_id[:8]}"


def pharmacy_performance(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> list[dict]:
    """Impressions, clicks, bookings and conversion rate per pharmacy, busiest first."""
    start = range_start(date_range, now)
    metrics: dict[str, dict[str, Any]] = {}

    for imp in _impressions(start):
        pharmacy_id = imp.get("pharmacy_id")
        if not pharmacy_id:
            continue
        pharmacy_id = str(pharmacy_id)
        m = metrics.setdefault(
            pharmacy_id,
            {
                "pharmacy_id": pharmacy_id,
                "total_impressions": 0,
                "total_clicks": 0,
                "bookings": 0,
                "is_medme": bool(imp.get("is_medme_pharmacy")),
            },
        )
        m["total_impressions"] += 1
        if imp.get("impression_type") in CLICK_IMPRESSIONS:
            m["total_clicks"] += 1

    for e in _events(start):
        pharmacy_id = e.get("pharmacy_id")
        if e.get("event_type") == "book_confirmed" and pharmacy_id and str(pharmacy_id) in metrics:
            metrics[str(pharmacy_id)]["bookings"] += 1

    ranked = sorted(metrics.values(), key=lambda m: m["total_impressions"], reverse=True)
    ranked = ranked[:TOP_PHARMACIES_LIMIT]

    directory = RegularPharmacySource()
    for m in ranked:
        m["pharmacy_name"] = _pharmacy_name(m["pharmacy_id"], directory.get_by_id)
        m["conversion_rate"] = _percent(m["bookings"], m["total_impressions"], 1)
    return ranked


def search_locations(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> list[dict]:
    """Most searched location strings."""
    start = range_start(date_range, now)
    counts: Counter[str] = Counter()
    for e in _events(start):
        if e.get("event_type") != "search":
            continue
        location = (e.get("event_data") or {}).get("location")
        if isinstance(location, str) and location.strip():
            counts[location.strip()] += 1
    return [
        {"location": location, "search_count": n}
        for location, n in counts.most_common(TOP_LOCATIONS_LIMIT)
    ]


def activity_over_time(date_range: str = DEFAULT_RANGE, now: datetime | None = None) -> dict:
    """
    Searches, profile views and booking starts by UTC hour of day and by
    day. `growth_rate` compares the last three active days to the first three.
    """
    start = range_start(date_range, now)
    hourly: Counter[int] = Counter()
    daily: Counter[str] = Counter()
    for e in _events(start):
        if e.get("event_type") not in ("search", "profile_view", "book_start"):
            continue
        created = _as_datetime(e.get("created_at"))
        if created is None:
            continue
        created = created.astimezone(timezone.utc)
        hourly[created.hour] += 1
        daily[created.date().isoformat()] += 1

    daily_data = [{"date": day, "activity": n} for day, n in sorted(daily.items())]
    recent = sum(d["activity"] for d in daily_data[-3:])
    earlier = sum(d["activity"] for d in daily_data[:3])
    growth_rate = (recent - earlier) / earlier * 100 if earlier > 0 else 0

    return {
        "hourly_data": [{"hour": h, "activity": hourly.get(h, 0)} for h in range(24)],
        "daily_data": daily_data,
        "growth_rate": _round(growth_rate, 1),
    }
