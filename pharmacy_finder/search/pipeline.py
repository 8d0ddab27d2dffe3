"""
Pharmacy Finder — Result Merger / Filter

Combines the base directory, the MedMe linkage and the country bulk
dataset into one ranked result list:

    1. Fetch each source independently; a failing source contributes [],
       and the search fails only when every source does
    2. Tag directory rows as "medme" (linked) or "regular"
    3. Drop bulk rows that duplicate a MedMe-branded listing
    4. medme_only keeps MedMe rows and skips the bulk dataset entirely
    5. Location → exact radius filter sorted by distance, or a text match
       when the location could not be geocoded
    6. No location → alphabetical by name
    7. Service filter (inclusive for pharmacies without service data)

An empty list is a valid result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Iterable

from ..algorithms.geo_proximity import Coordinate, filter_within_radius
from ..algorithms.name_similarity import matches_known_name
from .adapters import (
    MedMeLinkSource,
    PharmacyDataAdapter,
    PharmacySearchParams,
    RegularPharmacySource,
    service_matches,
    wanted_services,
)
from .models import SOURCE_MEDME, SOURCE_REGULAR, Pharmacy, SearchFilters

logger = logging.getLogger(__name__)

PARTNER_LOGO_PATH = "/assets/medme-logo.svg"

# Chain and banner names that only ever list through the MedMe linkage
KNOWN_MEDME_NAMES: tuple[str, ...] = (
    "MedMe Pharmacy",
    "MedMe Health Pharmacy",
)

# Bulk datasets are large; the radius filter trims further
BULK_FETCH_LIMIT = 500


class SearchUnavailableError(RuntimeError):
    """Raised when no pharmacy source could be fetched at all."""


# ---------------------------------------------------------------------------
# Step 1: concurrent fetch
# ---------------------------------------------------------------------------


async def fetch_sources(fetchers: dict[str, Callable[[], Any]]) -> dict[str, Any]:
    """
    Run each fetcher in a worker thread and collect results by name.

    A fetcher that raises is logged and yields an empty list so that
    partial results still reach the caller. If every fetcher raises there
    is nothing to merge, and `SearchUnavailableError` is raised from the
    first failure.
    """
    names = list(fetchers)
    outcomes = await asyncio.gather(
        *(asyncio.to_thread(fetchers[name]) for name in names),
        return_exceptions=True,
    )

    failures = [o for o in outcomes if isinstance(o, BaseException)]
    if failures and len(failures) == len(outcomes):
        raise SearchUnavailableError(
            f"Pharmacy data is unavailable right now: {failures[0]}"
        ) from failures[0]

    results: dict[str, Any] = {}
    for name, outcome in zip(names, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("Source %s failed, continuing without it: %s", name, outcome)
            results[name] = []
        else:
            results[name] = outcome
    return results


# ---------------------------------------------------------------------------
# Steps 2-7: pure transforms
# ---------------------------------------------------------------------------


def tag_regular_pharmacies(pharmacies: list[Pharmacy], medme_ids: set[str]) -> list[Pharmacy]:
    """Mark linked directory rows as MedMe and give them the partner logo."""
    for p in pharmacies:
        if p.id in medme_ids:
            p.source = SOURCE_MEDME
            p.image = PARTNER_LOGO_PATH
        else:
            p.source = SOURCE_REGULAR
    return pharmacies


def exclude_medme_duplicates(
    bulk: list[Pharmacy],
    medme_names: Iterable[str],
) -> list[Pharmacy]:
    """Drop bulk rows whose name or image marks them as a MedMe listing."""
    known = list(KNOWN_MEDME_NAMES) + [n for n in medme_names if n]
    kept = []
    for p in bulk:
        if p.image == PARTNER_LOGO_PATH:
            continue
        if matches_known_name(p.name, known):
            continue
        kept.append(p)
    dropped = len(bulk) - len(kept)
    if dropped:
        logger.info("Excluded %d bulk rows duplicating MedMe listings", dropped)
    return kept


def filter_by_text(pharmacies: list[Pharmacy], text: str) -> list[Pharmacy]:
    """Case-insensitive substring match on name or address."""
    needle = text.lower()
    return [
        p for p in pharmacies
        if needle in p.name.lower() or needle in p.address.display().lower()
    ]


def sort_by_name(pharmacies: list[Pharmacy]) -> list[Pharmacy]:
    return sorted(pharmacies, key=lambda p: p.name.lower())


def filter_by_services(pharmacies: list[Pharmacy], services: list[str] | None) -> list[Pharmacy]:
    wanted = wanted_services(services)
    if not wanted:
        return pharmacies
    return [p for p in pharmacies if service_matches(p.services, wanted)]


def merge_and_filter(
    regular: list[Pharmacy],
    medme_ids: set[str],
    bulk: list[Pharmacy],
    filters: SearchFilters,
    center: Coordinate | None,
) -> list[Pharmacy]:
    """
    Apply steps 2–7 to already-fetched source rows.

    `center` is the geocoded location, or None when no location was given
    or geocoding failed.
    """
    candidates = tag_regular_pharmacies(regular, medme_ids)

    if filters.medme_only:
        candidates = [p for p in candidates if p.is_medme]
    else:
        medme_names = [p.name for p in candidates if p.is_medme]
        candidates = candidates + exclude_medme_duplicates(bulk, medme_names)

    location = (filters.location or "").strip()
    if location and center is not None:
        candidates = filter_within_radius(center, candidates, filters.radius_km)
    elif location:
        candidates = sort_by_name(filter_by_text(candidates, location))
    else:
        candidates = sort_by_name(candidates)

    return filter_by_services(candidates, filters.services)


# ---------------------------------------------------------------------------
# Full pass
# ---------------------------------------------------------------------------


async def run_search(
    filters: SearchFilters,
    center: Coordinate | None,
    *,
    regular_source: RegularPharmacySource,
    link_source: MedMeLinkSource,
    bulk_adapter: PharmacyDataAdapter | None,
) -> list[Pharmacy]:
    """
    Fetch every source and merge. With a center the bounding box is pushed
    down to each table query; otherwise the tables are read in full.
    """
    params = PharmacySearchParams(q=filters.query, limit=None)
    bulk_params = PharmacySearchParams(
        q=filters.query, region=filters.region, limit=BULK_FETCH_LIMIT
    )
    if center is not None:
        for p in (params, bulk_params):
            p.lat = center.latitude
            p.lng = center.longitude
            p.radius_km = filters.radius_km

    fetchers: dict[str, Callable[[], Any]] = {
        "regular": lambda: regular_source.search(params),
        "medme_links": link_source.active_ids,
    }
    if bulk_adapter is not None and not filters.medme_only:
        fetchers["bulk"] = lambda: bulk_adapter.search(bulk_params)

    fetched = await fetch_sources(fetchers)

    regular = [regular_source.to_pharmacy(r) for r in fetched["regular"]]
    medme_ids = set(fetched["medme_links"])
    bulk = [bulk_adapter.to_pharmacy(r) for r in fetched.get("bulk", [])] if bulk_adapter else []

    return merge_and_filter(regular, medme_ids, bulk, filters, center)
