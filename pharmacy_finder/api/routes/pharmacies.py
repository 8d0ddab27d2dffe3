"""Pharmacy search endpoints (search, nearby, detail)."""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from ... import analytics
from ...geo import SUPPORTED_COUNTRIES, validate_country_region
from ...search.adapters import (
    MedMeLinkSource,
    PharmacyDataAdapter,
    RegularPharmacySource,
    UnsupportedCountryError,
    create_pharmacy_adapter,
)
from ...search.display_data import generate_stable_display_data
from ...search.models import SOURCE_MEDME, SearchFilters
from ...search.orchestrator import PharmacySearchSession, SearchState, SearchStatus
from ...search.pipeline import PARTNER_LOGO_PATH

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_COUNTRY = os.environ.get("PF_DEFAULT_COUNTRY", "us")


def _check_country(country: str, region: str | None = None) -> None:
    if country not in SUPPORTED_COUNTRIES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported country '{country}'. Valid countries: {list(SUPPORTED_COUNTRIES)}",
        )
    if region and not validate_country_region(country, region):
        raise HTTPException(
            status_code=400,
            detail=f"Unknown region '{region}' for country '{country}'",
        )


def _respond(state: SearchState, filters: SearchFilters) -> dict[str, Any]:
    if state.status is SearchStatus.ERROR:
        raise HTTPException(status_code=500, detail=state.error)
    body = state.to_dict()
    body["filters"] = {
        "location": filters.location,
        "radius_km": filters.radius_km,
        "services": filters.services,
        "medme_only": filters.medme_only,
        "country": filters.country,
        "region": filters.region,
        "q": filters.query,
    }
    return body


@router.get("/api/pharmacies/search")
async def search_pharmacies(
    location: str | None = Query(None, description="Address, city, or 'lat, lng'"),
    radius_km: float = Query(50.0, ge=0.1, le=500, description="Search radius in km"),
    services: list[str] | None = Query(None, description="Service filters (repeatable)"),
    medme_only: bool = Query(False, description="Only MedMe-connected pharmacies"),
    country: str = Query(DEFAULT_COUNTRY, description="Country code: us or ca"),
    region: str | None = Query(None, description="State or province code"),
    q: str | None = Query(None, description="Pharmacy name contains (case-insensitive)"),
) -> dict[str, Any]:
    """Merged, filtered search across the directory, MedMe links and the country dataset."""
    country = country.lower()
    _check_country(country, region)

    filters = SearchFilters(
        location=location,
        radius_km=radius_km,
        services=services,
        medme_only=medme_only,
        country=country,
        region=region,
        query=q,
    )
    session = PharmacySearchSession()
    state = await session.search(filters)
    return _respond(state, filters)


@router.get("/api/pharmacies/nearby")
async def nearby_pharmacies(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude"),
    radius_km: float = Query(25.0, ge=0.1, le=500, description="Search radius in km"),
    country: str = Query(DEFAULT_COUNTRY, description="Country code: us or ca"),
) -> dict[str, Any]:
    """Pharmacies within radius_km of a point, nearest first."""
    country = country.lower()
    _check_country(country)

    session = PharmacySearchSession()
    state = await session.get_nearby(lat, lng, radius_km, country=country)
    filters = SearchFilters(location=f"{lat}, {lng}", radius_km=radius_km, country=country)
    body = _respond(state, filters)
    body["center"] = {"lat": lat, "lng": lng}
    return body


def _detail(adapter: PharmacyDataAdapter, pharmacy_id: str, medme_ids: set[str] | None = None) -> dict[str, Any]:
    row = adapter.get_by_id(pharmacy_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Pharmacy not found")

    pharmacy = adapter.to_pharmacy(row)
    if medme_ids is not None and pharmacy.id in medme_ids:
        pharmacy.source = SOURCE_MEDME
        pharmacy.image = PARTNER_LOGO_PATH
    pharmacy.display_data = generate_stable_display_data(pharmacy.id, pharmacy.name, 0, datetime.now())

    analytics.track_pharmacy_view(pharmacy.id, pharmacy.is_medme)
    return {"data": pharmacy.to_dict()}


@router.get("/api/pharmacies/directory/{pharmacy_id}")
async def get_directory_pharmacy(pharmacy_id: str) -> dict[str, Any]:
    """A base-directory pharmacy, tagged MedMe when linked."""
    try:
        return _detail(RegularPharmacySource(), pharmacy_id, MedMeLinkSource().active_ids())
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Directory lookup failed")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/pharmacies/{country}/{pharmacy_id}")
async def get_country_pharmacy(country: str, pharmacy_id: str) -> dict[str, Any]:
    """A pharmacy from a country bulk dataset."""
    try:
        adapter = create_pharmacy_adapter(country.lower())
    except UnsupportedCountryError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        return _detail(adapter, pharmacy_id)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Country dataset lookup failed")
        raise HTTPException(status_code=500, detail=str(e))
