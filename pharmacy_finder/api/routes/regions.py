"""Supported countries and their regions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from ...geo import GEOGRAPHIC_CONFIG, validate_country_region

router = APIRouter()


@router.get("/api/regions")
async def list_regions() -> dict[str, Any]:
    return {
        "countries": [
            {
                "code": cfg.code,
                "name": cfg.name,
                "region_label": cfg.region_label,
                "regions": list(cfg.regions),
            }
            for cfg in GEOGRAPHIC_CONFIG.values()
        ]
    }


@router.get("/api/regions/validate")
async def validate_region(
    country: str = Query(..., description="Country code"),
    region: str | None = Query(None, description="State or province code"),
) -> dict[str, Any]:
    return {
        "country": country,
        "region": region,
        "valid": validate_country_region(country, region),
    }
