"""
Pharmacy Finder — Data-Source Adapters

One adapter per pharmacy table. Each exposes `search`, `get_by_id` and
`get_nearby` returning raw rows, plus `to_pharmacy` to normalise a row into
a `Pharmacy`. A radius search pushes its bounding box down into the SQL
WHERE clause so the database does the coarse filtering; in JSON fallback
mode the same predicates run over the in-memory table snapshot.

Country bulk datasets are selected with `create_pharmacy_adapter(country)`,
which raises `UnsupportedCountryError` for anything but "us" and "ca".
"""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any

from .. import db, store
from ..algorithms.geo_proximity import bounding_box
from .models import (
    SOURCE_CA_BULK,
    SOURCE_REGULAR,
    SOURCE_US_BULK,
    Address,
    Pharmacy,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50

_STATE_ZIP_RE = re.compile(r"^(.+?)\s+(\d{5}(?:-\d{4})?|[A-Za-z]\d[A-Za-z]\s?\d[A-Za-z]\d)$")


class UnsupportedCountryError(ValueError):
    """Raised when an adapter is requested for a country with no dataset."""


@dataclass
class PharmacySearchParams:
    q: str | None = None
    region: str | None = None
    services: list[str] | None = None
    lat: float | None = None
    lng: float | None = None
    radius_km: float | None = None
    limit: int | None = DEFAULT_LIMIT

    @property
    def center_scale(self) -> float:
        """Longitude degrees shrink with latitude; scale them for planar ordering."""
        return math.cos(math.radians(self.lat or 0.0))

    @property
    def bbox(self) -> tuple[float, float, float, float] | None:
        if self.lat is None or self.lng is None or not self.radius_km:
            return None
        return bounding_box(self.lat, self.lng, self.radius_km)


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------


def to_float(value: Any) -> float | None:
    """Parse a coordinate that may arrive as text; blank and 0 mean missing."""
    if value is None or value == "":
        return None
    try:
        f = float(value)
    except (TypeError, ValueError):
        return None
    return f if f != 0 else None


def parse_services(value: Any) -> list[str] | None:
    """Services column may be a list, a JSON-encoded list, or NULL."""
    if value is None:
        return None
    if isinstance(value, list):
        return [str(s) for s in value]
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return [s.strip() for s in value.split(",") if s.strip()]
        if isinstance(parsed, list):
            return [str(s) for s in parsed]
    return None


def service_matches(pharmacy_services: list[str] | None, requested: list[str]) -> bool:
    """
    True if the pharmacy offers any requested service.

    No service data at all counts as a match (include for now). Matching
    is a case-insensitive substring test in both directions.
    """
    if pharmacy_services is None:
        return True
    for have in pharmacy_services:
        have_lower = have.lower()
        for want in requested:
            want_lower = want.lower()
            if want_lower in have_lower or have_lower in want_lower:
                return True
    return False


def wanted_services(services: list[str] | None) -> list[str]:
    return [s for s in (services or []) if s and s.strip()]


def parse_address(raw: str | None) -> Address:
    """Split "line1, city, STATE ZIP" into components; keeps the raw string."""
    if not raw:
        return Address()
    parts = [p.strip() for p in raw.split(",")]
    line1 = parts[0] if parts else ""
    city = parts[1] if len(parts) > 1 else ""
    region_zip = parts[2] if len(parts) > 2 else ""
    m = _STATE_ZIP_RE.match(region_zip)
    region = m.group(1) if m else region_zip
    postal_code = m.group(2) if m else ""
    return Address(line1=line1, city=city, region=region, postal_code=postal_code, raw=raw)


# ---------------------------------------------------------------------------
# Adapter base
# ---------------------------------------------------------------------------


class PharmacyDataAdapter:
    """
    Table-backed adapter. Subclasses set the table and column names and
    implement `to_pharmacy`.
    """

    table: str = ""
    id_column: str = "id"
    name_column: str = "name"
    lat_column: str = "latitude"
    lng_column: str = "longitude"
    region_column: str | None = None

    def search(self, params: PharmacySearchParams) -> list[dict[str, Any]]:
        if db.is_available():
            return self._db_search(params)
        return self._json_search(params)

    def get_by_id(self, pharmacy_id: str) -> dict[str, Any] | None:
        if db.is_available():
            return db.fetch_one(
                f"SELECT * FROM {self.table} WHERE {self.id_column}::text = %s",
                (str(pharmacy_id),),
            )
        for row in store.get_table(self.table):
            if str(row.get(self.id_column)) == str(pharmacy_id):
                return dict(row)
        return None

    def get_nearby(self, lat: float, lng: float, radius_km: float) -> list[dict[str, Any]]:
        return self.search(PharmacySearchParams(lat=lat, lng=lng, radius_km=radius_km))

    def to_pharmacy(self, row: dict[str, Any]) -> Pharmacy:
        raise NotImplementedError

    # -- database --------------------------------------------------------

    def _db_search(self, params: PharmacySearchParams) -> list[dict[str, Any]]:
        conditions: list[str] = []
        values: list[Any] = []

        if params.q:
            conditions.append(f"{self.name_column} ILIKE %s")
            values.append(f"%{params.q}%")
        if params.region and self.region_column:
            conditions.append(f"{self.region_column} ILIKE %s")
            values.append(params.region)

        bbox = params.bbox
        if bbox is not None:
            min_lat, max_lat, min_lng, max_lng = bbox
            conditions.append(f"{self.lat_column}::float8 BETWEEN %s AND %s")
            conditions.append(f"{self.lng_column}::float8 BETWEEN %s AND %s")
            values.extend([min_lat, max_lat, min_lng, max_lng])

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        sql = f"SELECT * FROM {self.table} {where}"
        if bbox is not None:
            # Nearest first, so a LIMIT keeps the rows closest to the center
            sql += (
                f" ORDER BY power({self.lat_column}::float8 - %s, 2)"
                f" + power(({self.lng_column}::float8 - %s) * %s, 2)"
            )
            values.extend([params.lat, params.lng, params.center_scale])
        else:
            sql += f" ORDER BY {self.name_column}"

        # Services are matched loosely in Python, so the limit follows them
        services = wanted_services(params.services)
        if params.limit and not services:
            sql += " LIMIT %s"
            values.append(params.limit)

        rows = db.fetch_all(sql, values)
        if services:
            rows = [r for r in rows if self._offers(r, services)]
            if params.limit:
                rows = rows[: params.limit]
        return rows

    # -- JSON fallback ---------------------------------------------------

    def _json_search(self, params: PharmacySearchParams) -> list[dict[str, Any]]:
        rows = store.get_table(self.table)
        q_lower = params.q.lower() if params.q else None
        region_lower = params.region.lower() if params.region else None
        bbox = params.bbox
        services = wanted_services(params.services)

        results = []
        for row in rows:
            if services and not self._offers(row, services):
                continue
            if q_lower and q_lower not in (row.get(self.name_column) or "").lower():
                continue
            if region_lower and self.region_column:
                if (row.get(self.region_column) or "").lower() != region_lower:
                    continue
            if bbox is not None:
                lat = to_float(row.get(self.lat_column))
                lng = to_float(row.get(self.lng_column))
                if lat is None or lng is None:
                    continue
                min_lat, max_lat, min_lng, max_lng = bbox
                if not (min_lat <= lat <= max_lat and min_lng <= lng <= max_lng):
                    continue
            results.append(dict(row))

        if bbox is not None:
            results.sort(key=lambda r: self._planar_distance(r, params))
        else:
            results.sort(key=lambda r: (r.get(self.name_column) or "").lower())
        if params.limit:
            results = results[: params.limit]
        return results

    def _offers(self, row: dict[str, Any], services: list[str]) -> bool:
        return service_matches(parse_services(row.get("services")), services)

    def _planar_distance(self, row: dict[str, Any], params: PharmacySearchParams) -> float:
        lat = to_float(row.get(self.lat_column)) or 0.0
        lng = to_float(row.get(self.lng_column)) or 0.0
        return (lat - params.lat) ** 2 + ((lng - params.lng) * params.center_scale) ** 2


# ---------------------------------------------------------------------------
# Concrete adapters
# ---------------------------------------------------------------------------


class RegularPharmacySource(PharmacyDataAdapter):
    """Base pharmacy directory (`pharmacies`)."""

    table = "pharmacies"
    region_column = "state"

    def to_pharmacy(self, row: dict[str, Any]) -> Pharmacy:
        address = parse_address(row.get("address"))
        if row.get("city"):
            address.city = row["city"]
        if row.get("state"):
            address.region = row["state"]
        if row.get("zip_code"):
            address.postal_code = str(row["zip_code"])
        return Pharmacy(
            id=str(row["id"]),
            name=row.get("name") or "Unknown Pharmacy",
            source=SOURCE_REGULAR,
            address=address,
            latitude=to_float(row.get("latitude")),
            longitude=to_float(row.get("longitude")),
            phone=row.get("phone"),
            website=row.get("website"),
            services=parse_services(row.get("services")),
            image=row.get("image"),
        )


class USPharmacyAdapter(PharmacyDataAdapter):
    """US bulk dataset (`us_pharmacy_data`)."""

    table = "us_pharmacy_data"
    lat_column = "lat"
    lng_column = "lng"
    region_column = "state_code"

    def to_pharmacy(self, row: dict[str, Any]) -> Pharmacy:
        address = parse_address(row.get("address"))
        if not address.region and row.get("state_name"):
            address.region = row["state_name"]
        if not address.postal_code and row.get("zip_code") is not None:
            address.postal_code = str(row["zip_code"])
        return Pharmacy(
            id=str(row["id"]),
            name=row.get("name") or "Unknown Pharmacy",
            source=SOURCE_US_BULK,
            address=address,
            latitude=to_float(row.get("lat")),
            longitude=to_float(row.get("lng")),
            phone=row.get("phone"),
            website=row.get("website"),
            image=row.get("image"),
        )


class CAPharmacyAdapter(PharmacyDataAdapter):
    """Canadian bulk dataset (`ca_pharmacy_data`)."""

    table = "ca_pharmacy_data"
    region_column = "province_code"

    def to_pharmacy(self, row: dict[str, Any]) -> Pharmacy:
        line1 = row.get("street_address") or (
            f"{row.get('street_number') or ''} {row.get('street_name') or ''}".strip()
        )
        address = Address(
            line1=line1,
            city=row.get("city") or "",
            region=row.get("province_code") or row.get("province") or "",
            postal_code=row.get("postal_code") or "",
        )
        return Pharmacy(
            id=str(row["id"]),
            name=row.get("name") or "Unknown Pharmacy",
            source=SOURCE_CA_BULK,
            address=address,
            latitude=to_float(row.get("latitude")),
            longitude=to_float(row.get("longitude")),
            phone=row.get("phone"),
            website=row.get("website"),
            image=row.get("image"),
        )


class MedMeLinkSource:
    """MedMe linkage table (`medme_pharmacy_links`: pharmacy_id → is_active)."""

    table = "medme_pharmacy_links"

    def active_ids(self) -> set[str]:
        if db.is_available():
            rows = db.fetch_all(
                f"SELECT pharmacy_id FROM {self.table} WHERE is_active IS TRUE"
            )
        else:
            rows = [r for r in store.get_table(self.table) if r.get("is_active", True)]
        return {str(r["pharmacy_id"]) for r in rows}

    def is_connected(self, pharmacy_id: str) -> bool:
        return str(pharmacy_id) in self.active_ids()


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_ADAPTERS: dict[str, type[PharmacyDataAdapter]] = {
    "us": USPharmacyAdapter,
    "ca": CAPharmacyAdapter,
}


def create_pharmacy_adapter(country: str) -> PharmacyDataAdapter:
    """Return the bulk-dataset adapter for `country`; unknown codes raise."""
    try:
        adapter_cls = _ADAPTERS[country]
    except KeyError:
        raise UnsupportedCountryError(f"Unsupported country: {country}") from None
    return adapter_cls()
