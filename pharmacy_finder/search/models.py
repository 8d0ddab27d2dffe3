"""Data types shared across the search pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

# Source tags
SOURCE_REGULAR = "regular"
SOURCE_MEDME = "medme"
SOURCE_US_BULK = "us-bulk"
SOURCE_CA_BULK = "ca-bulk"

PHARMACY_SOURCES = (SOURCE_REGULAR, SOURCE_MEDME, SOURCE_US_BULK, SOURCE_CA_BULK)


@dataclass
class Address:
    line1: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    raw: str | None = None

    def display(self) -> str:
        """One-line address, preferring the raw unparsed string."""
        if self.raw:
            return self.raw
        parts = [self.line1, self.city, " ".join(p for p in (self.region, self.postal_code) if p)]
        return ", ".join(p for p in parts if p)


@dataclass
class HoursInfo:
    is_open: bool
    hours: str
    status: str
    next_change: str


@dataclass
class DisplayData:
    """Synthesized, non-authoritative presentation fields."""
    rating: float
    reviews: int
    is_available: bool
    services: list[str]
    next_available: str
    hours: HoursInfo
    distance: str | None = None


@dataclass
class Pharmacy:
    id: str
    name: str
    source: str
    address: Address = field(default_factory=Address)
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    website: str | None = None
    services: list[str] | None = None
    image: str | None = None
    distance_km: float | None = None
    display_data: DisplayData | None = None

    @property
    def is_medme(self) -> bool:
        return self.source == SOURCE_MEDME

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["address"]["formatted"] = self.address.display()
        data["medme_connected"] = self.is_medme
        if self.distance_km is not None:
            data["distance_km"] = round(self.distance_km, 3)
        return data


@dataclass(frozen=True)
class GeocodeResult:
    formatted_address: str
    lat: float
    lng: float
    place_id: str | None = None
    address_components: tuple[dict[str, Any], ...] = ()
    place_type: str = "address"
    relevance: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "formatted_address": self.formatted_address,
            "position": {"lat": self.lat, "lng": self.lng},
            "place_id": self.place_id,
            "address_components": list(self.address_components),
            "place_type": self.place_type,
            "relevance": self.relevance,
        }


@dataclass
class SearchFilters:
    """Inputs to one search invocation."""
    location: str | None = None
    radius_km: float = 50.0
    services: list[str] | None = None
    medme_only: bool = False
    country: str = "us"
    region: str | None = None
    query: str | None = None

    @property
    def service_context(self) -> str | None:
        """Service label used for analytics events."""
        if not self.services:
            return None
        return ", ".join(self.services)
