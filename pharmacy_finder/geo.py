"""
Pharmacy Finder — Geographic Configuration

Supported countries, their region codes, sanity bounding boxes and
centroids, plus the small major-city lookup table used as a geocoding
fallback when no provider is configured.
"""

from __future__ import annotations

from dataclasses import dataclass


US_STATES: tuple[str, ...] = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)

CA_PROVINCES: tuple[str, ...] = (
    "AB", "BC", "MB", "NB", "NL", "NS", "NT", "NU", "ON", "PE", "QC", "SK", "YT",
)


@dataclass(frozen=True)
class CountryConfig:
    code: str
    name: str
    regions: tuple[str, ...]
    region_label: str


GEOGRAPHIC_CONFIG: dict[str, CountryConfig] = {
    "us": CountryConfig(code="us", name="United States", regions=US_STATES, region_label="State"),
    "ca": CountryConfig(code="ca", name="Canada", regions=CA_PROVINCES, region_label="Province"),
}

SUPPORTED_COUNTRIES = tuple(GEOGRAPHIC_CONFIG)

# (min_lat, max_lat, min_lng, max_lng); generous enough for AK, HI and the territories
COUNTRY_BOUNDS: dict[str, tuple[float, float, float, float]] = {
    "us": (18.9, 71.4, -179.2, -66.9),
    "ca": (41.7, 83.1, -141.0, -52.6),
}

COUNTRY_CENTROIDS: dict[str, tuple[float, float]] = {
    "us": (39.8283, -98.5795),
    "ca": (56.1304, -106.3468),
}

# Lowercase city name → (lat, lng). Matched by substring, first hit wins.
MAJOR_CITIES: list[tuple[str, tuple[float, float]]] = [
    ("los angeles", (34.0522, -118.2437)),
    ("san francisco", (37.7749, -122.4194)),
    ("san diego", (32.7157, -117.1611)),
    ("sacramento", (38.5816, -121.4944)),
    ("new york", (40.7128, -74.0060)),
    ("chicago", (41.8781, -87.6298)),
    ("houston", (29.7604, -95.3698)),
    ("phoenix", (33.4484, -112.0740)),
    ("seattle", (47.6062, -122.3321)),
    ("miami", (25.7617, -80.1918)),
    ("toronto", (43.6532, -79.3832)),
    ("montreal", (45.5017, -73.5673)),
    ("vancouver", (49.2827, -123.1207)),
    ("calgary", (51.0447, -114.0719)),
    ("ottawa", (45.4215, -75.6972)),
    ("edmonton", (53.5461, -113.4938)),
]


def validate_country_region(country: str | None, region: str | None = None) -> bool:
    """
    Return True when `country` is supported and `region` (optional) is one
    of its region codes. Region comparison is case-insensitive.
    """
    if not country or country not in GEOGRAPHIC_CONFIG:
        return False
    if not region:
        return True
    return region.upper() in GEOGRAPHIC_CONFIG[country].regions


def lookup_major_city(text: str) -> tuple[float, float] | None:
    """Case-insensitive substring match against the major-city table."""
    lowered = text.lower()
    for city, coords in MAJOR_CITIES:
        if city in lowered:
            return coords
    return None
