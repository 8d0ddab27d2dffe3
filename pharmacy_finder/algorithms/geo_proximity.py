"""
Pharmacy Finder — Geospatial Proximity

Great-circle distance using the Haversine formula, the coarse bounding box
that search adapters push down into SQL, and the exact in-memory radius
filter applied after rows come back.

Plain trigonometry over WGS84 degrees; no geo library is needed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM = 6371.0

# Flat-earth approximation used for query-side pre-filtering
KM_PER_DEGREE = 111.0


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 coordinate pair."""
    latitude: float
    longitude: float

    def is_within(self, bounds: tuple[float, float, float, float]) -> bool:
        """Check whether this point falls inside (min_lat, max_lat, min_lng, max_lng)."""
        min_lat, max_lat, min_lng, max_lng = bounds
        return (
            min_lat <= self.latitude <= max_lat
            and min_lng <= self.longitude <= max_lng
        )


# ---------------------------------------------------------------------------
# Core distance calculation
# ---------------------------------------------------------------------------


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Compute the great-circle distance in kilometres between two WGS84 points
    using the Haversine formula.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def haversine_km(coord_a: Coordinate, coord_b: Coordinate) -> float:
    """Haversine distance between two Coordinate objects."""
    return distance_km(coord_a.latitude, coord_a.longitude, coord_b.latitude, coord_b.longitude)


# ---------------------------------------------------------------------------
# Candidate filtering
# ---------------------------------------------------------------------------


def bounding_box(
    lat: float,
    lng: float,
    radius_km: float,
) -> tuple[float, float, float, float]:
    """
    Return a lat/lng bounding box that encloses a circle of the given radius
    around (lat, lng).

    Returns (min_lat, max_lat, min_lng, max_lng) in degrees.

    Uses 1° latitude ≈ 111 km and 1° longitude ≈ 111 km × cos(latitude).
    Meant for a simple SQL WHERE clause; the exact Haversine check runs
    afterwards.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    lng_delta = radius_km / (KM_PER_DEGREE * math.cos(math.radians(lat)))

    return (
        lat - lat_delta,
        lat + lat_delta,
        lng - lng_delta,
        lng + lng_delta,
    )


def filter_within_radius(
    center: Coordinate,
    candidates: Iterable[Any],
    radius_km: float,
) -> list[Any]:
    """
    Keep candidates within radius_km of center, sorted by distance (ascending).

    Candidates are objects exposing `latitude`, `longitude` and a writable
    `distance_km` attribute. Those without coordinates are dropped since
    they cannot be ranked or placed on a map.
    """
    nearby = []
    for cand in candidates:
        if cand.latitude is None or cand.longitude is None:
            continue
        dist = distance_km(center.latitude, center.longitude, cand.latitude, cand.longitude)
        if dist <= radius_km:
            cand.distance_km = dist
            nearby.append(cand)

    nearby.sort(key=lambda c: c.distance_km)
    return nearby
