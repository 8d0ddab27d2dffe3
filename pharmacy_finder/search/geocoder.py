"""
Pharmacy Finder — Geocoder

Turns free text (an address, a city, or a "lat, lng" string produced by a
browser geolocation lookup) into a coordinate. Strategies, in order:

    1. Literal "<number>, <number>": parsed directly, no provider call
    2. Mapbox Geocoding API, when an access token is configured
    3. Substring match against the major-city table
    4. Country centroid (last resort)

Geocoding never blocks a search: provider failures are logged and the
next strategy runs. There are no retries.

Usage:
    export MAPBOX_ACCESS_TOKEN="pk...."

    geocoder = Geocoder("us")
    coord = geocoder.geocode("Los Angeles")
"""

from __future__ import annotations

import logging
import os
import re
from urllib.parse import quote

import requests

from ..algorithms.geo_proximity import Coordinate, bounding_box
from ..geo import COUNTRY_BOUNDS, COUNTRY_CENTROIDS, lookup_major_city
from .models import GeocodeResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mapbox Geocoding API
# ---------------------------------------------------------------------------

MAPBOX_GEOCODING_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places/"
REQUEST_TIMEOUT = 10

_COORDS_RE = re.compile(r"^(-?\d+\.?\d*),\s*(-?\d+\.?\d*)$")


class GeocodingError(Exception):
    """Raised by a provider when the geocoding service cannot answer."""


class MapboxGeocodingProvider:
    """Forward geocoding through the Mapbox places endpoint."""

    def __init__(self, access_token: str, session: requests.Session | None = None):
        self.access_token = access_token
        self.session = session or requests.Session()

    def search(
        self,
        query: str,
        *,
        country: str = "us",
        center: Coordinate | None = None,
        radius_km: float | None = None,
        limit: int = 5,
    ) -> list[GeocodeResult]:
        """
        Geocode `query` restricted to `country`.

        `center` biases results toward a point; with `radius_km` it also
        clips them to the enclosing bounding box.
        """
        if not query or not query.strip():
            raise ValueError("Query parameter is required")

        url = f"{MAPBOX_GEOCODING_URL}{quote(query.strip())}.json"
        params: dict[str, str | int] = {
            "access_token": self.access_token,
            "country": country,
            "limit": limit,
        }
        if center is not None:
            params["proximity"] = f"{center.longitude},{center.latitude}"
            if radius_km and radius_km > 0:
                min_lat, max_lat, min_lng, max_lng = bounding_box(
                    center.latitude, center.longitude, radius_km
                )
                params["bbox"] = f"{min_lng},{min_lat},{max_lng},{max_lat}"

        try:
            resp = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.exceptions.RequestException as e:
            raise GeocodingError(f"Geocoding request failed: {e}") from e

        if resp.status_code != 200:
            raise GeocodingError(f"Geocoding service error: HTTP {resp.status_code}")

        try:
            features = resp.json().get("features") or []
            results = [parse_feature(f) for f in features]
        except (ValueError, KeyError, TypeError, IndexError, AttributeError) as e:
            raise GeocodingError(f"Malformed geocoding response: {e!r}") from e

        logger.debug("Mapbox returned %d results for %r", len(results), query)
        return results


def parse_feature(feature: dict) -> GeocodeResult:
    """Reshape one Mapbox feature into a GeocodeResult."""
    lng, lat = feature["center"][0], feature["center"][1]
    components = tuple(
        {
            "long_name": ctx.get("text"),
            "short_name": ctx.get("short_code") or ctx.get("text"),
            "types": [str(ctx.get("id", "")).split(".")[0]],
        }
        for ctx in feature.get("context") or []
    )
    place_types = feature.get("place_type") or []
    return GeocodeResult(
        formatted_address=feature.get("place_name", ""),
        lat=float(lat),
        lng=float(lng),
        place_id=feature.get("id"),
        address_components=components,
        place_type=place_types[0] if place_types else "address",
        relevance=feature.get("relevance") or 1,
    )


def default_provider() -> MapboxGeocodingProvider | None:
    """Build the Mapbox provider when MAPBOX_ACCESS_TOKEN is set."""
    token = os.environ.get("MAPBOX_ACCESS_TOKEN")
    if not token:
        return None
    return MapboxGeocodingProvider(token)


# ---------------------------------------------------------------------------
# Strategy chain
# ---------------------------------------------------------------------------


class Geocoder:
    """
    Forgiving geocoder for one country.

    Parameters
    ----------
    country : str
        Country code ("us" or "ca") used for provider restriction, the
        sanity bounding box and the centroid fallback.
    provider : MapboxGeocodingProvider or None
        Remote provider. None skips strategy 2.
    allow_centroid : bool
        When False, an unresolvable input returns None instead of the
        country centroid, letting callers fall back to text search.
    """

    def __init__(
        self,
        country: str = "us",
        provider: MapboxGeocodingProvider | None = None,
        *,
        allow_centroid: bool = True,
    ):
        self.country = country
        self.provider = provider
        self.allow_centroid = allow_centroid

    def geocode(self, text: str | None) -> Coordinate | None:
        if not text or not text.strip():
            return None
        text = text.strip()

        m = _COORDS_RE.match(text)
        if m:
            coord = Coordinate(latitude=float(m.group(1)), longitude=float(m.group(2)))
            self._check_bounds(coord, text)
            return coord

        if self.provider is not None:
            coord = self._geocode_with_provider(text)
            if coord is not None:
                return coord

        city = lookup_major_city(text)
        if city is not None:
            return Coordinate(latitude=city[0], longitude=city[1])

        centroid = COUNTRY_CENTROIDS.get(self.country)
        if self.allow_centroid and centroid is not None:
            logger.warning(
                "Could not geocode %r, using %s centroid as approximate location",
                text,
                self.country.upper(),
            )
            return Coordinate(latitude=centroid[0], longitude=centroid[1])

        logger.warning("Could not geocode %r", text)
        return None

    def _geocode_with_provider(self, text: str) -> Coordinate | None:
        try:
            results = self.provider.search(text, country=self.country, limit=1)
        except (GeocodingError, ValueError, KeyError) as e:
            logger.warning("Geocoding provider failed for %r: %s", text, e)
            return None

        if not results:
            return None
        first = results[0]
        coord = Coordinate(latitude=first.lat, longitude=first.lng)
        self._check_bounds(coord, text)
        return coord

    def _check_bounds(self, coord: Coordinate, text: str) -> None:
        bounds = COUNTRY_BOUNDS.get(self.country)
        if bounds is not None and not coord.is_within(bounds):
            logger.warning(
                "Geocoded %r to (%.4f, %.4f), outside %s bounds",
                text,
                coord.latitude,
                coord.longitude,
                self.country.upper(),
            )
