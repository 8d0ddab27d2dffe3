"""Tests for pharmacy_finder.search.geocoder."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
import requests

from pharmacy_finder.algorithms.geo_proximity import Coordinate
from pharmacy_finder.geo import COUNTRY_CENTROIDS
from pharmacy_finder.search.geocoder import (
    Geocoder,
    GeocodingError,
    MapboxGeocodingProvider,
    default_provider,
    parse_feature,
)
from pharmacy_finder.search.models import GeocodeResult

MAPBOX_FEATURE = {
    "id": "place.123",
    "place_name": "Los Angeles, California, United States",
    "place_type": ["place"],
    "relevance": 0.98,
    "center": [-118.2437, 34.0522],
    "context": [
        {"id": "region.456", "text": "California", "short_code": "US-CA"},
        {"id": "country.789", "text": "United States", "short_code": "us"},
    ],
}


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {"features": []}
    return resp


# ---- MapboxGeocodingProvider ------------------------------------------------


class TestMapboxProvider:
    def test_parses_features(self):
        session = MagicMock()
        session.get.return_value = _response(payload={"features": [MAPBOX_FEATURE]})
        provider = MapboxGeocodingProvider("pk.test", session=session)

        results = provider.search("Los Angeles")

        assert len(results) == 1
        assert results[0].lat == 34.0522
        assert results[0].lng == -118.2437
        assert results[0].place_type == "place"

    def test_request_params(self):
        session = MagicMock()
        session.get.return_value = _response()
        provider = MapboxGeocodingProvider("pk.test", session=session)

        provider.search("Toronto", country="ca", limit=1)

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url.endswith("/Toronto.json")
        assert params["access_token"] == "pk.test"
        assert params["country"] == "ca"
        assert params["limit"] == 1
        assert "proximity" not in params
        assert "bbox" not in params

    def test_proximity_and_bbox(self):
        session = MagicMock()
        session.get.return_value = _response()
        provider = MapboxGeocodingProvider("pk.test", session=session)

        provider.search("Main St", center=Coordinate(34.0, -118.0), radius_km=111.0)

        params = session.get.call_args.kwargs["params"]
        assert params["proximity"] == "-118.0,34.0"
        min_lng, min_lat, max_lng, max_lat = (float(v) for v in params["bbox"].split(","))
        assert min_lat == pytest.approx(33.0)
        assert max_lat == pytest.approx(35.0)
        assert min_lng < -118.0 < max_lng

    def test_empty_query_raises(self):
        provider = MapboxGeocodingProvider("pk.test", session=MagicMock())
        with pytest.raises(ValueError):
            provider.search("   ")

    def test_http_error_raises(self):
        session = MagicMock()
        session.get.return_value = _response(status_code=401)
        provider = MapboxGeocodingProvider("pk.test", session=session)
        with pytest.raises(GeocodingError, match="HTTP 401"):
            provider.search("Los Angeles")

    def test_network_error_raises(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("refused")
        provider = MapboxGeocodingProvider("pk.test", session=session)
        with pytest.raises(GeocodingError):
            provider.search("Los Angeles")

    @pytest.mark.parametrize(
        "payload",
        [
            {"features": [{"center": None}]},
            {"features": [{"center": []}]},
            {"features": [{"place_name": "no center"}]},
            {"features": ["not a feature"]},
            ["not", "a", "dict"],
        ],
    )
    def test_malformed_payload_raises_geocoding_error(self, payload):
        session = MagicMock()
        session.get.return_value = _response(payload=payload)
        provider = MapboxGeocodingProvider("pk.test", session=session)
        with pytest.raises(GeocodingError, match="Malformed geocoding response"):
            provider.search("Los Angeles")

    def test_non_json_body_raises_geocoding_error(self):
        session = MagicMock()
        resp = _response()
        resp.json.side_effect = ValueError("Expecting value")
        session.get.return_value = resp
        provider = MapboxGeocodingProvider("pk.test", session=session)
        with pytest.raises(GeocodingError):
            provider.search("Los Angeles")


class TestParseFeature:
    def test_components(self):
        result = parse_feature(MAPBOX_FEATURE)
        assert result.formatted_address == "Los Angeles, California, United States"
        assert result.place_id == "place.123"
        assert result.address_components[0] == {
            "long_name": "California",
            "short_name": "US-CA",
            "types": ["region"],
        }

    def test_to_dict_position(self):
        data = parse_feature(MAPBOX_FEATURE).to_dict()
        assert data["position"] == {"lat": 34.0522, "lng": -118.2437}


class TestDefaultProvider:
    def test_none_without_token(self, monkeypatch):
        monkeypatch.delenv("MAPBOX_ACCESS_TOKEN", raising=False)
        assert default_provider() is None

    def test_built_from_token(self, monkeypatch):
        monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.env")
        provider = default_provider()
        assert provider is not None
        assert provider.access_token == "pk.env"


# ---- Geocoder strategy chain ------------------------------------------------


class TestGeocoder:
    def test_coordinates_short_circuit(self):
        provider = MagicMock()
        coord = Geocoder("us", provider).geocode("34.0522, -118.2437")
        assert coord == Coordinate(34.0522, -118.2437)
        provider.search.assert_not_called()

    def test_coordinates_without_space(self):
        assert Geocoder("us").geocode("43.65,-79.38") == Coordinate(43.65, -79.38)

    def test_out_of_bounds_coordinates_warn_but_return(self, caplog):
        with caplog.at_level(logging.WARNING):
            coord = Geocoder("us").geocode("51.5, -0.12")
        assert coord == Coordinate(51.5, -0.12)
        assert "outside US bounds" in caplog.text

    def test_provider_result_used(self):
        provider = MagicMock()
        provider.search.return_value = [
            GeocodeResult(formatted_address="Pasadena, CA", lat=34.1478, lng=-118.1445)
        ]
        coord = Geocoder("us", provider).geocode("Pasadena")
        assert coord == Coordinate(34.1478, -118.1445)
        provider.search.assert_called_once_with("Pasadena", country="us", limit=1)

    def test_provider_failure_falls_through_to_city_table(self, caplog):
        provider = MagicMock()
        provider.search.side_effect = GeocodingError("Geocoding service error: HTTP 500")
        with caplog.at_level(logging.WARNING):
            coord = Geocoder("us", provider).geocode("Los Angeles")
        assert coord == Coordinate(34.0522, -118.2437)
        assert "Geocoding provider failed" in caplog.text

    def test_malformed_provider_payload_falls_through_to_city_table(self):
        session = MagicMock()
        session.get.return_value = _response(payload={"features": [{"center": None}]})
        provider = MapboxGeocodingProvider("pk.test", session=session)
        assert Geocoder("us", provider).geocode("Los Angeles") == Coordinate(34.0522, -118.2437)

    def test_no_provider_results_falls_through(self):
        provider = MagicMock()
        provider.search.return_value = []
        assert Geocoder("ca", provider).geocode("Toronto") == Coordinate(43.6532, -79.3832)

    def test_city_substring_match(self):
        coord = Geocoder("us").geocode("Downtown Los Angeles, CA")
        assert coord == Coordinate(34.0522, -118.2437)

    def test_centroid_fallback(self, caplog):
        with caplog.at_level(logging.WARNING):
            coord = Geocoder("ca").geocode("Nowhereville")
        lat, lng = COUNTRY_CENTROIDS["ca"]
        assert coord == Coordinate(lat, lng)
        assert "centroid" in caplog.text

    def test_centroid_disabled(self):
        assert Geocoder("us", allow_centroid=False).geocode("Nowhereville") is None

    def test_empty_input(self):
        provider = MagicMock()
        assert Geocoder("us", provider).geocode("") is None
        assert Geocoder("us", provider).geocode("   ") is None
        assert Geocoder("us", provider).geocode(None) is None
        provider.search.assert_not_called()
