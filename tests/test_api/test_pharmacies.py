"""Tests for pharmacy search endpoints (search, nearby, detail)."""

from __future__ import annotations

from pharmacy_finder.search.pipeline import PARTNER_LOGO_PATH


def _ids(resp):
    return [p["id"] for p in resp.json()["data"]]


class TestSearchPharmacies:
    """GET /api/pharmacies/search"""

    def test_radius_search(self, client):
        resp = client.get("/api/pharmacies/search", params={"location": "Los Angeles", "radius_km": 10})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "success"
        assert body["count"] == 3
        assert body["medme_count"] == 1
        assert _ids(resp) == ["p-002", "p-001", "us-102"]

    def test_results_carry_distance_and_display_data(self, client):
        resp = client.get("/api/pharmacies/search", params={"location": "Los Angeles", "radius_km": 10})
        first = resp.json()["data"][0]
        assert first["distance_km"] < 2.0
        assert first["medme_connected"] is True
        assert first["image"] == PARTNER_LOGO_PATH
        assert first["display_data"]["hours"]["status"] in ("Open", "Closed")
        assert first["display_data"]["services"] == ["Minor ailments", "Flu shots", "Travel Vaccines"]

    def test_default_radius_is_50_km(self, client):
        resp = client.get("/api/pharmacies/search", params={"location": "Los Angeles"})
        assert _ids(resp) == ["p-002", "p-001", "us-102", "p-003"]
        assert resp.json()["filters"]["radius_km"] == 50.0

    def test_service_filter(self, client):
        resp = client.get(
            "/api/pharmacies/search",
            params={"location": "Los Angeles", "services": ["flu"]},
        )
        assert _ids(resp) == ["p-001", "us-102", "p-003"]

    def test_repeated_service_params(self, client):
        resp = client.get(
            "/api/pharmacies/search",
            params=[("location", "Los Angeles"), ("services", "flu"), ("services", "diabetes")],
        )
        assert _ids(resp) == ["p-002", "p-001", "us-102", "p-003"]
        assert resp.json()["filters"]["services"] == ["flu", "diabetes"]

    def test_medme_only(self, client):
        resp = client.get(
            "/api/pharmacies/search",
            params={"location": "Los Angeles", "medme_only": "true"},
        )
        assert _ids(resp) == ["p-002"]

    def test_no_location_is_alphabetical(self, client):
        resp = client.get("/api/pharmacies/search")
        names = [p["name"] for p in resp.json()["data"]]
        assert len(names) == 7
        assert names == sorted(names, key=str.lower)

    def test_name_query(self, client):
        resp = client.get("/api/pharmacies/search", params={"q": "sunset"})
        assert _ids(resp) == ["p-001"]

    def test_region_limits_bulk_rows(self, client):
        resp = client.get("/api/pharmacies/search", params={"region": "NY"})
        bulk = [p["id"] for p in resp.json()["data"] if p["source"] == "us-bulk"]
        assert bulk == ["us-103"]

    def test_canada(self, client):
        resp = client.get("/api/pharmacies/search", params={"country": "CA", "location": "Toronto", "radius_km": 5})
        assert resp.status_code == 200
        assert _ids(resp) == ["ca-200"]
        assert resp.json()["filters"]["country"] == "ca"

    def test_unsupported_country(self, client):
        resp = client.get("/api/pharmacies/search", params={"country": "mx"})
        assert resp.status_code == 400
        assert "Unsupported country" in resp.json()["detail"]

    def test_unknown_region(self, client):
        resp = client.get("/api/pharmacies/search", params={"country": "ca", "region": "CA"})
        assert resp.status_code == 400

    def test_radius_bounds(self, client):
        assert client.get("/api/pharmacies/search", params={"radius_km": 0}).status_code == 422
        assert client.get("/api/pharmacies/search", params={"radius_km": 501}).status_code == 422

    def test_records_search_analytics(self, client, fallback_store):
        client.get("/api/pharmacies/search", params={"location": "Los Angeles", "radius_km": 10})
        events = fallback_store.get_table("user_analytics_events")
        assert [e["event_type"] for e in events] == ["search", "results_shown"]


class TestNearbyPharmacies:
    """GET /api/pharmacies/nearby"""

    def test_default_radius(self, client):
        resp = client.get("/api/pharmacies/nearby", params={"lat": 34.0522, "lng": -118.2437})
        assert resp.status_code == 200
        assert _ids(resp) == ["p-002", "p-001", "us-102"]
        body = resp.json()
        assert body["center"] == {"lat": 34.0522, "lng": -118.2437}
        assert body["filters"]["radius_km"] == 25.0

    def test_custom_radius(self, client):
        resp = client.get("/api/pharmacies/nearby", params={"lat": 34.0522, "lng": -118.2437, "radius_km": 50})
        assert _ids(resp)[-1] == "p-003"

    def test_sorted_by_distance(self, client):
        resp = client.get("/api/pharmacies/nearby", params={"lat": 34.0522, "lng": -118.2437, "radius_km": 50})
        distances = [p["distance_km"] for p in resp.json()["data"]]
        assert distances == sorted(distances)

    def test_invalid_latitude(self, client):
        resp = client.get("/api/pharmacies/nearby", params={"lat": 100, "lng": 0})
        assert resp.status_code == 422

    def test_missing_params(self, client):
        assert client.get("/api/pharmacies/nearby").status_code == 422


class TestDirectoryPharmacy:
    """GET /api/pharmacies/directory/{pharmacy_id}"""

    def test_medme_connected_pharmacy(self, client):
        resp = client.get("/api/pharmacies/directory/p-002")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["source"] == "medme"
        assert data["medme_connected"] is True
        assert data["image"] == PARTNER_LOGO_PATH
        assert data["display_data"]["services"] == ["Minor ailments", "Flu shots", "Travel Vaccines"]

    def test_regular_pharmacy(self, client):
        data = client.get("/api/pharmacies/directory/p-001").json()["data"]
        assert data["source"] == "regular"
        assert data["medme_connected"] is False
        assert data["address"]["formatted"] == "1200 Sunset Blvd, Los Angeles, CA 90026"

    def test_records_profile_view(self, client, fallback_store):
        client.get("/api/pharmacies/directory/p-002")
        events = fallback_store.get_table("user_analytics_events")
        impressions = fallback_store.get_table("pharmacy_impressions")
        assert events[0]["event_type"] == "profile_view"
        assert impressions[0]["impression_type"] == "view"
        assert impressions[0]["is_medme_pharmacy"] is True

    def test_not_found(self, client):
        resp = client.get("/api/pharmacies/directory/nope")
        assert resp.status_code == 404


class TestCountryPharmacy:
    """GET /api/pharmacies/{country}/{pharmacy_id}"""

    def test_us_bulk_row(self, client):
        resp = client.get("/api/pharmacies/us/us-102")
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["source"] == "us-bulk"
        assert data["medme_connected"] is False
        assert data["latitude"] == 34.09

    def test_ca_bulk_row(self, client):
        data = client.get("/api/pharmacies/ca/ca-200").json()["data"]
        assert data["source"] == "ca-bulk"
        assert data["address"]["postal_code"] == "M5V 2B5"

    def test_unsupported_country(self, client):
        resp = client.get("/api/pharmacies/mx/123")
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Unsupported country: mx"

    def test_not_found(self, client):
        assert client.get("/api/pharmacies/us/nope").status_code == 404
