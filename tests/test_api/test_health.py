"""Tests for the health endpoint."""

from __future__ import annotations

from unittest.mock import patch

import psycopg2


class TestHealthEndpoint:
    """GET /api/health"""

    def test_degraded_in_json_fallback(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["mode"] == "json_fallback"
        assert data["record_count"] == 10  # directory + US + CA sample rows
        assert data["version"] == "0.4.0"
        assert data["database_connected"] is False
        assert data["countries"] == ["us", "ca"]

    def test_contains_uptime(self, client):
        data = client.get("/api/health").json()
        assert isinstance(data["uptime_seconds"], int)
        assert data["uptime_seconds"] >= 0
        assert data["started_at"] == "2026-10-01T00:00:00+00:00"

    def test_contains_checks_block(self, client):
        data = client.get("/api/health").json()
        assert data["checks"]["database"] == {"status": "down", "latency_ms": None}

    def test_healthy_when_database_answers(self, client):
        with (
            patch("pharmacy_finder.db.is_available", return_value=True),
            patch("pharmacy_finder.db.scalar", return_value=1234),
        ):
            resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["mode"] == "database"
        assert data["record_count"] == 1234
        assert data["checks"]["database"]["status"] == "up"
        assert data["checks"]["database"]["latency_ms"] >= 0

    def test_failed_check_falls_back(self, client):
        with (
            patch("pharmacy_finder.db.is_available", return_value=True),
            patch("pharmacy_finder.db.scalar", side_effect=psycopg2.OperationalError("gone")),
        ):
            resp = client.get("/api/health")
        assert resp.status_code == 503
        assert resp.json()["mode"] == "json_fallback"
        assert resp.json()["record_count"] == 10
