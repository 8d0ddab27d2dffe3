"""Shared fixtures for the API test suite.

All tests run in JSON fallback mode (no database required). The
fallback store is seeded by the top-level `fallback_store` fixture and
db.init_pool / close_pool are patched so startup never reaches Postgres.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from starlette.testclient import TestClient


@pytest.fixture()
def app(fallback_store, no_mapbox):
    """FastAPI app running in JSON fallback mode (no DB, no Mapbox)."""
    with (
        patch("pharmacy_finder.db.init_pool", return_value=False),
        patch("pharmacy_finder.db.close_pool"),
    ):
        from pharmacy_finder.api.app import app as _app

        # Normally done in the startup event
        _app.state.server_started_at = datetime(2026, 10, 1, 0, 0, 0, tzinfo=timezone.utc)

        yield _app


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)
