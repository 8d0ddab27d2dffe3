"""Shared fixtures for the test suite.

Tests run in JSON fallback mode: db.is_available() is patched to False
and the fallback store is seeded with a small Los Angeles / San Francisco
/ Toronto sample.
"""

from __future__ import annotations

import copy
from unittest.mock import patch

import pytest

from pharmacy_finder import store

# ---------------------------------------------------------------------------
# Sample tables (mirror the JSON snapshot shape)
# ---------------------------------------------------------------------------

SAMPLE_PHARMACIES: list[dict] = [
    {
        "id": "p-001",
        "name": "Sunset Pharmacy",
        "address": "1200 Sunset Blvd, Los Angeles, CA 90026",
        "city": "Los Angeles",
        "state": "CA",
        "zip_code": "90026",
        "latitude": 34.0775,
        "longitude": -118.2606,
        "phone": "(213) 555-0101",
        "website": "https://sunsetpharmacy.example.com",
        "services": ["Flu shots", "Travel Vaccines"],
    },
    {
        # MedMe-connected (active link)
        "id": "p-002",
        "name": "Olympic Care Pharmacy",
        "address": "800 W Olympic Blvd, Los Angeles, CA 90015",
        "city": "Los Angeles",
        "state": "CA",
        "zip_code": "90015",
        "latitude": 34.0407,
        "longitude": -118.2468,
        "phone": "(213) 555-0102",
        "website": None,
        "services": ["Minor ailments", "Diabetes"],
    },
    {
        # No service data
        "id": "p-003",
        "name": "Harbor Drugs",
        "address": "300 E Ocean Blvd, Long Beach, CA 90802",
        "city": "Long Beach",
        "state": "CA",
        "zip_code": "90802",
        "latitude": 33.7701,
        "longitude": -118.1937,
        "phone": None,
        "website": None,
        "services": None,
    },
    {
        # No coordinates
        "id": "p-004",
        "name": "Pasadena Apothecary",
        "address": "55 E Colorado Blvd, Pasadena, CA 91105",
        "city": "Pasadena",
        "state": "CA",
        "zip_code": "91105",
        "latitude": None,
        "longitude": None,
        "phone": "(626) 555-0104",
        "website": None,
        "services": ["Vaccinations"],
    },
    {
        # Link exists but is inactive
        "id": "p-005",
        "name": "Bay Pharmacy",
        "address": "1 Market St, San Francisco, CA 94105",
        "city": "San Francisco",
        "state": "CA",
        "zip_code": "94105",
        "latitude": 37.7793,
        "longitude": -122.4193,
        "phone": "(415) 555-0105",
        "website": None,
        "services": '["MedsCheck", "Birth Control"]',
    },
]

SAMPLE_MEDME_LINKS: list[dict] = [
    {"id": "link-1", "pharmacy_id": "p-002", "is_active": True},
    {"id": "link-2", "pharmacy_id": "p-005", "is_active": False},
]

SAMPLE_US_BULK: list[dict] = [
    {
        # Same storefront as the MedMe-linked p-002
        "id": "us-100",
        "name": "Olympic Care Pharmacy",
        "address": "800 W Olympic Blvd, Los Angeles, CA 90015",
        "state_code": "CA",
        "state_name": "California",
        "zip_code": 90015,
        "lat": "34.0408",
        "lng": "-118.2469",
        "phone": "(213) 555-0102",
    },
    {
        "id": "us-101",
        "name": "MedMe Pharmacy",
        "address": "400 S Hope St, Los Angeles, CA 90071",
        "state_code": "CA",
        "state_name": "California",
        "zip_code": 90071,
        "lat": "34.0500",
        "lng": "-118.2500",
        "phone": None,
    },
    {
        "id": "us-102",
        "name": "Echo Park Rx",
        "address": "1700 Echo Park Ave, Los Angeles, CA 90026",
        "state_code": "CA",
        "state_name": "California",
        "zip_code": 90026,
        "lat": "34.0900",
        "lng": "-118.2600",
        "phone": "(213) 555-0199",
    },
    {
        "id": "us-103",
        "name": "Brooklyn Family Pharmacy",
        "address": "200 Atlantic Ave, Brooklyn, NY 11201",
        "state_code": "NY",
        "state_name": "New York",
        "zip_code": 11201,
        "lat": "40.6782",
        "lng": "-73.9442",
        "phone": None,
    },
]

SAMPLE_CA_BULK: list[dict] = [
    {
        "id": "ca-200",
        "name": "Queen Street Pharmacy",
        "street_address": "500 Queen St W",
        "city": "Toronto",
        "province_code": "ON",
        "postal_code": "M5V 2B5",
        "latitude": 43.6510,
        "longitude": -79.3900,
        "phone": "(416) 555-0200",
    },
]

SAMPLE_TABLES: dict[str, list[dict]] = {
    "pharmacies": SAMPLE_PHARMACIES,
    "medme_pharmacy_links": SAMPLE_MEDME_LINKS,
    "us_pharmacy_data": SAMPLE_US_BULK,
    "ca_pharmacy_data": SAMPLE_CA_BULK,
}

LOS_ANGELES = (34.0522, -118.2437)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def fallback_store():
    """Seeded JSON fallback store with the database patched away."""
    with patch("pharmacy_finder.db.is_available", return_value=False):
        store.reset()
        for name, rows in SAMPLE_TABLES.items():
            store.set_table(name, copy.deepcopy(rows))

        yield store

        store.reset()


@pytest.fixture()
def no_mapbox(monkeypatch):
    """Geocode without the remote provider (major-city table and centroid only)."""
    monkeypatch.delenv("MAPBOX_ACCESS_TOKEN", raising=False)
