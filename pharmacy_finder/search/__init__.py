"""Pharmacy Finder — proximity search pipeline."""

from .adapters import (
    CAPharmacyAdapter,
    MedMeLinkSource,
    PharmacyDataAdapter,
    PharmacySearchParams,
    RegularPharmacySource,
    UnsupportedCountryError,
    USPharmacyAdapter,
    create_pharmacy_adapter,
)
from .display_data import generate_stable_display_data
from .geocoder import Geocoder, MapboxGeocodingProvider
from .models import Pharmacy, SearchFilters
from .orchestrator import PharmacySearchSession, SearchState, SearchStatus

__all__ = [
    "CAPharmacyAdapter",
    "MedMeLinkSource",
    "PharmacyDataAdapter",
    "PharmacySearchParams",
    "RegularPharmacySource",
    "UnsupportedCountryError",
    "USPharmacyAdapter",
    "create_pharmacy_adapter",
    "generate_stable_display_data",
    "Geocoder",
    "MapboxGeocodingProvider",
    "Pharmacy",
    "SearchFilters",
    "PharmacySearchSession",
    "SearchState",
    "SearchStatus",
]
