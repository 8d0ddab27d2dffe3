"""Pharmacy Finder — distance and name-matching algorithms."""

from .name_similarity import (
    compute_name_similarity,
    matches_known_name,
    normalize_name,
    quick_name_score,
    names_are_similar,
)
from .geo_proximity import (
    Coordinate,
    bounding_box,
    distance_km,
    filter_within_radius,
    haversine_km,
)

__all__ = [
    "compute_name_similarity",
    "matches_known_name",
    "normalize_name",
    "quick_name_score",
    "names_are_similar",
    "Coordinate",
    "bounding_box",
    "distance_km",
    "filter_within_radius",
    "haversine_km",
]
