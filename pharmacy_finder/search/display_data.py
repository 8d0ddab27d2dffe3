"""
Pharmacy Finder — Stable Display Data

Most directory rows carry no ratings, review counts or opening hours, so
the result cards show pseudo-data derived from the pharmacy id. Values
come from a 32-bit string hash, never from a random source: the same
(id, name, index) on the same date and hour always yields the same output.

The hash reproduces `((hash << 5) - hash + code_unit) | 0` over UTF-16
code units so values match the existing web client.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from .models import DisplayData, HoursInfo

MOCK_SERVICES: list[list[str]] = [
    ["Minor ailments", "Flu shots", "Travel Vaccines"],
    ["MedsCheck", "Birth Control", "Diabetes"],
    ["Mental Health", "Naloxone Kits", "Pediatric Vax"],
    ["Prescription refills", "Blood pressure checks"],
    ["Vaccinations", "Health screenings", "Consultations"],
]

# (open hour, close hour, label)
HOUR_PATTERNS: list[tuple[int, int, str]] = [
    (8, 22, "Extended Hours"),
    (9, 18, "Regular Hours"),
    (7, 23, "24/7 Style"),
    (8, 20, "Standard"),
]


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def hash_string(text: str) -> int:
    """Non-negative 32-bit multiplicative string hash (factor 31)."""
    h = 0
    encoded = text.encode("utf-16-le")
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return abs(h)


def seeded_random(seed: str, offset: int = 0) -> float:
    """Stable number in [0, 1) for (seed, offset)."""
    return (hash_string(seed + str(offset)) % 10000) / 10000


def to_fixed(value: float, digits: int) -> str:
    """Format like JavaScript's Number.prototype.toFixed (ties round up)."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def generate_stable_hours(pharmacy_id: str, now: datetime | None = None) -> HoursInfo:
    """Opening hours picked by id hash; weekends open an hour later and close two earlier."""
    now = now or datetime.now()
    open_hour, close_hour, _ = HOUR_PATTERNS[hash_string(pharmacy_id) % len(HOUR_PATTERNS)]

    if now.weekday() >= 5:
        open_hour += 1
        close_hour -= 2

    is_open = open_hour <= now.hour < close_hour
    return HoursInfo(
        is_open=is_open,
        hours=f"{open_hour}:00 - {close_hour}:00",
        status="Open" if is_open else "Closed",
        next_change=f"Closes at {close_hour}:00" if is_open else f"Opens at {open_hour}:00",
    )


def generate_stable_display_data(
    pharmacy_id: str,
    pharmacy_name: str,
    index: int,
    now: datetime | None = None,
) -> DisplayData:
    """
    Derive presentation data for one result card.

    Parameters
    ----------
    pharmacy_id : str
        Seed for every hashed value.
    pharmacy_name : str
        Accepted for call-site compatibility; it does not affect the output.
    index : int
        Position in the result list; selects the service category set.
    now : datetime, optional
        Wall-clock time for the open/closed status. Defaults to local now.
    """
    rating_seed = seeded_random(pharmacy_id, 1)
    reviews_seed = seeded_random(pharmacy_id, 2)
    availability_seed = seeded_random(pharmacy_id, 3)
    distance_seed = seeded_random(pharmacy_id, 4)

    return DisplayData(
        rating=float(to_fixed(rating_seed * 1.5 + 3.5, 1)),
        reviews=int(reviews_seed * 200 + 50),
        is_available=availability_seed > 0.3,
        services=list(MOCK_SERVICES[index % len(MOCK_SERVICES)]),
        next_available="Today" if availability_seed > 0.5 else "Tomorrow",
        hours=generate_stable_hours(pharmacy_id, now),
        distance=f"{to_fixed(distance_seed * 5 + 0.5, 1)} km",
    )
