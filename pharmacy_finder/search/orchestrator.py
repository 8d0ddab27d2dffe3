"""
Pharmacy Finder — Search Orchestrator

Sequences geocoding, source fetch, merge/filter and display-data synthesis
for one search session, and tracks its state:

    idle/success/error --search--> loading --resolve--> success
                                           --reject---> error

Only one outcome is ever applied per search call, and only if that call
is still the latest one: every call takes a new generation number and a
slower, older call that finishes late is discarded instead of overwriting
fresher results.

Errors become a display string. The notifier fires only when the message
differs from the previous error, so a repeated failure does not stack
identical notifications.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from .. import analytics
from .adapters import MedMeLinkSource, RegularPharmacySource, create_pharmacy_adapter
from .display_data import generate_stable_display_data
from .geocoder import Geocoder, MapboxGeocodingProvider, default_provider
from .models import Pharmacy, SearchFilters
from .pipeline import run_search

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Failed to search pharmacies"
DEFAULT_NEARBY_RADIUS_KM = 25.0
DEBOUNCE_SECONDS = 0.3


class SearchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SearchState:
    status: SearchStatus = SearchStatus.IDLE
    pharmacies: list[Pharmacy] = field(default_factory=list)
    error: str | None = None
    generation: int = 0

    @property
    def medme_count(self) -> int:
        return sum(1 for p in self.pharmacies if p.is_medme)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "error": self.error,
            "count": len(self.pharmacies),
            "medme_count": self.medme_count,
            "data": [p.to_dict() for p in self.pharmacies],
        }


def error_message(exc: BaseException) -> str:
    """Displayable message for a caught exception."""
    text = str(exc).strip() if isinstance(exc, Exception) else ""
    return text or GENERIC_ERROR_MESSAGE


def _log_notifier(title: str, message: str) -> None:
    logger.error("%s: %s", title, message)


class PharmacySearchSession:
    """
    Stateful search for one user session.

    Parameters
    ----------
    provider : MapboxGeocodingProvider or None
        Remote geocoder; defaults to one built from MAPBOX_ACCESS_TOKEN.
    notifier : callable(title, message)
        User-facing error notification. Defaults to logging.
    now : callable returning datetime
        Clock for display-data hours; defaults to datetime.now.
    """

    def __init__(
        self,
        *,
        provider: MapboxGeocodingProvider | None = None,
        regular_source: RegularPharmacySource | None = None,
        link_source: MedMeLinkSource | None = None,
        notifier: Callable[[str, str], None] | None = None,
        track: bool = True,
        now: Callable[[], datetime] | None = None,
    ):
        self.provider = provider if provider is not None else default_provider()
        self.regular_source = regular_source or RegularPharmacySource()
        self.link_source = link_source or MedMeLinkSource()
        self.notifier = notifier or _log_notifier
        self.track = track
        self.now = now or datetime.now

        self.state = SearchState()
        self._generation = 0
        self._last_error: str | None = None

    # -- public API ------------------------------------------------------

    async def search(self, filters: SearchFilters) -> SearchState:
        self._generation += 1
        generation = self._generation
        self.state = SearchState(
            status=SearchStatus.LOADING,
            pharmacies=self.state.pharmacies,
            generation=generation,
        )

        try:
            pharmacies = await self._execute(filters)
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding stale failure from search #%d", generation)
                return self.state
            logger.exception("Error searching pharmacies")
            self._apply_error(generation, error_message(e))
            return self.state

        if generation != self._generation:
            logger.debug(
                "Discarding stale results from search #%d (latest is #%d)",
                generation,
                self._generation,
            )
            return self.state

        self._apply_success(generation, pharmacies)
        if self.track:
            await self._track(filters, pharmacies)
        return self.state

    async def get_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = DEFAULT_NEARBY_RADIUS_KM,
        country: str = "us",
    ) -> SearchState:
        return await self.search(
            SearchFilters(location=f"{latitude}, {longitude}", radius_km=radius_km, country=country)
        )

    async def get_all(self, country: str = "us") -> SearchState:
        return await self.search(SearchFilters(country=country))

    # -- internals -------------------------------------------------------

    async def _execute(self, filters: SearchFilters) -> list[Pharmacy]:
        bulk_adapter = create_pharmacy_adapter(filters.country)

        center = None
        location = (filters.location or "").strip()
        if location:
            # Unresolved text is matched against names and addresses instead
            # of being searched around the country centroid
            geocoder = Geocoder(filters.country, self.provider, allow_centroid=False)
            center = await asyncio.to_thread(geocoder.geocode, location)

        pharmacies = await run_search(
            filters,
            center,
            regular_source=self.regular_source,
            link_source=self.link_source,
            bulk_adapter=bulk_adapter,
        )

        now = self.now()
        for index, p in enumerate(pharmacies):
            p.display_data = generate_stable_display_data(p.id, p.name, index, now)
        return pharmacies

    def _apply_success(self, generation: int, pharmacies: list[Pharmacy]) -> None:
        self.state = SearchState(
            status=SearchStatus.SUCCESS,
            pharmacies=pharmacies,
            generation=generation,
        )
        self._last_error = None
        logger.info("Search #%d returned %d pharmacies", generation, len(pharmacies))

    def _apply_error(self, generation: int, message: str) -> None:
        self.state = SearchState(
            status=SearchStatus.ERROR,
            pharmacies=[],
            error=message,
            generation=generation,
        )
        if message != self._last_error:
            self.notifier("Search failed", message)
        self._last_error = message

    async def _track(self, filters: SearchFilters, pharmacies: list[Pharmacy]) -> None:
        service = filters.service_context
        medme_count = sum(1 for p in pharmacies if p.is_medme)
        await asyncio.to_thread(analytics.track_search, service, filters.location, len(pharmacies))
        await asyncio.to_thread(
            analytics.track_results_shown, service, len(pharmacies), medme_count
        )


class Debouncer:
    """
    Delay a call until input has been quiet for `delay` seconds.

    A new call cancels one that is still waiting; once the wrapped
    coroutine has started it is never cancelled.
    """

    def __init__(self, delay: float = DEBOUNCE_SECONDS):
        self.delay = delay
        self._pending: asyncio.Task | None = None

    def call(self, fn: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        task = asyncio.ensure_future(self._run(fn, args))
        self._pending = task
        return task

    async def _run(self, fn: Callable[..., Awaitable[Any]], args: tuple) -> Any:
        await asyncio.sleep(self.delay)
        if self._pending is asyncio.current_task():
            self._pending = None
        return await fn(*args)
