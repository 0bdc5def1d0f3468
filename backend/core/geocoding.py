"""
Address lookups for the camp location picker (OpenStreetMap Nominatim via geopy).

geopy is synchronous, so every lookup runs in the threadpool. Reverse lookups
never fail the selection: when Nominatim errors out or has no address for a
point, the coordinate string itself becomes the label.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool
from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from core.config import settings
from core.errors import ExternalServiceError, ValidationError

logger = logging.getLogger(__name__)

# Map starts centred on New York until the organizer picks a point
DEFAULT_LAT = 40.7128
DEFAULT_LNG = -74.0060


@dataclass(frozen=True)
class PickedLocation:
    lat: float
    lng: float
    address: str
    is_fallback: bool = False


def coordinate_label(lat: float, lng: float) -> str:
    return f"{lat}, {lng}"


def _check_coordinates(lat: float, lng: float) -> None:
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise ValidationError(f"Coordinates out of range: {lat}, {lng}")


def build_geocoder() -> Nominatim:
    return Nominatim(
        user_agent=settings.geocoder_user_agent,
        domain=settings.geocoder_domain,
        timeout=settings.geocoder_timeout,
    )


class GeocodingService:
    def __init__(self, geocoder=None):
        self._geocoder = geocoder or build_geocoder()

    async def search(self, query: str, limit: int = 5) -> List[PickedLocation]:
        q = (query or "").strip()
        if not q:
            raise ValidationError("Search query is required")
        try:
            found = await run_in_threadpool(self._geocoder.geocode, q, exactly_one=False, limit=limit)
        except GeopyError as e:
            logger.exception("Forward geocode failed for %r", q)
            raise ExternalServiceError(f"Geocoding search failed: {e}")
        return [
            PickedLocation(lat=loc.latitude, lng=loc.longitude, address=loc.address)
            for loc in (found or [])
        ]

    async def reverse(self, lat: float, lng: float) -> PickedLocation:
        _check_coordinates(lat, lng)
        try:
            loc = await run_in_threadpool(self._geocoder.reverse, (lat, lng), exactly_one=True)
        except GeopyError:
            logger.warning("Reverse geocode failed for %s, %s; using coordinates", lat, lng, exc_info=True)
            loc = None
        if loc is None or not getattr(loc, "address", None):
            return PickedLocation(lat=lat, lng=lng, address=coordinate_label(lat, lng), is_fallback=True)
        return PickedLocation(lat=lat, lng=lng, address=loc.address)


class LocationPicker:
    """
    Selection state for one map widget.

    Clicks and marker drags each start a reverse lookup; lookups can finish in
    any order, so each gets a sequence number and only the newest one may
    update ``selection``. A search result is applied immediately and makes
    every in-flight lookup stale.
    """

    def __init__(self, geocoding: GeocodingService, lat: float = DEFAULT_LAT, lng: float = DEFAULT_LNG):
        self._geocoding = geocoding
        self._seq = itertools.count(1)
        self._latest = 0
        self.selection = PickedLocation(lat=lat, lng=lng, address="")

    def _next(self) -> int:
        self._latest = next(self._seq)
        return self._latest

    async def pick(self, lat: float, lng: float) -> Optional[PickedLocation]:
        """Resolve a clicked/dragged point. Returns None when a newer pick superseded it."""
        _check_coordinates(lat, lng)
        seq = self._next()
        result = await self._geocoding.reverse(lat, lng)
        if seq != self._latest:
            logger.debug("Dropping stale reverse geocode #%s (latest #%s)", seq, self._latest)
            return None
        self.selection = result
        return result

    def choose(self, location: PickedLocation) -> PickedLocation:
        """Apply a forward-search result as-is."""
        self._next()
        self.selection = location
        return location
