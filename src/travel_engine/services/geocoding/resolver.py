"""Coordinate resolution through an ordered fallback cascade.

Each tier is a strategy that returns a coordinate or ``None``; the first hit
wins. Resolution never fails: the last tier always answers with the home-city
reference coordinate.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping, Optional, Protocol, Sequence

import httpx

from ...config import settings
from ...errors import GeocodeUnavailable, InvalidCoordinate
from ...models.domain import Coordinate, LocationDescriptor
from ...data.city_repository import load_city_table, load_region_table
from ...data.locations import normalize_city, normalize_region
from ..geospatial import validate_coordinate

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, client_id: int | None, address: str, city: str, state: str) -> Coordinate | None:
        ...


Strategy = Callable[[LocationDescriptor], Optional[Coordinate]]


def visual_offset(client_id: int | None, step: float | None = None) -> float:
    """Per-client marker offset in degrees.

    Spreads clients of the same city apart on a map. It carries no geodesic
    meaning and must not be treated as a location correction.
    """
    step = settings.visual_offset_step_degrees if step is None else step
    return (client_id or 0) * step


def _is_valid(point: Coordinate) -> bool:
    try:
        validate_coordinate(point)
    except InvalidCoordinate:
        return False
    return True


class CoordinateResolver:
    def __init__(
        self,
        geocoder: Geocoder | None = None,
        *,
        city_table: Mapping[str, Coordinate] | None = None,
        region_table: Mapping[str, Coordinate] | None = None,
        home: Coordinate | None = None,
        home_region: str | None = None,
        home_city_variants: Sequence[str] | None = None,
        offset_step: float | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.city_table = dict(city_table) if city_table is not None else load_city_table()
        self.region_table = dict(region_table) if region_table is not None else load_region_table()
        self.home = home or Coordinate(settings.home_latitude, settings.home_longitude)
        self.home_region = normalize_region(home_region or settings.home_region)
        self.home_city_variants = tuple(
            variant.casefold() for variant in (home_city_variants or settings.home_city_variants)
        )
        self.offset_step = settings.visual_offset_step_degrees if offset_step is None else offset_step
        self._address_cache: dict[tuple[int, str], Coordinate] = {}
        self._cache_lock = threading.Lock()
        self.strategies: list[Strategy] = [
            self._known_coordinate,
            self._geocoded_address,
            self._home_city_variant,
            self._known_city,
            self._region_centroid,
            self._home_region_default,
        ]

    def resolve(self, loc: LocationDescriptor) -> Coordinate:
        for strategy in self.strategies:
            coordinate = strategy(loc)
            if coordinate is not None:
                return coordinate
        return self.home

    def resolve_all(self, locations: Sequence[LocationDescriptor]) -> list[Coordinate]:
        return [self.resolve(loc) for loc in locations]

    def _home_with_offset(self, client_id: int | None) -> Coordinate:
        offset = visual_offset(client_id, self.offset_step)
        point = Coordinate(self.home.latitude + offset, self.home.longitude + offset)
        if not _is_valid(point):
            logger.warning(f"Visual offset for client {client_id} leaves valid range, using home coordinate")
            return self.home
        return point

    def _known_coordinate(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        if loc.coordinate is not None and _is_valid(loc.coordinate):
            return loc.coordinate
        return None

    def _geocoded_address(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        if self.geocoder is None or loc.client_id is None:
            return None
        address = (loc.address or "").strip()
        if not address or not loc.city.strip() or not loc.region.strip():
            return None

        cache_key = (loc.client_id, address.casefold())
        with self._cache_lock:
            cached = self._address_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            coordinate = self.geocoder.geocode(loc.client_id, address, loc.city.strip(), loc.region.strip())
        except (GeocodeUnavailable, TimeoutError, httpx.HTTPError) as e:
            logger.warning(f"Geocoding unavailable for client {loc.client_id}, falling back: {e}")
            return None
        if coordinate is None or not _is_valid(coordinate):
            logger.debug(f"No usable geocode for client {loc.client_id}")
            return None

        with self._cache_lock:
            self._address_cache[cache_key] = coordinate
        return coordinate

    def _home_city_variant(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        city = normalize_city(loc.city)
        if city and any(variant in city for variant in self.home_city_variants):
            return self._home_with_offset(loc.client_id)
        return None

    def _known_city(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        city = normalize_city(loc.city)
        if not city:
            return None
        return self.city_table.get(city)

    def _region_centroid(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        region = normalize_region(loc.region)
        if not region or region == self.home_region:
            return None
        return self.region_table.get(region)

    def _home_region_default(self, loc: LocationDescriptor) -> Optional[Coordinate]:
        if normalize_region(loc.region) == self.home_region:
            return self._home_with_offset(loc.client_id)
        return None
