"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Sequence

from shapely.geometry import MultiPoint

from ..errors import InvalidCoordinate
from ..models.domain import Coordinate

EARTH_RADIUS_KM = 6371.0


def validate_coordinate(point: Coordinate) -> Coordinate:
    """Return the point unchanged, or raise InvalidCoordinate for NaN/out-of-range values."""

    lat, lon = point.latitude, point.longitude
    if lat is None or lon is None or math.isnan(lat) or math.isnan(lon):
        raise InvalidCoordinate(f"Coordinate has missing or NaN component: ({lat}, {lon})")
    if not -90.0 <= lat <= 90.0:
        raise InvalidCoordinate(f"Latitude {lat} is outside [-90, 90]")
    if not -180.0 <= lon <= 180.0:
        raise InvalidCoordinate(f"Longitude {lon} is outside [-180, 180]")
    return point


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two validated coordinates."""

    validate_coordinate(a)
    validate_coordinate(b)
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def centroid(points: Sequence[Coordinate]) -> Coordinate:
    """Arithmetic mean of latitudes and longitudes.

    Not geodesically exact; adequate for the regional spans a single trip covers.
    """

    if not points:
        raise ValueError("centroid requires at least one point")
    lat = sum(point.latitude for point in points) / len(points)
    lon = sum(point.longitude for point in points) / len(points)
    return Coordinate(lat, lon)


def bounding_box(points: Sequence[Coordinate]) -> tuple[float, float, float, float]:
    """Return (min_lat, min_lon, max_lat, max_lon) for the given points."""

    if not points:
        raise ValueError("bounding_box requires at least one point")
    min_lon, min_lat, max_lon, max_lat = MultiPoint([(p.longitude, p.latitude) for p in points]).bounds
    return (min_lat, min_lon, max_lat, max_lon)


def bounding_box_center(points: Sequence[Coordinate]) -> Coordinate:
    """Midpoint of the bounding box, used to frame a route on a map."""

    min_lat, min_lon, max_lat, max_lon = bounding_box(points)
    return Coordinate((min_lat + max_lat) / 2, (min_lon + max_lon) / 2)


def zoom_level(points: Sequence[Coordinate]) -> int:
    """Pick a map zoom level from the largest lat/lon span of the points."""

    if not points:
        return 13
    min_lat, min_lon, max_lat, max_lon = bounding_box(points)
    span = max(max_lat - min_lat, max_lon - min_lon)
    if span < 0.01:
        return 14
    if span < 0.05:
        return 12
    return 10
