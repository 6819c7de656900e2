"""Geographic primitives: distances, bearings and bounding boxes.

Distances use the haversine formula on a spherical Earth. Point-to-polyline
distance treats each leg as flat in a local equirectangular projection,
which is accurate at road scale.
"""

from __future__ import annotations

import math
from typing import Iterable, NamedTuple, Sequence

EARTH_RADIUS_M = 6_371_000.0


class GeoPoint(NamedTuple):
    lat: float
    lon: float


class BoundingBox(NamedTuple):
    min_lat: float
    min_lon: float
    max_lat: float
    max_lon: float

    def expand(self, meters: float) -> "BoundingBox":
        """Grow the box by ``meters`` on every side."""

        d_lat = math.degrees(meters / EARTH_RADIUS_M)
        widest_lat = min(max(abs(self.min_lat), abs(self.max_lat)), 89.9)
        d_lon = min(d_lat / math.cos(math.radians(widest_lat)), 180.0)
        return BoundingBox(
            min_lat=max(self.min_lat - d_lat, -90.0),
            min_lon=max(self.min_lon - d_lon, -180.0),
            max_lat=min(self.max_lat + d_lat, 90.0),
            max_lon=min(self.max_lon + d_lon, 180.0),
        )

    def intersects(self, other: "BoundingBox") -> bool:
        return not (
            other.min_lat > self.max_lat
            or other.max_lat < self.min_lat
            or other.min_lon > self.max_lon
            or other.max_lon < self.min_lon
        )


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters using the Haversine formula."""

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    return haversine_m(a.lat, a.lon, b.lat, b.lon)


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing from point 1 to point 2, in [0, 360)."""

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_lon = math.radians(lon2 - lon1)
    x = math.sin(d_lon) * math.cos(phi2)
    y = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(d_lon)
    if x == 0.0 and y == 0.0:
        return 0.0
    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


def _wrap_lon_delta(d_lon: float) -> float:
    return (d_lon + 180.0) % 360.0 - 180.0


def _project(origin: GeoPoint, point: GeoPoint) -> tuple[float, float]:
    """Project ``point`` into a flat x/y plane (meters) centred on ``origin``."""

    x = math.radians(_wrap_lon_delta(point.lon - origin.lon)) * math.cos(math.radians(origin.lat))
    y = math.radians(point.lat - origin.lat)
    return x * EARTH_RADIUS_M, y * EARTH_RADIUS_M


def point_to_leg_m(point: GeoPoint, start: GeoPoint, end: GeoPoint) -> float:
    """Shortest distance from ``point`` to the leg ``start``-``end``."""

    ax, ay = _project(point, start)
    bx, by = _project(point, end)
    dx, dy = bx - ax, by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return distance_m(point, start)
    t = max(0.0, min(1.0, -(ax * dx + ay * dy) / length_sq))
    return math.hypot(ax + t * dx, ay + t * dy)


def distance_to_polyline_m(point: GeoPoint, polyline: Sequence[GeoPoint]) -> float:
    """Minimum distance from ``point`` to any leg of ``polyline``."""

    if not polyline:
        raise ValueError("polyline must contain at least one point")
    if len(polyline) == 1:
        return distance_m(point, polyline[0])
    return min(
        point_to_leg_m(point, polyline[idx], polyline[idx + 1])
        for idx in range(len(polyline) - 1)
    )


def polyline_length_m(points: Sequence[GeoPoint]) -> float:
    """Sum of haversine distances between consecutive points."""

    return sum(distance_m(points[idx], points[idx + 1]) for idx in range(len(points) - 1))


def bounding_box(points: Iterable[GeoPoint]) -> BoundingBox:
    lats = []
    lons = []
    for point in points:
        lats.append(point.lat)
        lons.append(point.lon)
    if not lats:
        raise ValueError("cannot bound an empty point set")
    return BoundingBox(min(lats), min(lons), max(lats), max(lons))


__all__ = [
    "EARTH_RADIUS_M",
    "BoundingBox",
    "GeoPoint",
    "bounding_box",
    "distance_m",
    "distance_to_polyline_m",
    "haversine_m",
    "initial_bearing_deg",
    "point_to_leg_m",
    "polyline_length_m",
]
