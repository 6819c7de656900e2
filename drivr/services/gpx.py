"""GPX parsing into session track points."""

from __future__ import annotations

from typing import Iterable, List, Optional

import gpxpy
import gpxpy.gpx

from ..models import GpsPointIn


def _speed_kmh(point: gpxpy.gpx.GPXTrackPoint) -> Optional[float]:
    speed = getattr(point, "speed", None)
    if speed is None:
        return None
    return round(float(speed) * 3.6, 2)


def _to_points(raw_points: Iterable[gpxpy.gpx.GPXTrackPoint]) -> List[GpsPointIn]:
    points: List[GpsPointIn] = []
    for point in raw_points:
        if point.time is None:
            continue
        points.append(
            GpsPointIn(
                latitude=point.latitude,
                longitude=point.longitude,
                altitude=point.elevation,
                speed_kmh=_speed_kmh(point),
                recorded_at=point.time,
            )
        )
    return points


def parse_gpx_points(text: str) -> List[GpsPointIn]:
    """Parse GPX text into timed points, tracks first, routes as fallback.

    Points without a timestamp are skipped: they cannot be timed on a segment.
    """

    gpx = gpxpy.parse(text)
    points: List[GpsPointIn] = []

    for track in gpx.tracks or []:
        for segment in track.segments or []:
            points.extend(_to_points(segment.points or []))

    if not points:
        for route in gpx.routes or []:
            points.extend(_to_points(route.points or []))

    points.sort(key=lambda p: p.recorded_at)
    return points


__all__ = ["parse_gpx_points"]
