"""Detect which segments a completed track traversed.

A traversal starts at the first on-segment sample near the segment's start
point and ends at the first later on-segment sample near its end point. A
single off-segment sample inside a traversal is treated as GPS noise; two in
a row abandon the attempt and the search restarts after them. Only the first
completed traversal per segment is reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..core.errors import DataIntegrityFault
from ..models import GpsSample, Segment
from .geo import GeoPoint, distance_m, distance_to_polyline_m
from .segments import SegmentGeometry, geometry_from_segment

logger = logging.getLogger(__name__)

# Consecutive off-segment samples that abandon a traversal attempt.
MAX_CONSECUTIVE_MISSES = 2


@dataclass(frozen=True)
class TraversalCandidate:
    """Entry/exit indices into one session's ordered track."""

    segment_id: int
    entry_index: int
    exit_index: int


def sample_point(sample: GpsSample) -> GeoPoint:
    return GeoPoint(float(sample.latitude), float(sample.longitude))


def near_endpoint_anywhere(points: Sequence[GeoPoint], geometry: SegmentGeometry) -> bool:
    """True when any point lies within tolerance of the start or end point."""

    return any(
        distance_m(point, geometry.start) <= geometry.tolerance_m
        or distance_m(point, geometry.end) <= geometry.tolerance_m
        for point in points
    )


def find_traversal(
    points: Sequence[GeoPoint], geometry: SegmentGeometry
) -> Optional[TraversalCandidate]:
    """Return the first start-to-end traversal of ``geometry`` or ``None``."""

    count = len(points)
    if count < 2:
        return None

    tolerance = geometry.tolerance_m
    on_segment = [distance_to_polyline_m(p, geometry.centerline) <= tolerance for p in points]
    near_start = [distance_m(p, geometry.start) <= tolerance for p in points]
    near_end = [distance_m(p, geometry.end) <= tolerance for p in points]

    index = 0
    while index < count:
        if not (on_segment[index] and near_start[index]):
            index += 1
            continue

        entry = index
        misses = 0
        cursor = entry + 1
        while cursor < count:
            if on_segment[cursor]:
                misses = 0
                if near_end[cursor]:
                    return TraversalCandidate(geometry.segment_id, entry, cursor)
            else:
                misses += 1
                if misses >= MAX_CONSECUTIVE_MISSES:
                    break
            cursor += 1

        if cursor >= count:
            # Ran off the end of the track while still on the segment; no later
            # entry can reach the end point either.
            return None
        index = cursor + 1

    return None


def match_track(
    samples: Sequence[GpsSample], segments: Iterable[Segment]
) -> List[TraversalCandidate]:
    """Match an ordered track against candidate segments.

    Segments with malformed geometry are logged and skipped so the rest of the
    track still gets matched.
    """

    if len(samples) < 2:
        return []

    points = [sample_point(sample) for sample in samples]
    candidates: List[TraversalCandidate] = []
    for segment in segments:
        try:
            geometry = geometry_from_segment(segment)
        except DataIntegrityFault as exc:
            logger.warning("Skipping segment %s: %s", segment.id, exc)
            continue

        if not near_endpoint_anywhere(points, geometry):
            continue

        candidate = find_traversal(points, geometry)
        if candidate is not None:
            candidates.append(candidate)

    return candidates


__all__ = [
    "MAX_CONSECUTIVE_MISSES",
    "TraversalCandidate",
    "find_traversal",
    "match_track",
    "near_endpoint_anywhere",
    "sample_point",
]
