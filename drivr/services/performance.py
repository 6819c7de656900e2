"""Turn a traversal candidate into performance statistics."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from ..core.errors import DataIntegrityFault
from ..core.time import seconds_between
from ..models import GpsSample
from .geo import haversine_m
from .matcher import TraversalCandidate


@dataclass(frozen=True)
class PerformanceStats:
    """Unpersisted outcome of one traversal."""

    duration_seconds: int
    avg_speed_kmh: float
    max_speed_kmh: Optional[float]
    started_at: datetime
    completed_at: datetime


def extract_performance(
    samples: Sequence[GpsSample], candidate: TraversalCandidate
) -> PerformanceStats:
    """Compute duration and speeds over ``samples[entry..exit]`` inclusive.

    Raises ``DataIntegrityFault`` when the indices are out of order or the
    timestamps do not move forward; such candidates are dropped, never clamped.
    """

    entry, exit_ = candidate.entry_index, candidate.exit_index
    if not 0 <= entry < exit_ < len(samples):
        raise DataIntegrityFault(
            f"Invalid traversal bounds {entry}..{exit_} for a track of {len(samples)} samples"
        )

    window = samples[entry : exit_ + 1]
    first, last = window[0], window[-1]
    duration = math.floor(seconds_between(first.recorded_at, last.recorded_at))
    if duration <= 0:
        raise DataIntegrityFault(
            f"Non-positive duration ({duration}s) for segment {candidate.segment_id} "
            f"between samples {first.sequence_number} and {last.sequence_number}"
        )

    speeds = [float(s.speed_kmh) for s in window if s.speed_kmh is not None]
    if speeds:
        avg_speed = sum(speeds) / len(speeds)
        max_speed: Optional[float] = max(speeds)
    else:
        distance = sum(
            haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)
            for a, b in zip(window, window[1:])
        )
        avg_speed = distance / duration * 3.6
        max_speed = None

    return PerformanceStats(
        duration_seconds=int(duration),
        avg_speed_kmh=round(avg_speed, 2),
        max_speed_kmh=round(max_speed, 2) if max_speed is not None else None,
        started_at=first.recorded_at,
        completed_at=last.recorded_at,
    )


__all__ = ["PerformanceStats", "extract_performance"]
