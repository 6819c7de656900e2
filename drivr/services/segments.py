"""Segment catalog: creation, lookup and spatial candidate search."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from ..core.errors import DataIntegrityFault, Forbidden, NotFound, StorageUnavailable
from ..core.time import isoformat_utc
from ..models import Segment, SegmentType, User
from .geo import BoundingBox, GeoPoint, bounding_box, polyline_length_m


@dataclass(frozen=True)
class SegmentGeometry:
    """Validated, in-memory view of a segment used by the matcher."""

    segment_id: int
    centerline: Tuple[GeoPoint, ...]
    tolerance_m: float

    @property
    def start(self) -> GeoPoint:
        return self.centerline[0]

    @property
    def end(self) -> GeoPoint:
        return self.centerline[-1]


def validate_centerline(points: Sequence[Tuple[float, float]]) -> List[GeoPoint]:
    """Return the centerline as GeoPoints or raise ``ValueError``."""

    centerline: List[GeoPoint] = []
    for lat, lon in points:
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
            raise ValueError(f"Coordinate out of range: ({lat}, {lon})")
        centerline.append(GeoPoint(float(lat), float(lon)))
    if len(centerline) < 2:
        raise ValueError("A segment needs at least two centerline points")
    if len(set(centerline)) < 2:
        raise ValueError("A segment needs at least two distinct centerline points")
    return centerline


def geometry_from_segment(segment: Segment) -> SegmentGeometry:
    """Build the matcher's geometry, rejecting malformed stored segments."""

    try:
        centerline = validate_centerline(segment.centerline)
    except (ValueError, TypeError) as exc:
        raise DataIntegrityFault(f"Segment {segment.id} has malformed geometry: {exc}") from exc
    if segment.tolerance_m is None or segment.tolerance_m <= 0:
        raise DataIntegrityFault(f"Segment {segment.id} has non-positive tolerance")
    return SegmentGeometry(
        segment_id=int(segment.id),
        centerline=tuple(centerline),
        tolerance_m=float(segment.tolerance_m),
    )


def segment_bounds(segment: Segment) -> BoundingBox:
    return BoundingBox(segment.min_lat, segment.min_lon, segment.max_lat, segment.max_lon)


def build_segment(
    *,
    name: str,
    route: Sequence[Tuple[float, float]],
    tolerance_m: float,
    created_by: Optional[int] = None,
    description: Optional[str] = None,
    segment_type: SegmentType = SegmentType.CUSTOM,
    is_official: bool = False,
) -> Segment:
    """Build an unsaved segment from its driving-order centerline."""

    if tolerance_m <= 0:
        raise ValueError("Detection tolerance must be positive")
    centerline = validate_centerline(route)
    length_m = polyline_length_m(centerline)
    bounds = bounding_box(centerline)

    segment = Segment(
        created_by=created_by,
        name=name,
        description=description,
        type=segment_type,
        centerline_json=json.dumps([[p.lat, p.lon] for p in centerline]),
        start_lat=centerline[0].lat,
        start_lon=centerline[0].lon,
        end_lat=centerline[-1].lat,
        end_lon=centerline[-1].lon,
        length_m=round(length_m, 1),
        tolerance_m=float(tolerance_m),
        min_lat=bounds.min_lat,
        min_lon=bounds.min_lon,
        max_lat=bounds.max_lat,
        max_lon=bounds.max_lon,
        is_official=is_official,
    )
    return segment


def create_segment(session: Session, **fields: Any) -> Segment:
    """Persist a new segment; see ``build_segment`` for the fields."""

    segment = build_segment(**fields)
    session.add(segment)
    session.commit()
    session.refresh(segment)
    return segment


def get_segment(session: Session, segment_id: int, *, include_inactive: bool = False) -> Segment:
    segment = session.get(Segment, segment_id)
    if segment is None or (not segment.is_active and not include_inactive):
        raise NotFound("Segment not found")
    return segment


def list_segments(
    session: Session,
    *,
    segment_type: Optional[SegmentType] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Segment]:
    query = select(Segment).where(Segment.is_active == True)  # noqa: E712
    if segment_type is not None:
        query = query.where(Segment.type == segment_type)
    query = query.order_by(Segment.total_attempts.desc(), Segment.id.asc())
    return list(session.exec(query.offset(offset).limit(limit)).all())


def deactivate_segment(session: Session, segment_id: int, user_id: int) -> Segment:
    """Soft-delete a segment; only its creator may do so."""

    segment = get_segment(session, segment_id)
    if segment.created_by != user_id:
        raise Forbidden("Only the creator can remove this segment")
    segment.is_active = False
    session.add(segment)
    session.commit()
    session.refresh(segment)
    return segment


def find_candidate_segments(session: Session, region: BoundingBox) -> List[Segment]:
    """Active segments whose tolerance-expanded bounds intersect ``region``.

    The indexed bounding-box columns narrow the scan in SQL using the widest
    tolerance in the catalog; each row is then checked against its own
    tolerance.
    """

    try:
        widest = session.exec(
            select(func.max(Segment.tolerance_m)).where(Segment.is_active == True)  # noqa: E712
        ).one()
        if widest is None:
            return []
        search = region.expand(float(widest))
        rows = session.exec(
            select(Segment)
            .where(Segment.is_active == True)  # noqa: E712
            .where(Segment.max_lat >= search.min_lat)
            .where(Segment.min_lat <= search.max_lat)
            .where(Segment.max_lon >= search.min_lon)
            .where(Segment.min_lon <= search.max_lon)
            .order_by(Segment.id.asc())
        ).all()
    except SQLAlchemyError as exc:
        raise StorageUnavailable("Segment catalog lookup failed") from exc

    return [
        segment
        for segment in rows
        if segment_bounds(segment).expand(segment.tolerance_m).intersects(region)
    ]


def segment_to_dict(
    segment: Segment,
    *,
    include_route: bool = False,
    session: Optional[Session] = None,
) -> Dict[str, Any]:
    """Serialise a segment model to API-friendly dict."""

    created_by_username = None
    if session is not None and segment.created_by is not None:
        creator = session.get(User, segment.created_by)
        created_by_username = creator.username if creator else None

    payload: Dict[str, Any] = {
        "id": segment.id,
        "name": segment.name,
        "description": segment.description,
        "type": segment.type.value if isinstance(segment.type, SegmentType) else segment.type,
        "distanceKm": round(segment.length_m / 1000.0, 2),
        "toleranceM": segment.tolerance_m,
        "totalAttempts": segment.total_attempts,
        "isOfficial": segment.is_official,
        "startPoint": {"latitude": segment.start_lat, "longitude": segment.start_lon},
        "endPoint": {"latitude": segment.end_lat, "longitude": segment.end_lon},
        "createdByUsername": created_by_username,
        "createdAt": isoformat_utc(segment.created_at),
    }
    if include_route:
        payload["route"] = [{"latitude": lat, "longitude": lon} for lat, lon in segment.centerline]
    return payload


__all__ = [
    "SegmentGeometry",
    "build_segment",
    "create_segment",
    "deactivate_segment",
    "find_candidate_segments",
    "geometry_from_segment",
    "get_segment",
    "list_segments",
    "segment_bounds",
    "segment_to_dict",
    "validate_centerline",
]
