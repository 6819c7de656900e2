"""Segment catalog and leaderboard endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from ...core import DEFAULT_DETECTION_TOLERANCE_M, get_session
from ...models import SegmentType, User
from ...services.leaderboard import get_leaderboard, get_user_records, ranked_to_dict, record_to_dict
from ...services.segments import (
    create_segment,
    deactivate_segment,
    get_segment,
    list_segments,
    segment_to_dict,
)
from ..deps import clamp_limit, current_user

router = APIRouter(prefix="/segments", tags=["segments"])


def _parse_segment_type(raw: Optional[str]) -> Optional[SegmentType]:
    if raw is None:
        return None
    try:
        return SegmentType(raw)
    except ValueError as exc:
        raise HTTPException(400, f"Unknown segment type: {raw}") from exc


def _parse_route(raw: Any) -> List[Tuple[float, float]]:
    if not isinstance(raw, list) or len(raw) < 2:
        raise HTTPException(400, "route needs at least two points")
    route: List[Tuple[float, float]] = []
    for point in raw:
        if not isinstance(point, dict) or not {"latitude", "longitude"} <= set(point.keys()):
            raise HTTPException(400, "Invalid route point payload")
        try:
            route.append((float(point["latitude"]), float(point["longitude"])))
        except (TypeError, ValueError) as exc:
            raise HTTPException(400, "Invalid route point payload") from exc
    return route


@router.get("")
def segments_index(
    type: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    session: Session = Depends(get_session),
):
    """List active segments, most attempted first."""

    if offset < 0:
        raise HTTPException(400, "offset must not be negative")
    segments = list_segments(
        session,
        segment_type=_parse_segment_type(type),
        limit=clamp_limit(limit),
        offset=offset,
    )
    return {"segments": [segment_to_dict(s, session=session) for s in segments]}


@router.post("", status_code=201)
def create_custom_segment(
    body: Dict[str, Any],
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Create a user-defined segment from a driving-order route."""

    name = (body.get("name") or "").strip()
    if not name or len(name) > 200:
        raise HTTPException(400, "Name is required (200 characters max)")

    route = _parse_route(body.get("route"))
    segment_type = _parse_segment_type(body.get("type")) or SegmentType.CUSTOM
    try:
        tolerance_m = float(body.get("tolerance_m") or DEFAULT_DETECTION_TOLERANCE_M)
    except (TypeError, ValueError) as exc:
        raise HTTPException(400, "tolerance_m must be a number") from exc

    try:
        segment = create_segment(
            session,
            name=name,
            route=route,
            tolerance_m=tolerance_m,
            created_by=user.id,
            description=body.get("description"),
            segment_type=segment_type,
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    return {"segment": segment_to_dict(segment, include_route=True, session=session)}


@router.get("/{segment_id}")
def segment_detail(segment_id: int, session: Session = Depends(get_session)):
    segment = get_segment(session, segment_id)
    return {"segment": segment_to_dict(segment, include_route=True, session=session)}


@router.delete("/{segment_id}")
def remove_segment(
    segment_id: int,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Deactivate a segment; its records are kept."""

    deactivate_segment(session, segment_id, user.id)
    return {"ok": True, "deactivated_segment": segment_id}


@router.get("/{segment_id}/leaderboard")
def segment_leaderboard(
    segment_id: int,
    limit: int = 50,
    offset: int = 0,
    session: Session = Depends(get_session),
):
    """Ranked performances, fastest first."""

    if offset < 0:
        raise HTTPException(400, "offset must not be negative")
    entries = get_leaderboard(session, segment_id, limit=clamp_limit(limit), offset=offset)
    return {
        "segment_id": segment_id,
        "leaderboard": [ranked_to_dict(entry) for entry in entries],
    }


@router.get("/{segment_id}/my-records")
def my_records(
    segment_id: int,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    records = get_user_records(session, segment_id, user.id)
    return {"records": [record_to_dict(record) for record in records]}


__all__ = ["router"]
