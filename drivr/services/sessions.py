"""Driving session lifecycle and track access."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session, func, select

from ..core.errors import InvalidState, NotFound
from ..core.time import isoformat_utc, seconds_between, utcnow
from ..models import (
    DriveSession,
    GpsPointIn,
    GpsSample,
    SessionStatus,
    SessionVisibility,
    User,
    Vehicle,
)
from .geo import GeoPoint, polyline_length_m

_OPEN_STATUSES = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


def start_session(
    db: Session, *, user_id: int, vehicle_id: int, title: Optional[str] = None
) -> DriveSession:
    """Open a new active session; a driver can only have one open at a time."""

    vehicle = db.get(Vehicle, vehicle_id)
    if vehicle is None or vehicle.user_id != user_id or not vehicle.is_active:
        raise NotFound("Vehicle not found")

    open_session = db.exec(
        select(DriveSession).where(
            DriveSession.user_id == user_id,
            DriveSession.status.in_(_OPEN_STATUSES),
        )
    ).first()
    if open_session is not None:
        raise InvalidState("A session is already in progress")

    drive = DriveSession(user_id=user_id, vehicle_id=vehicle_id, title=title)
    db.add(drive)
    db.commit()
    db.refresh(drive)
    return drive


def get_owned_session(db: Session, session_id: int, user_id: int) -> DriveSession:
    drive = db.get(DriveSession, session_id)
    if drive is None or drive.user_id != user_id:
        raise NotFound("Session not found")
    return drive


def _require_status(drive: DriveSession, *allowed: SessionStatus) -> None:
    if drive.status not in allowed:
        raise InvalidState(f"Session is {drive.status.value}")


def append_samples(db: Session, drive: DriveSession, points: Sequence[GpsPointIn]) -> List[GpsSample]:
    """Append fixes to an active session, continuing its sequence numbers."""

    _require_status(drive, SessionStatus.ACTIVE)
    if not points:
        return []

    current = db.exec(
        select(func.coalesce(func.max(GpsSample.sequence_number), 0)).where(
            GpsSample.session_id == drive.id
        )
    ).one()

    samples: List[GpsSample] = []
    for offset, point in enumerate(points, start=1):
        sample = GpsSample(
            session_id=drive.id,
            latitude=point.latitude,
            longitude=point.longitude,
            altitude=point.altitude,
            speed_kmh=point.speed_kmh,
            heading=point.heading,
            accuracy=point.accuracy,
            recorded_at=point.recorded_at or utcnow(),
            sequence_number=int(current) + offset,
        )
        db.add(sample)
        samples.append(sample)
    db.commit()
    for sample in samples:
        db.refresh(sample)
    return samples


def load_track(db: Session, session_id: int) -> List[GpsSample]:
    """The session's samples ordered by sequence number."""

    return list(
        db.exec(
            select(GpsSample)
            .where(GpsSample.session_id == session_id)
            .order_by(GpsSample.sequence_number.asc())
        ).all()
    )


def pause_session(db: Session, drive: DriveSession) -> DriveSession:
    _require_status(drive, SessionStatus.ACTIVE)
    drive.status = SessionStatus.PAUSED
    drive.paused_at = utcnow()
    db.add(drive)
    db.commit()
    db.refresh(drive)
    return drive


def resume_session(db: Session, drive: DriveSession) -> DriveSession:
    _require_status(drive, SessionStatus.PAUSED)
    drive.status = SessionStatus.ACTIVE
    drive.paused_at = None
    db.add(drive)
    db.commit()
    db.refresh(drive)
    return drive


def cancel_session(db: Session, drive: DriveSession) -> DriveSession:
    _require_status(drive, *_OPEN_STATUSES)
    drive.status = SessionStatus.CANCELLED
    db.add(drive)
    db.commit()
    db.refresh(drive)
    return drive


def complete_session(
    db: Session,
    drive: DriveSession,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    visibility: SessionVisibility = SessionVisibility.PRIVATE,
) -> DriveSession:
    """Finalize the track, store its summary and roll it into driver totals."""

    _require_status(drive, *_OPEN_STATUSES)
    track = load_track(db, drive.id)
    now = utcnow()

    distance_km = polyline_length_m([GeoPoint(s.latitude, s.longitude) for s in track]) / 1000.0
    speeds = [s.speed_kmh for s in track if s.speed_kmh is not None]
    duration = max(0, int(seconds_between(drive.started_at, now)))

    drive.status = SessionStatus.COMPLETED
    drive.completed_at = now
    drive.paused_at = None
    if title:
        drive.title = title
    drive.description = description
    drive.visibility = visibility
    drive.distance_km = round(distance_km, 2)
    drive.duration_seconds = duration
    drive.avg_speed_kmh = round(sum(speeds) / len(speeds), 2) if speeds else 0.0
    drive.max_speed_kmh = round(max(speeds), 2) if speeds else 0.0
    db.add(drive)

    user = db.get(User, drive.user_id)
    if user is not None:
        user.total_distance_km = round(user.total_distance_km + drive.distance_km, 2)
        user.total_duration_seconds += duration
        user.total_sessions += 1
        db.add(user)

    vehicle = db.get(Vehicle, drive.vehicle_id)
    if vehicle is not None:
        vehicle.total_distance_km = round(vehicle.total_distance_km + drive.distance_km, 2)
        vehicle.total_duration_seconds += duration
        vehicle.total_sessions += 1
        db.add(vehicle)

    db.commit()
    db.refresh(drive)
    return drive


def list_sessions(db: Session, user_id: int, *, limit: int = 20, offset: int = 0) -> List[DriveSession]:
    return list(
        db.exec(
            select(DriveSession)
            .where(DriveSession.user_id == user_id)
            .order_by(DriveSession.started_at.desc(), DriveSession.id.desc())
            .offset(offset)
            .limit(limit)
        ).all()
    )


def session_to_dict(drive: DriveSession, *, point_count: Optional[int] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": drive.id,
        "vehicleId": drive.vehicle_id,
        "title": drive.title,
        "description": drive.description,
        "status": drive.status.value,
        "visibility": drive.visibility.value,
        "stats": {
            "distanceKm": drive.distance_km,
            "durationSeconds": drive.duration_seconds,
            "avgSpeedKmh": drive.avg_speed_kmh,
            "maxSpeedKmh": drive.max_speed_kmh,
        },
        "startedAt": isoformat_utc(drive.started_at),
        "pausedAt": isoformat_utc(drive.paused_at),
        "completedAt": isoformat_utc(drive.completed_at),
    }
    if point_count is not None:
        payload["pointCount"] = point_count
    return payload


__all__ = [
    "append_samples",
    "cancel_session",
    "complete_session",
    "get_owned_session",
    "list_sessions",
    "load_track",
    "pause_session",
    "resume_session",
    "session_to_dict",
    "start_session",
]
