"""Leaderboard engine: exactly-once performance records and ranked views."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import Session, func, select

from ..core.errors import DuplicateTraversal, InvalidState, NotFound, StorageUnavailable
from ..core.time import isoformat_utc
from ..models import DriveSession, Segment, SegmentRecord, SessionStatus, User, Vehicle
from .matcher import TraversalCandidate
from .performance import PerformanceStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserSummary:
    id: int
    username: str
    display_name: Optional[str]
    avatar_url: Optional[str]


@dataclass(frozen=True)
class VehicleSummary:
    id: int
    brand: str
    model: str


@dataclass(frozen=True)
class RankedPerformance:
    rank: int
    record: SegmentRecord
    user: UserSummary
    vehicle: VehicleSummary


def _existing_record(db: Session, segment_id: int, session_id: int) -> Optional[SegmentRecord]:
    return db.exec(
        select(SegmentRecord).where(
            SegmentRecord.segment_id == segment_id,
            SegmentRecord.session_id == session_id,
        )
    ).first()


def record_performance(
    db: Session,
    candidate: TraversalCandidate,
    stats: PerformanceStats,
    *,
    session_id: int,
    user_id: int,
    vehicle_id: int,
) -> SegmentRecord:
    """Insert the performance for (segment, session) once and snapshot its rank.

    Bumping the segment's attempt counter is the first write of the
    transaction, so it holds the segment's row lock (a database write lock on
    SQLite) while the rank is counted and the record inserted. Concurrent
    sessions finishing the same segment therefore serialize here.
    """

    try:
        segment = db.get(Segment, candidate.segment_id)
        if segment is None:
            raise NotFound(f"Segment {candidate.segment_id} not found")
        drive = db.get(DriveSession, session_id)
        if drive is None:
            raise NotFound(f"Session {session_id} not found")
        if drive.status != SessionStatus.COMPLETED:
            raise InvalidState(f"Session {session_id} is {drive.status.value}, not completed")

        db.exec(
            update(Segment)
            .where(Segment.id == candidate.segment_id)
            .values(total_attempts=Segment.total_attempts + 1)
        )

        existing = _existing_record(db, candidate.segment_id, session_id)
        if existing is not None:
            db.rollback()
            raise DuplicateTraversal(
                f"Session {session_id} already has a record on segment {candidate.segment_id}",
                existing=existing,
            )

        faster = db.exec(
            select(func.count(SegmentRecord.id)).where(
                SegmentRecord.segment_id == candidate.segment_id,
                SegmentRecord.duration_seconds < stats.duration_seconds,
            )
        ).one()

        record = SegmentRecord(
            segment_id=candidate.segment_id,
            session_id=session_id,
            user_id=user_id,
            vehicle_id=vehicle_id,
            duration_seconds=stats.duration_seconds,
            avg_speed_kmh=stats.avg_speed_kmh,
            max_speed_kmh=stats.max_speed_kmh,
            started_at=stats.started_at,
            completed_at=stats.completed_at,
            rank_at_creation=int(faster) + 1,
        )
        db.add(record)
        db.commit()
    except IntegrityError as exc:
        # Lost the race against a concurrent insert for the same session.
        db.rollback()
        raise DuplicateTraversal(
            f"Session {session_id} already has a record on segment {candidate.segment_id}",
            existing=_existing_record(db, candidate.segment_id, session_id),
        ) from exc
    except DBAPIError as exc:
        db.rollback()
        raise StorageUnavailable("Record store unavailable") from exc

    db.refresh(record)
    logger.info(
        "Recorded %ss on segment %s for session %s (rank %s at creation)",
        record.duration_seconds,
        record.segment_id,
        session_id,
        record.rank_at_creation,
    )
    return record


def _require_segment(db: Session, segment_id: int) -> Segment:
    segment = db.get(Segment, segment_id)
    if segment is None:
        raise NotFound("Segment not found")
    return segment


def get_leaderboard(
    db: Session, segment_id: int, limit: int = 50, offset: int = 0
) -> List[RankedPerformance]:
    """Records for a segment by ascending duration, earliest first on ties.

    Ranks are positional over the full ordering, so they stay gapless across
    pages.
    """

    _require_segment(db, segment_id)
    rows = db.exec(
        select(SegmentRecord, User, Vehicle)
        .join(User, SegmentRecord.user_id == User.id)
        .join(Vehicle, SegmentRecord.vehicle_id == Vehicle.id)
        .where(SegmentRecord.segment_id == segment_id)
        .order_by(
            SegmentRecord.duration_seconds.asc(),
            SegmentRecord.created_at.asc(),
            SegmentRecord.id.asc(),
        )
        .offset(offset)
        .limit(limit)
    ).all()

    return [
        RankedPerformance(
            rank=offset + position,
            record=record,
            user=UserSummary(user.id, user.username, user.display_name, user.avatar_url),
            vehicle=VehicleSummary(vehicle.id, vehicle.brand, vehicle.model),
        )
        for position, (record, user, vehicle) in enumerate(rows, start=1)
    ]


def get_user_records(db: Session, segment_id: int, user_id: int) -> List[SegmentRecord]:
    _require_segment(db, segment_id)
    return list(
        db.exec(
            select(SegmentRecord)
            .where(SegmentRecord.segment_id == segment_id, SegmentRecord.user_id == user_id)
            .order_by(SegmentRecord.duration_seconds.asc(), SegmentRecord.created_at.asc())
        ).all()
    )


def live_rank(db: Session, record: SegmentRecord) -> int:
    """Current leaderboard position of ``record``."""

    ahead = db.exec(
        select(func.count(SegmentRecord.id)).where(
            SegmentRecord.segment_id == record.segment_id,
            or_(
                SegmentRecord.duration_seconds < record.duration_seconds,
                and_(
                    SegmentRecord.duration_seconds == record.duration_seconds,
                    or_(
                        SegmentRecord.created_at < record.created_at,
                        and_(
                            SegmentRecord.created_at == record.created_at,
                            SegmentRecord.id < record.id,
                        ),
                    ),
                ),
            ),
        )
    ).one()
    return int(ahead) + 1


def record_to_dict(record: SegmentRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "segmentId": record.segment_id,
        "sessionId": record.session_id,
        "durationSeconds": record.duration_seconds,
        "avgSpeedKmh": record.avg_speed_kmh,
        "maxSpeedKmh": record.max_speed_kmh,
        "rankAtCreation": record.rank_at_creation,
        "startedAt": isoformat_utc(record.started_at),
        "completedAt": isoformat_utc(record.completed_at),
        "createdAt": isoformat_utc(record.created_at),
    }


def ranked_to_dict(entry: RankedPerformance) -> Dict[str, Any]:
    return {
        "rank": entry.rank,
        **record_to_dict(entry.record),
        "user": {
            "id": entry.user.id,
            "username": entry.user.username,
            "displayName": entry.user.display_name,
            "avatarUrl": entry.user.avatar_url,
        },
        "vehicle": {
            "id": entry.vehicle.id,
            "brand": entry.vehicle.brand,
            "model": entry.vehicle.model,
        },
    }


__all__ = [
    "RankedPerformance",
    "UserSummary",
    "VehicleSummary",
    "get_leaderboard",
    "get_user_records",
    "live_rank",
    "ranked_to_dict",
    "record_performance",
    "record_to_dict",
]
