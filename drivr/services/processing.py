"""Post-completion pipeline: track -> matcher -> extractor -> leaderboard."""

from __future__ import annotations

import logging
from typing import List

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ..core.errors import (
    DataIntegrityFault,
    DrivrError,
    DuplicateTraversal,
    InvalidState,
    NotFound,
    StorageUnavailable,
)
from ..models import DriveSession, SegmentRecord, SessionStatus
from .geo import GeoPoint, bounding_box
from .leaderboard import record_performance
from .matcher import match_track
from .performance import extract_performance
from .segments import find_candidate_segments
from .sessions import load_track

logger = logging.getLogger(__name__)


def match_and_record(db: Session, session_id: int) -> List[SegmentRecord]:
    """Detect segment traversals for a completed session and record them.

    Returns only the records created by this call, so a rerun on an already
    processed session returns an empty list. Per-segment faults are logged
    and skipped; storage failures abort the run with ``StorageUnavailable``,
    leaving earlier segments' records committed.
    """

    try:
        drive = db.get(DriveSession, session_id)
    except SQLAlchemyError as exc:
        raise StorageUnavailable("Session store unavailable") from exc
    if drive is None:
        raise NotFound(f"Session {session_id} not found")
    if drive.status != SessionStatus.COMPLETED:
        raise InvalidState(f"Session {session_id} is {drive.status.value}, not completed")
    user_id, vehicle_id = drive.user_id, drive.vehicle_id

    try:
        track = load_track(db, session_id)
    except SQLAlchemyError as exc:
        raise StorageUnavailable("Track store unavailable") from exc
    # Detach the samples so commits below do not expire them.
    for sample in track:
        db.expunge(sample)
    if len(track) < 2:
        return []

    region = bounding_box(GeoPoint(s.latitude, s.longitude) for s in track)
    segments = find_candidate_segments(db, region)
    candidates = match_track(track, segments)

    created: List[SegmentRecord] = []
    for candidate in candidates:
        try:
            stats = extract_performance(track, candidate)
            record = record_performance(
                db,
                candidate,
                stats,
                session_id=session_id,
                user_id=user_id,
                vehicle_id=vehicle_id,
            )
        except DataIntegrityFault as exc:
            logger.warning(
                "Dropped traversal of segment %s in session %s: %s",
                candidate.segment_id,
                session_id,
                exc,
            )
            continue
        except DuplicateTraversal:
            logger.info(
                "Session %s already recorded on segment %s", session_id, candidate.segment_id
            )
            continue
        except NotFound as exc:
            logger.warning("Segment %s vanished during matching: %s", candidate.segment_id, exc)
            continue
        created.append(record)

    logger.info(
        "Session %s: %d candidate segments, %d traversals, %d new records",
        session_id,
        len(segments),
        len(candidates),
        len(created),
    )
    return created


def run_matching_job(engine: Engine, session_id: int) -> None:
    """Background entry point; failures are logged, never raised."""

    try:
        with Session(engine) as db:
            match_and_record(db, session_id)
    except DrivrError as exc:
        logger.exception("Segment matching for session %s failed (%s)", session_id, exc.code)
    except SQLAlchemyError:
        logger.exception("Segment matching for session %s aborted; safe to retry", session_id)


__all__ = ["match_and_record", "run_matching_job"]
