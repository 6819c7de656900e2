"""Driving session endpoints: recording, completion and segment matching."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, File, HTTPException, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ...core import MATCH_IN_BACKGROUND, MAX_GPX_UPLOAD_MB, DrivrError, get_session
from ...models import GpsPointIn, SessionVisibility, User
from ...services.gpx import parse_gpx_points
from ...services.leaderboard import record_to_dict
from ...services.processing import match_and_record, run_matching_job
from ...services.sessions import (
    append_samples,
    cancel_session,
    complete_session,
    get_owned_session,
    list_sessions,
    load_track,
    pause_session,
    resume_session,
    session_to_dict,
    start_session,
)
from ..deps import current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", status_code=201)
def create_session(
    body: Dict[str, Any],
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Start a new driving session."""

    vehicle_id = body.get("vehicle_id")
    if not isinstance(vehicle_id, int):
        raise HTTPException(400, "vehicle_id is required")
    title = body.get("title")
    if title is not None and len(str(title)) > 200:
        raise HTTPException(400, "Title must be 200 characters or less")

    drive = start_session(session, user_id=user.id, vehicle_id=vehicle_id, title=title)
    return {"session": session_to_dict(drive)}


@router.get("")
def my_sessions(
    limit: int = 20,
    offset: int = 0,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    if limit < 1 or offset < 0:
        raise HTTPException(400, "Invalid pagination")
    drives = list_sessions(session, user.id, limit=min(limit, 100), offset=offset)
    return {"sessions": [session_to_dict(drive) for drive in drives]}


@router.get("/{session_id}")
def get_session_detail(
    session_id: int,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    drive = get_owned_session(session, session_id, user.id)
    track = load_track(session, drive.id)
    return {
        "session": session_to_dict(drive, point_count=len(track)),
        "route": [{"latitude": s.latitude, "longitude": s.longitude} for s in track],
    }


@router.post("/{session_id}/points", status_code=201)
def add_point(
    session_id: int,
    point: GpsPointIn,
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Append one GPS fix to an active session."""

    drive = get_owned_session(session, session_id, user.id)
    [sample] = append_samples(session, drive, [point])
    return {"success": True, "sequenceNumber": sample.sequence_number}


@router.post("/{session_id}/points/batch", status_code=201)
def add_points_batch(
    session_id: int,
    points: List[GpsPointIn],
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Append several GPS fixes in order."""

    if not points:
        raise HTTPException(400, "No points provided")
    drive = get_owned_session(session, session_id, user.id)
    samples = append_samples(session, drive, points)
    return {"success": True, "pointsAdded": len(samples)}


@router.post("/{session_id}/points/gpx", status_code=201)
async def import_gpx(
    session_id: int,
    gpxfile: UploadFile = File(...),
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Append the timed points of a GPX file to an active session."""

    filename = (gpxfile.filename or "").lower()
    if not (
        filename.endswith(".gpx")
        or gpxfile.content_type
        in ("application/gpx+xml", "application/xml", "text/xml")
    ):
        raise HTTPException(status_code=400, detail="Only GPX files are allowed")

    content = await gpxfile.read()
    if not content.strip():
        raise HTTPException(status_code=400, detail="File is empty")
    if len(content) > MAX_GPX_UPLOAD_MB * 1024 * 1024:
        raise HTTPException(
            status_code=400, detail=f"File too large. Maximum size is {MAX_GPX_UPLOAD_MB}MB."
        )

    drive = get_owned_session(session, session_id, user.id)
    try:
        points = parse_gpx_points(content.decode("utf-8", errors="ignore"))
    except Exception as exc:  # gpxpy raises a variety of parse errors
        raise HTTPException(status_code=400, detail=f"Invalid GPX file: {exc}") from exc
    if not points:
        raise HTTPException(status_code=400, detail="No timed track points found in GPX file")

    samples = append_samples(session, drive, points)
    return {"success": True, "pointsAdded": len(samples)}


@router.post("/{session_id}/pause")
def pause(session_id: int, user: User = Depends(current_user), session: Session = Depends(get_session)):
    drive = pause_session(session, get_owned_session(session, session_id, user.id))
    return {"session": session_to_dict(drive)}


@router.post("/{session_id}/resume")
def resume(session_id: int, user: User = Depends(current_user), session: Session = Depends(get_session)):
    drive = resume_session(session, get_owned_session(session, session_id, user.id))
    return {"session": session_to_dict(drive)}


@router.delete("/{session_id}/cancel", status_code=204)
def cancel(session_id: int, user: User = Depends(current_user), session: Session = Depends(get_session)):
    cancel_session(session, get_owned_session(session, session_id, user.id))


def _parse_visibility(raw: Optional[str]) -> SessionVisibility:
    if raw is None:
        return SessionVisibility.PRIVATE
    try:
        return SessionVisibility(raw)
    except ValueError as exc:
        raise HTTPException(400, f"Unknown visibility: {raw}") from exc


@router.post("/{session_id}/complete")
def complete(
    session_id: int,
    background_tasks: BackgroundTasks,
    body: Optional[Dict[str, Any]] = Body(default=None),
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Finalize a session, then detect segment performances on its track.

    Matching never fails this request: it runs after the response when
    ``MATCH_IN_BACKGROUND`` is set, otherwise inline with failures logged.
    """

    body = body or {}
    visibility = _parse_visibility(body.get("visibility"))
    drive = get_owned_session(session, session_id, user.id)
    drive = complete_session(
        session,
        drive,
        title=body.get("title"),
        description=body.get("description"),
        visibility=visibility,
    )

    matching: Dict[str, Any]
    if MATCH_IN_BACKGROUND:
        background_tasks.add_task(run_matching_job, session.get_bind(), drive.id)
        matching = {"status": "scheduled"}
    else:
        try:
            records = match_and_record(session, drive.id)
            matching = {"status": "done", "records": [record_to_dict(r) for r in records]}
        except (DrivrError, SQLAlchemyError):
            logger.exception("Segment matching for session %s failed", drive.id)
            session.rollback()
            matching = {"status": "failed"}

    return {"session": session_to_dict(drive), "matching": matching}


@router.post("/{session_id}/match")
def rematch(session_id: int, user: User = Depends(current_user), session: Session = Depends(get_session)):
    """Rerun segment matching; only records not yet stored are created."""

    drive = get_owned_session(session, session_id, user.id)
    records = match_and_record(session, drive.id)
    return {"records": [record_to_dict(record) for record in records]}


__all__ = ["router"]
