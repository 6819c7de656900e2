"""Driver accounts and profiles."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..core.errors import NotFound
from ..core.time import isoformat_utc
from ..models import Segment, SegmentRecord, User
from .leaderboard import live_rank, record_to_dict


def normalize_username(raw: Optional[str]) -> str:
    """Normalize inbound user names to match storage rules."""

    name = (raw or "").strip()
    if not name:
        raise ValueError("Username is required")
    if len(name) > 50:
        raise ValueError("Username must be 50 characters or less")
    return name


def login_or_register(db: Session, username: str, display_name: Optional[str] = None) -> User:
    """Return the user with ``username``, creating it on first login."""

    user = db.exec(select(User).where(User.username == username)).first()
    if not user:
        user = User(username=username, display_name=display_name or username)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def get_user_by_name(db: Session, username: str) -> User:
    user = db.exec(select(User).where(User.username == username)).first()
    if user is None:
        raise NotFound("User not found")
    return user


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "displayName": user.display_name,
        "avatarUrl": user.avatar_url,
        "stats": {
            "totalDistanceKm": user.total_distance_km,
            "totalDurationSeconds": user.total_duration_seconds,
            "totalSessions": user.total_sessions,
        },
        "createdAt": isoformat_utc(user.created_at),
    }


def user_profile(db: Session, user: User) -> Dict[str, Any]:
    """User summary plus every segment performance with its current rank."""

    rows = db.exec(
        select(SegmentRecord, Segment)
        .join(Segment, SegmentRecord.segment_id == Segment.id)
        .where(SegmentRecord.user_id == user.id)
        .order_by(Segment.name.asc(), SegmentRecord.duration_seconds.asc())
    ).all()

    positions: List[Dict[str, Any]] = []
    for record, segment in rows:
        positions.append(
            {
                **record_to_dict(record),
                "segmentName": segment.name,
                "rank": live_rank(db, record),
            }
        )

    return {"user": user_to_dict(user), "segmentRecords": positions}


__all__ = [
    "get_user_by_name",
    "login_or_register",
    "normalize_username",
    "user_profile",
    "user_to_dict",
]
