"""Database models for driving sessions and their recorded GPS samples."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class SessionStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SessionVisibility(str, Enum):
    PRIVATE = "private"
    FRIENDS = "friends"
    PUBLIC = "public"


class DriveSession(SQLModel, table=True):
    """One recorded drive. Its track is final once completed or cancelled."""

    __tablename__ = "sessions"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    user_id: int = ORMField(foreign_key="users.id", index=True)
    vehicle_id: int = ORMField(foreign_key="vehicles.id", index=True)
    status: SessionStatus = ORMField(default=SessionStatus.ACTIVE, index=True)
    visibility: SessionVisibility = SessionVisibility.PRIVATE
    title: Optional[str] = ORMField(default=None, max_length=200)
    description: Optional[str] = None
    distance_km: float = 0.0
    duration_seconds: int = 0
    avg_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    started_at: datetime = ORMField(default_factory=utcnow)
    paused_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime = ORMField(default_factory=utcnow)


class GpsSample(SQLModel, table=True):
    """A single GPS fix. Immutable once recorded."""

    __tablename__ = "session_points"
    __table_args__ = (
        UniqueConstraint("session_id", "sequence_number", name="uq_session_points_sequence"),
    )

    id: Optional[int] = ORMField(default=None, primary_key=True)
    session_id: int = ORMField(foreign_key="sessions.id", index=True)
    latitude: float
    longitude: float
    altitude: Optional[float] = None
    speed_kmh: Optional[float] = None
    heading: Optional[float] = None
    accuracy: Optional[float] = None
    recorded_at: datetime = ORMField(default_factory=utcnow)
    sequence_number: int


class GpsPointIn(SQLModel):
    """Inbound GPS fix as posted by the mobile client."""

    latitude: float = ORMField(ge=-90, le=90)
    longitude: float = ORMField(ge=-180, le=180)
    altitude: Optional[float] = None
    speed_kmh: Optional[float] = ORMField(default=None, ge=0)
    heading: Optional[float] = ORMField(default=None, ge=0, le=360)
    accuracy: Optional[float] = ORMField(default=None, ge=0)
    recorded_at: Optional[datetime] = None


__all__ = ["DriveSession", "GpsPointIn", "GpsSample", "SessionStatus", "SessionVisibility"]
