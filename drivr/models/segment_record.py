"""Database model for performances on segments."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class SegmentRecord(SQLModel, table=True):
    """Timed result of one traversal. Written once, never updated.

    ``rank_at_creation`` is a snapshot for historic feeds; live ranks come
    from the leaderboard query.
    """

    __tablename__ = "segment_records"
    __table_args__ = (
        UniqueConstraint("segment_id", "session_id", name="uq_segment_records_session"),
        Index("ix_segment_records_duration", "segment_id", "duration_seconds"),
    )

    id: Optional[int] = ORMField(default=None, primary_key=True)
    segment_id: int = ORMField(foreign_key="segments.id", index=True)
    session_id: int = ORMField(foreign_key="sessions.id", index=True)
    user_id: int = ORMField(foreign_key="users.id", index=True)
    vehicle_id: int = ORMField(foreign_key="vehicles.id", index=True)
    duration_seconds: int
    avg_speed_kmh: float
    max_speed_kmh: Optional[float] = None
    started_at: datetime
    completed_at: datetime
    rank_at_creation: Optional[int] = None
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["SegmentRecord"]
