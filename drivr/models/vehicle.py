"""Database model for vehicles owned by drivers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class Vehicle(SQLModel, table=True):
    """A car a driver records sessions with."""

    __tablename__ = "vehicles"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    user_id: int = ORMField(foreign_key="users.id", index=True)
    brand: str
    model: str
    year: Optional[int] = None
    color: Optional[str] = None
    is_active: bool = True
    total_distance_km: float = 0.0
    total_duration_seconds: int = 0
    total_sessions: int = 0
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["Vehicle"]
