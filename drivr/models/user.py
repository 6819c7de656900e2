"""Database model for drivers."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class User(SQLModel, table=True):
    """Driver identified by a unique username."""

    __tablename__ = "users"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    username: str = ORMField(index=True, unique=True, max_length=50)
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    total_distance_km: float = 0.0
    total_duration_seconds: int = 0
    total_sessions: int = 0
    created_at: datetime = ORMField(default_factory=utcnow)


__all__ = ["User"]
