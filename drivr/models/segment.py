"""Database model for timed road segments."""

from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class SegmentType(str, Enum):
    MOUNTAIN_PASS = "mountain_pass"
    HIGHWAY = "highway"
    TRUNK_ROAD = "trunk_road"
    LOCAL_ROAD = "local_road"
    CUSTOM = "custom"


class Segment(SQLModel, table=True):
    """Named stretch of road with a directed centerline.

    The bounding box columns cover the centerline only; callers expand them by
    the detection tolerance when searching.
    """

    __tablename__ = "segments"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    created_by: Optional[int] = ORMField(default=None, foreign_key="users.id", index=True)
    name: str = ORMField(max_length=200)
    description: Optional[str] = None
    type: SegmentType = ORMField(default=SegmentType.CUSTOM, index=True)
    # JSON string: [[lat, lon], [lat, lon], ...] in driving order
    centerline_json: str
    start_lat: float
    start_lon: float
    end_lat: float
    end_lon: float
    length_m: float
    tolerance_m: float
    min_lat: float = ORMField(index=True)
    max_lat: float = ORMField(index=True)
    min_lon: float = ORMField(index=True)
    max_lon: float = ORMField(index=True)
    total_attempts: int = 0
    is_official: bool = False
    is_active: bool = ORMField(default=True, index=True)
    created_at: datetime = ORMField(default_factory=utcnow)

    @property
    def centerline(self) -> List[Tuple[float, float]]:
        return [(float(lat), float(lon)) for lat, lon in json.loads(self.centerline_json or "[]")]


__all__ = ["Segment", "SegmentType"]
