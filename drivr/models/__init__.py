"""Database model exports."""

from .segment import Segment, SegmentType
from .segment_record import SegmentRecord
from .session import DriveSession, GpsPointIn, GpsSample, SessionStatus, SessionVisibility
from .user import User
from .vehicle import Vehicle

__all__ = [
    "DriveSession",
    "GpsPointIn",
    "GpsSample",
    "Segment",
    "SegmentRecord",
    "SegmentType",
    "SessionStatus",
    "SessionVisibility",
    "User",
    "Vehicle",
]
