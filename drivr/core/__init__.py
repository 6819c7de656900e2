"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    DATABASE_URL,
    DB_RESET,
    DEFAULT_DETECTION_TOLERANCE_M,
    LEADERBOARD_MAX_LIMIT,
    LOG_LEVEL,
    MATCH_IN_BACKGROUND,
    MAX_GPX_UPLOAD_MB,
    SECRET_KEY,
)
from .database import engine, get_session, init_db
from .errors import (
    DataIntegrityFault,
    DrivrError,
    DuplicateTraversal,
    Forbidden,
    InvalidState,
    NotFound,
    StorageUnavailable,
)
from .time import isoformat_utc, seconds_between, utcnow

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DATABASE_URL",
    "DB_RESET",
    "DEFAULT_DETECTION_TOLERANCE_M",
    "LEADERBOARD_MAX_LIMIT",
    "LOG_LEVEL",
    "MATCH_IN_BACKGROUND",
    "MAX_GPX_UPLOAD_MB",
    "SECRET_KEY",
    "DataIntegrityFault",
    "DrivrError",
    "DuplicateTraversal",
    "Forbidden",
    "InvalidState",
    "NotFound",
    "StorageUnavailable",
    "engine",
    "get_session",
    "init_db",
    "isoformat_utc",
    "seconds_between",
    "utcnow",
]
