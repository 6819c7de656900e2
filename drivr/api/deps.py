"""Shared request dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from ..core import LEADERBOARD_MAX_LIMIT, get_session
from ..models import User


def current_user(request: Request, session: Session = Depends(get_session)) -> User:
    """Resolve the signed-in driver from the session cookie."""

    uid = request.session.get("uid")
    if uid is None:
        raise HTTPException(401, "Authentication required")
    try:
        user = session.get(User, int(uid))
    except (TypeError, ValueError):
        user = None
    if user is None:
        request.session.clear()
        raise HTTPException(401, "Authentication required")
    return user


def clamp_limit(limit: int) -> int:
    if limit < 1:
        raise HTTPException(400, "limit must be positive")
    return min(limit, LEADERBOARD_MAX_LIMIT)


__all__ = ["clamp_limit", "current_user"]
