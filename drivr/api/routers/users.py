"""User login and profile endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlmodel import Session

from ...core import get_session
from ...models import User
from ...services.users import (
    get_user_by_name,
    login_or_register,
    normalize_username,
    user_profile,
    user_to_dict,
)
from ..deps import current_user

router = APIRouter(tags=["users"])


@router.post("/users/login")
def login_user(body: Dict[str, Any], request: Request, session: Session = Depends(get_session)):
    """Login or register a driver by username."""

    try:
        username = normalize_username(body.get("username"))
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc

    user = login_or_register(session, username, body.get("display_name"))
    request.session["uid"] = user.id
    return user_to_dict(user)


@router.post("/users/logout")
def logout_user(request: Request) -> Dict[str, bool]:
    request.session.clear()
    return {"ok": True}


@router.get("/users/me")
def get_me(user: User = Depends(current_user)):
    return user_to_dict(user)


@router.get("/users/{username}/profile")
def get_user_profile(username: str, session: Session = Depends(get_session)):
    """Get a driver's profile with their segment records and live ranks."""

    try:
        normalized = normalize_username(username)
    except ValueError as exc:
        raise HTTPException(400, str(exc)) from exc
    return user_profile(session, get_user_by_name(session, normalized))


__all__ = ["router"]
