"""Vehicle endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from ...core import get_session
from ...models import User
from ...services.vehicles import create_vehicle, list_vehicles, vehicle_to_dict
from ..deps import current_user

router = APIRouter(tags=["vehicles"])


@router.post("/vehicles", status_code=201)
def register_vehicle(
    body: Dict[str, Any],
    user: User = Depends(current_user),
    session: Session = Depends(get_session),
):
    """Register a vehicle for the signed-in driver."""

    brand = (body.get("brand") or "").strip()
    model = (body.get("model") or "").strip()
    if not brand or not model:
        raise HTTPException(400, "Brand and model are required")

    year = body.get("year")
    if year is not None and not isinstance(year, int):
        raise HTTPException(400, "Year must be an integer")

    vehicle = create_vehicle(
        session,
        user_id=user.id,
        brand=brand[:100],
        model=model[:100],
        year=year,
        color=body.get("color"),
    )
    return {"vehicle": vehicle_to_dict(vehicle)}


@router.get("/vehicles")
def my_vehicles(user: User = Depends(current_user), session: Session = Depends(get_session)):
    return {"vehicles": [vehicle_to_dict(v) for v in list_vehicles(session, user.id)]}


__all__ = ["router"]
