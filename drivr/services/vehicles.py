"""Vehicle registration for drivers."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from ..models import Vehicle


def create_vehicle(
    db: Session,
    *,
    user_id: int,
    brand: str,
    model: str,
    year: Optional[int] = None,
    color: Optional[str] = None,
) -> Vehicle:
    vehicle = Vehicle(user_id=user_id, brand=brand, model=model, year=year, color=color)
    db.add(vehicle)
    db.commit()
    db.refresh(vehicle)
    return vehicle


def list_vehicles(db: Session, user_id: int) -> List[Vehicle]:
    return list(
        db.exec(
            select(Vehicle)
            .where(Vehicle.user_id == user_id, Vehicle.is_active == True)  # noqa: E712
            .order_by(Vehicle.id.asc())
        ).all()
    )


def vehicle_to_dict(vehicle: Vehicle) -> Dict[str, Any]:
    return {
        "id": vehicle.id,
        "brand": vehicle.brand,
        "model": vehicle.model,
        "year": vehicle.year,
        "color": vehicle.color,
        "stats": {
            "totalDistanceKm": vehicle.total_distance_km,
            "totalDurationSeconds": vehicle.total_duration_seconds,
            "totalSessions": vehicle.total_sessions,
        },
    }


__all__ = ["create_vehicle", "list_vehicles", "vehicle_to_dict"]
