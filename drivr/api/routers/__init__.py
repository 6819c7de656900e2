"""Aggregate API routers."""

from fastapi import APIRouter

from .segments import router as segments_router
from .sessions import router as sessions_router
from .system import router as system_router
from .users import router as users_router
from .vehicles import router as vehicles_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    users_router,
    vehicles_router,
    sessions_router,
    segments_router,
)

__all__ = ["ALL_ROUTERS"]
