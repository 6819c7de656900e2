"""HTTP surface: routers plus the domain error mapping."""

from __future__ import annotations

from fastapi import FastAPI

from ..core.errors import register_error_handlers
from .routers import ALL_ROUTERS


def install_api(app: FastAPI) -> None:
    """Mount every router and translate domain errors into JSON responses."""

    register_error_handlers(app)
    for router in ALL_ROUTERS:
        app.include_router(router)


__all__ = ["install_api"]
