"""System-level API endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ...core import DEFAULT_DETECTION_TOLERANCE_M, LEADERBOARD_MAX_LIMIT
from ...models import SegmentType

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Simple readiness probe."""

    return {"ok": True}


@router.get("/healthz")
def healthz() -> JSONResponse:
    """Kubernetes-style readiness endpoint."""

    return JSONResponse({"ok": True})


@router.get("/config")
def get_config() -> Dict[str, Any]:
    """Expose client configuration values."""

    return {
        "default_detection_tolerance_m": DEFAULT_DETECTION_TOLERANCE_M,
        "leaderboard_max_limit": LEADERBOARD_MAX_LIMIT,
        "segment_types": [segment_type.value for segment_type in SegmentType],
    }


__all__ = ["router"]
