"""Domain errors raised by the service layer.

Routers do not catch these; ``register_error_handlers`` turns them into JSON
responses with a stable ``code`` so clients can tell them apart.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class DrivrError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class NotFound(DrivrError):
    """A referenced segment, session, vehicle or user does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class Forbidden(DrivrError):
    """The caller is not allowed to act on this resource."""

    status_code = 403
    code = "FORBIDDEN"


class InvalidState(DrivrError):
    """The target exists but its lifecycle state forbids the operation."""

    status_code = 409
    code = "INVALID_STATE"


class DuplicateTraversal(DrivrError):
    """A performance already exists for this (segment, session) pair."""

    status_code = 409
    code = "DUPLICATE_TRAVERSAL"

    def __init__(self, message: str = "", existing: Optional[Any] = None) -> None:
        super().__init__(message)
        self.existing = existing


class DataIntegrityFault(DrivrError):
    """Track or segment data is internally inconsistent."""

    status_code = 422
    code = "DATA_INTEGRITY_FAULT"


class StorageUnavailable(DrivrError):
    """The catalog or record store could not be reached; safe to retry."""

    status_code = 503
    code = "STORAGE_UNAVAILABLE"


async def _drivr_error_handler(request: Request, exc: DrivrError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"message": exc.message, "code": exc.code}},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Map domain errors onto HTTP responses."""

    app.add_exception_handler(DrivrError, _drivr_error_handler)


__all__ = [
    "DataIntegrityFault",
    "DrivrError",
    "DuplicateTraversal",
    "Forbidden",
    "InvalidState",
    "NotFound",
    "StorageUnavailable",
    "register_error_handlers",
]
