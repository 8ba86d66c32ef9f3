"""Error hierarchy and FastAPI exception handlers.

Services raise these; routes let them propagate and the handlers registered
by ``register_error_handlers`` turn them into JSON responses:

    {"error": {"code": "NOT_FOUND", "message": "...", "status": 404, "details": {...}}}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FurLinkError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(FurLinkError):
    """Missing field, field too long, or value out of range (400)."""

    def __init__(self, message: str, *, field: str | None = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=d,
        )


class NotFoundError(FurLinkError):
    """Referenced resource does not exist (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"resource": resource, **identifiers},
        )


class ForbiddenError(FurLinkError):
    """Caller may not act on this resource (403)."""

    def __init__(self, message: str, **details: Any):
        super().__init__(
            message=message,
            status_code=403,
            error_code="FORBIDDEN",
            details=details,
        )


class StorageError(FurLinkError):
    """Persistence call failed (503)."""

    def __init__(self, operation: str, message: str = ""):
        super().__init__(
            message=f"Storage operation '{operation}' failed: {message}",
            status_code=503,
            error_code="STORAGE_ERROR",
            details={"operation": operation},
        )


def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }
    if details:
        body["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app."""

    @app.exception_handler(FurLinkError)
    async def handle_furlink_error(request: Request, exc: FurLinkError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        logger.log(
            level,
            "%s %s -> %s: %s | details=%s",
            request.method, request.url.path, exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(exc.status_code, exc.error_code, exc.message, exc.details)
