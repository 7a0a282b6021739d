from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException


class LookupFailure(Exception):
    """Base class for failures of an asynchronous location lookup."""

    code = "lookup_failed"


class GeocodeLookupError(LookupFailure):
    """A search or reverse-geocode call failed (transport, status or payload)."""

    code = "geocode_failed"


class PermissionDenied(LookupFailure):
    """The user or the operating system refused the geolocation request."""

    code = "geolocation_denied"


class GeolocationUnavailable(LookupFailure):
    """Geolocation is not supported by the runtime."""

    code = "geolocation_unavailable"


class InvalidTransition(RuntimeError):
    """Raised when the location store is asked for a transition it does not allow."""


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        code = str(detail.get("code") or "http_error")
        message = str(detail.get("message") or "Error")
        details = detail.get("details")
    else:
        code = "http_error"
        message = detail if isinstance(detail, str) else "Error"
        details = None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=code,
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc):  # type: ignore[override]
    from fastapi.exceptions import RequestValidationError

    if isinstance(exc, RequestValidationError):
        return ErrorEnvelope(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="validation_error",
            message="Validation failed",
            details={"errors": exc.errors()},
        )
    raise exc
