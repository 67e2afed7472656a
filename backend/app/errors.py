"""Service error taxonomy and the JSON error shape returned by the API."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

LOGGER = logging.getLogger(__name__)

_REASON_STATUS = {
    "bad_request": status.HTTP_400_BAD_REQUEST,
    "unauthorized": status.HTTP_401_UNAUTHORIZED,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "gone": status.HTTP_410_GONE,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "upstream": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class ServiceError(RuntimeError):
    """Raised by service layers; ``reason`` selects the HTTP status."""

    def __init__(self, message: str, reason: str = "bad_request") -> None:
        super().__init__(message)
        self.reason = reason


def status_from_reason(reason: str) -> int:
    """Translate service error reasons into HTTP status codes."""

    return _REASON_STATUS.get(reason, status.HTTP_400_BAD_REQUEST)


def to_http_exception(exc: ServiceError) -> HTTPException:
    """Wrap a service error for FastAPI."""

    return HTTPException(status_code=status_from_reason(exc.reason), detail=str(exc))


def build_error_payload(message: str) -> Dict[str, Any]:
    """Return the error body shared by every endpoint."""

    return {"error": message}


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_payload(detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=build_error_payload("; ".join(messages) or "Invalid request"),
    )


async def service_error_handler(_: Request, exc: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=status_from_reason(exc.reason),
        content=build_error_payload(str(exc)),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.exception(
        "Unhandled error while serving request",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_payload(str(exc) or exc.__class__.__name__),
    )


__all__ = [
    "ServiceError",
    "status_from_reason",
    "to_http_exception",
    "build_error_payload",
    "http_exception_handler",
    "validation_exception_handler",
    "service_error_handler",
    "unhandled_exception_handler",
]
