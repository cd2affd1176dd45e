"""Structured error helpers for API responses."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse

from hirepipe.core.provider_errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

_KIND_STATUS = {
    ErrorKind.TRANSIENT: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.POLICY: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.UNKNOWN: status.HTTP_502_BAD_GATEWAY,
}


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = build_error_payload(code, message, details)

    @classmethod
    def from_kind(cls, kind: ErrorKind, message: str, details: Optional[Dict[str, Any]] = None) -> "AppError":
        return cls(_KIND_STATUS[kind], kind.value, message, details)


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def provider_error_handler(_: Request, exc: ProviderError) -> JSONResponse:
    app_error = AppError.from_kind(exc.kind, exc.message, exc.details or None)
    return JSONResponse(status_code=app_error.status_code, content=app_error.payload)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort safety net: log and return a generic recovery payload."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_payload(
            "internal_error",
            "Something went wrong. Please reload and try again.",
            {"recovery": "reload"},
        ),
    )


def raise_app_error(status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
    """Raise an AppError with a standardized error shape."""
    raise AppError(status_code, code, message, details)
