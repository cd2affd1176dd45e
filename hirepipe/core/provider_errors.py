"""
Typed classification of backend failures.

Raw exceptions from the database driver, SQLAlchemy, httpx, or a hosted
provider's JSON error payload are mapped onto a closed set of error kinds.
Callers branch on `ErrorKind`, never on message text.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

import httpx
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    NoResultFound,
    OperationalError,
)


class ErrorKind(str, enum.Enum):
    TRANSIENT = "transient"
    POLICY = "policy"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    UNKNOWN = "unknown"


# Postgres SQLSTATEs raised by misconfigured row-level security
POLICY_SQLSTATES = {"42P17", "42501"}
POLICY_PROVIDER_CODES = {"PGRST301"}
NOT_FOUND_PROVIDER_CODES = {"PGRST116"}
POLICY_MESSAGE_MARKERS = ("infinite recursion", "row-level security")


class ProviderError(Exception):
    """A backend failure with its classified kind."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.details = details or {}

    def __repr__(self) -> str:
        return f"ProviderError(kind={self.kind.value!r}, message={self.message!r}, code={self.code!r})"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def _has_policy_marker(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in POLICY_MESSAGE_MARKERS)


def kind_from_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 409:
        return ErrorKind.CONFLICT
    if status_code in (400, 422):
        return ErrorKind.VALIDATION
    if status_code == 429 or status_code >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN


def classify_payload(payload: dict[str, Any], status_code: Optional[int] = None) -> ErrorKind:
    """Classify a provider JSON error body such as {"code": "PGRST301", "message": ...}."""
    code = str(payload.get("code") or payload.get("error_code") or "")
    message = str(payload.get("message") or payload.get("msg") or payload.get("error_description") or "")
    if code in POLICY_PROVIDER_CODES or code in POLICY_SQLSTATES or _has_policy_marker(message):
        return ErrorKind.POLICY
    if code in NOT_FOUND_PROVIDER_CODES:
        return ErrorKind.NOT_FOUND
    if status_code is not None:
        return kind_from_status(status_code)
    return ErrorKind.UNKNOWN


def classify_error(exc: BaseException) -> ErrorKind:
    """Map any exception raised by a backend call onto an ErrorKind."""
    if isinstance(exc, ProviderError):
        return exc.kind

    if isinstance(exc, NoResultFound):
        return ErrorKind.NOT_FOUND

    if isinstance(exc, DBAPIError):
        if _sqlstate(exc) in POLICY_SQLSTATES or _has_policy_marker(str(exc)):
            return ErrorKind.POLICY
        if isinstance(exc, IntegrityError):
            return ErrorKind.CONFLICT
        if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
            return ErrorKind.TRANSIENT
        return ErrorKind.UNKNOWN

    if isinstance(exc, httpx.HTTPStatusError):
        try:
            payload = exc.response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            return classify_payload(payload, exc.response.status_code)
        return kind_from_status(exc.response.status_code)

    if isinstance(exc, (httpx.TransportError, TimeoutError, ConnectionError, OSError)):
        return ErrorKind.TRANSIENT

    if isinstance(exc, ValueError):
        return ErrorKind.VALIDATION

    if _has_policy_marker(str(exc)):
        return ErrorKind.POLICY

    return ErrorKind.UNKNOWN


def to_provider_error(exc: BaseException, default_message: str = "Backend request failed") -> ProviderError:
    """Wrap `exc` in a ProviderError, keeping an existing one as-is."""
    if isinstance(exc, ProviderError):
        return exc
    message = str(exc).strip() or default_message
    return ProviderError(classify_error(exc), message)
