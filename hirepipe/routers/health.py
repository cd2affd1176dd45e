"""Health check router."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import text

from hirepipe.core.client import BackendClient
from hirepipe.core.dependencies import get_backend, get_notifier
from hirepipe.core.provider_errors import classify_error
from hirepipe.db.session import session_scope
from hirepipe.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(
    backend: BackendClient = Depends(get_backend),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Database reachability, identity provider and email settings."""
    db_error: Optional[str] = None
    try:
        async with session_scope(backend.session_factory) as db:
            await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        db_error = classify_error(exc).value
        logger.warning("Health check could not reach the database (%s): %s", db_error, exc)

    email_ok, email_errors = notifier.validate_configuration()

    return {
        "api_ok": True,
        "db_ok": db_error is None,
        "db_error": db_error,
        "identity_provider": backend.identity.provider,
        "email_config_ok": email_ok,
        "email_config_errors": email_errors,
    }
