"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from hirepipe import __version__
from hirepipe.core.client import BackendClient, build_backend_client
from hirepipe.core.config import Settings, settings as default_settings
from hirepipe.core.provider_errors import ProviderError
from hirepipe.errors import AppError, app_error_handler, provider_error_handler, unhandled_error_handler
from hirepipe.routers import auth, candidates, health, pipeline, profiles
from hirepipe.services.notification_service import EmailConfig, NotificationDispatcher

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    settings: Optional[Settings] = None,
    backend: Optional[BackendClient] = None,
    notifier: Optional[NotificationDispatcher] = None,
) -> FastAPI:
    """
    Build the application.

    `backend` and `notifier` are built from settings at startup unless
    given; tests pass their own.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for the FastAPI app.

        - On startup: build the backend client and notification dispatcher
        - On shutdown: close the identity provider and database engine
        """
        configure_logging(settings.LOG_LEVEL)
        logger.info("Starting %s (%s)...", settings.APP_NAME, settings.ENVIRONMENT)

        owns_backend = app.state.backend is None
        if owns_backend:
            app.state.backend = build_backend_client(settings)
        if app.state.notifier is None:
            app.state.notifier = NotificationDispatcher(EmailConfig.from_settings(settings))

        is_valid, errors = app.state.notifier.validate_configuration()
        if not is_valid:
            logger.warning("Email configuration problems: %s", "; ".join(errors))

        yield  # The server runs while we're "yielded" here

        logger.info("Shutting down %s...", settings.APP_NAME)
        if owns_backend:
            await app.state.backend.aclose()
            app.state.backend = None

    app = FastAPI(
        title=settings.APP_NAME,
        description="Backend API for the recruiter hiring pipeline",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.backend = backend
    app.state.notifier = notifier

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(ProviderError, provider_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers (API endpoints)
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router)
    app.include_router(profiles.router)
    app.include_router(pipeline.router)
    app.include_router(candidates.router)

    return app


app = create_app()
