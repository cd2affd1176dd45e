"""
Backend client handle.

Bundles the database engine/session factory and the identity provider.
The application entry point builds one and passes it to the components
that need it; nothing reaches for a module-level client.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hirepipe.core.config import Settings
from hirepipe.db.session import build_engine, build_session_factory
from hirepipe.providers.base import IdentityProvider
from hirepipe.providers.hosted_identity import HostedIdentityProvider
from hirepipe.providers.local_identity import LocalIdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class BackendClient:
    """Everything a component needs to talk to the backend."""

    session_factory: async_sessionmaker[AsyncSession]
    identity: IdentityProvider
    engine: Optional[AsyncEngine] = None

    async def aclose(self) -> None:
        close = getattr(self.identity, "aclose", None)
        if close is not None:
            await close()
        if self.engine is not None:
            await self.engine.dispose()


def build_identity_provider(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> IdentityProvider:
    """Pick the identity provider named by AUTH_PROVIDER."""
    kind = settings.AUTH_PROVIDER.strip().lower()
    if kind == "hosted":
        return HostedIdentityProvider(
            base_url=settings.AUTH_PROVIDER_URL or "",
            anon_key=settings.AUTH_PROVIDER_ANON_KEY or "",
            timeout=settings.AUTH_PROVIDER_TIMEOUT_SECONDS,
        )
    if kind == "local":
        return LocalIdentityProvider(
            session_factory,
            secret_key=settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
            token_ttl=timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS),
        )
    raise ValueError(f"Unknown AUTH_PROVIDER: {settings.AUTH_PROVIDER!r}")


def build_backend_client(settings: Settings) -> BackendClient:
    """Construct the client from settings. Called once at startup."""
    engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    session_factory = build_session_factory(engine)
    identity = build_identity_provider(settings, session_factory)
    logger.info("Backend client ready (identity provider: %s)", identity.provider)
    return BackendClient(session_factory=session_factory, identity=identity, engine=engine)
