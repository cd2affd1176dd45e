"""
FastAPI dependencies for the application.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.core.client import BackendClient
from hirepipe.core.config import Settings
from hirepipe.core.jwt import decode_access_token
from hirepipe.core.permissions import raise_if_not_employer
from hirepipe.schemas.auth import AuthSession, SessionUser
from hirepipe.services.candidate_search import CandidateSearchService
from hirepipe.services.notification_service import NotificationDispatcher
from hirepipe.services.pipeline_store import PipelineStore
from hirepipe.services.session_resolver import AuthState, SessionResolver

# Security scheme for JWT bearer tokens
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_backend(request: Request) -> BackendClient:
    """The backend client built at startup."""
    return request.app.state.backend


def get_notifier(request: Request) -> NotificationDispatcher:
    return request.app.state.notifier


async def get_db(backend: BackendClient = Depends(get_backend)) -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session; commits when the request succeeds."""
    async with backend.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_resolver(
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_settings),
) -> SessionResolver:
    return SessionResolver(
        backend.identity,
        backend.session_factory,
        auto_provision=settings.PROFILE_AUTO_PROVISION,
    )


def get_pipeline_store(backend: BackendClient = Depends(get_backend)) -> PipelineStore:
    return PipelineStore(backend.session_factory)


def get_search_service(
    backend: BackendClient = Depends(get_backend),
    settings: Settings = Depends(get_settings),
) -> CandidateSearchService:
    return CandidateSearchService(
        backend.session_factory,
        default_limit=settings.SEARCH_DEFAULT_LIMIT,
        max_limit=settings.SEARCH_MAX_LIMIT,
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> AuthSession:
    """
    Rebuild the caller's session from their bearer token.

    Raises:
        401: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    token = credentials.credentials
    payload = decode_access_token(token, settings.SECRET_KEY, settings.ALGORITHM)
    if not payload:
        raise _unauthorized("Invalid authentication credentials")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise _unauthorized("Invalid token payload")

    expires_at = None
    if payload.get("exp"):
        expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)

    return AuthSession(
        access_token=token,
        expires_at=expires_at,
        user=SessionUser(
            id=user_id,
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
        ),
    )


async def get_auth_state(
    session: AuthSession = Depends(get_current_session),
    resolver: SessionResolver = Depends(get_session_resolver),
) -> AuthState:
    """Resolve the caller's profile; degraded profiles still authenticate."""
    return await resolver.resolve(session)


async def require_employer(state: AuthState = Depends(get_auth_state)) -> AuthState:
    """Require recruiter capability (a degraded profile counts)."""
    raise_if_not_employer(state.is_employer)
    return state
