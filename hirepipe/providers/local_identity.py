"""
Local identity provider.

Users live in the `auth_users` table; passwords are bcrypt hashes and
sessions are JWTs signed with the application secret. Used for self-hosted
and development deployments.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hirepipe.core.jwt import create_access_token
from hirepipe.core.provider_errors import ErrorKind, ProviderError
from hirepipe.core.security import verify_password
from hirepipe.db.session import session_scope
from hirepipe.models.auth_user import AuthUser
from hirepipe.providers.base import AuthStateEmitter
from hirepipe.repositories.auth_user_repository import AuthUserRepository
from hirepipe.schemas.auth import AuthEvent, AuthSession, SessionUser, SignUpResponse
from hirepipe.utils.time import utc_now

logger = logging.getLogger(__name__)


class LocalIdentityProvider(AuthStateEmitter):
    """Identity provider backed by the application's own database."""

    provider = "local"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        secret_key: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(hours=24),
    ) -> None:
        super().__init__()
        self.session_factory = session_factory
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.token_ttl = token_ttl
        # refresh token -> user id; process-local
        self._refresh_tokens: dict[str, UUID] = {}

    def _issue_session(self, user: AuthUser) -> AuthSession:
        session_user = SessionUser(
            id=user.id,
            email=user.email,
            user_metadata=user.user_metadata or {},
        )
        access_token = create_access_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "user_metadata": session_user.user_metadata,
                "aud": "authenticated",
            },
            self.secret_key,
            algorithm=self.algorithm,
            expires_in=self.token_ttl,
        )
        refresh_token = secrets.token_urlsafe(32)
        self._refresh_tokens[refresh_token] = user.id
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=utc_now() + self.token_ttl,
            user=session_user,
        )

    async def get_session(self) -> Optional[AuthSession]:
        session = self.current_session
        if session is None:
            return None
        if session.expires_at and session.expires_at <= utc_now():
            return await self.refresh_session()
        return session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        async with session_scope(self.session_factory) as db:
            user = await AuthUserRepository(db).get_by_email(email)

        if not user or not user.is_active or not verify_password(password, user.hashed_password):
            raise ProviderError(ErrorKind.UNAUTHORIZED, "Invalid login credentials")

        session = self._issue_session(user)
        logger.info("Signed in user %s via local provider", user.id)
        await self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> SignUpResponse:
        async with session_scope(self.session_factory) as db:
            repository = AuthUserRepository(db)
            if await repository.get_by_email(email):
                raise ProviderError(ErrorKind.CONFLICT, "User already registered")
            user = await repository.create(email, password, metadata)

        session = self._issue_session(user)
        await self._set_session(AuthEvent.SIGNED_IN, session)
        return SignUpResponse(user=session.user, session=session)

    async def refresh_session(self) -> Optional[AuthSession]:
        current = self.current_session
        if current is None or not current.refresh_token:
            return None
        user_id = self._refresh_tokens.pop(current.refresh_token, None)
        if user_id is None:
            raise ProviderError(ErrorKind.UNAUTHORIZED, "Invalid refresh token")

        async with session_scope(self.session_factory) as db:
            user = await AuthUserRepository(db).get_by_id(user_id)
        if not user or not user.is_active:
            raise ProviderError(ErrorKind.UNAUTHORIZED, "User no longer active")

        session = self._issue_session(user)
        await self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def revoke_session(self, session: AuthSession) -> None:
        # Access tokens are stateless and simply expire
        if session.refresh_token:
            self._refresh_tokens.pop(session.refresh_token, None)
        logger.info("Revoked session for user %s", session.user.id)

    async def sign_out(self) -> None:
        current = self.current_session
        if current is not None and current.refresh_token:
            self._refresh_tokens.pop(current.refresh_token, None)
        await self._set_session(AuthEvent.SIGNED_OUT, None)
