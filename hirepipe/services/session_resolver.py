"""
Session resolution: identity provider session -> user + recruiter profile.

Profile lookup failures never turn into authentication failures. When the
profile cannot be resolved the user stays authenticated with a degraded
`temp-<user_id>` profile id and recruiter capability assumed, so the
pipeline stays usable with non-persisted default data.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hirepipe.core.permissions import ProfileRole, can_own_pipeline
from hirepipe.core.profile_ids import ProfileId, degraded_profile_id, is_degraded
from hirepipe.core.provider_errors import ErrorKind, classify_error, to_provider_error
from hirepipe.db.session import session_scope
from hirepipe.models.profile import Profile
from hirepipe.providers.base import IdentityProvider, Unsubscribe
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.auth import (
    AuthEvent,
    AuthSession,
    AuthStateRead,
    SessionUser,
    SignUpResponse,
)
from hirepipe.schemas.profile import ProfileCreate

logger = logging.getLogger(__name__)

SESSION_EVENTS = (AuthEvent.SIGNED_IN, AuthEvent.TOKEN_REFRESHED, AuthEvent.INITIAL_SESSION)


@dataclass(frozen=True)
class ProfileResolution:
    """Outcome of a profile lookup for one user."""

    profile_id: ProfileId
    role: Optional[ProfileRole]
    is_employer: bool
    # Set when the lookup fell back to a degraded id
    degraded_reason: Optional[ErrorKind] = None


@dataclass(frozen=True)
class AuthState:
    """Resolved authentication state. Replaced wholesale on every change."""

    user: Optional[SessionUser] = None
    session: Optional[AuthSession] = None
    profile_id: Optional[ProfileId] = None
    role: Optional[ProfileRole] = None
    is_employer: bool = False
    is_loading: bool = True
    auth_checked: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_degraded(self) -> bool:
        return is_degraded(self.profile_id)

    @property
    def access_token(self) -> Optional[str]:
        return self.session.access_token if self.session else None

    def to_read(self) -> AuthStateRead:
        return AuthStateRead(
            is_authenticated=self.is_authenticated,
            auth_checked=self.auth_checked,
            user=self.user,
            profile_id=self.profile_id,
            role=self.role.value if self.role else None,
            is_employer=self.is_employer,
            is_degraded=self.is_degraded,
        )


SIGNED_OUT_STATE = AuthState(is_loading=False, auth_checked=True)


class SessionResolver:
    """
    Tracks the identity provider's session and resolves it to a profile.

    Every incoming event bumps a generation counter; a profile lookup that
    finishes after a newer event was handled is dropped, so a sign-out can
    never be overwritten by an earlier sign-in's slow lookup.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        session_factory: async_sessionmaker[AsyncSession],
        auto_provision: bool = False,
    ):
        self.identity = identity
        self.session_factory = session_factory
        self.auto_provision = auto_provision
        self.state = AuthState()
        self._generation = 0
        self._unsubscribe: Optional[Unsubscribe] = None

    # -- profile lookup -------------------------------------------------

    def _degraded(self, user: SessionUser, reason: ErrorKind) -> ProfileResolution:
        return ProfileResolution(
            profile_id=degraded_profile_id(user.id),
            role=ProfileRole.RECRUITER,
            is_employer=True,
            degraded_reason=reason,
        )

    async def _provision(self, repository: ProfileRepository, user: SessionUser) -> Optional[Profile]:
        if not user.email:
            return None
        metadata = user.user_metadata or {}
        try:
            role = ProfileRole.parse(metadata.get("role") or ProfileRole.RECRUITER.value)
        except ValueError:
            role = ProfileRole.RECRUITER
        profile = await repository.create(
            ProfileCreate(
                user_id=user.id,
                email=user.email,
                role=role,
                first_name=metadata.get("first_name") or None,
                last_name=metadata.get("last_name") or None,
            )
        )
        logger.info("Provisioned %s profile %s for user %s", role.value, profile.id, user.id)
        return profile

    async def resolve_profile(self, user: SessionUser) -> ProfileResolution:
        """Look up the user's profile, degrading on any failure."""
        try:
            async with session_scope(self.session_factory) as db:
                repository = ProfileRepository(db)
                profile = await repository.get_by_user_id(user.id)
                if profile is None and self.auto_provision:
                    profile = await self._provision(repository, user)
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            if kind is ErrorKind.POLICY:
                logger.warning("Row-level security policy error resolving profile for %s; using fallback mode", user.id)
            else:
                logger.error("Profile lookup failed for %s (%s): %s", user.id, kind.value, exc)
            return self._degraded(user, kind)

        if profile is None:
            logger.info("No profile found for user %s; using temporary profile", user.id)
            return self._degraded(user, ErrorKind.NOT_FOUND)

        try:
            role = ProfileRole.parse(profile.role)
        except ValueError:
            logger.error("Profile %s has unknown role %r; using fallback mode", profile.id, profile.role)
            return self._degraded(user, ErrorKind.VALIDATION)

        logger.debug("User %s resolved to profile %s (%s)", user.id, profile.id, role.value)
        return ProfileResolution(
            profile_id=profile.id,
            role=role,
            is_employer=can_own_pipeline(role),
        )

    async def resolve(self, session: Optional[AuthSession]) -> AuthState:
        """Stateless resolution of one session (used per HTTP request)."""
        if session is None:
            return SIGNED_OUT_STATE
        resolution = await self.resolve_profile(session.user)
        return AuthState(
            user=session.user,
            session=session,
            profile_id=resolution.profile_id,
            role=resolution.role,
            is_employer=resolution.is_employer,
            is_loading=False,
            auth_checked=True,
        )

    # -- event handling -------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _handle_session(self, session: Optional[AuthSession], generation: int) -> None:
        if session is None:
            self.state = SIGNED_OUT_STATE
            return

        if not self._is_current(generation):
            return
        self.state = replace(self.state, session=session, user=session.user, is_loading=True)
        resolved = await self.resolve(session)

        if not self._is_current(generation):
            logger.debug("Discarding stale profile resolution for %s", session.user.id)
            return
        self.state = resolved

    async def handle_auth_event(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        """Listener registered with the identity provider."""
        generation = self._next_generation()
        logger.info("Auth state changed: %s %s", event.value, session.user.email if session else "")

        if event is AuthEvent.SIGNED_OUT:
            self.state = SIGNED_OUT_STATE
            return
        if event in SESSION_EVENTS:
            await self._handle_session(session, generation)

    async def initialize(self) -> AuthState:
        """Subscribe to the provider and resolve any existing session."""
        if self._unsubscribe is None:
            self._unsubscribe = self.identity.on_auth_state_change(self.handle_auth_event)

        generation = self._next_generation()
        try:
            session = await self.identity.get_session()
        except Exception as exc:  # noqa: BLE001
            # Never block on auth: treat as signed out
            logger.error("Failed to get initial session: %s", exc)
            session = None

        if not self._is_current(generation):
            # A newer auth event was handled while the session was fetched
            return self.state
        if session is None:
            logger.info("No initial session found")
            self.state = SIGNED_OUT_STATE
            return self.state

        logger.info("Found initial session for user %s", session.user.email)
        await self._handle_session(session, generation)
        return self.state

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- provider passthroughs ------------------------------------------

    async def sign_in(self, email: str, password: str) -> AuthSession:
        logger.info("Signing in user %s", email)
        self.state = replace(self.state, is_loading=True)
        try:
            return await self.identity.sign_in_with_password(email, password)
        except Exception as exc:
            logger.error("Sign in error for %s: %s", email, exc)
            raise to_provider_error(exc, "Sign in failed") from exc
        finally:
            self.state = replace(self.state, is_loading=False)

    async def sign_up(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> SignUpResponse:
        logger.info("Signing up user %s", email)
        first = first_name or ""
        last = last_name or ""
        metadata = {"first_name": first, "last_name": last, "full_name": f"{first} {last}".strip()}
        self.state = replace(self.state, is_loading=True)
        try:
            return await self.identity.sign_up(email, password, metadata)
        except Exception as exc:
            logger.error("Sign up error for %s: %s", email, exc)
            raise to_provider_error(exc, "Sign up failed") from exc
        finally:
            self.state = replace(self.state, is_loading=False)

    async def sign_out(self) -> None:
        logger.info("Signing out user")
        self.state = replace(self.state, is_loading=True)
        try:
            await self.identity.sign_out()
        except Exception as exc:
            logger.error("Sign out error: %s", exc)
            raise to_provider_error(exc, "Sign out failed") from exc
        finally:
            self.state = replace(self.state, is_loading=False)
