"""
Base interface for identity providers.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

from hirepipe.schemas.auth import AuthEvent, AuthSession, SignUpResponse

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, Optional[AuthSession]], Awaitable[None]]
Unsubscribe = Callable[[], None]


class IdentityProvider(Protocol):
    """Interface for identity provider adapters."""

    provider: str

    async def get_session(self) -> Optional[AuthSession]:
        ...

    def on_auth_state_change(self, callback: AuthListener) -> Unsubscribe:
        ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    async def sign_up(self, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> SignUpResponse:
        ...

    async def sign_out(self) -> None:
        ...

    async def refresh_session(self) -> Optional[AuthSession]:
        ...

    async def revoke_session(self, session: AuthSession) -> None:
        """Invalidate a session held by a caller other than this client."""
        ...


class AuthStateEmitter:
    """
    Current-session bookkeeping and listener fan-out shared by providers.

    Listeners run one after another in subscription order on the caller's
    event loop.
    """

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []
        self._session: Optional[AuthSession] = None

    @property
    def current_session(self) -> Optional[AuthSession]:
        return self._session

    def on_auth_state_change(self, callback: AuthListener) -> Unsubscribe:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    async def _set_session(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        self._session = session
        await self._emit(event, session)

    async def _emit(self, event: AuthEvent, session: Optional[AuthSession]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:  # noqa: BLE001
                # One failing subscriber must not stop the others
                logger.exception("Auth listener failed for event %s", event.value)
