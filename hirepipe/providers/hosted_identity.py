"""
Hosted identity provider adapter.

Talks to a GoTrue-compatible auth REST API (`/auth/v1/...`) over httpx.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from hirepipe.core.provider_errors import ErrorKind, ProviderError, classify_error, to_provider_error
from hirepipe.providers.base import AuthStateEmitter
from hirepipe.schemas.auth import AuthEvent, AuthSession, SessionUser, SignUpResponse

logger = logging.getLogger(__name__)

CLIENT_INFO = "hirepipe-python/0.1.0"


def _parse_user(data: dict[str, Any]) -> SessionUser:
    return SessionUser(
        id=data["id"],
        email=data.get("email"),
        user_metadata=data.get("user_metadata") or {},
    )


def _parse_session(data: dict[str, Any]) -> AuthSession:
    expires_at: Optional[datetime] = None
    if data.get("expires_at"):
        expires_at = datetime.fromtimestamp(int(data["expires_at"]), tz=timezone.utc)
    elif data.get("expires_in"):
        expires_at = datetime.fromtimestamp(
            datetime.now(timezone.utc).timestamp() + int(data["expires_in"]),
            tz=timezone.utc,
        )
    return AuthSession(
        access_token=data["access_token"],
        token_type=data.get("token_type") or "bearer",
        refresh_token=data.get("refresh_token"),
        expires_at=expires_at,
        user=_parse_user(data["user"]),
    )


class HostedIdentityProvider(AuthStateEmitter):
    """Identity provider backed by a hosted auth service."""

    provider = "hosted"

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        super().__init__()
        if not base_url or not anon_key:
            raise ProviderError(
                ErrorKind.VALIDATION,
                "Missing required identity provider configuration",
                details={"missing": [k for k, v in (("AUTH_PROVIDER_URL", base_url), ("AUTH_PROVIDER_ANON_KEY", anon_key)) if not v]},
            )
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    def _headers(self, access_token: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
            "X-Client-Info": CLIENT_INFO,
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    async def _post(
        self,
        path: str,
        json_body: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/auth/v1/{path}"
        try:
            resp = await self._client.post(
                url,
                json=json_body or {},
                params=params,
                headers=self._headers(access_token),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(classify_error(exc), self._error_message(exc.response)) from exc
        except httpx.HTTPError as exc:
            raise to_provider_error(exc, "Identity provider unreachable") from exc

        if not resp.content:
            return {}
        return resp.json()

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return f"Identity provider returned HTTP {resp.status_code}"
        if isinstance(body, dict):
            for key in ("error_description", "msg", "message", "error"):
                if body.get(key):
                    return str(body[key])
        return f"Identity provider returned HTTP {resp.status_code}"

    async def get_session(self) -> Optional[AuthSession]:
        """Return the current session, refreshing it when it has expired."""
        session = self.current_session
        if session is None:
            return None
        if session.expires_at and session.expires_at <= datetime.now(timezone.utc):
            return await self.refresh_session()
        return session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        data = await self._post(
            "token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        session = _parse_session(data)
        logger.info("Signed in user %s via hosted provider", session.user.id)
        await self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> SignUpResponse:
        data = await self._post(
            "signup",
            {"email": email, "password": password, "data": metadata or {}},
        )
        if data.get("access_token"):
            session = _parse_session(data)
            await self._set_session(AuthEvent.SIGNED_IN, session)
            return SignUpResponse(user=session.user, session=session)
        # Email confirmation pending: the body is the bare user
        return SignUpResponse(user=_parse_user(data.get("user") or data), session=None)

    async def refresh_session(self) -> Optional[AuthSession]:
        current = self.current_session
        if current is None or not current.refresh_token:
            return None
        data = await self._post(
            "token",
            {"refresh_token": current.refresh_token},
            params={"grant_type": "refresh_token"},
        )
        session = _parse_session(data)
        await self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def revoke_session(self, session: AuthSession) -> None:
        await self._post("logout", access_token=session.access_token)
        logger.info("Revoked session for user %s", session.user.id)

    async def sign_out(self) -> None:
        current = self.current_session
        try:
            if current is not None:
                await self._post("logout", access_token=current.access_token)
        finally:
            # The local session is dropped even if the revoke call failed
            await self._set_session(AuthEvent.SIGNED_OUT, None)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
