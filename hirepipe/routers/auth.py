"""
Authentication router for sign-in, sign-up and session state.
"""

from fastapi import APIRouter, Depends, status

from hirepipe.core.client import BackendClient
from hirepipe.core.dependencies import (
    get_auth_state,
    get_backend,
    get_current_session,
    get_session_resolver,
)
from hirepipe.core.provider_errors import to_provider_error
from hirepipe.schemas.auth import (
    AuthSession,
    AuthStateRead,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from hirepipe.services.session_resolver import AuthState, SessionResolver

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/sign-in", response_model=AuthSession)
async def sign_in(
    credentials: SignInRequest,
    resolver: SessionResolver = Depends(get_session_resolver),
):
    """
    Authenticate with email and password and return the provider session.

    Use the returned access token as a Bearer token on other endpoints.
    """
    return await resolver.sign_in(credentials.email, credentials.password)


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    data: SignUpRequest,
    resolver: SessionResolver = Depends(get_session_resolver),
):
    """
    Register a new account.

    `session` is null when the identity provider requires email confirmation.
    """
    return await resolver.sign_up(data.email, data.password, data.first_name, data.last_name)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    session: AuthSession = Depends(get_current_session),
    backend: BackendClient = Depends(get_backend),
):
    """Revoke the caller's session with the identity provider."""
    try:
        await backend.identity.revoke_session(session)
    except Exception as exc:
        raise to_provider_error(exc, "Sign out failed") from exc


@router.get("/me", response_model=AuthStateRead)
async def get_auth_state_info(state: AuthState = Depends(get_auth_state)):
    """
    Get the resolved state for the current session.

    `is_degraded` is true when the profile could not be loaded; the caller
    is still authenticated and gets a temporary profile id.
    """
    return state.to_read()
