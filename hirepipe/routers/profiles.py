"""
Profile router - the caller's own profile.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.core.dependencies import get_auth_state, get_db
from hirepipe.errors import raise_app_error
from hirepipe.schemas.profile import ProfileRead, ProfileUpdate
from hirepipe.services.profile_service import ProfileService
from hirepipe.services.session_resolver import AuthState

router = APIRouter(prefix="/profiles", tags=["profiles"])


def _require_persisted(state: AuthState) -> None:
    if state.is_degraded or state.profile_id is None:
        raise_app_error(
            status.HTTP_404_NOT_FOUND,
            "profile_unavailable",
            "Your profile could not be loaded. Pipeline data is temporary until it is available.",
            {"profile_id": str(state.profile_id) if state.profile_id else None},
        )


@router.get("/me", response_model=ProfileRead)
async def get_my_profile(
    state: AuthState = Depends(get_auth_state),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user's profile."""
    _require_persisted(state)
    profile = await ProfileService(db).get_profile(state.profile_id)
    if not profile:
        raise_app_error(status.HTTP_404_NOT_FOUND, "not_found", "Profile not found")
    return profile


@router.patch("/me", response_model=ProfileRead)
async def update_my_profile(
    data: ProfileUpdate,
    state: AuthState = Depends(get_auth_state),
    db: AsyncSession = Depends(get_db),
):
    """Update the current user's profile."""
    _require_persisted(state)
    profile = await ProfileService(db).update_profile(state.profile_id, data)
    if not profile:
        raise_app_error(status.HTTP_404_NOT_FOUND, "not_found", "Profile not found")
    return profile
