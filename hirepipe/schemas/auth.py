"""
Authentication Pydantic schemas.
"""

import enum
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AuthEvent(str, enum.Enum):
    """Events delivered by the identity provider's state-change feed."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    INITIAL_SESSION = "INITIAL_SESSION"


class SessionUser(BaseModel):
    """The identity provider's view of a user."""

    id: UUID
    email: Optional[str] = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)


class AuthSession(BaseModel):
    """Token bundle issued by the identity provider."""

    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    user: SessionUser

    model_config = ConfigDict(frozen=True)


class SignInRequest(BaseModel):
    """Schema for password sign-in."""

    email: EmailStr
    password: str


class SignUpRequest(BaseModel):
    """Schema for account registration."""

    email: EmailStr
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def metadata(self) -> dict[str, str]:
        first = self.first_name or ""
        last = self.last_name or ""
        return {
            "first_name": first,
            "last_name": last,
            "full_name": f"{first} {last}".strip(),
        }


class SignUpResponse(BaseModel):
    """Sign-up result; `session` is None when the provider requires email confirmation."""

    user: SessionUser
    session: Optional[AuthSession] = None


class AuthStateRead(BaseModel):
    """Resolved authentication state (API response)."""

    is_authenticated: bool
    auth_checked: bool
    user: Optional[SessionUser] = None
    profile_id: Optional[Union[UUID, str]] = None
    role: Optional[str] = None
    is_employer: bool = False
    is_degraded: bool = False
