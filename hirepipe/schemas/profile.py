"""
Profile Pydantic schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from hirepipe.core.permissions import ProfileRole


class ProfileCreate(BaseModel):
    """Schema for creating a profile. The id is assigned server-side."""

    user_id: UUID
    email: EmailStr
    role: ProfileRole = ProfileRole.CANDIDATE
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Schema for updating a profile. All fields optional."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    province: Optional[str] = None
    phone: Optional[str] = None
    completion_score: Optional[int] = Field(default=None, ge=0, le=100)


class ProfileRead(BaseModel):
    """Schema for reading profile data (API response)."""

    id: UUID
    user_id: UUID
    email: str
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    province: Optional[str] = None
    phone: Optional[str] = None
    completion_score: Optional[int] = None
    reelpass_verified: bool = False
    is_deleted: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
