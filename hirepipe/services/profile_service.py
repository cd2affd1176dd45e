"""
Profile business logic service.
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.models.profile import Profile
from hirepipe.schemas.profile import ProfileUpdate
from hirepipe.repositories.profile_repository import ProfileRepository


class ProfileService:
    """Service for profile business logic."""

    def __init__(self, db: AsyncSession):
        self.repository = ProfileRepository(db)

    async def get_profile(self, profile_id: UUID) -> Optional[Profile]:
        """Get a profile by ID."""
        return await self.repository.get_by_id(profile_id)

    async def update_profile(
        self,
        profile_id: UUID,
        data: ProfileUpdate
    ) -> Optional[Profile]:
        """Update a profile."""
        return await self.repository.update(profile_id, data)
