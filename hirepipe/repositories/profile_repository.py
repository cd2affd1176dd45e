"""
Profile repository - database operations for Profile.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.core.permissions import ProfileRole
from hirepipe.models.profile import Profile
from hirepipe.schemas.profile import ProfileCreate, ProfileUpdate
from hirepipe.schemas.search import SearchFilters


def _contains(term: str) -> str:
    """LIKE pattern matching `term` literally anywhere in the value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ProfileRepository:
    """Repository for Profile database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, profile_id: UUID) -> Optional[Profile]:
        """Get a profile by its internal id."""
        result = await self.db.execute(
            select(Profile).where(Profile.id == profile_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user_id(self, user_id: UUID) -> Optional[Profile]:
        """Point lookup by identity provider user id."""
        result = await self.db.execute(
            select(Profile).where(Profile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(self, data: ProfileCreate) -> Profile:
        """Insert a profile; the id is assigned server-side."""
        profile = Profile(
            user_id=data.user_id,
            email=str(data.email).strip().lower(),
            role=data.role.value,
            first_name=data.first_name,
            last_name=data.last_name,
            headline=data.headline,
        )
        self.db.add(profile)
        await self.db.flush()
        await self.db.refresh(profile)
        return profile

    async def update(self, profile_id: UUID, data: ProfileUpdate) -> Optional[Profile]:
        """Update a profile by id."""
        profile = await self.get_by_id(profile_id)
        if not profile:
            return None

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(profile, field, value)

        profile.updated_at = func.now()
        await self.db.flush()
        await self.db.refresh(profile)
        return profile

    async def search_candidates(
        self,
        query: Optional[str],
        filters: SearchFilters,
        limit: int = 50,
    ) -> List[Profile]:
        """Case-insensitive substring search over candidate profiles."""
        stmt = select(Profile).where(
            Profile.role == ProfileRole.CANDIDATE.value,
            Profile.is_deleted.is_(False),
        )

        if query and query.strip():
            pattern = _contains(query.strip().lower())
            stmt = stmt.where(
                or_(
                    func.lower(Profile.first_name).like(pattern, escape="\\"),
                    func.lower(Profile.last_name).like(pattern, escape="\\"),
                    func.lower(Profile.headline).like(pattern, escape="\\"),
                    func.lower(Profile.email).like(pattern, escape="\\"),
                )
            )

        if filters.reelpass_only:
            stmt = stmt.where(Profile.reelpass_verified.is_(True))
        if filters.province:
            stmt = stmt.where(func.lower(Profile.province) == filters.province.strip().lower())
        if filters.location:
            location = _contains(filters.location.strip().lower())
            stmt = stmt.where(func.lower(Profile.location).like(location, escape="\\"))

        stmt = stmt.order_by(
            Profile.completion_score.desc().nulls_last(),
            Profile.last_name.asc(),
            Profile.id.asc(),
        ).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
