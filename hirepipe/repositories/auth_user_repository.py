"""
AuthUser repository - database operations for locally authenticated users.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.core.security import hash_password
from hirepipe.models.auth_user import AuthUser


class AuthUserRepository:
    """Repository for AuthUser database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: UUID) -> Optional[AuthUser]:
        result = await self.db.execute(
            select(AuthUser).where(AuthUser.id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[AuthUser]:
        """Get a user by email (case-insensitive)."""
        if not email or not email.strip():
            return None
        result = await self.db.execute(
            select(AuthUser).where(AuthUser.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def create(self, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> AuthUser:
        user = AuthUser(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            user_metadata=metadata or {},
            is_active=True,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        return user
