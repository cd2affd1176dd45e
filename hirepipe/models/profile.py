"""
Profile model.

One profile per authenticated user. The profile id is the internal
identifier used by the pipeline tables; it is distinct from the identity
provider's user id.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hirepipe.models.base_model import TimestampedModel


class Profile(TimestampedModel):
    """
    Profile table - role and personal details for a user.

    Profiles are never hard-deleted; `is_deleted` marks a soft delete.
    """

    __tablename__ = "profiles"

    # Identity provider user id
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # One of: admin, candidate, recruiter (see ProfileRole)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="candidate",
    )

    first_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    last_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    headline: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    location: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    province: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    # Verification / completion metadata
    completion_score: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    reelpass_verified: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    __table_args__ = (
        Index("ix_profiles_user_id", "user_id", unique=True),
        Index("ix_profiles_role", "role"),
    )

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or self.email
