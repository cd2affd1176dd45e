"""
AuthUser model for the local identity provider.

Only used when AUTH_PROVIDER=local; with a hosted provider the users live
in the provider and this table stays empty.
"""

from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hirepipe.models.base_model import TimestampedModel


class AuthUser(TimestampedModel):
    """
    AuthUser table - credentials for locally authenticated users.
    """

    __tablename__ = "auth_users"

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Sign-up metadata: first_name, last_name, full_name
    user_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    # Stored lower-cased, so uniqueness is case-insensitive
    __table_args__ = (
        Index("ix_auth_users_email", "email", unique=True),
    )
