"""
Role-based permission helpers.

Defines the closed set of profile roles and the capability checks that
depend on them.
"""

import enum
from typing import Optional

from fastapi import HTTPException, status


class ProfileRole(str, enum.Enum):
    """Roles a profile can hold."""
    ADMIN = "admin"
    CANDIDATE = "candidate"
    RECRUITER = "recruiter"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProfileRole":
        """Parse a stored role string. Unknown values raise ValueError."""
        if value is None:
            raise ValueError("Profile role is missing")
        return cls(value.strip().lower())


def can_own_pipeline(role: ProfileRole) -> bool:
    """
    Check whether a role may own pipeline stages.

    Every role is matched explicitly so adding a role forces a decision here.
    """
    if role is ProfileRole.RECRUITER:
        return True
    if role is ProfileRole.ADMIN:
        return False
    if role is ProfileRole.CANDIDATE:
        return False
    raise ValueError(f"Unhandled profile role: {role!r}")


def raise_if_not_employer(is_employer: bool, action: str = "access the pipeline") -> None:
    """
    Raise 403 error if the caller has no recruiter capability.

    Raises:
        HTTPException: 403 if the caller is not an employer
    """
    if not is_employer:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Only recruiters can {action}.",
        )
