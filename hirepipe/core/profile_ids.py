"""Real vs. degraded profile identifiers."""

from typing import Optional, Union
from uuid import UUID

# Reserved prefix for profile ids synthesized when profile resolution fails
DEGRADED_PREFIX = "temp-"

ProfileId = Union[UUID, str]


def degraded_profile_id(user_id: Union[UUID, str, None]) -> str:
    """Build the non-persistable stand-in id for `user_id`."""
    return f"{DEGRADED_PREFIX}{user_id if user_id is not None else 'unknown'}"


def is_degraded(profile_id: Optional[ProfileId]) -> bool:
    return isinstance(profile_id, str) and profile_id.startswith(DEGRADED_PREFIX)


def as_persisted_id(profile_id: ProfileId) -> UUID:
    """
    Convert a real profile id to a UUID for queries.

    Raises ValueError for degraded or malformed ids; these must never reach
    a persisted query.
    """
    if isinstance(profile_id, UUID):
        return profile_id
    if is_degraded(profile_id):
        raise ValueError(f"Degraded profile id cannot be used for persisted queries: {profile_id}")
    return UUID(str(profile_id))
