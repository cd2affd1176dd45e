"""
Candidate search Pydantic schemas.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class SearchFilters(BaseModel):
    """Optional filters for candidate search."""

    reelpass_only: bool = False
    province: Optional[str] = None
    location: Optional[str] = None


class CandidateSearchResult(BaseModel):
    """A single search hit."""

    id: UUID
    first_name: str = ""
    last_name: str = ""
    headline: str = "Professional"
    email: str = ""
    location: Optional[str] = None
    province: Optional[str] = None
    completion_score: int = 0
    reelpass_verified: bool = False

    model_config = ConfigDict(from_attributes=True)
