"""
Schemas package.

Import all schemas here for easy access.
"""

from hirepipe.schemas.auth import (
    AuthEvent,
    AuthSession,
    AuthStateRead,
    SessionUser,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from hirepipe.schemas.profile import ProfileCreate, ProfileUpdate, ProfileRead
from hirepipe.schemas.pipeline import (
    AddCandidateRequest,
    MoveRequest,
    MoveResponse,
    PipelineCandidate,
    PipelineRead,
    PipelineStageRead,
)
from hirepipe.schemas.search import CandidateSearchResult, SearchFilters

__all__ = [
    "AuthEvent",
    "AuthSession",
    "AuthStateRead",
    "SessionUser",
    "SignInRequest",
    "SignUpRequest",
    "SignUpResponse",
    "ProfileCreate",
    "ProfileUpdate",
    "ProfileRead",
    "AddCandidateRequest",
    "MoveRequest",
    "MoveResponse",
    "PipelineCandidate",
    "PipelineRead",
    "PipelineStageRead",
    "CandidateSearchResult",
    "SearchFilters",
]
