"""
Candidate search router.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from hirepipe.core.dependencies import get_search_service, require_employer
from hirepipe.core.provider_errors import ErrorKind
from hirepipe.errors import AppError
from hirepipe.schemas.search import CandidateSearchResult, SearchFilters
from hirepipe.services.candidate_search import CandidateSearchService
from hirepipe.services.session_resolver import AuthState

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("/search", response_model=List[CandidateSearchResult])
async def search_candidates(
    q: Optional[str] = Query(None, description="Matches first name, last name, headline or email"),
    reelpass_only: bool = False,
    province: Optional[str] = None,
    location: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    _: AuthState = Depends(require_employer),
    service: CandidateSearchService = Depends(get_search_service),
):
    """
    Search candidate profiles.

    Filters: reelpass_only, province, location.
    """
    result = await service.search_candidates(
        q,
        SearchFilters(reelpass_only=reelpass_only, province=province, location=location),
        limit=limit,
    )
    if not result.ok:
        raise AppError.from_kind(result.error_kind or ErrorKind.UNKNOWN, result.message or "Failed to search candidates")
    return result.candidates
