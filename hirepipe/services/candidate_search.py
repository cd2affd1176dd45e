"""
Candidate search service.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hirepipe.core.provider_errors import ErrorKind, classify_error
from hirepipe.db.session import session_scope
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.search import CandidateSearchResult, SearchFilters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    ok: bool
    candidates: List[CandidateSearchResult] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None


class CandidateSearchService:
    """Search over candidate profiles."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_limit: int = 50,
        max_limit: int = 200,
    ):
        self.session_factory = session_factory
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def search_candidates(
        self,
        query: Optional[str] = None,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None,
    ) -> SearchResult:
        filters = filters or SearchFilters()
        limit = min(max(limit or self.default_limit, 1), self.max_limit)

        try:
            async with session_scope(self.session_factory) as db:
                profiles = await ProfileRepository(db).search_candidates(query, filters, limit=limit)
                candidates = [
                    CandidateSearchResult(
                        id=profile.id,
                        first_name=profile.first_name or "",
                        last_name=profile.last_name or "",
                        headline=profile.headline or "Professional",
                        email=profile.email or "",
                        location=profile.location,
                        province=profile.province,
                        completion_score=profile.completion_score or 0,
                        reelpass_verified=bool(profile.reelpass_verified),
                    )
                    for profile in profiles
                ]
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            logger.error("Candidate search failed (%s): %s", kind.value, exc)
            return SearchResult(ok=False, error_kind=kind, message="Failed to search candidates")

        logger.debug("Candidate search %r returned %d results", query, len(candidates))
        return SearchResult(ok=True, candidates=candidates)
