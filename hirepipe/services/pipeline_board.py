"""
In-memory view of one recruiter's pipeline.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from hirepipe.core.profile_ids import ProfileId, is_degraded
from hirepipe.core.provider_errors import ErrorKind
from hirepipe.schemas.pipeline import PipelineCandidate, PipelineRead, PipelineStageRead
from hirepipe.services.pipeline_store import PipelineResult, PipelineStore

logger = logging.getLogger(__name__)


class PipelineBoard:
    """
    Holds the last applied stage list for a recruiter.

    Each load is tagged with a sequence number; only the response to the
    most recently issued load is applied. With `preserve_on_error` a failed
    load keeps the last good stages on screen next to the error, otherwise
    the board is cleared.
    """

    def __init__(
        self,
        store: PipelineStore,
        profile_id: ProfileId,
        preserve_on_error: bool = True,
    ):
        self.store = store
        self.profile_id = profile_id
        self.preserve_on_error = preserve_on_error
        self.stages: List[PipelineStageRead] = []
        self.error: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None
        self.is_loading = False
        self._seq = 0

    @property
    def is_degraded(self) -> bool:
        return is_degraded(self.profile_id)

    @property
    def total_candidates(self) -> int:
        return sum(len(stage.candidates) for stage in self.stages)

    def set_profile(self, profile_id: ProfileId) -> None:
        """Point the board at another profile; in-flight loads become stale."""
        if profile_id == self.profile_id:
            return
        self.profile_id = profile_id
        self._seq += 1
        self.stages = []
        self.error = None
        self.error_kind = None

    async def reload(self) -> PipelineResult:
        self._seq += 1
        seq = self._seq
        self.is_loading = True

        result = await self.store.load_pipeline(self.profile_id)

        if seq != self._seq:
            logger.debug("Discarding stale pipeline load %d (latest is %d)", seq, self._seq)
            return result

        self.is_loading = False
        if result.ok:
            self.stages = result.stages
            self.error = None
            self.error_kind = None
        else:
            self.error = result.message
            self.error_kind = result.error_kind
            if not self.preserve_on_error:
                self.stages = []
        return result

    async def retry(self) -> PipelineResult:
        """Manual "Try Again" after a failed load."""
        logger.info("Retrying pipeline load for %s", self.profile_id)
        return await self.reload()

    def stage_by_id(self, stage_id: Optional[UUID]) -> Optional[PipelineStageRead]:
        if stage_id is None:
            return None
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        return None

    def find_candidate(self, candidate_id: UUID) -> Optional[Tuple[PipelineStageRead, PipelineCandidate]]:
        for stage in self.stages:
            for candidate in stage.candidates:
                if candidate.id == candidate_id:
                    return stage, candidate
        return None

    def to_read(self) -> PipelineRead:
        return PipelineRead(
            profile_id=self.profile_id,
            is_degraded=self.is_degraded,
            stages=self.stages,
            total_candidates=self.total_candidates,
        )
