"""
Pipeline persistence: stages, candidate positions and moves.

Every public method returns a typed result instead of raising, so callers
can show an inline error without wrapping each call in try/except.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hirepipe.core.profile_ids import ProfileId, as_persisted_id, is_degraded
from hirepipe.core.provider_errors import ErrorKind, ProviderError, classify_error
from hirepipe.db.session import session_scope
from hirepipe.models.candidate_pipeline_position import CandidatePipelinePosition
from hirepipe.models.pipeline_stage import PipelineStage
from hirepipe.repositories.pipeline_repository import PipelineRepository
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.pipeline import PipelineCandidate, PipelineStageRead
from hirepipe.utils.time import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageDefaults:
    stage_name: str
    stage_order: int
    stage_color: str


# First-use board, also served for degraded profiles
DEFAULT_STAGES = (
    StageDefaults("Applied", 1, "#3B82F6"),
    StageDefaults("Screening", 2, "#F59E0B"),
    StageDefaults("Interview", 3, "#8B5CF6"),
    StageDefaults("Offer", 4, "#10B981"),
)

_FAILURE_MESSAGES = {
    ErrorKind.TRANSIENT: "Could not reach the database. Please try again.",
    ErrorKind.POLICY: "Access to pipeline data was denied by a database policy.",
    ErrorKind.NOT_FOUND: "The requested pipeline data was not found.",
    ErrorKind.VALIDATION: "The pipeline request was invalid.",
    ErrorKind.CONFLICT: "The pipeline changed while you were editing it. Please reload.",
    ErrorKind.UNAUTHORIZED: "You are not allowed to access this pipeline.",
    ErrorKind.UNKNOWN: "Failed to load pipeline data.",
}


def failure_message(kind: ErrorKind, exc: BaseException) -> str:
    """Human-readable message for a failed pipeline operation."""
    if isinstance(exc, ProviderError) and exc.message:
        return exc.message
    return _FAILURE_MESSAGES[kind]


def _skeleton_stage_id(owner_id: ProfileId, stage_name: str) -> uuid.UUID:
    # Stable per recruiter; temporary profiles get fresh ids
    if isinstance(owner_id, uuid.UUID):
        return uuid.uuid5(owner_id, stage_name)
    return uuid.uuid4()


def default_stages(owner_id: ProfileId) -> List[PipelineStageRead]:
    """The four-stage skeleton with no candidates."""
    return [
        PipelineStageRead(
            id=_skeleton_stage_id(owner_id, defaults.stage_name),
            recruiter_id=owner_id,
            stage_name=defaults.stage_name,
            stage_order=defaults.stage_order,
            stage_color=defaults.stage_color,
            auto_email_template=None,
            is_active=True,
            candidates=[],
            persisted=False,
        )
        for defaults in DEFAULT_STAGES
    ]


@dataclass(frozen=True)
class PipelineResult:
    """Outcome of loading a pipeline."""

    ok: bool
    stages: List[PipelineStageRead] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, stages: List[PipelineStageRead]) -> "PipelineResult":
        return cls(ok=True, stages=stages)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "PipelineResult":
        return cls(ok=False, error_kind=kind, message=message)


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a move or placement."""

    ok: bool
    candidate_id: Optional[uuid.UUID] = None
    from_stage_id: Optional[uuid.UUID] = None
    to_stage_id: Optional[uuid.UUID] = None
    moved_at: Optional[datetime] = None
    error_kind: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "MoveResult":
        return cls(ok=False, error_kind=kind, message=message)


def _as_uuid(value: Union[uuid.UUID, str, None]) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _stage_read(stage: PipelineStage, positions: List[CandidatePipelinePosition]) -> PipelineStageRead:
    candidates = []
    for position in positions:
        profile = position.candidate
        if profile is None:
            continue
        candidates.append(
            PipelineCandidate(
                id=profile.id,
                name=profile.display_name,
                email=profile.email,
                added_at=ensure_utc(position.moved_at or position.created_at),
            )
        )
    return PipelineStageRead(
        id=stage.id,
        recruiter_id=stage.recruiter_id,
        stage_name=stage.stage_name,
        stage_order=stage.stage_order,
        stage_color=stage.stage_color,
        auto_email_template=stage.auto_email_template or None,
        is_active=stage.is_active,
        candidates=candidates,
        persisted=True,
    )


class PipelineStore:
    """Reads and writes a recruiter's pipeline."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def load_pipeline(self, profile_id: ProfileId) -> PipelineResult:
        """
        Load stages with their candidates, in board order.

        A degraded profile id never reaches the database; it gets the
        default skeleton. A real recruiter with no stages gets the same
        skeleton owned by their real id so it can be persisted later.
        """
        if is_degraded(profile_id):
            logger.info("Using default stages for temporary profile %s", profile_id)
            return PipelineResult.success(default_stages(profile_id))

        try:
            recruiter_id = as_persisted_id(profile_id)
            async with session_scope(self.session_factory) as db:
                repository = PipelineRepository(db)
                stages = await repository.list_stages(recruiter_id)
                if not stages:
                    logger.info("No stages for recruiter %s; using default stages", recruiter_id)
                    return PipelineResult.success(default_stages(recruiter_id))

                positions = await repository.list_positions([stage.id for stage in stages])
                by_stage: dict[uuid.UUID, List[CandidatePipelinePosition]] = {stage.id: [] for stage in stages}
                for position in positions:
                    by_stage[position.current_stage_id].append(position)

                result = [_stage_read(stage, by_stage[stage.id]) for stage in stages]
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            logger.error("Failed to load pipeline for %s (%s): %s", profile_id, kind.value, exc)
            return PipelineResult.failure(kind, failure_message(kind, exc))

        logger.debug("Loaded %d stages for recruiter %s", len(result), profile_id)
        return PipelineResult.success(result)

    async def move_candidate(
        self,
        candidate_id: uuid.UUID,
        from_stage_id: uuid.UUID,
        to_stage_id: uuid.UUID,
        acting_user_id: Union[uuid.UUID, str, None],
        note: Optional[str] = None,
        recruiter_id: Optional[ProfileId] = None,
    ) -> MoveResult:
        """
        Move a candidate between two stages of the same pipeline.

        Runs as one transaction: the position row is locked, re-checked
        against `from_stage_id`, repointed, and a move record appended.
        Any failure rolls the whole thing back.
        """
        if from_stage_id == to_stage_id:
            return MoveResult.failure(ErrorKind.VALIDATION, "Candidate is already in that stage.")
        if recruiter_id is not None and is_degraded(recruiter_id):
            return MoveResult.failure(ErrorKind.VALIDATION, "Default stages are not saved yet; moves cannot be persisted.")

        moved_at = utc_now()
        try:
            owner_id = as_persisted_id(recruiter_id) if recruiter_id is not None else None
            async with session_scope(self.session_factory) as db:
                repository = PipelineRepository(db)

                from_stage = await repository.get_stage(from_stage_id)
                if from_stage is None or (owner_id is not None and from_stage.recruiter_id != owner_id):
                    raise ProviderError(ErrorKind.NOT_FOUND, "Source stage not found.")

                position = await repository.get_position_for_update(from_stage.recruiter_id, candidate_id)
                if position is None:
                    raise ProviderError(ErrorKind.NOT_FOUND, "Candidate is not in this pipeline.")
                if position.current_stage_id != from_stage_id:
                    raise ProviderError(
                        ErrorKind.CONFLICT,
                        "Candidate has already been moved out of the source stage. Please reload.",
                        details={"current_stage_id": str(position.current_stage_id)},
                    )

                to_stage = await repository.get_stage(to_stage_id)
                if to_stage is None or to_stage.recruiter_id != from_stage.recruiter_id:
                    raise ProviderError(ErrorKind.VALIDATION, "Destination stage is not part of this pipeline.")

                await repository.record_move(
                    position,
                    to_stage_id=to_stage_id,
                    moved_by=_as_uuid(acting_user_id),
                    moved_at=moved_at,
                    note=note,
                )
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            logger.error("Failed to move candidate %s to stage %s (%s): %s", candidate_id, to_stage_id, kind.value, exc)
            return MoveResult.failure(kind, failure_message(kind, exc))

        logger.info("Moved candidate %s from stage %s to %s", candidate_id, from_stage_id, to_stage_id)
        return MoveResult(
            ok=True,
            candidate_id=candidate_id,
            from_stage_id=from_stage_id,
            to_stage_id=to_stage_id,
            moved_at=moved_at,
        )

    async def bootstrap_stages(self, profile_id: ProfileId) -> PipelineResult:
        """Persist the default stages for a recruiter who has none. Idempotent."""
        if is_degraded(profile_id):
            return PipelineResult.failure(
                ErrorKind.VALIDATION,
                "Stages cannot be saved for a temporary profile.",
            )

        try:
            recruiter_id = as_persisted_id(profile_id)
            async with session_scope(self.session_factory) as db:
                repository = PipelineRepository(db)
                if await repository.count_stages(recruiter_id) == 0:
                    for defaults in DEFAULT_STAGES:
                        await repository.create_stage(
                            recruiter_id,
                            stage_name=defaults.stage_name,
                            stage_order=defaults.stage_order,
                            stage_color=defaults.stage_color,
                        )
                    logger.info("Created default stages for recruiter %s", recruiter_id)
        except IntegrityError:
            # Lost a race with a concurrent bootstrap; the stages exist now
            logger.info("Default stages already created for %s", profile_id)
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            logger.error("Failed to create default stages for %s (%s): %s", profile_id, kind.value, exc)
            return PipelineResult.failure(kind, failure_message(kind, exc))

        return await self.load_pipeline(profile_id)

    async def add_candidate(
        self,
        recruiter_id: ProfileId,
        candidate_id: uuid.UUID,
        stage_id: uuid.UUID,
        acting_user_id: Union[uuid.UUID, str, None] = None,
        job_posting_id: Optional[uuid.UUID] = None,
    ) -> MoveResult:
        """Place a candidate into one of the recruiter's stages."""
        if is_degraded(recruiter_id):
            return MoveResult.failure(ErrorKind.VALIDATION, "Candidates cannot be added to a temporary pipeline.")

        moved_at = utc_now()
        try:
            owner_id = as_persisted_id(recruiter_id)
            async with session_scope(self.session_factory) as db:
                repository = PipelineRepository(db)

                stage = await repository.get_stage(stage_id)
                if stage is None or stage.recruiter_id != owner_id:
                    raise ProviderError(ErrorKind.NOT_FOUND, "Stage not found.")

                candidate = await ProfileRepository(db).get_by_id(candidate_id)
                if candidate is None or candidate.is_deleted:
                    raise ProviderError(ErrorKind.NOT_FOUND, "Candidate not found.")

                if await repository.get_position_for_update(owner_id, candidate_id) is not None:
                    raise ProviderError(ErrorKind.CONFLICT, "Candidate is already in this pipeline.")

                await repository.create_position(
                    owner_id,
                    candidate_id,
                    stage_id,
                    moved_at=moved_at,
                    moved_by=_as_uuid(acting_user_id),
                    job_posting_id=job_posting_id,
                )
        except Exception as exc:  # noqa: BLE001
            kind = classify_error(exc)
            logger.error("Failed to add candidate %s to stage %s (%s): %s", candidate_id, stage_id, kind.value, exc)
            return MoveResult.failure(kind, failure_message(kind, exc))

        logger.info("Added candidate %s to stage %s", candidate_id, stage_id)
        return MoveResult(ok=True, candidate_id=candidate_id, to_stage_id=stage_id, moved_at=moved_at)
