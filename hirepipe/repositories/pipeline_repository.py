"""
Pipeline repository - database operations for stages, positions and moves.
"""

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hirepipe.models.candidate_pipeline_position import CandidatePipelinePosition
from hirepipe.models.pipeline_move import PipelineMove
from hirepipe.models.pipeline_stage import PipelineStage


class PipelineRepository:
    """Repository for pipeline database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_stages(self, recruiter_id: UUID, active_only: bool = True) -> List[PipelineStage]:
        """Stages owned by a recruiter, in board order."""
        query = select(PipelineStage).where(PipelineStage.recruiter_id == recruiter_id)
        if active_only:
            query = query.where(PipelineStage.is_active.is_(True))
        query = query.order_by(PipelineStage.stage_order.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_stages(self, recruiter_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(PipelineStage.id)).where(PipelineStage.recruiter_id == recruiter_id)
        )
        return int(result.scalar_one())

    async def get_stage(self, stage_id: UUID) -> Optional[PipelineStage]:
        result = await self.db.execute(
            select(PipelineStage).where(PipelineStage.id == stage_id)
        )
        return result.scalar_one_or_none()

    async def create_stage(
        self,
        recruiter_id: UUID,
        stage_name: str,
        stage_order: int,
        stage_color: Optional[str] = None,
        auto_email_template: Optional[str] = None,
    ) -> PipelineStage:
        stage = PipelineStage(
            recruiter_id=recruiter_id,
            stage_name=stage_name,
            stage_order=stage_order,
            stage_color=stage_color,
            auto_email_template=auto_email_template,
            is_active=True,
        )
        self.db.add(stage)
        await self.db.flush()
        await self.db.refresh(stage)
        return stage

    async def list_positions(self, stage_ids: Sequence[UUID]) -> List[CandidatePipelinePosition]:
        """Positions in any of `stage_ids`, oldest arrival first."""
        if not stage_ids:
            return []
        result = await self.db.execute(
            select(CandidatePipelinePosition)
            .where(CandidatePipelinePosition.current_stage_id.in_(list(stage_ids)))
            .order_by(
                func.coalesce(
                    CandidatePipelinePosition.moved_at,
                    CandidatePipelinePosition.created_at,
                ).asc(),
                CandidatePipelinePosition.candidate_id.asc(),
            )
        )
        return list(result.scalars().all())

    async def get_position_for_update(
        self,
        recruiter_id: UUID,
        candidate_id: UUID,
    ) -> Optional[CandidatePipelinePosition]:
        """Fetch a candidate's position and lock the row for the current transaction."""
        result = await self.db.execute(
            select(CandidatePipelinePosition)
            .where(
                CandidatePipelinePosition.recruiter_id == recruiter_id,
                CandidatePipelinePosition.candidate_id == candidate_id,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def create_position(
        self,
        recruiter_id: UUID,
        candidate_id: UUID,
        stage_id: UUID,
        moved_at: datetime,
        moved_by: Optional[UUID] = None,
        job_posting_id: Optional[UUID] = None,
    ) -> CandidatePipelinePosition:
        position = CandidatePipelinePosition(
            recruiter_id=recruiter_id,
            candidate_id=candidate_id,
            current_stage_id=stage_id,
            moved_at=moved_at,
            moved_by=moved_by,
            job_posting_id=job_posting_id,
        )
        self.db.add(position)
        await self.db.flush()
        await self.db.refresh(position)
        return position

    async def record_move(
        self,
        position: CandidatePipelinePosition,
        to_stage_id: UUID,
        moved_by: Optional[UUID],
        moved_at: datetime,
        note: Optional[str] = None,
    ) -> PipelineMove:
        """Repoint the position at `to_stage_id` and append the audit row."""
        from_stage_id = position.current_stage_id

        position.previous_stage_id = from_stage_id
        position.current_stage_id = to_stage_id
        position.moved_at = moved_at
        position.moved_by = moved_by
        if note is not None:
            position.notes = note

        move = PipelineMove(
            position_id=position.id,
            candidate_id=position.candidate_id,
            recruiter_id=position.recruiter_id,
            from_stage_id=from_stage_id,
            to_stage_id=to_stage_id,
            moved_by=moved_by,
            moved_at=moved_at,
            note=note,
        )
        self.db.add(move)
        await self.db.flush()
        return move

    async def list_moves(self, candidate_id: UUID, limit: int = 50) -> List[PipelineMove]:
        """Move history for a candidate, newest first."""
        result = await self.db.execute(
            select(PipelineMove)
            .where(PipelineMove.candidate_id == candidate_id)
            .order_by(PipelineMove.moved_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
