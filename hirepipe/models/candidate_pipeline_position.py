"""
CandidatePipelinePosition model.

Tracks which stage of a recruiter's pipeline a candidate currently sits in.
"""

import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hirepipe.models.base_model import TimestampedModel

if TYPE_CHECKING:
    from hirepipe.models.profile import Profile


class CandidatePipelinePosition(TimestampedModel):
    """
    CandidatePipelinePosition table - a candidate's place in one pipeline.

    A candidate has at most one position per recruiter, so it is always in
    exactly one stage of that recruiter's board.
    """

    __tablename__ = "candidate_pipeline_positions"

    # Candidate profile id
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    recruiter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )

    current_stage_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pipeline_stages.id"),
        nullable=False,
        index=True,
    )

    previous_stage_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("pipeline_stages.id"),
        nullable=True,
    )

    job_posting_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )

    # When the candidate entered current_stage_id
    moved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Identity provider user id of whoever made the last move
    moved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    candidate: Mapped["Profile"] = relationship(
        "Profile",
        foreign_keys=[candidate_id],
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("recruiter_id", "candidate_id", name="uq_candidate_pipeline_positions_recruiter_candidate"),
    )
