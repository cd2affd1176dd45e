"""
PipelineStage model.

Represents a stage in a recruiter's hiring pipeline (e.g., Applied, Interview, Offer).
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from hirepipe.models.base_model import TimestampedModel


class PipelineStage(TimestampedModel):
    """
    PipelineStage table - one column of a recruiter's pipeline board.

    Each recruiter owns their own stages.
    The stage_order determines the left-to-right display order and is
    unique per recruiter.
    """

    __tablename__ = "pipeline_stages"

    # Owning recruiter (profile id)
    recruiter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("profiles.id"),
        nullable=False,
        index=True,
    )

    # Human-readable name (e.g., "Screening")
    stage_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Order in the pipeline (1, 2, 3, etc.)
    stage_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    stage_color: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    # Email body sent to a candidate entering this stage
    auto_email_template: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    __table_args__ = (
        UniqueConstraint("recruiter_id", "stage_order", name="uq_pipeline_stages_recruiter_order"),
    )
