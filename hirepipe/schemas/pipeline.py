"""
Pipeline Pydantic schemas.
"""

from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PipelineCandidate(BaseModel):
    """A candidate positioned in a stage."""

    id: UUID
    name: str
    email: str
    added_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class PipelineStageRead(BaseModel):
    """A stage with the candidates currently in it."""

    id: UUID
    recruiter_id: Union[UUID, str]
    stage_name: str
    stage_order: int
    stage_color: Optional[str] = None
    auto_email_template: Optional[str] = None
    is_active: bool = True
    candidates: List[PipelineCandidate] = Field(default_factory=list)
    # False for the in-memory skeleton that has never been written
    persisted: bool = True

    model_config = ConfigDict(from_attributes=True)


class PipelineRead(BaseModel):
    """Pipeline API response."""

    profile_id: Union[UUID, str]
    is_degraded: bool = False
    stages: List[PipelineStageRead]
    total_candidates: int


class AddCandidateRequest(BaseModel):
    """Place a candidate into a stage."""

    candidate_id: UUID
    stage_id: UUID
    job_posting_id: Optional[UUID] = None


class MoveRequest(BaseModel):
    """Confirmed move of a candidate between two stages."""

    candidate_id: UUID
    from_stage_id: UUID
    to_stage_id: UUID
    note: Optional[str] = None
    # Destination for the stage's notification email, defaults to the stored address
    notify_email: Optional[EmailStr] = None
    send_notification: bool = True


class MoveResponse(BaseModel):
    """Result of a confirmed move."""

    moved: bool
    notification_sent: bool = False
    notification_error: Optional[str] = None
    pipeline: Optional[PipelineRead] = None
