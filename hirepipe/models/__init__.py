"""
Models package.

Import all models here so they are registered with SQLAlchemy.
This file also makes it easy to import models from one place.
"""

from hirepipe.models.auth_user import AuthUser
from hirepipe.models.profile import Profile
from hirepipe.models.pipeline_stage import PipelineStage
from hirepipe.models.candidate_pipeline_position import CandidatePipelinePosition
from hirepipe.models.pipeline_move import PipelineMove

# Export all models
__all__ = [
    "AuthUser",
    "Profile",
    "PipelineStage",
    "CandidatePipelinePosition",
    "PipelineMove",
]
