"""
Pipeline router - API endpoints for the recruiter's pipeline board.
"""

from fastapi import APIRouter, Depends, status

from hirepipe.core.config import Settings
from hirepipe.core.dependencies import (
    get_notifier,
    get_pipeline_store,
    get_settings,
    require_employer,
)
from hirepipe.core.provider_errors import ErrorKind
from hirepipe.errors import AppError
from hirepipe.schemas.pipeline import (
    AddCandidateRequest,
    MoveRequest,
    MoveResponse,
    PipelineRead,
)
from hirepipe.services.move_protocol import MoveProtocol
from hirepipe.services.notification_service import NotificationDispatcher
from hirepipe.services.pipeline_board import PipelineBoard
from hirepipe.services.pipeline_store import PipelineResult, PipelineStore
from hirepipe.services.session_resolver import AuthState

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


def _pipeline_or_error(state: AuthState, result: PipelineResult) -> PipelineRead:
    if not result.ok:
        raise AppError.from_kind(result.error_kind or ErrorKind.UNKNOWN, result.message or "Failed to load pipeline data")
    return PipelineRead(
        profile_id=state.profile_id,
        is_degraded=state.is_degraded,
        stages=result.stages,
        total_candidates=sum(len(stage.candidates) for stage in result.stages),
    )


@router.get("", response_model=PipelineRead)
async def get_pipeline(
    state: AuthState = Depends(require_employer),
    store: PipelineStore = Depends(get_pipeline_store),
):
    """
    Get the caller's pipeline: stages in order, each with its candidates.

    Degraded profiles and recruiters without stages get the default
    four-stage board, which is not saved.
    """
    result = await store.load_pipeline(state.profile_id)
    return _pipeline_or_error(state, result)


@router.post("/bootstrap", response_model=PipelineRead)
async def bootstrap_pipeline(
    state: AuthState = Depends(require_employer),
    store: PipelineStore = Depends(get_pipeline_store),
):
    """Save the default stages for a recruiter who has none yet."""
    result = await store.bootstrap_stages(state.profile_id)
    return _pipeline_or_error(state, result)


@router.post("/candidates", response_model=PipelineRead, status_code=status.HTTP_201_CREATED)
async def add_candidate(
    data: AddCandidateRequest,
    state: AuthState = Depends(require_employer),
    store: PipelineStore = Depends(get_pipeline_store),
):
    """Place a candidate into one of the caller's stages."""
    placed = await store.add_candidate(
        state.profile_id,
        data.candidate_id,
        data.stage_id,
        acting_user_id=state.user.id,
        job_posting_id=data.job_posting_id,
    )
    if not placed.ok:
        raise AppError.from_kind(placed.error_kind or ErrorKind.UNKNOWN, placed.message or "Failed to add candidate")
    return _pipeline_or_error(state, await store.load_pipeline(state.profile_id))


@router.post("/moves", response_model=MoveResponse)
async def move_candidate(
    data: MoveRequest,
    state: AuthState = Depends(require_employer),
    store: PipelineStore = Depends(get_pipeline_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    """
    Confirm a move of a candidate between two stages.

    The move is committed first. If the destination stage has an email
    template a notification is then sent; a failed email does not undo the
    move and is reported in `notification_error`.
    """
    board = PipelineBoard(store, state.profile_id, preserve_on_error=settings.PIPELINE_PRESERVE_ON_ERROR)
    loaded = await board.reload()
    if not loaded.ok:
        raise AppError.from_kind(loaded.error_kind or ErrorKind.UNKNOWN, loaded.message or "Failed to load pipeline data")

    located = board.find_candidate(data.candidate_id)
    if located is None:
        raise AppError.from_kind(ErrorKind.NOT_FOUND, "Candidate is not in this pipeline.")
    stage, candidate = located
    if stage.id != data.from_stage_id:
        raise AppError.from_kind(
            ErrorKind.CONFLICT,
            "Candidate has already been moved out of the source stage. Please reload.",
            {"current_stage_id": str(stage.id)},
        )

    protocol = MoveProtocol(store, board, notifier, acting_user_id=state.user.id)
    protocol.begin_drag(candidate, data.from_stage_id)
    confirmation = protocol.drop(data.to_stage_id)
    if confirmation is None:
        raise AppError.from_kind(ErrorKind.VALIDATION, "Destination must be a different stage of this pipeline.")

    if data.notify_email:
        protocol.update_email(str(data.notify_email))
    if not data.send_notification:
        confirmation.email_template = None
    confirmation.note = data.note

    outcome = await protocol.confirm()
    if not outcome.moved:
        raise AppError.from_kind(outcome.error_kind or ErrorKind.UNKNOWN, outcome.error or "Failed to move candidate")

    notification = outcome.notification
    return MoveResponse(
        moved=True,
        notification_sent=bool(notification and notification.success),
        notification_error=notification.error if notification and not notification.success else None,
        pipeline=board.to_read(),
    )
