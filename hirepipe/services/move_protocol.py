"""
Drag, confirm and commit a candidate move between pipeline stages.

    IDLE -> DRAGGING -> PENDING_CONFIRMATION -> CONFIRMING -> IDLE
                                             -> CANCELLED  -> IDLE

The move is committed before any email goes out, and the board is only
reloaded once the move has finished.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from hirepipe.core.provider_errors import ErrorKind
from hirepipe.schemas.pipeline import PipelineCandidate
from hirepipe.services.notification_service import EmailSendResult, NotificationDispatcher, is_valid_email
from hirepipe.services.pipeline_board import PipelineBoard
from hirepipe.services.pipeline_store import PipelineStore

logger = logging.getLogger(__name__)

INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
MOVE_FAILED_MESSAGE = "Failed to move candidate. Please try again."


class MoveState(str, enum.Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PENDING_CONFIRMATION = "pending_confirmation"
    CONFIRMING = "confirming"
    CANCELLED = "cancelled"


class InvalidTransition(Exception):
    """Raised when an action is not allowed in the current state."""

    def __init__(self, action: str, state: MoveState):
        super().__init__(f"Cannot {action} while {state.value}")
        self.action = action
        self.state = state


@dataclass
class MoveConfirmation:
    """What the recruiter is asked to confirm. Never persisted."""

    candidate: PipelineCandidate
    from_stage_id: UUID
    to_stage_id: UUID
    from_stage_name: str
    to_stage_name: str
    email_template: Optional[str]
    candidate_email: str
    note: Optional[str] = None
    is_sending: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def sends_notification(self) -> bool:
        return bool(self.email_template and self.email_template.strip())


@dataclass(frozen=True)
class ConfirmOutcome:
    moved: bool
    notification: Optional[EmailSendResult] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class MoveProtocol:
    """Move workflow for one recruiter's board."""

    def __init__(
        self,
        store: PipelineStore,
        board: PipelineBoard,
        notifier: NotificationDispatcher,
        acting_user_id: Union[UUID, str, None],
    ):
        self.store = store
        self.board = board
        self.notifier = notifier
        self.acting_user_id = acting_user_id
        self.state = MoveState.IDLE
        self.dragged: Optional[PipelineCandidate] = None
        self.dragged_from: Optional[UUID] = None
        self.confirmation: Optional[MoveConfirmation] = None

    def _require(self, expected: MoveState, action: str) -> None:
        if self.state is not expected:
            raise InvalidTransition(action, self.state)

    def _reset(self) -> None:
        self.state = MoveState.IDLE
        self.dragged = None
        self.dragged_from = None
        self.confirmation = None

    def begin_drag(self, candidate: PipelineCandidate, stage_id: UUID) -> None:
        self._require(MoveState.IDLE, "start a drag")
        self.dragged = candidate
        self.dragged_from = stage_id
        self.state = MoveState.DRAGGING

    def drop(self, target_stage_id: Optional[UUID]) -> Optional[MoveConfirmation]:
        """
        Drop the dragged candidate on a stage.

        Dropping back on the source stage, outside any stage, or on a stage
        the board does not know about ends the drag without side effects.
        """
        self._require(MoveState.DRAGGING, "drop")

        if target_stage_id is None or target_stage_id == self.dragged_from:
            self._reset()
            return None

        from_stage = self.board.stage_by_id(self.dragged_from)
        to_stage = self.board.stage_by_id(target_stage_id)
        if from_stage is None or to_stage is None:
            logger.debug("Drop on unknown stage %s ignored", target_stage_id)
            self._reset()
            return None

        self.confirmation = MoveConfirmation(
            candidate=self.dragged,
            from_stage_id=from_stage.id,
            to_stage_id=to_stage.id,
            from_stage_name=from_stage.stage_name,
            to_stage_name=to_stage.stage_name,
            email_template=to_stage.auto_email_template or None,
            candidate_email=self.dragged.email,
        )
        self.state = MoveState.PENDING_CONFIRMATION
        return self.confirmation

    def update_email(self, address: str) -> None:
        self._require(MoveState.PENDING_CONFIRMATION, "edit the email")
        self.confirmation.candidate_email = address
        self.confirmation.error = None
        self.confirmation.error_kind = None

    async def confirm(self) -> ConfirmOutcome:
        self._require(MoveState.PENDING_CONFIRMATION, "confirm")
        confirmation = self.confirmation

        if confirmation.sends_notification and not is_valid_email(confirmation.candidate_email):
            confirmation.error = INVALID_EMAIL_MESSAGE
            confirmation.error_kind = ErrorKind.VALIDATION
            return ConfirmOutcome(moved=False, error=INVALID_EMAIL_MESSAGE, error_kind=ErrorKind.VALIDATION)

        self.state = MoveState.CONFIRMING
        confirmation.is_sending = True
        confirmation.error = None
        confirmation.error_kind = None

        result = await self.store.move_candidate(
            confirmation.candidate.id,
            confirmation.from_stage_id,
            confirmation.to_stage_id,
            self.acting_user_id,
            note=confirmation.note,
            recruiter_id=self.board.profile_id,
        )
        if not result.ok:
            logger.error("Failed to move candidate %s: %s", confirmation.candidate.id, result.message)
            confirmation.is_sending = False
            confirmation.error = result.message or MOVE_FAILED_MESSAGE
            confirmation.error_kind = result.error_kind
            self.state = MoveState.PENDING_CONFIRMATION
            return ConfirmOutcome(moved=False, error=confirmation.error, error_kind=result.error_kind)

        notification = None
        if confirmation.sends_notification:
            notification = await self._notify(confirmation)

        await self.board.reload()
        self._reset()
        return ConfirmOutcome(moved=True, notification=notification)

    async def _notify(self, confirmation: MoveConfirmation) -> EmailSendResult:
        """Best effort: the move is already committed."""
        try:
            result = await self.notifier.send_stage_transition_email(
                confirmation.candidate_email.strip(),
                confirmation.candidate.name,
                confirmation.from_stage_name,
                confirmation.to_stage_name,
                confirmation.email_template,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Stage notification for candidate %s raised", confirmation.candidate.id)
            return EmailSendResult(success=False, error=str(exc) or "Failed to send stage transition email")

        if not result.success:
            logger.warning("Stage notification for candidate %s failed: %s", confirmation.candidate.id, result.error)
        return result

    def cancel(self) -> None:
        self._require(MoveState.PENDING_CONFIRMATION, "cancel")
        self.state = MoveState.CANCELLED
        logger.debug("Move of candidate %s cancelled", self.confirmation.candidate.id)
        self._reset()
