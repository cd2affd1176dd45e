import asyncio

import pytest

from conftest import FakeNotifier
from hirepipe.core.provider_errors import ErrorKind
from hirepipe.services.move_protocol import INVALID_EMAIL_MESSAGE, InvalidTransition, MoveProtocol, MoveState
from hirepipe.services.notification_service import EmailSendResult
from hirepipe.services.pipeline_board import PipelineBoard
from hirepipe.services.pipeline_store import PipelineStore

TEMPLATES = {
    "Interview": "<p>Hi {{ candidateName }}, let's talk.</p>",
    "Offer": "<p>Congratulations {{ candidateName }}!</p>",
}


class RecordingStore(PipelineStore):
    """PipelineStore that logs each backend call into a shared list."""

    def __init__(self, session_factory, events):
        super().__init__(session_factory)
        self.events = events

    async def load_pipeline(self, profile_id):
        self.events.append("load")
        return await super().load_pipeline(profile_id)

    async def move_candidate(self, *args, **kwargs):
        self.events.append("move")
        return await super().move_candidate(*args, **kwargs)


async def _protocol(factory, data, notifier, events):
    store = RecordingStore(factory, events)
    board = PipelineBoard(store, data["recruiter_id"])
    await board.reload()
    events.clear()
    return MoveProtocol(store, board, notifier, data["recruiter_user_id"])


def _start_drag(protocol, name):
    for stage in protocol.board.stages:
        for candidate in stage.candidates:
            if candidate.name == name:
                protocol.begin_drag(candidate, stage.id)
                return candidate
    raise AssertionError(f"{name} not on board")


def _stage_name_of(board, candidate_id):
    found = board.find_candidate(candidate_id)
    return found[0].stage_name if found else None


def test_drop_on_same_stage_or_outside_does_nothing(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            notifier = FakeNotifier(events=events)
            protocol = await _protocol(factory, data, notifier, events)

            _start_drag(protocol, "John Smith")
            same = protocol.drop(data["stages"]["Screening"])
            state_after_same = protocol.state

            _start_drag(protocol, "John Smith")
            outside = protocol.drop(None)
            return same, state_after_same, outside, protocol.state, events

    same, state_after_same, outside, state, events = asyncio.run(scenario())

    assert same is None and outside is None
    assert state_after_same is MoveState.IDLE
    assert state is MoveState.IDLE
    assert events == []


def test_confirm_moves_then_notifies_then_reloads(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            notifier = FakeNotifier(events=events)
            protocol = await _protocol(factory, data, notifier, events)

            sarah = _start_drag(protocol, "Sarah Jones")
            confirmation = protocol.drop(data["stages"]["Offer"])
            pending_state = protocol.state
            outcome = await protocol.confirm()
            return sarah, confirmation, pending_state, outcome, protocol, notifier, events

    sarah, confirmation, pending_state, outcome, protocol, notifier, events = asyncio.run(scenario())

    assert pending_state is MoveState.PENDING_CONFIRMATION
    assert confirmation.candidate_email == "sarah.jones@example.com"
    assert confirmation.email_template == TEMPLATES["Offer"]
    assert confirmation.from_stage_name == "Applied"
    assert confirmation.to_stage_name == "Offer"

    assert outcome.moved is True
    assert outcome.notification.success is True
    assert events == ["move", "notify", "load"]
    assert notifier.calls == [
        {
            "candidate_email": "sarah.jones@example.com",
            "candidate_name": "Sarah Jones",
            "from_stage": "Applied",
            "to_stage": "Offer",
            "template": TEMPLATES["Offer"],
        }
    ]
    assert protocol.state is MoveState.IDLE
    assert protocol.confirmation is None
    assert _stage_name_of(protocol.board, sarah.id) == "Offer"


def test_failed_notification_does_not_undo_move(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            notifier = FakeNotifier(result=EmailSendResult(success=False, error="mailbox full"), events=events)
            protocol = await _protocol(factory, data, notifier, events)

            john = _start_drag(protocol, "John Smith")
            protocol.drop(data["stages"]["Interview"])
            outcome = await protocol.confirm()
            fresh = await PipelineStore(factory).load_pipeline(data["recruiter_id"])
            return john, outcome, protocol, fresh

    john, outcome, protocol, fresh = asyncio.run(scenario())

    assert outcome.moved is True
    assert outcome.notification.success is False
    assert _stage_name_of(protocol.board, john.id) == "Interview"
    interview = next(stage for stage in fresh.stages if stage.stage_name == "Interview")
    assert john.id in [candidate.id for candidate in interview.candidates]


def test_notifier_exception_is_contained(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            notifier = FakeNotifier(error=RuntimeError("smtp exploded"), events=events)
            protocol = await _protocol(factory, data, notifier, events)

            _start_drag(protocol, "John Smith")
            protocol.drop(data["stages"]["Interview"])
            return await protocol.confirm(), protocol

    outcome, protocol = asyncio.run(scenario())

    assert outcome.moved is True
    assert outcome.notification.success is False
    assert "smtp exploded" in outcome.notification.error
    assert protocol.state is MoveState.IDLE


def test_stage_without_template_sends_nothing(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            notifier = FakeNotifier(events=events)
            protocol = await _protocol(factory, data, notifier, events)

            _start_drag(protocol, "Mike Wilson")
            confirmation = protocol.drop(data["stages"]["Applied"])
            protocol.update_email("")
            return confirmation, await protocol.confirm(), events

    confirmation, outcome, events = asyncio.run(scenario())

    assert confirmation.sends_notification is False
    assert outcome.moved is True
    assert outcome.notification is None
    assert events == ["move", "load"]


def test_cancel_makes_no_backend_call(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            protocol = await _protocol(factory, data, FakeNotifier(events=events), events)

            john = _start_drag(protocol, "John Smith")
            protocol.drop(data["stages"]["Offer"])
            protocol.cancel()
            return john, protocol, events

    john, protocol, events = asyncio.run(scenario())

    assert events == []
    assert protocol.state is MoveState.IDLE
    assert _stage_name_of(protocol.board, john.id) == "Screening"


def test_invalid_email_blocks_confirmation(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            protocol = await _protocol(factory, data, FakeNotifier(events=events), events)

            _start_drag(protocol, "Sarah Jones")
            protocol.drop(data["stages"]["Offer"])
            protocol.update_email("not-an-email")
            outcome = await protocol.confirm()
            return outcome, protocol, events

    outcome, protocol, events = asyncio.run(scenario())

    assert outcome.moved is False
    assert outcome.error == INVALID_EMAIL_MESSAGE
    assert outcome.error_kind is ErrorKind.VALIDATION
    assert protocol.state is MoveState.PENDING_CONFIRMATION
    assert protocol.confirmation.error == INVALID_EMAIL_MESSAGE
    assert events == []


def test_failed_move_stays_pending_without_notifying(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory, TEMPLATES)
            events = []
            protocol = await _protocol(factory, data, FakeNotifier(events=events), events)

            john = _start_drag(protocol, "John Smith")
            protocol.drop(data["stages"]["Interview"])
            # Someone else moves John first
            await PipelineStore(factory).move_candidate(
                john.id, data["stages"]["Screening"], data["stages"]["Offer"], data["recruiter_user_id"]
            )
            outcome = await protocol.confirm()
            return outcome, protocol, events

    outcome, protocol, events = asyncio.run(scenario())

    assert outcome.moved is False
    assert outcome.error_kind is ErrorKind.CONFLICT
    assert protocol.state is MoveState.PENDING_CONFIRMATION
    assert protocol.confirmation.error == outcome.error
    assert protocol.confirmation.is_sending is False
    assert events == ["move"]


def test_invalid_transitions(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            events = []
            return await _protocol(factory, data, FakeNotifier(events=events), events)

    protocol = asyncio.run(scenario())

    with pytest.raises(InvalidTransition):
        protocol.drop(None)
    with pytest.raises(InvalidTransition):
        protocol.cancel()
    with pytest.raises(InvalidTransition):
        asyncio.run(protocol.confirm())

    _start_drag(protocol, "John Smith")
    with pytest.raises(InvalidTransition) as exc_info:
        _start_drag(protocol, "Sarah Jones")
    assert exc_info.value.state is MoveState.DRAGGING
