import asyncio
import uuid

from sqlalchemy.exc import OperationalError

from conftest import CountingSessionFactory
from hirepipe.core.permissions import ProfileRole
from hirepipe.core.provider_errors import ErrorKind
from hirepipe.db.session import session_scope
from hirepipe.repositories.pipeline_repository import PipelineRepository
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.profile import ProfileCreate
from hirepipe.services.pipeline_store import PipelineStore

STAGE_NAMES = ["Applied", "Screening", "Interview", "Offer"]


async def _create_profile(factory, role=ProfileRole.RECRUITER, first_name="Other", last_name="Person"):
    async with session_scope(factory) as db:
        profile = await ProfileRepository(db).create(
            ProfileCreate(
                user_id=uuid.uuid4(),
                email=f"{first_name.lower()}.{uuid.uuid4().hex[:6]}@example.com",
                role=role,
                first_name=first_name,
                last_name=last_name,
            )
        )
    return profile.id


def _stage_of(result, candidate_id):
    for stage in result.stages:
        if any(candidate.id == candidate_id for candidate in stage.candidates):
            return stage.stage_name
    return None


def test_temporary_profile_gets_default_skeleton_without_queries():
    factory = CountingSessionFactory(AssertionError("must not query"))
    profile_id = f"temp-{uuid.uuid4()}"

    result = asyncio.run(PipelineStore(factory).load_pipeline(profile_id))

    assert result.ok
    assert factory.calls == 0
    assert [stage.stage_name for stage in result.stages] == STAGE_NAMES
    assert [stage.stage_order for stage in result.stages] == [1, 2, 3, 4]
    assert [stage.stage_color for stage in result.stages] == ["#3B82F6", "#F59E0B", "#8B5CF6", "#10B981"]
    assert all(stage.recruiter_id == profile_id for stage in result.stages)
    assert all(stage.candidates == [] and stage.persisted is False for stage in result.stages)
    assert all(stage.auto_email_template is None for stage in result.stages)
    assert len({stage.id for stage in result.stages}) == 4


def test_recruiter_without_stages_gets_skeleton_owned_by_real_id(sqlite_db):
    async def scenario():
        async with sqlite_db() as factory:
            recruiter_id = await _create_profile(factory)
            return recruiter_id, await PipelineStore(factory).load_pipeline(recruiter_id)

    recruiter_id, result = asyncio.run(scenario())

    assert result.ok
    assert [stage.stage_name for stage in result.stages] == STAGE_NAMES
    assert all(stage.recruiter_id == recruiter_id for stage in result.stages)
    assert not any(stage.persisted for stage in result.stages)


def test_load_groups_candidates_by_stage(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            return data, await PipelineStore(factory).load_pipeline(data["recruiter_id"])

    data, result = asyncio.run(scenario())

    assert result.ok
    assert [stage.stage_name for stage in result.stages] == STAGE_NAMES
    assert all(stage.persisted for stage in result.stages)
    assert _stage_of(result, data["candidates"]["John Smith"]) == "Screening"
    assert _stage_of(result, data["candidates"]["Sarah Jones"]) == "Applied"
    assert _stage_of(result, data["candidates"]["Mike Wilson"]) == "Interview"

    applied = result.stages[0].candidates[0]
    assert applied.name == "Sarah Jones"
    assert applied.email == "sarah.jones@example.com"
    assert applied.added_at.tzinfo is not None


def test_load_failure_is_classified():
    factory = CountingSessionFactory(OperationalError("SELECT", {}, Exception("connection refused")))

    result = asyncio.run(PipelineStore(factory).load_pipeline(uuid.uuid4()))

    assert not result.ok
    assert result.error_kind is ErrorKind.TRANSIENT
    assert result.stages == []
    assert result.message


def test_move_updates_position_and_records_history(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            store = PipelineStore(factory)
            john = data["candidates"]["John Smith"]
            actor = data["recruiter_user_id"]
            result = await store.move_candidate(
                john,
                data["stages"]["Screening"],
                data["stages"]["Interview"],
                actor,
                note="Strong phone screen",
                recruiter_id=data["recruiter_id"],
            )
            pipeline = await store.load_pipeline(data["recruiter_id"])
            async with session_scope(factory) as db:
                repository = PipelineRepository(db)
                moves = await repository.list_moves(john)
                position = await repository.get_position_for_update(data["recruiter_id"], john)
            return data, result, pipeline, moves, position

    data, result, pipeline, moves, position = asyncio.run(scenario())

    assert result.ok
    assert result.to_stage_id == data["stages"]["Interview"]
    assert _stage_of(pipeline, data["candidates"]["John Smith"]) == "Interview"
    assert position.previous_stage_id == data["stages"]["Screening"]
    assert position.notes == "Strong phone screen"
    assert len(moves) == 1
    assert moves[0].from_stage_id == data["stages"]["Screening"]
    assert moves[0].to_stage_id == data["stages"]["Interview"]
    assert moves[0].moved_by == data["recruiter_user_id"]


def test_move_from_stale_source_stage_conflicts(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            store = PipelineStore(factory)
            result = await store.move_candidate(
                data["candidates"]["John Smith"],
                data["stages"]["Applied"],
                data["stages"]["Offer"],
                data["recruiter_user_id"],
            )
            pipeline = await store.load_pipeline(data["recruiter_id"])
            return data, result, pipeline

    data, result, pipeline = asyncio.run(scenario())

    assert not result.ok
    assert result.error_kind is ErrorKind.CONFLICT
    assert _stage_of(pipeline, data["candidates"]["John Smith"]) == "Screening"


def test_move_into_another_recruiters_stage_is_rejected(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            store = PipelineStore(factory)
            other = await _create_profile(factory)
            foreign = await store.bootstrap_stages(other)
            result = await store.move_candidate(
                data["candidates"]["John Smith"],
                data["stages"]["Screening"],
                foreign.stages[0].id,
                data["recruiter_user_id"],
            )
            pipeline = await store.load_pipeline(data["recruiter_id"])
            return data, result, pipeline

    data, result, pipeline = asyncio.run(scenario())

    assert not result.ok
    assert result.error_kind is ErrorKind.VALIDATION
    assert _stage_of(pipeline, data["candidates"]["John Smith"]) == "Screening"


def test_move_guards():
    store = PipelineStore(CountingSessionFactory(AssertionError("must not query")))
    stage_id = uuid.uuid4()

    same_stage = asyncio.run(store.move_candidate(uuid.uuid4(), stage_id, stage_id, None))
    degraded = asyncio.run(
        store.move_candidate(uuid.uuid4(), stage_id, uuid.uuid4(), None, recruiter_id=f"temp-{uuid.uuid4()}")
    )

    assert same_stage.error_kind is ErrorKind.VALIDATION
    assert degraded.error_kind is ErrorKind.VALIDATION
    assert store.session_factory.calls == 0


def test_bootstrap_is_idempotent(sqlite_db):
    async def scenario():
        async with sqlite_db() as factory:
            store = PipelineStore(factory)
            recruiter_id = await _create_profile(factory)
            first = await store.bootstrap_stages(recruiter_id)
            second = await store.bootstrap_stages(recruiter_id)
            async with session_scope(factory) as db:
                count = await PipelineRepository(db).count_stages(recruiter_id)
            return first, second, count

    first, second, count = asyncio.run(scenario())

    assert first.ok and second.ok
    assert count == 4
    assert [stage.stage_name for stage in first.stages] == STAGE_NAMES
    assert all(stage.persisted for stage in first.stages)
    assert [stage.id for stage in first.stages] == [stage.id for stage in second.stages]


def test_bootstrap_refuses_temporary_profile():
    store = PipelineStore(CountingSessionFactory(AssertionError("must not query")))

    result = asyncio.run(store.bootstrap_stages(f"temp-{uuid.uuid4()}"))

    assert not result.ok
    assert result.error_kind is ErrorKind.VALIDATION


def test_add_candidate_and_duplicate(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            data = await seed(factory)
            store = PipelineStore(factory)
            lisa = await _create_profile(factory, role=ProfileRole.CANDIDATE, first_name="Lisa", last_name="Brown")
            added = await store.add_candidate(data["recruiter_id"], lisa, data["stages"]["Offer"])
            duplicate = await store.add_candidate(data["recruiter_id"], lisa, data["stages"]["Applied"])
            missing = await store.add_candidate(data["recruiter_id"], uuid.uuid4(), data["stages"]["Applied"])
            pipeline = await store.load_pipeline(data["recruiter_id"])
            return lisa, added, duplicate, missing, pipeline

    lisa, added, duplicate, missing, pipeline = asyncio.run(scenario())

    assert added.ok
    assert duplicate.error_kind is ErrorKind.CONFLICT
    assert missing.error_kind is ErrorKind.NOT_FOUND
    assert _stage_of(pipeline, lisa) == "Offer"


def test_repeated_loads_return_the_same_board(sqlite_db, seed):
    async def scenario():
        async with sqlite_db() as factory:
            store = PipelineStore(factory)
            data = await seed(factory)
            empty_recruiter = await _create_profile(factory)
            return (
                await store.load_pipeline(data["recruiter_id"]),
                await store.load_pipeline(data["recruiter_id"]),
                await store.load_pipeline(empty_recruiter),
                await store.load_pipeline(empty_recruiter),
            )

    seeded_first, seeded_second, empty_first, empty_second = asyncio.run(scenario())

    assert seeded_first.ok and seeded_second.ok
    assert seeded_first.stages == seeded_second.stages
    assert empty_first.ok and empty_second.ok
    assert empty_first.stages == empty_second.stages


def test_temporary_profile_skeleton_ids_are_fresh():
    store = PipelineStore(CountingSessionFactory(AssertionError("must not query")))
    profile_id = f"temp-{uuid.uuid4()}"

    first = asyncio.run(store.load_pipeline(profile_id))
    second = asyncio.run(store.load_pipeline(profile_id))

    assert {stage.id for stage in first.stages}.isdisjoint(stage.id for stage in second.stages)
