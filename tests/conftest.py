"""
Pytest configuration and shared fixtures.
"""

import os

# Settings are read at import time; keep tests off real services
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTH_PROVIDER", "local")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-hirepipe-tests-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./hirepipe-test.db")

import uuid
from contextlib import asynccontextmanager
from typing import Any, Optional

import pytest

from hirepipe.core.permissions import ProfileRole
from hirepipe.db.session import build_engine, build_session_factory, create_all, session_scope
from hirepipe.providers.base import AuthStateEmitter
from hirepipe.repositories.pipeline_repository import PipelineRepository
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.auth import AuthEvent, AuthSession, SessionUser, SignUpResponse
from hirepipe.schemas.profile import ProfileCreate
from hirepipe.services.notification_service import EmailSendResult
from hirepipe.services.pipeline_store import DEFAULT_STAGES
from hirepipe.utils.time import utc_now


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: requires database")
    config.addinivalue_line("markers", "server: requires running HTTP server")


def pytest_collection_modifyitems(config, items):
    run_db = os.environ.get("RUN_DB_TESTS") == "1"
    run_server = os.environ.get("RUN_SERVER_TESTS") == "1"

    skip_db = pytest.mark.skip(reason="db tests skipped by default; set RUN_DB_TESTS=1 to enable")
    skip_server = pytest.mark.skip(reason="server tests skipped by default; set RUN_SERVER_TESTS=1 to enable")

    for item in items:
        if "db" in item.keywords and not run_db:
            item.add_marker(skip_db)
        if "server" in item.keywords and not run_server:
            item.add_marker(skip_server)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


def make_session(user_id: Optional[uuid.UUID] = None, email: str = "recruiter@test.com") -> AuthSession:
    return AuthSession(
        access_token=f"token-{uuid.uuid4()}",
        refresh_token=f"refresh-{uuid.uuid4()}",
        user=SessionUser(id=user_id or uuid.uuid4(), email=email),
    )


class FakeIdentityProvider(AuthStateEmitter):
    """In-memory identity provider."""

    provider = "fake"

    def __init__(self, session: Optional[AuthSession] = None, get_session_error: Optional[Exception] = None):
        super().__init__()
        self._session = session
        self.get_session_error = get_session_error
        self.users: dict[str, uuid.UUID] = {}
        self.revoked: list[AuthSession] = []

    async def get_session(self) -> Optional[AuthSession]:
        if self.get_session_error is not None:
            raise self.get_session_error
        return self._session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        user_id = self.users.setdefault(email, uuid.uuid4())
        session = make_session(user_id, email)
        await self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, metadata: Optional[dict[str, Any]] = None) -> SignUpResponse:
        session = make_session(self.users.setdefault(email, uuid.uuid4()), email)
        await self._set_session(AuthEvent.SIGNED_IN, session)
        return SignUpResponse(user=session.user, session=session)

    async def sign_out(self) -> None:
        await self._set_session(AuthEvent.SIGNED_OUT, None)

    async def refresh_session(self) -> Optional[AuthSession]:
        if self._session is None:
            return None
        session = make_session(self._session.user.id, self._session.user.email)
        await self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def revoke_session(self, session: AuthSession) -> None:
        self.revoked.append(session)


class FakeNotifier:
    """Records stage transition emails instead of sending them."""

    def __init__(self, result: Optional[EmailSendResult] = None, error: Optional[Exception] = None, events=None):
        self.result = result or EmailSendResult(success=True, message_id="fake-1")
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.events = events if events is not None else []

    async def send_stage_transition_email(self, candidate_email, candidate_name, from_stage, to_stage, template=None):
        self.events.append("notify")
        self.calls.append(
            {
                "candidate_email": candidate_email,
                "candidate_name": candidate_name,
                "from_stage": from_stage,
                "to_stage": to_stage,
                "template": template,
            }
        )
        if self.error is not None:
            raise self.error
        return self.result

    def validate_configuration(self):
        return True, []


class CountingSessionFactory:
    """Session factory stand-in that fails every session and counts attempts."""

    def __init__(self, exc: Exception):
        self.exc = exc
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self

    async def __aenter__(self):
        raise self.exc

    async def __aexit__(self, *exc_info):
        return False


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sqlite_db(tmp_path):
    """
    Async context manager yielding a session factory over a fresh SQLite file.

    Use inside the coroutine passed to asyncio.run so the engine lives on
    that event loop.
    """

    @asynccontextmanager
    async def open_db():
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
        await create_all(engine)
        try:
            yield build_session_factory(engine)
        finally:
            await engine.dispose()

    return open_db


async def seed_pipeline(session_factory, templates: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """
    Recruiter with the four default stages and three candidates:
    John Smith (Screening), Sarah Jones (Applied), Mike Wilson (Interview).
    """
    templates = templates or {}
    async with session_scope(session_factory) as db:
        profiles = ProfileRepository(db)
        pipeline = PipelineRepository(db)

        recruiter_user_id = uuid.uuid4()
        recruiter = await profiles.create(
            ProfileCreate(
                user_id=recruiter_user_id,
                email="recruiter@test.com",
                role=ProfileRole.RECRUITER,
                first_name="Test",
                last_name="Recruiter",
            )
        )

        stages = {}
        for defaults in DEFAULT_STAGES:
            stage = await pipeline.create_stage(
                recruiter.id,
                stage_name=defaults.stage_name,
                stage_order=defaults.stage_order,
                stage_color=defaults.stage_color,
                auto_email_template=templates.get(defaults.stage_name),
            )
            stages[defaults.stage_name] = stage.id

        candidates = {}
        for first, last, stage_name in (
            ("John", "Smith", "Screening"),
            ("Sarah", "Jones", "Applied"),
            ("Mike", "Wilson", "Interview"),
        ):
            candidate = await profiles.create(
                ProfileCreate(
                    user_id=uuid.uuid4(),
                    email=f"{first.lower()}.{last.lower()}@example.com",
                    role=ProfileRole.CANDIDATE,
                    first_name=first,
                    last_name=last,
                    headline="Developer",
                )
            )
            await pipeline.create_position(recruiter.id, candidate.id, stages[stage_name], moved_at=utc_now())
            candidates[f"{first} {last}"] = candidate.id

    return {
        "recruiter_id": recruiter.id,
        "recruiter_user_id": recruiter_user_id,
        "stages": stages,
        "candidates": candidates,
    }


@pytest.fixture
def seed():
    return seed_pipeline
