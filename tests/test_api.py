"""
End-to-end tests through the FastAPI app with the local identity provider
and a SQLite database.
"""

import asyncio
import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from conftest import CountingSessionFactory, FakeIdentityProvider, seed_pipeline
from hirepipe.core.client import BackendClient
from hirepipe.core.config import Settings
from hirepipe.core.dependencies import get_backend
from hirepipe.core.jwt import create_access_token
from hirepipe.core.permissions import ProfileRole
from hirepipe.db.session import build_engine, build_session_factory, create_all, session_scope
from hirepipe.main import create_app
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.profile import ProfileCreate
from hirepipe.services.notification_service import EmailConfig, NotificationDispatcher

SECRET = "api-test-secret-key-0123456789abcdefghij"
TEMPLATES = {"Interview": "<p>See you soon, {{ candidateName }}.</p>"}


@pytest.fixture
def api(tmp_path):
    settings = Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        ENVIRONMENT="test",
        SECRET_KEY=SECRET,
        AUTH_PROVIDER="local",
    )

    async def prepare():
        # Seed through a throwaway engine; the app builds its own at startup
        engine = build_engine(settings.DATABASE_URL)
        try:
            await create_all(engine)
            factory = build_session_factory(engine)
            data = await seed_pipeline(factory, TEMPLATES)
            candidate_user = uuid.uuid4()
            async with session_scope(factory) as db:
                await ProfileRepository(db).create(
                    ProfileCreate(user_id=candidate_user, email="lisa.brown@example.com", role=ProfileRole.CANDIDATE)
                )
            data["candidate_user_id"] = candidate_user
        finally:
            await engine.dispose()
        return data

    data = asyncio.run(prepare())
    app = create_app(settings, notifier=NotificationDispatcher(EmailConfig.from_settings(settings)))

    with TestClient(app) as client:
        yield client, data


def _bearer(user_id, email="recruiter@test.com"):
    token = create_access_token({"sub": str(user_id), "email": email}, SECRET)
    return {"Authorization": f"Bearer {token}"}


def test_health(api):
    client, _ = api

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["api_ok"] is True
    assert body["db_ok"] is True
    assert body["db_error"] is None
    assert body["identity_provider"] == "local"
    assert body["email_config_ok"] is True
    assert body["email_config_errors"] == []


def test_health_reports_unreachable_database(api):
    client, _ = api
    backend = BackendClient(
        session_factory=CountingSessionFactory(OperationalError("SELECT 1", {}, Exception("connection refused"))),
        identity=FakeIdentityProvider(),
    )
    client.app.dependency_overrides[get_backend] = lambda: backend

    body = client.get("/health").json()

    assert body["api_ok"] is True
    assert body["db_ok"] is False
    assert body["db_error"] == "transient"
    assert body["identity_provider"] == "fake"


def test_requests_without_token_are_rejected(api):
    client, _ = api

    assert client.get("/pipeline").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401


def test_sign_up_then_degraded_pipeline(api):
    client, _ = api

    signed_up = client.post(
        "/auth/sign-up",
        json={"email": "new.recruiter@example.com", "password": "secret123", "first_name": "New"},
    )
    assert signed_up.status_code == 201
    token = signed_up.json()["session"]["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    me = client.get("/auth/me", headers=headers).json()
    assert me["is_authenticated"] is True
    assert me["is_degraded"] is True
    assert me["is_employer"] is True
    assert me["profile_id"] == f"temp-{me['user']['id']}"

    pipeline = client.get("/pipeline", headers=headers).json()
    assert pipeline["is_degraded"] is True
    assert [stage["stage_name"] for stage in pipeline["stages"]] == ["Applied", "Screening", "Interview", "Offer"]
    assert pipeline["total_candidates"] == 0

    assert client.get("/profiles/me", headers=headers).json()["error"]["code"] == "profile_unavailable"
    assert client.post("/pipeline/bootstrap", headers=headers).status_code == 422


def test_sign_in_and_sign_out(api):
    client, _ = api
    client.post("/auth/sign-up", json={"email": "back.again@example.com", "password": "secret123"})

    bad = client.post("/auth/sign-in", json={"email": "back.again@example.com", "password": "wrong-one"})
    assert bad.status_code == 401
    assert bad.json()["error"]["code"] == "unauthorized"

    good = client.post("/auth/sign-in", json={"email": "back.again@example.com", "password": "secret123"})
    assert good.status_code == 200
    headers = {"Authorization": f"Bearer {good.json()['access_token']}"}

    assert client.post("/auth/sign-out", headers=headers).status_code == 204


def test_recruiter_pipeline_and_move(api):
    client, data = api
    headers = _bearer(data["recruiter_user_id"])
    john = str(data["candidates"]["John Smith"])

    pipeline = client.get("/pipeline", headers=headers).json()
    assert pipeline["is_degraded"] is False
    assert pipeline["total_candidates"] == 3

    moved = client.post(
        "/pipeline/moves",
        headers=headers,
        json={
            "candidate_id": john,
            "from_stage_id": str(data["stages"]["Screening"]),
            "to_stage_id": str(data["stages"]["Interview"]),
            "note": "Passed screening",
        },
    )
    assert moved.status_code == 200
    body = moved.json()
    assert body["moved"] is True
    assert body["notification_sent"] is True
    interview = next(stage for stage in body["pipeline"]["stages"] if stage["stage_name"] == "Interview")
    assert john in [candidate["id"] for candidate in interview["candidates"]]

    stale = client.post(
        "/pipeline/moves",
        headers=headers,
        json={
            "candidate_id": john,
            "from_stage_id": str(data["stages"]["Screening"]),
            "to_stage_id": str(data["stages"]["Offer"]),
        },
    )
    assert stale.status_code == 409
    assert stale.json()["error"]["details"]["current_stage_id"] == str(data["stages"]["Interview"])


def test_move_to_same_stage_is_rejected(api):
    client, data = api
    screening = str(data["stages"]["Screening"])

    response = client.post(
        "/pipeline/moves",
        headers=_bearer(data["recruiter_user_id"]),
        json={
            "candidate_id": str(data["candidates"]["John Smith"]),
            "from_stage_id": screening,
            "to_stage_id": screening,
        },
    )

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation"


def test_candidates_cannot_open_pipelines(api):
    client, data = api

    response = client.get("/pipeline", headers=_bearer(data["candidate_user_id"], "lisa.brown@example.com"))

    assert response.status_code == 403


def test_candidate_search_and_add(api):
    client, data = api
    headers = _bearer(data["recruiter_user_id"])

    results = client.get("/candidates/search", headers=headers, params={"q": "brown"}).json()
    assert [result["email"] for result in results] == ["lisa.brown@example.com"]

    added = client.post(
        "/pipeline/candidates",
        headers=headers,
        json={"candidate_id": results[0]["id"], "stage_id": str(data["stages"]["Applied"])},
    )
    assert added.status_code == 201
    assert added.json()["total_candidates"] == 4

    duplicate = client.post(
        "/pipeline/candidates",
        headers=headers,
        json={"candidate_id": results[0]["id"], "stage_id": str(data["stages"]["Applied"])},
    )
    assert duplicate.status_code == 409


def test_update_own_profile(api):
    client, data = api
    headers = _bearer(data["recruiter_user_id"])

    updated = client.patch("/profiles/me", headers=headers, json={"headline": "Head of Talent"})

    assert updated.status_code == 200
    assert updated.json()["headline"] == "Head of Talent"
    assert client.get("/profiles/me", headers=headers).json()["id"] == str(data["recruiter_id"])
