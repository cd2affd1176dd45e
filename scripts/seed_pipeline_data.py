"""
Seed script: a test recruiter, four candidates, default stages and positions.

Creates a local login (recruiter@test.com / recruiter123) when
AUTH_PROVIDER=local. With a hosted provider pass the provider's user id
via TEST_USER_ID instead.

Usage:
    python scripts/seed_pipeline_data.py
"""

import asyncio
import os
import sys
import uuid
from pathlib import Path

# Add parent directory to path so we can import hirepipe modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from hirepipe.core.config import settings
from hirepipe.core.permissions import ProfileRole
from hirepipe.db.session import build_engine, build_session_factory, session_scope
from hirepipe.repositories.auth_user_repository import AuthUserRepository
from hirepipe.repositories.pipeline_repository import PipelineRepository
from hirepipe.repositories.profile_repository import ProfileRepository
from hirepipe.schemas.profile import ProfileCreate, ProfileUpdate
from hirepipe.schemas.search import SearchFilters
from hirepipe.services.pipeline_store import DEFAULT_STAGES
from hirepipe.utils.time import utc_now

RECRUITER_EMAIL = "recruiter@test.com"
RECRUITER_PASSWORD = "recruiter123"  # Change this outside local testing!

CANDIDATES = [
    {
        "email": "john.smith@example.com",
        "first_name": "John",
        "last_name": "Smith",
        "headline": "Full Stack Developer",
        "bio": "Experienced developer with React and Node.js expertise",
        "completion_score": 92,
        "reelpass_verified": True,
        "notes": "Strong technical background, good culture fit",
    },
    {
        "email": "sarah.jones@example.com",
        "first_name": "Sarah",
        "last_name": "Jones",
        "headline": "Frontend Developer",
        "bio": "UI/UX focused developer with modern JavaScript skills",
        "completion_score": 88,
        "reelpass_verified": True,
        "notes": "Excellent portfolio, needs to improve backend skills",
    },
    {
        "email": "mike.wilson@example.com",
        "first_name": "Mike",
        "last_name": "Wilson",
        "headline": "Backend Developer",
        "bio": "Python and Django specialist with cloud experience",
        "completion_score": 90,
        "reelpass_verified": False,
        "notes": "Great interview, discussing salary expectations",
    },
    {
        "email": "lisa.brown@example.com",
        "first_name": "Lisa",
        "last_name": "Brown",
        "headline": "DevOps Engineer",
        "bio": "Infrastructure automation and CI/CD pipeline expert",
        "completion_score": 95,
        "reelpass_verified": True,
        "notes": "Top candidate, preparing offer package",
    },
]

STAGE_TEMPLATES = {
    "Interview": (
        "<p>Dear {{ candidateName }},</p>"
        "<p>You have moved from {{ fromStage }} to {{ toStage }}. "
        "We will contact you shortly to schedule your interview.</p>"
        "<p>Best regards,<br>{{ companyName }}</p>"
    ),
    "Offer": (
        "<p>Dear {{ candidateName }},</p>"
        "<p>Congratulations! {{ companyName }} would like to make you an offer.</p>"
    ),
}


async def seed_pipeline_data():
    """Create the recruiter, candidates, stages and positions if missing."""
    engine = build_engine(settings.DATABASE_URL)
    session_factory = build_session_factory(engine)

    try:
        async with session_scope(session_factory) as db:
            profiles = ProfileRepository(db)
            pipeline = PipelineRepository(db)

            # 1. Recruiter login + profile
            user_id = os.environ.get("TEST_USER_ID")
            if user_id:
                recruiter_user_id = uuid.UUID(user_id)
            else:
                auth_users = AuthUserRepository(db)
                auth_user = await auth_users.get_by_email(RECRUITER_EMAIL)
                if not auth_user:
                    auth_user = await auth_users.create(
                        RECRUITER_EMAIL,
                        RECRUITER_PASSWORD,
                        {"first_name": "Test", "last_name": "Recruiter", "full_name": "Test Recruiter"},
                    )
                    print(f"✓ Created local login {RECRUITER_EMAIL} / {RECRUITER_PASSWORD}")
                recruiter_user_id = auth_user.id

            recruiter = await profiles.get_by_user_id(recruiter_user_id)
            if not recruiter:
                recruiter = await profiles.create(
                    ProfileCreate(
                        user_id=recruiter_user_id,
                        email=RECRUITER_EMAIL,
                        role=ProfileRole.RECRUITER,
                        first_name="Test",
                        last_name="Recruiter",
                        headline="Senior Technical Recruiter",
                    )
                )
            print(f"✓ Recruiter profile: {recruiter.id}")

            # 2. Stages
            stages = await pipeline.list_stages(recruiter.id)
            if not stages:
                for defaults in DEFAULT_STAGES:
                    await pipeline.create_stage(
                        recruiter.id,
                        stage_name=defaults.stage_name,
                        stage_order=defaults.stage_order,
                        stage_color=defaults.stage_color,
                        auto_email_template=STAGE_TEMPLATES.get(defaults.stage_name),
                    )
                stages = await pipeline.list_stages(recruiter.id)
            print(f"✓ {len(stages)} pipeline stages")

            # 3. Candidates, one per stage
            for index, data in enumerate(CANDIDATES):
                candidate = next(
                    (p for p in await profiles.search_candidates(data["email"], SearchFilters()) if p.email == data["email"]),
                    None,
                )
                if not candidate:
                    candidate = await profiles.create(
                        ProfileCreate(
                            user_id=uuid.uuid4(),
                            email=data["email"],
                            role=ProfileRole.CANDIDATE,
                            first_name=data["first_name"],
                            last_name=data["last_name"],
                            headline=data["headline"],
                        )
                    )
                    await profiles.update(
                        candidate.id,
                        ProfileUpdate(bio=data["bio"], completion_score=data["completion_score"]),
                    )
                    candidate.reelpass_verified = data["reelpass_verified"]

                if await pipeline.get_position_for_update(recruiter.id, candidate.id) is None:
                    stage = stages[index % len(stages)]
                    position = await pipeline.create_position(
                        recruiter.id,
                        candidate.id,
                        stage.id,
                        moved_at=utc_now(),
                    )
                    position.notes = data["notes"]
                    print(f"✓ {data['first_name']} {data['last_name']} -> {stage.stage_name}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    print("Seeding pipeline data...\n")
    asyncio.run(seed_pipeline_data())
    print("\n✓ Done!")
