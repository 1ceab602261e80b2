"""
Shared fixtures: a fresh in-memory SQLite database per test, a session bound to it,
and an httpx client whose requests use the same database.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SCORING_SERVICE_TOKEN", "test-scoring-pipeline-token")

import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from glowboard.config import settings
from glowboard.db import Base, get_session
from glowboard.main import app
from glowboard.models.user import User
from glowboard.models.challenge import Challenge
from glowboard.schemas.challenge import ChallengeCreate
from glowboard.services import registry

# Fixed clock for service-level tests
NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest_asyncio.fixture
async def client(session_factory):
    async def _override():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _override
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def make_user(session, username: str | None = None) -> uuid.UUID:
    """Insert a user directly and return its id."""
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    user = User(email=f"{username}@ex.com", username=username, password_hash="not-a-hash")
    session.add(user)
    await session.commit()
    return user.id


async def fetch_user(session, user_id: uuid.UUID) -> User:
    return await session.scalar(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )


async def fetch_challenge(session, challenge_id: uuid.UUID) -> Challenge | None:
    return await session.scalar(
        select(Challenge).where(Challenge.id == challenge_id).execution_options(populate_existing=True)
    )


def challenge_payload(start: datetime | None = None, duration: int = 7, **overrides) -> ChallengeCreate:
    data = {
        "title": "Golden Hour Glow",
        "description": "Best sunset selfie wins",
        "theme": "sunset",
        "hashtags": ["#GoldenHour", "glow"],
        "start_date": start or NOW + timedelta(hours=1),
        "duration": duration,
        "winning_reward": "Featured on the home feed",
    }
    data.update(overrides)
    return ChallengeCreate(**data)


async def make_challenge(session, creator_id: uuid.UUID, now: datetime = NOW, duration: int = 7) -> Challenge:
    return await registry.create_challenge(
        session, creator_id, challenge_payload(start=now + timedelta(hours=1), duration=duration), now=now
    )


async def register_login(ac: httpx.AsyncClient, username: str | None = None) -> dict:
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    email = f"{username}@ex.com"
    r = await ac.post("/auth/register", json={"email": email, "username": username, "password": "supersecret"})
    assert r.status_code == 201, r.text
    r = await ac.post("/auth/login", json={"email": email, "password": "supersecret"})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access']}"}


def pipeline_headers() -> dict:
    return {"Authorization": f"Bearer {settings.scoring_service_token}"}


async def user_id_of(ac: httpx.AsyncClient, hdrs: dict) -> str:
    r = await ac.get("/auth/me", headers=hdrs)
    assert r.status_code == 200, r.text
    return r.json()["id"]
