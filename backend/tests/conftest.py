from __future__ import annotations
import os

# The app's own engine is never used in tests; keep it off asyncpg.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import uuid
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.auth_deps import get_now
from app.db import Base, get_session
from app.main import app
from app.models.campaign import Campaign
from app.models.participation import Participation
from app.models.submission import Submission  # noqa: F401  registers the table
from app.models.user import User
from app.security import make_access_token

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'lifecycle.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessionmaker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as s:
        yield s


@pytest.fixture
def make_user(sessionmaker):
    async def _make(role: str = "student", verification_status: str | None = "approved") -> User:
        tag = uuid.uuid4().hex[:8]
        async with sessionmaker() as s:
            u = User(username=f"user_{tag}", email=f"{tag}@example.com", role=role, verification_status=verification_status)
            s.add(u)
            await s.commit()
            await s.refresh(u)
            return u
    return _make


@pytest.fixture
def make_campaign(sessionmaker):
    async def _make(creator: User, **fields) -> Campaign:
        values = dict(
            title="Green Campus Hackathon",
            description="Build something that cuts energy use on campus",
            campaign_type="custom",
            status="active",
            start_date=NOW - 10 * DAY,
            end_date=NOW + 30 * DAY,
            prize_pool=1000.0,
            prizes_json={"1": "$1000"},
        )
        values.update(fields)
        async with sessionmaker() as s:
            c = Campaign(created_by=creator.id, **values)
            s.add(c)
            await s.commit()
            await s.refresh(c)
            return c
    return _make


@pytest.fixture
def make_participation(sessionmaker):
    """Insert a participation directly, already past review when asked."""
    async def _make(user: User, campaign: Campaign, status: str = "approved") -> Participation:
        async with sessionmaker() as s:
            p = Participation(
                campaign_id=campaign.id,
                user_id=user.id,
                status=status,
                submission_status="not_submitted" if status == "approved" else None,
                motivation="I want to learn",
                experience="Two hackathons",
                submitted_at=NOW - 3 * DAY,
            )
            s.add(p)
            await s.commit()
            await s.refresh(p)
            return p
    return _make


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_access_token(str(user.id))}"}


@pytest_asyncio.fixture
async def client(sessionmaker):
    async def _session():
        async with sessionmaker() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_now] = lambda: NOW
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
