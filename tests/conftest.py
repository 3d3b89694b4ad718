"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from squadcheck.database import create_schema, create_session_factory
from squadcheck.db.models import Challenge, ChallengeMember, User, member_id
from squadcheck.dependencies import get_db, get_redis_dep, get_session_factory_dep
from squadcheck.main import create_app

JOINED_LONG_AGO = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite so concurrent sessions see each other's commits."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'squadcheck.db'}")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis() -> AsyncMock:
    """Stand-in Redis client; only ``publish`` and ``ping`` are used."""
    client = AsyncMock()
    client.publish = AsyncMock(return_value=1)
    client.ping = AsyncMock(return_value=True)
    return client


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], redis: AsyncMock,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with DB and Redis dependencies overridden."""
    app = create_app()

    async def _db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    async def _redis() -> AsyncGenerator[object, None]:
        yield redis

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_redis_dep] = _redis
    app.dependency_overrides[get_session_factory_dep] = lambda: session_factory

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def published_kinds(redis: AsyncMock) -> list[str]:
    """Intent kinds published on the mocked Redis, in order."""
    return [json.loads(call.args[1])["kind"] for call in redis.publish.await_args_list]


async def make_user(db: AsyncSession, user_id: str = "alice", **fields) -> User:
    user = User(id=user_id, **fields)
    db.add(user)
    await db.commit()
    return user


async def make_challenge(db: AsyncSession, challenge_id: str = "ch1", **fields) -> Challenge:
    fields.setdefault("admin_user_id", "alice")
    fields.setdefault("title", "Read every day")
    challenge = Challenge(id=challenge_id, **fields)
    db.add(challenge)
    await db.commit()
    return challenge


async def make_member(
    db: AsyncSession,
    challenge_id: str = "ch1",
    user_id: str = "alice",
    joined_at: datetime = JOINED_LONG_AGO,
    **fields,
) -> ChallengeMember:
    member = ChallengeMember(
        id=member_id(challenge_id, user_id),
        challenge_id=challenge_id,
        user_id=user_id,
        joined_at=joined_at,
        **fields,
    )
    db.add(member)
    await db.commit()
    return member
