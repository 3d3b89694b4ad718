"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException

from squadcheck.database import get_session as _get_session
from squadcheck.database import get_session_factory as _get_session_factory
from squadcheck.redis_client import get_redis as _get_redis

get_db = _get_session


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client as a FastAPI dependency."""
    yield _get_redis()


def get_session_factory_dep() -> object:
    """Return the session factory used for background work."""
    return _get_session_factory()


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity, as asserted by the authenticating gateway in front of the API."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id
