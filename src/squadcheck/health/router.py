"""Liveness and readiness probes."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.checkins.background import get_background_jobs
from squadcheck.config import get_settings
from squadcheck.dependencies import get_db, get_redis_dep

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy", "version": get_settings().app_version}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_db),  # noqa: B008
    redis: object = Depends(get_redis_dep),  # noqa: B008
) -> dict[str, object]:
    """Store and Redis reachability, plus post-check-in jobs still in flight."""
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        await redis.ping()  # type: ignore[attr-defined]
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    return {
        "status": "ready" if all(v == "ok" for v in checks.values()) else "degraded",
        "checks": checks,
        "background_jobs": get_background_jobs().pending,
    }
