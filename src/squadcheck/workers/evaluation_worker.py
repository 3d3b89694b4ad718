"""arq worker running the missed-period evaluator on a schedule.

Import path for arq CLI: arq squadcheck.workers.evaluation_worker.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from squadcheck.checkins.evaluation import evaluate_challenges
from squadcheck.config import get_settings
from squadcheck.database import close_db, get_session_factory, init_db
from squadcheck.middleware.logging import setup_logging
from squadcheck.redis_client import close_redis, get_redis, init_redis

logger = logging.getLogger(__name__)

settings = get_settings()


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize logging, DB and Redis on worker startup."""
    setup_logging(settings)
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, max_connections=20)
    ctx["redis"] = get_redis()
    logger.info("Evaluation worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    ctx.pop("redis", None)
    await close_redis()
    await close_db()
    logger.info("Evaluation worker shut down")


async def evaluate_all_challenges(ctx: dict) -> dict[str, int]:  # type: ignore[type-arg]
    """Scheduled task: end passed deadlines and settle missed periods."""
    async with get_session_factory()() as db:
        summary = await evaluate_challenges(db, ctx.get("redis"))
    return {
        "challenges_evaluated": summary.challenges_evaluated,
        "members_missed": summary.members_missed,
        "shields_used": summary.shields_used,
        "eliminated": len(summary.eliminated),
        "challenges_ended": len(summary.challenges_ended),
    }


def _every(minutes: int) -> set[int]:
    return set(range(0, 60, max(1, minutes)))


class WorkerSettings:
    """arq worker settings for the challenge evaluator."""

    functions = [evaluate_all_challenges]
    cron_jobs = [
        cron(
            evaluate_all_challenges,
            minute=_every(settings.evaluation_interval_minutes),
            second=0,
            run_at_startup=True,
            unique=True,
        ),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(settings.arq_redis_url)
    max_jobs = 1
    job_timeout = 240
