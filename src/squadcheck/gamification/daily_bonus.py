"""Bonus XP for finishing every active daily challenge in a day."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.db.models import Challenge, ChallengeMember, CheckIn
from squadcheck.gamification.xp_service import award_xp_only
from squadcheck.periods.keys import DAILY, resolver_for

logger = logging.getLogger(__name__)

DAILY_COMPLETE_MULTIPLIER = 2


@dataclass
class DailyBonusResult:
    awarded: bool
    bonus_xp: int = 0


def daily_bonus_key(user_id: str, period_keys: dict[str, str]) -> str:
    """Ledger key for one set of completed periods.

    Periods roll over at each challenge's due time in its own zone, so the
    set of period keys identifies "today", not the UTC date.
    """
    pairs = "|".join(f"{cid}={key}" for cid, key in sorted(period_keys.items()))
    digest = hashlib.sha256(pairs.encode()).hexdigest()[:16]
    return f"daily_complete:{user_id}:{max(period_keys.values())}:{digest}"


def todays_period_key(challenge: Challenge, now: datetime) -> str:
    """Period a check-in made at ``now`` belongs to for a daily challenge."""
    resolver = resolver_for(challenge)
    if challenge.type == "deadline":
        return resolver.day_key(now)
    return resolver.current_period_day_key(challenge.due_time_local, now)


async def check_and_award_daily_complete_bonus(
    db: AsyncSession,
    redis: object,
    user_id: str,
    base_xp_just_awarded: int,
    now: datetime | None = None,
) -> DailyBonusResult:
    """Award ``base * (multiplier - 1)`` once every daily challenge has today's check-in.

    Never raises: failures are logged and reported as not awarded.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        result = await db.execute(
            select(Challenge)
            .join(ChallengeMember, ChallengeMember.challenge_id == Challenge.id)
            .where(
                ChallengeMember.user_id == user_id,
                ChallengeMember.state == "active",
                Challenge.state != "ended",
                Challenge.cadence_unit == DAILY,
            )
        )
        challenges = list(result.scalars().all())
        if not challenges:
            return DailyBonusResult(awarded=False)

        period_keys = {}
        for challenge in challenges:
            period_key = todays_period_key(challenge, now)
            period_keys[challenge.id] = period_key
            done = await db.execute(
                select(CheckIn.id)
                .where(
                    CheckIn.challenge_id == challenge.id,
                    CheckIn.user_id == user_id,
                    CheckIn.period_key == period_key,
                    CheckIn.status == "completed",
                )
                .limit(1)
            )
            if done.scalar_one_or_none() is None:
                return DailyBonusResult(awarded=False)

        bonus = base_xp_just_awarded * (DAILY_COMPLETE_MULTIPLIER - 1)
        if bonus <= 0:
            return DailyBonusResult(awarded=False)

        xp = await award_xp_only(
            db, redis, user_id, bonus,
            source="daily_complete",
            description="Completed every daily challenge",
            idempotency_key=daily_bonus_key(user_id, period_keys),
        )
        if not xp.granted:
            return DailyBonusResult(awarded=False)
        return DailyBonusResult(awarded=True, bonus_xp=bonus)
    except Exception:
        logger.warning("Daily completion bonus failed for user %s", user_id, exc_info=True)
        await db.rollback()
        return DailyBonusResult(awarded=False)
