"""Per-challenge streaks, streak shields and milestones."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.db.models import ChallengeMember, member_id
from squadcheck.notifications import emit_intent
from squadcheck.periods.keys import WEEKLY, days_between

logger = logging.getLogger(__name__)

SHIELD_EARN_INTERVAL = 7
STREAK_MILESTONES = (3, 7, 14, 30, 50, 100, 365)


@dataclass
class StreakResult:
    current_streak: int
    longest_streak: int
    is_new_milestone: bool = False
    milestone_value: int = 0
    shield_earned: bool = False

    @classmethod
    def empty(cls) -> StreakResult:
        """Result used when the member record is missing."""
        return cls(current_streak=1, longest_streak=1)

    @classmethod
    def failed(cls) -> StreakResult:
        """Result used when the update raised; nothing was recorded."""
        return cls(current_streak=0, longest_streak=0)


def is_consecutive_period(last_key: str | None, current_key: str | None, cadence_unit: str) -> bool:
    """True when ``current_key`` is exactly one period after ``last_key``."""
    if not last_key or not current_key:
        return False
    step = 7 if cadence_unit == WEEKLY else 1
    return days_between(last_key, current_key) == step


async def update_streak(
    db: AsyncSession,
    redis: object,
    challenge_id: str,
    user_id: str,
    period_key: str,
    cadence_unit: str,
) -> StreakResult:
    """Advance a member's streak after a completed check-in for ``period_key``.

    A consecutive period extends the streak; anything else restarts it at 1.
    A second check-in in the same period (weekly challenges requiring more
    than one) leaves the streak where it is.
    """
    member = await db.get(ChallengeMember, member_id(challenge_id, user_id))
    if member is None:
        return StreakResult.empty()

    current = member.current_streak or 0
    longest = member.longest_streak or 0
    shields = member.streak_shields or 0

    if member.last_check_in_period_key == period_key and current > 0:
        return StreakResult(current_streak=current, longest_streak=max(longest, current))

    if is_consecutive_period(member.last_check_in_period_key, period_key, cadence_unit):
        current += 1
    else:
        current = 1

    longest = max(longest, current)
    shield_earned = current % SHIELD_EARN_INTERVAL == 0
    if shield_earned:
        shields += 1
    is_milestone = current in STREAK_MILESTONES

    member.current_streak = current
    member.longest_streak = longest
    member.streak_shields = shields
    member.streak_shield_used = False
    member.last_check_in_period_key = period_key
    await db.commit()

    if shield_earned:
        await emit_intent(
            redis, user_id, "streak_shield_earned",
            challenge_id=challenge_id, streak=current, shields=shields,
        )
    if is_milestone:
        await emit_intent(
            redis, user_id, "streak_milestone",
            challenge_id=challenge_id, streak=current,
        )

    return StreakResult(
        current_streak=current,
        longest_streak=longest,
        is_new_milestone=is_milestone,
        milestone_value=current if is_milestone else 0,
        shield_earned=shield_earned,
    )


async def use_streak_shield(
    db: AsyncSession,
    redis: object,
    challenge_id: str,
    user_id: str,
    commit: bool = True,
) -> bool:
    """Spend one shield to absorb a missed period. False if none are left."""
    member = await db.get(ChallengeMember, member_id(challenge_id, user_id))
    if member is None or (member.streak_shields or 0) <= 0:
        return False

    member.streak_shields -= 1
    member.streak_shield_used = True
    if commit:
        await db.commit()

    await emit_intent(
        redis, user_id, "streak_shield_used",
        challenge_id=challenge_id, shields_left=member.streak_shields,
    )
    return True
