"""XP awards with idempotency, level recomputation and title unlocks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.db.models import User, UserTitle, XPLedger
from squadcheck.gamification.level_thresholds import (
    STARTING_TITLE,
    level_from_xp,
    level_title_id,
    next_level_xp,
)
from squadcheck.notifications import emit_intent

logger = logging.getLogger(__name__)

# --- XP values ---
CHECK_IN = 10
ON_TIME_BONUS = 5
STREAK_BONUS_PER_DAY = 2


@dataclass
class XPResult:
    xp_earned: int
    total_xp: int
    new_level: int
    new_title: str
    leveled_up: bool
    granted: bool = True

    @classmethod
    def empty(cls) -> XPResult:
        return cls(xp_earned=0, total_xp=0, new_level=1, new_title=STARTING_TITLE, leveled_up=False, granted=False)

    @property
    def next_level_xp(self) -> int:
        return next_level_xp(self.new_level)


def check_in_xp(is_on_time: bool, current_streak: int) -> int:
    """Base check-in XP plus on-time and streak bonuses."""
    xp = CHECK_IN
    if is_on_time:
        xp += ON_TIME_BONUS
    xp += STREAK_BONUS_PER_DAY * max(0, current_streak)
    return xp


async def get_or_create_user(db: AsyncSession, user_id: str) -> User:
    """Get or create the progression row for a user."""
    user = await db.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)
        await db.flush()
    return user


async def unlock_title(db: AsyncSession, user_id: str, title_id: str, name: str) -> bool:
    """Add a selectable title; False if the user already has it."""
    existing = await db.execute(
        select(UserTitle.id).where(UserTitle.user_id == user_id, UserTitle.title_id == title_id)
    )
    if existing.scalar_one_or_none() is not None:
        return False
    db.add(UserTitle(user_id=user_id, title_id=title_id, name=name))
    return True


async def _apply_xp(
    db: AsyncSession,
    redis: object,
    user_id: str,
    amount: int,
    source: str,
    source_id: str | None,
    description: str,
    idempotency_key: str | None,
    count_check_in: bool,
    longest_streak: int | None = None,
) -> XPResult:
    if idempotency_key is not None:
        existing = await db.execute(
            select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
        )
        if existing.scalar_one_or_none() is not None:
            user = await get_or_create_user(db, user_id)
            return XPResult(
                xp_earned=0,
                total_xp=user.xp,
                new_level=user.level,
                new_title=user.level_title,
                leveled_up=False,
                granted=False,
            )

    now = datetime.now(timezone.utc)
    user = await get_or_create_user(db, user_id)
    old_level = user.level or 1
    old_title = user.level_title or STARTING_TITLE

    db.add(XPLedger(
        user_id=user_id,
        amount=amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
        created_at=now,
    ))

    user.xp = (user.xp or 0) + amount
    info = level_from_xp(user.xp)
    # Levels only move up for non-negative awards.
    if info.level >= old_level or amount < 0:
        user.level = info.level
        user.level_title = info.title
    user.updated_at = now

    if count_check_in:
        user.total_check_ins = (user.total_check_ins or 0) + 1
        if longest_streak is not None and longest_streak > (user.longest_streak or 0):
            user.longest_streak = longest_streak

    if user.level_title != old_title and user.level_title != STARTING_TITLE:
        await unlock_title(db, user_id, level_title_id(user.level_title), user.level_title)

    try:
        await db.commit()
    except IntegrityError:
        # Same idempotency key committed concurrently.
        await db.rollback()
        return XPResult.empty()

    result = XPResult(
        xp_earned=amount,
        total_xp=user.xp,
        new_level=user.level,
        new_title=user.level_title,
        leveled_up=user.level > old_level,
    )
    if result.leveled_up:
        await emit_intent(
            redis, user_id, "level_up",
            old_level=old_level, new_level=result.new_level, title=result.new_title,
        )
    return result


async def award_check_in_xp(
    db: AsyncSession,
    redis: object,
    user_id: str,
    is_on_time: bool,
    current_streak: int,
    longest_streak: int | None = None,
    challenge_id: str | None = None,
    idempotency_key: str | None = None,
) -> XPResult:
    """Award XP for a completed check-in.

    Also counts the check-in on the user and raises their all-time longest
    streak when ``longest_streak`` beats it.
    """
    amount = check_in_xp(is_on_time, current_streak)
    return await _apply_xp(
        db, redis, user_id, amount,
        source="check_in",
        source_id=challenge_id,
        description=f"Check-in (streak {current_streak})",
        idempotency_key=idempotency_key,
        count_check_in=True,
        longest_streak=longest_streak,
    )


async def award_xp_only(
    db: AsyncSession,
    redis: object,
    user_id: str,
    amount: int,
    source: str = "bonus",
    source_id: str | None = None,
    description: str = "",
    idempotency_key: str | None = None,
) -> XPResult:
    """Award bonus XP without touching check-in counters."""
    return await _apply_xp(
        db, redis, user_id, amount,
        source=source,
        source_id=source_id,
        description=description,
        idempotency_key=idempotency_key,
        count_check_in=False,
    )
