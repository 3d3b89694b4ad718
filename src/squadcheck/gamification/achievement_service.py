"""Achievement evaluation: gather user stats, unlock badges and titles, award XP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from squadcheck.db.models import (
    Challenge,
    ChallengeMember,
    Group,
    GroupMember,
    User,
    UserBadge,
    UserTitle,
)
from squadcheck.gamification.achievements import (
    ACHIEVEMENTS,
    achievement_title_id,
    is_condition_met,
)
from squadcheck.gamification.xp_service import award_xp_only
from squadcheck.notifications import emit_intent

logger = logging.getLogger(__name__)


class AchievementEngine:
    """Checks the catalogue against a user's stats and awards what is newly earned.

    Stat queries are independent and run concurrently, each on its own session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], redis: object) -> None:
        self.session_factory = session_factory
        self.redis = redis

    async def _scalar(self, stmt: Any) -> int:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return int(result.scalar() or 0)

    async def gather_stats(self, user: User) -> dict[str, int]:
        user_id = user.id
        deadline_complete, elimination_win, groups_joined, groups_created = await asyncio.gather(
            self._scalar(
                select(func.count(Challenge.id))
                .join(ChallengeMember, ChallengeMember.challenge_id == Challenge.id)
                .where(
                    ChallengeMember.user_id == user_id,
                    Challenge.type == "deadline",
                    Challenge.state == "ended",
                )
            ),
            self._scalar(
                select(func.count(Challenge.id)).where(
                    Challenge.type == "elimination",
                    Challenge.state == "ended",
                    Challenge.winner_id == user_id,
                )
            ),
            self._scalar(select(func.count(GroupMember.id)).where(GroupMember.user_id == user_id)),
            self._scalar(select(func.count(Group.id)).where(Group.owner_id == user_id)),
        )
        return {
            "total_check_ins": user.total_check_ins or 0,
            "longest_streak": user.longest_streak or 0,
            "on_time_check_ins": user.on_time_check_ins or 0,
            "late_night_check_ins": user.late_night_check_ins or 0,
            "deadline_complete": deadline_complete,
            "elimination_win": elimination_win,
            "groups_joined": groups_joined,
            "groups_created": groups_created,
        }

    async def check_and_award(self, user_id: str) -> list[str]:
        """Award every achievement the user now qualifies for. Returns new badge ids."""
        async with self.session_factory() as db:
            user = await db.get(User, user_id)
            if user is None:
                return []

            owned = await db.execute(select(UserBadge.badge_id).where(UserBadge.user_id == user_id))
            earned = set(owned.scalars().all())

            stats = await self.gather_stats(user)
            unlocked = [
                a for a in ACHIEVEMENTS
                if a["id"] not in earned and is_condition_met(a, stats)
            ]
            if not unlocked:
                return []

            for achievement in unlocked:
                db.add(UserBadge(user_id=user_id, badge_id=achievement["id"]))
                db.add(UserTitle(
                    user_id=user_id,
                    title_id=achievement_title_id(achievement["id"]),
                    name=achievement["title_reward"],
                ))
            try:
                await db.commit()
            except IntegrityError:
                # Another evaluation for this user got there first.
                await db.rollback()
                logger.info("Achievements for user %s already awarded concurrently", user_id)
                return []

            badge_ids = [a["id"] for a in unlocked]
            total_xp = sum(a["xp_reward"] for a in unlocked)
            if total_xp > 0:
                await award_xp_only(
                    db, self.redis, user_id, total_xp,
                    source="achievement",
                    source_id=",".join(badge_ids),
                    description=f"Achievements: {', '.join(a['name'] for a in unlocked)}",
                    idempotency_key=f"achievement:{user_id}:{','.join(sorted(badge_ids))}",
                )

        for achievement in unlocked:
            await emit_intent(
                self.redis, user_id, "badge_earned",
                badge_id=achievement["id"],
                name=achievement["name"],
                rarity=achievement["rarity"],
                xp_reward=achievement["xp_reward"],
            )
        logger.info("Awarded achievements %s to user %s", badge_ids, user_id)
        return badge_ids
