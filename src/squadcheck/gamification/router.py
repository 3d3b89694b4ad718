"""Progression API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.db.models import User, UserBadge, UserTitle
from squadcheck.dependencies import get_current_user_id, get_db
from squadcheck.gamification.achievements import ACHIEVEMENTS, RARITY_COLORS
from squadcheck.gamification.level_thresholds import STARTING_TITLE, next_level_xp
from squadcheck.gamification.schemas import (
    AchievementResponse,
    AllAchievementsResponse,
    EarnedBadgeResponse,
    ProgressionResponse,
    UnlockedTitleResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Progression"])


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements() -> AllAchievementsResponse:
    """Every achievement definition."""
    return AllAchievementsResponse(
        achievements=[
            AchievementResponse(
                id=a["id"],
                name=a["name"],
                description=a["description"],
                icon=a["icon"],
                rarity=a["rarity"],
                color=RARITY_COLORS[a["rarity"]],
                xp_reward=a["xp_reward"],
                title_reward=a["title_reward"],
                category=a["category"],
            )
            for a in ACHIEVEMENTS
        ]
    )


@router.get("/me/progression", response_model=ProgressionResponse)
async def get_my_progression(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProgressionResponse:
    """XP, level, counters, badges and titles of the caller."""
    user = await db.get(User, user_id)
    badges = await db.execute(
        select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.earned_at)
    )
    titles = await db.execute(
        select(UserTitle).where(UserTitle.user_id == user_id).order_by(UserTitle.unlocked_at)
    )

    level = user.level if user else 1
    return ProgressionResponse(
        user_id=user_id,
        xp=user.xp if user else 0,
        level=level,
        level_title=user.level_title if user else STARTING_TITLE,
        next_level_xp=next_level_xp(level),
        total_check_ins=user.total_check_ins if user else 0,
        longest_streak=user.longest_streak if user else 0,
        on_time_check_ins=user.on_time_check_ins if user else 0,
        late_night_check_ins=user.late_night_check_ins if user else 0,
        badges=[EarnedBadgeResponse(badge_id=b.badge_id, earned_at=b.earned_at) for b in badges.scalars()],
        titles=[UnlockedTitleResponse(title_id=t.title_id, name=t.name) for t in titles.scalars()],
    )
