"""Pydantic response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    rarity: str
    color: str
    xp_reward: int
    title_reward: str
    category: str


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]


class EarnedBadgeResponse(BaseModel):
    badge_id: str
    earned_at: datetime


class UnlockedTitleResponse(BaseModel):
    title_id: str
    name: str


class ProgressionResponse(BaseModel):
    user_id: str
    xp: int
    level: int
    level_title: str
    next_level_xp: int
    total_check_ins: int
    longest_streak: int
    on_time_check_ins: int
    late_night_check_ins: int
    badges: list[EarnedBadgeResponse] = []
    titles: list[UnlockedTitleResponse] = []
