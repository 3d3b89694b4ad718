"""Pydantic request/response models for check-in endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CheckInPayload(BaseModel):
    boolean_value: bool | None = None
    number_value: float | None = None
    text_value: str | None = Field(default=None, max_length=2000)
    timer_seconds: int | None = Field(default=None, ge=0)


class CheckInRequest(BaseModel):
    payload: CheckInPayload = Field(default_factory=CheckInPayload)
    attachments: list[dict[str, Any]] = []


class StreakSummary(BaseModel):
    current_streak: int
    longest_streak: int
    is_new_milestone: bool
    milestone_value: int
    shield_earned: bool


class XPSummary(BaseModel):
    xp_earned: int
    total_xp: int
    new_level: int
    new_title: str
    leveled_up: bool
    next_level_xp: int


class CheckInResponse(BaseModel):
    check_in_id: str
    challenge_id: str
    period: dict[str, str]
    is_on_time: bool
    streak: StreakSummary
    xp: XPSummary
    computed: dict[str, Any] | None = None
