"""Check-in API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.checkins.background import get_background_jobs
from squadcheck.checkins.errors import CheckInError
from squadcheck.checkins.schemas import CheckInRequest, CheckInResponse, StreakSummary, XPSummary
from squadcheck.checkins.service import CheckInCoordinator
from squadcheck.dependencies import get_current_user_id, get_db, get_redis_dep, get_session_factory_dep

router = APIRouter(prefix="/api/v1", tags=["Check-ins"])


@router.post("/challenges/{challenge_id}/check-ins", response_model=CheckInResponse, status_code=201)
async def submit_check_in(
    challenge_id: str,
    body: CheckInRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    redis: object = Depends(get_redis_dep),
    session_factory: object = Depends(get_session_factory_dep),
) -> CheckInResponse:
    """Submit a check-in for the challenge's current period."""
    coordinator = CheckInCoordinator(
        db, redis, session_factory=session_factory, jobs=get_background_jobs(),
    )
    try:
        result = await coordinator.submit(
            challenge_id,
            user_id,
            payload=body.payload.model_dump(exclude_none=True),
            attachments=body.attachments,
        )
    except CheckInError as e:
        raise HTTPException(
            status_code=e.status_code, detail=str(e), headers={"X-Error-Code": e.code},
        ) from e

    key_name = "week_key" if result.period_unit == "weekly" else "day_key"
    return CheckInResponse(
        check_in_id=result.check_in_id,
        challenge_id=result.challenge_id,
        period={"unit": result.period_unit, key_name: result.period_key},
        is_on_time=result.is_on_time,
        streak=StreakSummary(
            current_streak=result.streak.current_streak,
            longest_streak=result.streak.longest_streak,
            is_new_milestone=result.streak.is_new_milestone,
            milestone_value=result.streak.milestone_value,
            shield_earned=result.streak.shield_earned,
        ),
        xp=XPSummary(
            xp_earned=result.xp.xp_earned,
            total_xp=result.xp.total_xp,
            new_level=result.xp.new_level,
            new_title=result.xp.new_title,
            leveled_up=result.xp.leveled_up,
            next_level_xp=result.xp.next_level_xp,
        ),
        computed=result.computed,
    )
