"""Check-in submission: legality, period assignment, persistence and progression."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from squadcheck.checkins.background import BackgroundJobs
from squadcheck.checkins.errors import (
    AlreadyCheckedIn,
    ChallengeEnded,
    ChallengeNotFound,
    DeadlinePassed,
    Eliminated,
    NotAChallengeMember,
)
from squadcheck.checkins.progress import compute_progress
from squadcheck.db.models import Challenge, ChallengeMember, CheckIn, member_id
from squadcheck.gamification.achievement_service import AchievementEngine
from squadcheck.gamification.daily_bonus import check_and_award_daily_complete_bonus
from squadcheck.gamification.streak_service import StreakResult, update_streak
from squadcheck.gamification.xp_service import XPResult, award_check_in_xp, get_or_create_user
from squadcheck.periods.keys import DAILY, WEEKLY, PeriodKeyResolver, resolver_for

logger = logging.getLogger(__name__)

ON_TIME_MARGIN = timedelta(hours=1)
LATE_NIGHT_HOUR = 22
MAX_SLOT_ATTEMPTS = 5


@dataclass
class CheckInResult:
    check_in_id: str
    challenge_id: str
    period_unit: str
    period_key: str
    is_on_time: bool
    streak: StreakResult
    xp: XPResult
    computed: dict[str, Any] | None = None
    jobs: list[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckInCoordinator:
    """Validates and records one check-in, then drives progression.

    ``db`` serves the request path. Background steps (daily bonus,
    achievements) each open their own session from ``session_factory``;
    without a factory they are skipped.
    """

    def __init__(
        self,
        db: AsyncSession,
        redis: object,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        jobs: BackgroundJobs | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.redis = redis
        self.session_factory = session_factory
        self.jobs = jobs or BackgroundJobs()
        self.clock = clock or _utcnow

    # -- legality -----------------------------------------------------------

    async def _load(self, challenge_id: str, user_id: str) -> tuple[Challenge, ChallengeMember]:
        challenge = await self.db.get(Challenge, challenge_id)
        if challenge is None:
            raise ChallengeNotFound()
        member = await self.db.get(ChallengeMember, member_id(challenge_id, user_id))
        if member is None:
            raise NotAChallengeMember()
        return challenge, member

    @staticmethod
    def check_allowed(
        challenge: Challenge,
        member: ChallengeMember,
        resolver: PeriodKeyResolver,
        now: datetime,
    ) -> None:
        """Raise the first rule the submission breaks, in priority order."""
        if challenge.state == "ended":
            raise ChallengeEnded()
        if challenge.type == "elimination" and member.state == "eliminated":
            raise Eliminated()
        if challenge.type == "deadline" and challenge.deadline_date:
            if now >= resolver.deadline_moment(challenge.deadline_date, challenge.due_time_local):
                raise DeadlinePassed()

    @staticmethod
    def period_for(challenge: Challenge, resolver: PeriodKeyResolver, now: datetime) -> tuple[str, str]:
        """(unit, key) of the period a submission at ``now`` counts towards."""
        if challenge.cadence_unit == WEEKLY:
            return WEEKLY, resolver.week_key(challenge.week_starts_on or 0, now)
        if challenge.type == "deadline":
            # The deadline is the only due moment; days roll over at midnight.
            return DAILY, resolver.day_key(now)
        return DAILY, resolver.current_period_day_key(challenge.due_time_local, now)

    async def _count_completed(self, challenge_id: str, user_id: str, period_key: str) -> int:
        result = await self.db.execute(
            select(func.count(CheckIn.id)).where(
                CheckIn.challenge_id == challenge_id,
                CheckIn.user_id == user_id,
                CheckIn.period_key == period_key,
                CheckIn.status == "completed",
            )
        )
        return int(result.scalar() or 0)

    # -- submission ---------------------------------------------------------

    async def submit(
        self,
        challenge_id: str,
        user_id: str,
        payload: dict[str, Any] | None = None,
        attachments: list[Any] | None = None,
    ) -> CheckInResult:
        now = self.clock()
        challenge, member = await self._load(challenge_id, user_id)
        resolver = resolver_for(challenge)
        self.check_allowed(challenge, member, resolver, now)

        period_unit, period_key = self.period_for(challenge, resolver, now)
        required = challenge.required_count
        computed = compute_progress(challenge, payload or {}, resolver, now)
        group_id = challenge.group_id
        due_time_local = challenge.due_time_local

        check_in = await self._insert_completed(
            challenge_id, user_id, group_id, period_unit, period_key, required,
            payload or {}, attachments or [], computed, now,
        )
        check_in_id = check_in.id

        is_on_time = False
        if period_unit == DAILY:
            due = resolver.due_moment(period_key, due_time_local)
            is_on_time = due > now + ON_TIME_MARGIN
        is_late_night = resolver.wall_clock(now).hour >= LATE_NIGHT_HOUR

        await self._bump_counters(user_id, is_on_time, is_late_night)

        try:
            streak = await update_streak(self.db, self.redis, challenge_id, user_id, period_key, period_unit)
        except Exception:
            logger.warning("Streak update failed for %s in %s", user_id, challenge_id, exc_info=True)
            await self.db.rollback()
            streak = StreakResult.failed()

        try:
            xp = await award_check_in_xp(
                self.db, self.redis, user_id,
                is_on_time=is_on_time,
                current_streak=streak.current_streak,
                longest_streak=streak.longest_streak,
                challenge_id=challenge_id,
                idempotency_key=f"check_in:{check_in_id}",
            )
        except Exception:
            logger.warning("XP award failed for %s in %s", user_id, challenge_id, exc_info=True)
            await self.db.rollback()
            xp = XPResult.empty()

        scheduled = self._schedule_background(user_id, xp)

        return CheckInResult(
            check_in_id=check_in_id,
            challenge_id=challenge_id,
            period_unit=period_unit,
            period_key=period_key,
            is_on_time=is_on_time,
            streak=streak,
            xp=xp,
            computed=computed,
            jobs=scheduled,
        )

    async def _insert_completed(
        self,
        challenge_id: str,
        user_id: str,
        group_id: str | None,
        period_unit: str,
        period_key: str,
        required: int,
        payload: dict[str, Any],
        attachments: list[Any],
        computed: dict[str, Any] | None,
        now: datetime,
    ) -> CheckIn:
        """Claim the next free completion slot in the period.

        A concurrent submission that took the same slot makes the insert fail
        on the unique constraint; recount and try the next one. If the recount
        shows the slot still free, the violation was something else and is
        re-raised.
        """
        failed_slot: int | None = None
        failed_exc: IntegrityError | None = None
        for _ in range(MAX_SLOT_ATTEMPTS):
            count = await self._count_completed(challenge_id, user_id, period_key)
            if failed_slot is not None and count <= failed_slot:
                raise failed_exc
            if count >= required:
                raise AlreadyCheckedIn()

            check_in = CheckIn(
                challenge_id=challenge_id,
                user_id=user_id,
                group_id=group_id,
                period_unit=period_unit,
                period_key=period_key,
                completion_slot=count,
                status="completed",
                payload=payload,
                attachments=attachments,
                computed=computed,
                created_at=now,
            )
            self.db.add(check_in)
            try:
                await self.db.commit()
            except IntegrityError as exc:
                await self.db.rollback()
                logger.info("Insert of slot %d of %s failed for %s; recounting", count, period_key, user_id)
                failed_slot, failed_exc = count, exc
                continue
            return check_in
        raise AlreadyCheckedIn()

    async def _bump_counters(self, user_id: str, is_on_time: bool, is_late_night: bool) -> None:
        if not (is_on_time or is_late_night):
            return
        try:
            user = await get_or_create_user(self.db, user_id)
            if is_on_time:
                user.on_time_check_ins = (user.on_time_check_ins or 0) + 1
            if is_late_night:
                user.late_night_check_ins = (user.late_night_check_ins or 0) + 1
            await self.db.commit()
        except Exception:
            logger.warning("Counter update failed for user %s", user_id, exc_info=True)
            await self.db.rollback()

    def _schedule_background(self, user_id: str, xp: XPResult) -> list[str]:
        if self.session_factory is None:
            return []
        steps = ["achievements"]
        if xp.granted and xp.xp_earned > 0:
            steps.insert(0, "daily_bonus")
        self.jobs.spawn(f"post_check_in:{user_id}", self._run_post_check_in(user_id, xp.xp_earned, steps))
        return steps

    async def _run_post_check_in(self, user_id: str, base_xp: int, steps: list[str]) -> None:
        # Sequential: both steps write the same user row.
        if "daily_bonus" in steps:
            async with self.session_factory() as db:
                await check_and_award_daily_complete_bonus(db, self.redis, user_id, base_xp, now=self.clock())
        engine = AchievementEngine(self.session_factory, self.redis)
        await engine.check_and_award(user_id)
