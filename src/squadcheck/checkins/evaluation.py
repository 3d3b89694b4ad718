"""Periodic evaluation of missed periods, strikes, eliminations and deadlines.

Runs every few minutes. Each challenge is evaluated at most once per period
(and ended at most once by its deadline) thanks to ``challenge_evaluations``.
The same log tells a late run which closed periods it still owes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from squadcheck.db.models import Challenge, ChallengeEvaluation, ChallengeMember, CheckIn
from squadcheck.gamification.streak_service import use_streak_shield
from squadcheck.notifications import emit_intent
from squadcheck.periods.clock import as_utc
from squadcheck.periods.keys import WEEKLY, PeriodKeyResolver, days_between, resolver_for, shift_day_key

logger = logging.getLogger(__name__)

MAX_CATCH_UP_PERIODS = 30


@dataclass
class EvaluationSummary:
    challenges_evaluated: int = 0
    members_missed: int = 0
    shields_used: int = 0
    eliminated: list[str] = field(default_factory=list)
    challenges_ended: list[str] = field(default_factory=list)

    def merge(self, other: EvaluationSummary) -> None:
        self.challenges_evaluated += other.challenges_evaluated
        self.members_missed += other.members_missed
        self.shields_used += other.shields_used
        self.eliminated.extend(other.eliminated)
        self.challenges_ended.extend(other.challenges_ended)


def previous_period_key(challenge: Challenge, resolver: PeriodKeyResolver, now: datetime) -> str:
    if challenge.cadence_unit == WEEKLY:
        return resolver.previous_period_week_key(challenge.week_starts_on or 0, now)
    return resolver.previous_period_day_key(challenge.due_time_local, now)


def next_due_at_ms(challenge: Challenge, resolver: PeriodKeyResolver, now: datetime) -> int:
    due = resolver.next_due_at(
        challenge.due_time_local, challenge.cadence_unit, challenge.week_starts_on or 0, now,
    )
    return int(due.timestamp() * 1000)


async def _already_logged(db: AsyncSession, evaluation_id: str) -> bool:
    return await db.get(ChallengeEvaluation, evaluation_id) is not None


async def evaluate_deadline(
    db: AsyncSession,
    redis: object,
    challenge: Challenge,
    resolver: PeriodKeyResolver,
    now: datetime,
) -> bool:
    """End a deadline challenge once its deadline moment has passed. True if ended now."""
    if not challenge.deadline_date or challenge.state == "ended":
        return False
    if now < resolver.deadline_moment(challenge.deadline_date, challenge.due_time_local):
        return False

    evaluation_id = f"deadline_{challenge.id}"
    if await _already_logged(db, evaluation_id):
        return False

    challenge.state = "ended"
    challenge.ended_at = now
    db.add(ChallengeEvaluation(id=evaluation_id, challenge_id=challenge.id, kind="deadline", evaluated_at=now))
    await db.commit()

    members = await db.execute(select(ChallengeMember.user_id).where(ChallengeMember.challenge_id == challenge.id))
    for user_id in members.scalars().all():
        await emit_intent(redis, user_id, "challenge_ended", challenge_id=challenge.id, reason="deadline")
    logger.info("Deadline challenge %s ended", challenge.id)
    return True


async def last_evaluated_period_key(db: AsyncSession, challenge_id: str) -> str | None:
    result = await db.execute(
        select(func.max(ChallengeEvaluation.period_key)).where(
            ChallengeEvaluation.challenge_id == challenge_id,
            ChallengeEvaluation.kind == "period",
        )
    )
    return result.scalar()


def periods_to_evaluate(challenge: Challenge, latest_key: str, last_logged: str | None) -> list[str]:
    """Closed period keys after ``last_logged`` up to ``latest_key``, oldest first.

    Without a previous log only ``latest_key`` is returned. At most
    ``MAX_CATCH_UP_PERIODS`` keys, keeping the most recent.
    """
    if last_logged is None:
        return [latest_key]
    step = 7 if challenge.cadence_unit == WEEKLY else 1
    gap = days_between(last_logged, latest_key) // step
    if gap <= 0:
        return []
    gap = min(gap, MAX_CATCH_UP_PERIODS)
    return [shift_day_key(latest_key, -step * i) for i in range(gap - 1, -1, -1)]


async def evaluate_missed_periods(
    db: AsyncSession,
    redis: object,
    challenge: Challenge,
    resolver: PeriodKeyResolver,
    now: datetime,
) -> EvaluationSummary:
    """Apply shields, streak resets, strikes and eliminations for closed periods.

    Normally that is the period that just closed. Periods skipped while the
    worker was down are evaluated first, in order.
    """
    summary = EvaluationSummary()
    latest_key = previous_period_key(challenge, resolver, now)
    due = resolver.period_due_moment(latest_key, challenge.due_time_local, challenge.cadence_unit)
    if now < due + timedelta(minutes=challenge.late_grace_minutes or 0):
        return summary

    last_logged = await last_evaluated_period_key(db, challenge.id)
    for period_key in periods_to_evaluate(challenge, latest_key, last_logged):
        if challenge.state == "ended":
            break
        summary.merge(await evaluate_period(db, redis, challenge, resolver, period_key, now))
    return summary


async def evaluate_period(
    db: AsyncSession,
    redis: object,
    challenge: Challenge,
    resolver: PeriodKeyResolver,
    period_key: str,
    now: datetime,
) -> EvaluationSummary:
    summary = EvaluationSummary()
    challenge_id = challenge.id
    due = resolver.period_due_moment(period_key, challenge.due_time_local, challenge.cadence_unit)

    evaluation_id = f"eval_{challenge_id}_{period_key}"
    if await _already_logged(db, evaluation_id):
        return summary

    summary.challenges_evaluated = 1
    is_elimination = challenge.type == "elimination"
    required = challenge.required_count

    result = await db.execute(
        select(ChallengeMember).where(
            ChallengeMember.challenge_id == challenge_id,
            ChallengeMember.state == "active",
        )
    )
    # Members who joined after the period closed were never bound by it.
    active = [m for m in result.scalars().all() if as_utc(m.joined_at) is None or as_utc(m.joined_at) <= due]

    counts_result = await db.execute(
        select(CheckIn.user_id, func.count(CheckIn.id))
        .where(
            CheckIn.challenge_id == challenge_id,
            CheckIn.period_key == period_key,
            CheckIn.status == "completed",
        )
        .group_by(CheckIn.user_id)
    )
    completed = dict(counts_result.all())
    missed = [m for m in active if completed.get(m.user_id, 0) < required]
    summary.members_missed = len(missed)

    intents: list[tuple[str, str, dict]] = []
    for member in missed:
        if await use_streak_shield(db, None, challenge_id, member.user_id, commit=False):
            member.last_evaluated_period_key = period_key
            summary.shields_used += 1
            intents.append((member.user_id, "streak_shield_used", {"shields_left": member.streak_shields}))
            continue

        member.current_streak = 0
        member.streak_shield_used = False
        member.last_evaluated_period_key = period_key

        if not is_elimination:
            intents.append((member.user_id, "missed_check_in", {}))
            continue

        member.strikes = (member.strikes or 0) + 1
        strikes_allowed = challenge.strikes_allowed or 0
        if member.strikes > strikes_allowed:
            member.state = "eliminated"
            summary.eliminated.append(member.user_id)
            intents.append((member.user_id, "eliminated", {"strikes": member.strikes}))
        else:
            intents.append((
                member.user_id, "strike",
                {"strikes": member.strikes, "remaining": strikes_allowed - member.strikes},
            ))

    if is_elimination and summary.eliminated:
        remaining = [m for m in active if m.user_id not in summary.eliminated]
        if len(remaining) <= 1:
            challenge.state = "ended"
            challenge.ended_at = now
            summary.challenges_ended.append(challenge_id)
            if remaining:
                challenge.winner_id = remaining[0].user_id
                intents.append((challenge.winner_id, "challenge_won", {}))
                logger.info("Challenge %s won by %s", challenge_id, challenge.winner_id)

    if challenge.state != "ended":
        challenge.next_due_at_utc = next_due_at_ms(challenge, resolver, now)

    db.add(ChallengeEvaluation(
        id=evaluation_id,
        challenge_id=challenge_id,
        kind="period",
        period_key=period_key,
        members_evaluated=len(active),
        members_missed=len(missed),
        evaluated_at=now,
    ))
    await db.commit()

    for user_id, kind, data in intents:
        await emit_intent(redis, user_id, kind, challenge_id=challenge_id, period_key=period_key, **data)

    if missed:
        logger.info(
            "Evaluated %s for %s: %d missed, %d eliminated",
            challenge_id, period_key, len(missed), len(summary.eliminated),
        )
    return summary


async def evaluate_challenge(
    db: AsyncSession,
    redis: object,
    challenge: Challenge,
    now: datetime | None = None,
) -> EvaluationSummary:
    if now is None:
        now = datetime.now(timezone.utc)
    resolver = resolver_for(challenge)
    if challenge.type == "deadline" and await evaluate_deadline(db, redis, challenge, resolver, now):
        return EvaluationSummary(challenges_ended=[challenge.id])
    if challenge.state == "ended":
        return EvaluationSummary()
    return await evaluate_missed_periods(db, redis, challenge, resolver, now)


async def evaluate_challenges(db: AsyncSession, redis: object, now: datetime | None = None) -> EvaluationSummary:
    """Evaluate every challenge that has not ended.

    A failure in one challenge is logged and rolled back; the others still run.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    ids = await db.execute(select(Challenge.id).where(Challenge.state != "ended"))
    summary = EvaluationSummary()
    for challenge_id in ids.scalars().all():
        challenge = await db.get(Challenge, challenge_id)
        if challenge is None:
            continue
        try:
            summary.merge(await evaluate_challenge(db, redis, challenge, now))
        except Exception:
            logger.exception("Error evaluating challenge %s", challenge_id)
            await db.rollback()

    logger.info(
        "Challenge evaluation complete: %d periods evaluated, %d missed, %d eliminated",
        summary.challenges_evaluated, summary.members_missed, len(summary.eliminated),
    )
    return summary
