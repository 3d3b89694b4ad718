"""Integration tests for the all-daily-challenges-complete bonus."""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select

from conftest import make_challenge, make_member, make_user
from squadcheck.db.models import CheckIn, XPLedger
from squadcheck.gamification.daily_bonus import check_and_award_daily_complete_bonus

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


async def add_check_in(db, challenge_id: str, user_id: str = "alice", period_key: str = "2024-06-01") -> None:
    db.add(CheckIn(
        challenge_id=challenge_id,
        user_id=user_id,
        period_unit="daily",
        period_key=period_key,
        completion_slot=0,
        payload={},
        attachments=[],
    ))
    await db.commit()


@pytest_asyncio.fixture
async def two_dailies(db_session):
    await make_user(db_session, "alice")
    for cid in ("run", "read"):
        await make_challenge(db_session, cid, admin_time_zone="UTC")
        await make_member(db_session, cid, "alice")
    return db_session


class TestDailyCompleteBonus:
    @pytest.mark.asyncio
    async def test_not_awarded_until_every_daily_is_done(self, two_dailies, redis) -> None:
        db = two_dailies
        await add_check_in(db, "run")
        result = await check_and_award_daily_complete_bonus(db, redis, "alice", 15, now=NOW)
        assert result.awarded is False

        await add_check_in(db, "read")
        result = await check_and_award_daily_complete_bonus(db, redis, "alice", 15, now=NOW)
        assert result.awarded is True
        assert result.bonus_xp == 15

    @pytest.mark.asyncio
    async def test_awarded_once_per_day(self, two_dailies, redis) -> None:
        db = two_dailies
        await add_check_in(db, "run")
        await add_check_in(db, "read")

        first = await check_and_award_daily_complete_bonus(db, redis, "alice", 15, now=NOW)
        second = await check_and_award_daily_complete_bonus(db, redis, "alice", 20, now=NOW)

        assert first.awarded is True
        assert second.awarded is False
        sources = (await db.execute(select(XPLedger.source))).scalars().all()
        assert sources == ["daily_complete"]

    @pytest.mark.asyncio
    async def test_weekly_and_ended_challenges_ignored(self, db_session, redis) -> None:
        await make_user(db_session, "alice")
        await make_challenge(db_session, "run", admin_time_zone="UTC")
        await make_challenge(db_session, "gym", admin_time_zone="UTC", cadence_unit="weekly")
        await make_challenge(db_session, "old", admin_time_zone="UTC", state="ended")
        for cid in ("run", "gym", "old"):
            await make_member(db_session, cid, "alice")
        await add_check_in(db_session, "run")

        result = await check_and_award_daily_complete_bonus(db_session, redis, "alice", 10, now=NOW)
        assert result.awarded is True

    @pytest.mark.asyncio
    async def test_no_daily_challenges(self, db_session, redis) -> None:
        await make_user(db_session, "alice")
        result = await check_and_award_daily_complete_bonus(db_session, redis, "alice", 10, now=NOW)
        assert result.awarded is False

    @pytest.mark.asyncio
    async def test_zero_base_awards_nothing(self, two_dailies, redis) -> None:
        db = two_dailies
        await add_check_in(db, "run")
        await add_check_in(db, "read")
        result = await check_and_award_daily_complete_bonus(db, redis, "alice", 0, now=NOW)
        assert result.awarded is False

    @pytest.mark.asyncio
    async def test_failures_are_swallowed(self, two_dailies, redis, monkeypatch) -> None:
        async def broken(*args, **kwargs):
            raise RuntimeError("db gone")

        monkeypatch.setattr("squadcheck.gamification.daily_bonus.award_xp_only", broken)
        db = two_dailies
        await add_check_in(db, "run")
        await add_check_in(db, "read")
        result = await check_and_award_daily_complete_bonus(db, redis, "alice", 10, now=NOW)
        assert result.awarded is False

    @pytest.mark.asyncio
    async def test_two_local_days_inside_one_utc_date(self, db_session, redis) -> None:
        await make_user(db_session, "alice")
        await make_challenge(db_session, "run", admin_time_zone="America/New_York", due_time_local="23:59")
        await make_member(db_session, "run", "alice")

        evening = datetime(2024, 6, 10, 0, 30, tzinfo=timezone.utc)  # 20:30 on the 9th in New York
        after_midnight = datetime(2024, 6, 10, 4, 30, tzinfo=timezone.utc)  # 00:30 on the 10th

        await add_check_in(db_session, "run", period_key="2024-06-09")
        first = await check_and_award_daily_complete_bonus(db_session, redis, "alice", 15, now=evening)
        await add_check_in(db_session, "run", period_key="2024-06-10")
        second = await check_and_award_daily_complete_bonus(db_session, redis, "alice", 15, now=after_midnight)

        assert first.awarded is True
        assert second.awarded is True
        sources = (await db_session.execute(select(XPLedger.source))).scalars().all()
        assert sources == ["daily_complete", "daily_complete"]

    @pytest.mark.asyncio
    async def test_same_local_day_is_not_paid_twice(self, db_session, redis) -> None:
        await make_user(db_session, "alice")
        await make_challenge(db_session, "run", admin_time_zone="America/New_York", due_time_local="23:59")
        await make_member(db_session, "run", "alice")
        await add_check_in(db_session, "run", period_key="2024-06-09")

        # 21:00 and 22:00 on the 9th in New York; both fall on the 10th in UTC.
        first = await check_and_award_daily_complete_bonus(
            db_session, redis, "alice", 15, now=datetime(2024, 6, 10, 1, 0, tzinfo=timezone.utc),
        )
        second = await check_and_award_daily_complete_bonus(
            db_session, redis, "alice", 15, now=datetime(2024, 6, 10, 2, 0, tzinfo=timezone.utc),
        )

        assert first.awarded is True
        assert second.awarded is False
