"""Integration tests for achievement unlocking."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from conftest import make_challenge, make_member, make_user, published_kinds
from squadcheck.db.models import Group, GroupMember, User, UserBadge, UserTitle
from squadcheck.gamification.achievement_service import AchievementEngine
from squadcheck.gamification.achievements import ACHIEVEMENTS_BY_ID


def reward(*ids: str) -> int:
    return sum(ACHIEVEMENTS_BY_ID[i]["xp_reward"] for i in ids)


class TestAchievementEngine:
    @pytest.mark.asyncio
    async def test_unlocks_everything_qualified(self, db_session, session_factory, redis) -> None:
        await make_user(db_session, "alice", total_check_ins=10, longest_streak=7)
        engine = AchievementEngine(session_factory, redis)

        awarded = await engine.check_and_award("alice")

        expected = {"first_steps", "getting_started", "streak_starter", "week_warrior"}
        assert set(awarded) == expected
        async with session_factory() as fresh:
            titles = set((await fresh.execute(select(UserTitle.title_id))).scalars().all())
            user = await fresh.get(User, "alice")
        assert titles >= {f"achievement_{i}" for i in expected}
        assert user.xp == reward(*expected)
        assert published_kinds(redis).count("badge_earned") == 4

    @pytest.mark.asyncio
    async def test_second_run_awards_nothing(self, db_session, session_factory, redis) -> None:
        await make_user(db_session, "alice", total_check_ins=1)
        engine = AchievementEngine(session_factory, redis)

        assert await engine.check_and_award("alice") == ["first_steps"]
        assert await engine.check_and_award("alice") == []

        async with session_factory() as fresh:
            badges = (await fresh.execute(select(UserBadge.badge_id))).scalars().all()
        assert badges == ["first_steps"]

    @pytest.mark.asyncio
    async def test_social_and_challenge_stats(self, db_session, session_factory, redis) -> None:
        await make_user(db_session, "alice")
        await make_user(db_session, "bob")
        db_session.add(Group(id="g1", name="Crew", owner_id="alice"))
        db_session.add(GroupMember(group_id="g1", user_id="alice"))
        await db_session.commit()
        await make_challenge(
            db_session, "el", type="elimination", state="ended", winner_id="alice",
            ended_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
        )
        await make_challenge(db_session, "dl", type="deadline", state="ended", deadline_date="2024-05-31")
        await make_member(db_session, "dl", "alice")

        awarded = await AchievementEngine(session_factory, redis).check_and_award("alice")

        assert set(awarded) == {"team_player", "squad_leader", "survivor", "deadline_crusher"}

    @pytest.mark.asyncio
    async def test_gather_stats(self, db_session, session_factory, redis) -> None:
        user = await make_user(db_session, "alice", on_time_check_ins=12, late_night_check_ins=2)
        stats = await AchievementEngine(session_factory, redis).gather_stats(user)
        assert stats["on_time_check_ins"] == 12
        assert stats["late_night_check_ins"] == 2
        assert stats["groups_joined"] == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, session_factory, redis) -> None:
        assert await AchievementEngine(session_factory, redis).check_and_award("ghost") == []
