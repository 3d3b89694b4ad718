"""Tests for the achievement catalogue and trigger evaluation."""

from squadcheck.gamification.achievements import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    RARITY_COLORS,
    TRIGGER_STATS,
    achievement_title_id,
    is_condition_met,
)


class TestCatalogue:
    def test_twenty_unique_achievements(self) -> None:
        assert len(ACHIEVEMENTS) == 20
        assert len(ACHIEVEMENTS_BY_ID) == 20

    def test_every_definition_is_complete(self) -> None:
        for a in ACHIEVEMENTS:
            assert a["rarity"] in RARITY_COLORS
            assert a["trigger_type"] in TRIGGER_STATS
            assert a["threshold"] > 0
            assert a["xp_reward"] > 0
            assert a["title_reward"]

    def test_title_id(self) -> None:
        assert achievement_title_id("night_owl") == "achievement_night_owl"


class TestConditions:
    def test_threshold_reached(self) -> None:
        first = ACHIEVEMENTS_BY_ID["first_steps"]
        assert is_condition_met(first, {"total_check_ins": 1})
        assert not is_condition_met(first, {"total_check_ins": 0})

    def test_streak_uses_longest_streak(self) -> None:
        week = ACHIEVEMENTS_BY_ID["week_warrior"]
        assert is_condition_met(week, {"longest_streak": 7})
        assert not is_condition_met(week, {"longest_streak": 6})

    def test_missing_stat_counts_as_zero(self) -> None:
        assert not is_condition_met(ACHIEVEMENTS_BY_ID["survivor"], {})

    def test_unknown_trigger_never_met(self) -> None:
        assert not is_condition_met({"trigger_type": "mystery", "threshold": 0}, {"mystery": 5})
