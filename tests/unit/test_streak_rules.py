"""Tests for streak continuity between periods."""

from squadcheck.gamification.streak_service import (
    SHIELD_EARN_INTERVAL,
    STREAK_MILESTONES,
    StreakResult,
    is_consecutive_period,
)


class TestConsecutivePeriods:
    def test_next_day(self) -> None:
        assert is_consecutive_period("2024-06-01", "2024-06-02", "daily")

    def test_across_month(self) -> None:
        assert is_consecutive_period("2024-06-30", "2024-07-01", "daily")

    def test_gap_breaks(self) -> None:
        assert not is_consecutive_period("2024-06-01", "2024-06-03", "daily")

    def test_same_period_is_not_consecutive(self) -> None:
        assert not is_consecutive_period("2024-06-01", "2024-06-01", "daily")

    def test_weekly_step(self) -> None:
        assert is_consecutive_period("2024-06-02", "2024-06-09", "weekly")
        assert not is_consecutive_period("2024-06-02", "2024-06-03", "weekly")

    def test_no_previous_period(self) -> None:
        assert not is_consecutive_period(None, "2024-06-01", "daily")


class TestStreakConstants:
    def test_shield_every_week_of_streak(self) -> None:
        assert SHIELD_EARN_INTERVAL == 7

    def test_milestones_sorted(self) -> None:
        assert list(STREAK_MILESTONES) == sorted(STREAK_MILESTONES)

    def test_empty_result(self) -> None:
        result = StreakResult.empty()
        assert (result.current_streak, result.longest_streak) == (1, 1)
        assert not result.shield_earned

    def test_failed_result_reports_no_streak(self) -> None:
        result = StreakResult.failed()
        assert (result.current_streak, result.longest_streak) == (0, 0)
        assert not result.is_new_milestone
