"""Tests for period keys, rollover at the due moment and resolver selection."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from squadcheck.checkins.evaluation import MAX_CATCH_UP_PERIODS, periods_to_evaluate
from squadcheck.periods.clock import InvalidTimeZone
from squadcheck.periods.keys import (
    DAILY,
    WEEKLY,
    FixedOffset,
    IanaZone,
    current_period_day_key,
    day_key_in_zone,
    days_between,
    has_period_due_passed,
    previous_period_day_key,
    previous_period_week_key,
    resolver_for,
    shift_day_key,
    week_key_in_zone,
)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestDayKeys:
    def test_day_key_uses_admin_zone(self) -> None:
        instant = utc(2024, 6, 1, 2, 0)
        assert day_key_in_zone("UTC", instant) == "2024-06-01"
        assert day_key_in_zone("America/Los_Angeles", instant) == "2024-05-31"

    def test_rollover_happens_at_due_moment(self) -> None:
        assert current_period_day_key("UTC", "23:59", utc(2024, 6, 1, 23, 58, 59)) == "2024-06-01"
        assert current_period_day_key("UTC", "23:59", utc(2024, 6, 1, 23, 59)) == "2024-06-02"

    def test_early_due_time_in_zone(self) -> None:
        zone = "America/New_York"
        assert current_period_day_key(zone, "21:00", utc(2024, 6, 2, 0, 30)) == "2024-06-01"
        assert current_period_day_key(zone, "21:00", utc(2024, 6, 2, 1, 0)) == "2024-06-02"
        assert previous_period_day_key(zone, "21:00", utc(2024, 6, 2, 1, 0)) == "2024-06-01"

    def test_missing_due_time_defaults_to_end_of_day(self) -> None:
        assert current_period_day_key("UTC", None, utc(2024, 6, 1, 23, 0)) == "2024-06-01"

    def test_shift_across_month_and_leap_day(self) -> None:
        assert shift_day_key("2024-02-28", 1) == "2024-02-29"
        assert shift_day_key("2024-03-01", -1) == "2024-02-29"
        assert days_between("2024-02-28", "2024-03-01") == 2


class TestWeekKeys:
    def test_week_starts_on_sunday_by_default(self) -> None:
        assert week_key_in_zone("UTC", 0, utc(2024, 6, 5, 12)) == "2024-06-02"

    def test_week_starts_on_monday(self) -> None:
        assert week_key_in_zone("UTC", 1, utc(2024, 6, 5, 12)) == "2024-06-03"
        assert week_key_in_zone("UTC", 1, utc(2024, 6, 2, 12)) == "2024-05-27"

    def test_start_day_is_its_own_key(self) -> None:
        assert week_key_in_zone("UTC", 0, utc(2024, 6, 2, 0, 0)) == "2024-06-02"

    def test_previous_week(self) -> None:
        assert previous_period_week_key("UTC", 0, utc(2024, 6, 5, 12)) == "2024-05-26"

    def test_weekly_due_is_last_day_of_week(self) -> None:
        assert IanaZone("UTC").weekly_due_moment("2024-06-02", "23:59") == utc(2024, 6, 8, 23, 59)


class TestDueMoments:
    def test_has_period_due_passed(self) -> None:
        assert not has_period_due_passed("UTC", "2024-06-01", "23:59", DAILY, utc(2024, 6, 1, 23, 0))
        assert has_period_due_passed("UTC", "2024-06-01", "23:59", DAILY, utc(2024, 6, 1, 23, 59))
        assert not has_period_due_passed("UTC", "2024-06-02", "23:59", WEEKLY, utc(2024, 6, 8, 12))

    def test_next_due_daily(self) -> None:
        resolver = IanaZone("UTC")
        assert resolver.next_due_at("23:59", DAILY, now=utc(2024, 6, 1, 10)) == utc(2024, 6, 1, 23, 59)
        assert resolver.next_due_at("23:59", DAILY, now=utc(2024, 6, 1, 23, 59)) == utc(2024, 6, 2, 23, 59)

    def test_next_due_weekly(self) -> None:
        resolver = IanaZone("UTC")
        assert resolver.next_due_at("23:59", WEEKLY, 0, utc(2024, 6, 5)) == utc(2024, 6, 8, 23, 59)
        assert resolver.next_due_at("23:59", WEEKLY, 0, utc(2024, 6, 8, 23, 59)) == utc(2024, 6, 15, 23, 59)

    def test_due_moment_tracks_dst(self) -> None:
        resolver = IanaZone("Europe/Berlin")
        assert resolver.due_moment("2024-01-10", "20:00") == utc(2024, 1, 10, 19, 0)
        assert resolver.due_moment("2024-07-10", "20:00") == utc(2024, 7, 10, 18, 0)


class TestResolvers:
    def test_fixed_offset_minutes_west(self) -> None:
        resolver = FixedOffset(480)
        assert resolver.day_key(utc(2024, 6, 1, 5, 0)) == "2024-05-31"
        assert resolver.to_utc("2024-05-31", "23:59") == utc(2024, 6, 1, 7, 59)

    def test_fixed_offset_east_of_utc(self) -> None:
        assert FixedOffset(-60).to_utc("2024-06-01", "00:30") == utc(2024, 5, 31, 23, 30)

    def test_iana_zone_wins_over_legacy_offset(self) -> None:
        challenge = SimpleNamespace(admin_time_zone="Asia/Tokyo", legacy_timezone_offset=480)
        assert resolver_for(challenge) == IanaZone("Asia/Tokyo")

    def test_legacy_offset_used_without_zone(self) -> None:
        challenge = SimpleNamespace(admin_time_zone=None, legacy_timezone_offset=300)
        assert resolver_for(challenge) == FixedOffset(300)

    def test_utc_fallback(self) -> None:
        challenge = SimpleNamespace(admin_time_zone=None, legacy_timezone_offset=None)
        assert resolver_for(challenge) == IanaZone("UTC")

    def test_invalid_zone_rejected_on_construction(self) -> None:
        with pytest.raises(InvalidTimeZone):
            IanaZone("Not/AZone")


class TestMonotonicKeys:
    def test_keys_never_go_backwards_across_dst(self) -> None:
        resolver = IanaZone("America/New_York")
        instant = utc(2024, 3, 8)
        previous_day = previous_week = ""
        while instant < utc(2024, 3, 14):
            day = resolver.current_period_day_key("02:30", instant)
            week = resolver.week_key(0, instant)
            assert day >= previous_day
            assert week >= previous_week
            previous_day, previous_week = day, week
            instant += timedelta(minutes=20)


class TestPeriodsToEvaluate:
    def test_no_log_means_latest_only(self) -> None:
        daily = SimpleNamespace(cadence_unit=DAILY)
        assert periods_to_evaluate(daily, "2024-06-01", None) == ["2024-06-01"]

    def test_up_to_date(self) -> None:
        daily = SimpleNamespace(cadence_unit=DAILY)
        assert periods_to_evaluate(daily, "2024-06-01", "2024-06-01") == []

    def test_daily_gap_oldest_first(self) -> None:
        daily = SimpleNamespace(cadence_unit=DAILY)
        assert periods_to_evaluate(daily, "2024-06-01", "2024-05-29") == ["2024-05-30", "2024-05-31", "2024-06-01"]

    def test_weekly_gap(self) -> None:
        weekly = SimpleNamespace(cadence_unit=WEEKLY)
        assert periods_to_evaluate(weekly, "2024-06-02", "2024-05-19") == ["2024-05-26", "2024-06-02"]

    def test_gap_is_capped(self) -> None:
        daily = SimpleNamespace(cadence_unit=DAILY)
        keys = periods_to_evaluate(daily, "2024-06-01", "2023-06-01")
        assert len(keys) == MAX_CATCH_UP_PERIODS
        assert keys[-1] == "2024-06-01"
        assert keys[0] == shift_day_key("2024-06-01", -(MAX_CATCH_UP_PERIODS - 1))
