"""Tests for progressive weekly targets."""

from datetime import datetime, timezone
from types import SimpleNamespace

from squadcheck.checkins.progress import compute_progress, meets_target, target_value, weeks_elapsed
from squadcheck.periods.keys import IanaZone


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def progress_challenge(**overrides):
    fields = {
        "type": "progress",
        "created_at": utc(2024, 6, 3, 9),
        "week_starts_on": 0,
        "progress_starts_at": 20.0,
        "progress_increase_by": 5.0,
        "progress_comparison": "gte",
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestTargets:
    def test_weeks_elapsed(self) -> None:
        resolver = IanaZone("UTC")
        assert weeks_elapsed(resolver, utc(2024, 6, 3), utc(2024, 6, 8)) == 0
        assert weeks_elapsed(resolver, utc(2024, 6, 3), utc(2024, 6, 9)) == 1
        assert weeks_elapsed(resolver, utc(2024, 6, 3), utc(2024, 6, 24)) == 3

    def test_target_value(self) -> None:
        assert target_value(20, 5, 3) == 35

    def test_comparisons(self) -> None:
        assert meets_target(35, 35, "gte")
        assert not meets_target(34.9, 35, "gte")
        assert meets_target(30, 35, "lte")
        assert not meets_target(None, 35, "gte")


class TestComputeProgress:
    def test_second_week(self) -> None:
        computed = compute_progress(
            progress_challenge(), {"number_value": 26}, IanaZone("UTC"), utc(2024, 6, 12),
        )
        assert computed == {"target_value": 25.0, "week_index": 1, "met_requirement": True}

    def test_below_target(self) -> None:
        computed = compute_progress(
            progress_challenge(), {"number_value": 10}, IanaZone("UTC"), utc(2024, 6, 4),
        )
        assert computed["met_requirement"] is False

    def test_other_challenge_types_have_no_progress(self) -> None:
        challenge = progress_challenge(type="standard")
        assert compute_progress(challenge, {"number_value": 1}, IanaZone("UTC"), utc(2024, 6, 4)) is None

    def test_naive_created_at_treated_as_utc(self) -> None:
        challenge = progress_challenge(created_at=datetime(2024, 6, 3, 9))
        computed = compute_progress(challenge, {"number_value": 20}, IanaZone("UTC"), utc(2024, 6, 4))
        assert computed["week_index"] == 0
