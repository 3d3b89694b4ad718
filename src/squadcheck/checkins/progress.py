"""Progressive targets for ``progress`` challenges.

The target starts at ``progress_starts_at`` and grows by ``progress_increase_by``
every week since the challenge was created.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from squadcheck.periods.clock import as_utc
from squadcheck.periods.keys import PeriodKeyResolver, days_between


def weeks_elapsed(resolver: PeriodKeyResolver, created_at: datetime, now: datetime, week_starts_on: int = 0) -> int:
    start = resolver.week_key(week_starts_on, as_utc(created_at))
    current = resolver.week_key(week_starts_on, now)
    return max(0, days_between(start, current) // 7)


def target_value(starts_at: float, increase_by: float, weeks: int) -> float:
    return starts_at + weeks * increase_by


def meets_target(value: float | None, target: float, comparison: str | None) -> bool:
    if value is None:
        return False
    if comparison == "lte":
        return value <= target
    return value >= target


def compute_progress(
    challenge: Any,
    payload: dict[str, Any],
    resolver: PeriodKeyResolver,
    now: datetime,
) -> dict[str, Any] | None:
    """Derived fields stored on a progress check-in; None for other challenge types."""
    if challenge.type != "progress" or challenge.progress_starts_at is None:
        return None
    weeks = weeks_elapsed(resolver, challenge.created_at, now, challenge.week_starts_on or 0)
    target = target_value(challenge.progress_starts_at, challenge.progress_increase_by or 0, weeks)
    value = payload.get("number_value")
    return {
        "target_value": target,
        "week_index": weeks,
        "met_requirement": meets_target(value, target, challenge.progress_comparison),
    }
