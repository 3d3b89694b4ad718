"""Period keys and due moments for daily and weekly challenges.

A daily period is keyed by the admin-zone date it is due on; a weekly period
by the admin-zone date its week starts on. Keys are ``YYYY-MM-DD`` so they
sort the same way lexicographically and in time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any

from squadcheck.periods.clock import (
    WallClock,
    get_zone,
    parse_date_key,
    parse_hhmm,
    wall_clock_in_zone,
    wall_clock_to_utc,
)

DEFAULT_DUE_TIME = "23:59"
DAILY = "daily"
WEEKLY = "weekly"


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(timezone.utc)


def shift_day_key(key: str, days: int) -> str:
    """Move a ``YYYY-MM-DD`` key by whole calendar days."""
    return (parse_date_key(key) + timedelta(days=days)).isoformat()


def days_between(earlier: str, later: str) -> int:
    """Calendar days from ``earlier`` to ``later`` (negative if reversed)."""
    return (parse_date_key(later) - parse_date_key(earlier)).days


class PeriodKeyResolver(ABC):
    """Maps instants onto period keys and period keys onto due moments.

    Subclasses only decide how a wall clock is read and inverted; everything
    built on top is shared.
    """

    @abstractmethod
    def wall_clock(self, instant: datetime) -> WallClock:
        """Wall-clock reading of ``instant`` in the challenge's zone."""

    @abstractmethod
    def to_utc(self, date_key: str, time_local: str) -> datetime:
        """UTC instant of a wall-clock reading in the challenge's zone."""

    def day_key(self, now: datetime | None = None) -> str:
        return self.wall_clock(_now(now)).date_key

    def week_key(self, week_starts_on: int = 0, now: datetime | None = None) -> str:
        wc = self.wall_clock(_now(now))
        back = (wc.day_of_week - week_starts_on) % 7
        return (date(wc.year, wc.month, wc.day) - timedelta(days=back)).isoformat()

    def due_moment(self, day_key: str, due_time_local: str | None = None) -> datetime:
        return self.to_utc(day_key, due_time_local or DEFAULT_DUE_TIME)

    def weekly_due_moment(self, week_key: str, due_time_local: str | None = None) -> datetime:
        """Weekly periods are due on their last day, six days after the week key."""
        return self.due_moment(shift_day_key(week_key, 6), due_time_local)

    def period_due_moment(
        self, period_key: str, due_time_local: str | None, cadence_unit: str,
    ) -> datetime:
        if cadence_unit == WEEKLY:
            return self.weekly_due_moment(period_key, due_time_local)
        return self.due_moment(period_key, due_time_local)

    def deadline_moment(self, deadline_date: str, due_time_local: str | None = None) -> datetime:
        return self.due_moment(deadline_date, due_time_local)

    def current_period_day_key(
        self, due_time_local: str | None = None, now: datetime | None = None,
    ) -> str:
        """Today's key, or tomorrow's once today's due moment has been reached."""
        now = _now(now)
        today = self.day_key(now)
        if now >= self.due_moment(today, due_time_local):
            return shift_day_key(today, 1)
        return today

    def current_period_week_key(self, week_starts_on: int = 0, now: datetime | None = None) -> str:
        return self.week_key(week_starts_on, now)

    def previous_period_day_key(
        self, due_time_local: str | None = None, now: datetime | None = None,
    ) -> str:
        return shift_day_key(self.current_period_day_key(due_time_local, now), -1)

    def previous_period_week_key(self, week_starts_on: int = 0, now: datetime | None = None) -> str:
        return shift_day_key(self.week_key(week_starts_on, now), -7)

    def has_period_due_passed(
        self,
        period_key: str,
        due_time_local: str | None,
        cadence_unit: str,
        now: datetime | None = None,
    ) -> bool:
        return _now(now) >= self.period_due_moment(period_key, due_time_local, cadence_unit)

    def next_due_at(
        self,
        due_time_local: str | None,
        cadence_unit: str,
        week_starts_on: int = 0,
        now: datetime | None = None,
    ) -> datetime:
        """First due moment strictly after ``now``."""
        now = _now(now)
        if cadence_unit == WEEKLY:
            week = self.week_key(week_starts_on, now)
            due = self.weekly_due_moment(week, due_time_local)
            if now < due:
                return due
            return self.weekly_due_moment(shift_day_key(week, 7), due_time_local)
        today = self.day_key(now)
        due = self.due_moment(today, due_time_local)
        if now < due:
            return due
        return self.due_moment(shift_day_key(today, 1), due_time_local)


@dataclass(frozen=True)
class IanaZone(PeriodKeyResolver):
    """Resolver backed by a tz database zone."""

    name: str

    def __post_init__(self) -> None:
        get_zone(self.name)

    def wall_clock(self, instant: datetime) -> WallClock:
        return wall_clock_in_zone(instant, self.name)

    def to_utc(self, date_key: str, time_local: str) -> datetime:
        return wall_clock_to_utc(date_key, time_local, self.name)


@dataclass(frozen=True)
class FixedOffset(PeriodKeyResolver):
    """Resolver for legacy challenges that only recorded a numeric offset.

    ``minutes_west`` follows the browser convention: 480 for UTC-8, -60 for UTC+1.
    """

    minutes_west: int

    @property
    def _offset(self) -> timedelta:
        return timedelta(minutes=-self.minutes_west)

    def wall_clock(self, instant: datetime) -> WallClock:
        return wall_clock_in_zone(instant, timezone(self._offset))

    def to_utc(self, date_key: str, time_local: str) -> datetime:
        day = parse_date_key(date_key)
        hour, minute = parse_hhmm(time_local)
        local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)
        return local - self._offset


def resolver_for(challenge: Any) -> PeriodKeyResolver:
    """Pick the strategy a challenge record supports.

    An IANA zone always wins; the legacy offset is only consulted when no zone
    was stored. Records with neither fall back to UTC.
    """
    zone_name = getattr(challenge, "admin_time_zone", None)
    if zone_name:
        return IanaZone(zone_name)
    offset = getattr(challenge, "legacy_timezone_offset", None)
    if offset is not None:
        return FixedOffset(int(offset))
    return IanaZone("UTC")


# Zone-name entry points.


def day_key_in_zone(zone: str, instant: datetime | None = None) -> str:
    return IanaZone(zone).day_key(instant)


def week_key_in_zone(zone: str, week_starts_on: int = 0, instant: datetime | None = None) -> str:
    return IanaZone(zone).week_key(week_starts_on, instant)


def current_period_day_key(
    zone: str, due_time_local: str | None = DEFAULT_DUE_TIME, now: datetime | None = None,
) -> str:
    return IanaZone(zone).current_period_day_key(due_time_local, now)


def previous_period_day_key(
    zone: str, due_time_local: str | None = DEFAULT_DUE_TIME, now: datetime | None = None,
) -> str:
    return IanaZone(zone).previous_period_day_key(due_time_local, now)


def previous_period_week_key(zone: str, week_starts_on: int = 0, now: datetime | None = None) -> str:
    return IanaZone(zone).previous_period_week_key(week_starts_on, now)


def has_period_due_passed(
    zone: str,
    period_key: str,
    due_time_local: str | None,
    cadence_unit: str,
    now: datetime | None = None,
) -> bool:
    return IanaZone(zone).has_period_due_passed(period_key, due_time_local, cadence_unit, now)
