"""Zoned wall-clock rendering and wall-clock to UTC conversion.

Every conversion goes through the tz database (``zoneinfo``); a challenge's
admin zone is never reduced to a fixed numeric offset here. DST policy:

* a nonexistent local time (spring-forward gap) resolves to the later
  candidate, i.e. 02:30 inside a 02:00 -> 03:00 gap becomes 03:30 new time;
* a repeated local time (fall-back overlap) resolves to its first occurrence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")
_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EPOCH = datetime(1970, 1, 1)


class InvalidTimeZone(ValueError):
    """Raised when a zone name is not in the tz database."""


@dataclass(frozen=True)
class WallClock:
    """Calendar fields of an instant as read on a clock in some zone."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    day_of_week: int  # 0=Sunday .. 6=Saturday

    @property
    def date_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    @property
    def minute_count(self) -> int:
        """Minutes since 1970-01-01 00:00 of these wall-clock fields."""
        naive = datetime(self.year, self.month, self.day, self.hour, self.minute)
        return int((naive - _EPOCH).total_seconds()) // 60


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from stores that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_zone(zone: str | tzinfo) -> tzinfo:
    """Resolve an IANA zone name; ``tzinfo`` objects pass through."""
    if isinstance(zone, tzinfo):
        return zone
    if not zone:
        raise InvalidTimeZone("Time zone name is empty")
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimeZone(f"Unknown time zone: {zone!r}") from exc


def parse_hhmm(value: str) -> tuple[int, int]:
    """Parse an ``HH:MM`` wall-clock time."""
    match = _HHMM_RE.match(value or "")
    if match is None:
        raise ValueError(f"Invalid wall-clock time: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid wall-clock time: {value!r}")
    return hour, minute


def parse_date_key(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` key."""
    if not _DATE_KEY_RE.match(value or ""):
        raise ValueError(f"Invalid date key: {value!r}")
    return date.fromisoformat(value)


def _require_aware(instant: datetime) -> None:
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError("Naive datetimes are not accepted; pass a timezone-aware instant")


def wall_clock_in_zone(instant: datetime, zone: str | tzinfo) -> WallClock:
    """Render ``instant`` as wall-clock fields in ``zone``."""
    _require_aware(instant)
    local = instant.astimezone(get_zone(zone))
    return WallClock(
        year=local.year,
        month=local.month,
        day=local.day,
        hour=local.hour,
        minute=local.minute,
        day_of_week=(local.weekday() + 1) % 7,
    )


def utc_offset_minutes(instant: datetime, zone: str | tzinfo) -> int:
    """Offset of ``zone`` from UTC at ``instant``; positive east of Greenwich."""
    return (
        wall_clock_in_zone(instant, zone).minute_count
        - wall_clock_in_zone(instant, timezone.utc).minute_count
    )


def wall_clock_to_utc(date_str: str, time_str: str, zone: str | tzinfo) -> datetime:
    """UTC instant at which the clock in ``zone`` reads ``date_str`` ``time_str``.

    Guess with the offset at the start of the day, verify by re-rendering, and
    correct once with the offset at the guess when a transition sits between.
    """
    tz = get_zone(zone)
    day = parse_date_key(date_str)
    hour, minute = parse_hhmm(time_str)
    naive_utc = datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)

    def matches(candidate: datetime) -> bool:
        wc = wall_clock_in_zone(candidate, tz)
        return (wc.year, wc.month, wc.day, wc.hour, wc.minute) == (
            day.year, day.month, day.day, hour, minute,
        )

    start_of_day = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    guess = naive_utc - timedelta(minutes=utc_offset_minutes(start_of_day, tz))
    if matches(guess):
        resolved = guess
    else:
        corrected = naive_utc - timedelta(minutes=utc_offset_minutes(guess, tz))
        if not matches(corrected):
            # Gap: neither candidate reads back, take the later one.
            return max(guess, corrected)
        resolved = corrected

    # Overlap: the same reading may exist under the offset in force a day either side.
    candidates = {resolved}
    for neighbour in (resolved - timedelta(days=1), resolved + timedelta(days=1)):
        candidate = naive_utc - timedelta(minutes=utc_offset_minutes(neighbour, tz))
        if matches(candidate):
            candidates.add(candidate)
    return min(candidates)
