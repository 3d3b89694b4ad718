"""ORM models for challenges, check-ins and user progression.

Identifiers are opaque strings so records created by other clients of the
same store (composite member ids, uuid hex) can be used as-is.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from squadcheck.db.base import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def member_id(challenge_id: str, user_id: str) -> str:
    """Composite key of a challenge membership."""
    return f"{challenge_id}_{user_id}"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Denormalized progression summary, one row per user."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    display_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    level_title: Mapped[str] = mapped_column(String(64), nullable=False, default="Rookie", server_default="Rookie")
    total_check_ins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    on_time_check_ins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    late_night_check_ins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class UserBadge(Base):
    """Unlocked achievements: UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class UserTitle(Base):
    """Selectable titles unlocked by levels and achievements."""

    __tablename__ = "user_titles"
    __table_args__ = (
        UniqueConstraint("user_id", "title_id", name="user_titles_user_id_title_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title_id: Mapped[str] = mapped_column(String(96), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class XPLedger(Base):
    """Immutable XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    owner_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="group_members_group_id_user_id_key"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[str] = mapped_column(String(64), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class Challenge(Base):
    """A challenge and its cadence, due-time and rule settings.

    ``admin_time_zone`` holds an IANA name. Older records may only carry
    ``legacy_timezone_offset`` (minutes west of UTC).
    """

    __tablename__ = "challenges"
    __table_args__ = (
        Index("idx_challenges_state_next_due", "state", "next_due_at_utc"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    group_id: Mapped[str | None] = mapped_column(String(64), ForeignKey("groups.id"), nullable=True)
    admin_user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(128), nullable=False, default="", server_default="")
    type: Mapped[str] = mapped_column(String(16), nullable=False, default="standard", server_default="standard")
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")

    cadence_unit: Mapped[str] = mapped_column(String(8), nullable=False, default="daily", server_default="daily")
    cadence_required_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    week_starts_on: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    due_time_local: Mapped[str] = mapped_column(String(5), nullable=False, default="23:59", server_default="23:59")
    admin_time_zone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    legacy_timezone_offset: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deadline_date: Mapped[str | None] = mapped_column(String(10), nullable=True)

    strikes_allowed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    late_grace_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    progress_starts_at: Mapped[float | None] = mapped_column(Float, nullable=True)
    progress_increase_by: Mapped[float | None] = mapped_column(Float, nullable=True)
    progress_comparison: Mapped[str | None] = mapped_column(String(8), nullable=True)

    winner_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    next_due_at_utc: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def required_count(self) -> int:
        """Completed check-ins needed per period."""
        if self.cadence_unit == "weekly":
            return max(1, self.cadence_required_count or 1)
        return 1


class ChallengeMember(Base):
    """Per-user state inside a challenge; id is ``{challenge_id}_{user_id}``."""

    __tablename__ = "challenge_members"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    challenge_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")
    strikes: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    streak_shields: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    streak_shield_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    last_check_in_period_key: Mapped[str | None] = mapped_column(String(10), nullable=True)
    last_evaluated_period_key: Mapped[str | None] = mapped_column(String(10), nullable=True)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


class CheckIn(Base):
    """One submission for one period.

    A completed check-in occupies a ``completion_slot`` in its period; the
    unique constraint over (challenge, user, period, slot) is what bounds the
    number of completed check-ins per period under concurrent submits.
    """

    __tablename__ = "check_ins"
    __table_args__ = (
        UniqueConstraint(
            "challenge_id", "user_id", "period_key", "completion_slot",
            name="check_ins_period_slot_key",
        ),
        Index("idx_check_ins_user_period", "user_id", "period_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    challenge_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    group_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    period_unit: Mapped[str] = mapped_column(String(8), nullable=False)
    period_key: Mapped[str] = mapped_column(String(10), nullable=False)
    completion_slot: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="completed", server_default="completed")
    payload: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    attachments: Mapped[list[Any]] = mapped_column(JSONType, nullable=False, default=list)
    computed: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def period(self) -> dict[str, str]:
        """Period descriptor: ``{"unit": "daily", "day_key": ...}`` or the weekly form."""
        key_name = "week_key" if self.period_unit == "weekly" else "day_key"
        return {"unit": self.period_unit, key_name: self.period_key}


class ChallengeEvaluation(Base):
    """Idempotency log of the periodic missed-period evaluator."""

    __tablename__ = "challenge_evaluations"

    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    challenge_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False,
    )
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    period_key: Mapped[str | None] = mapped_column(String(10), nullable=True)
    members_evaluated: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    members_missed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
