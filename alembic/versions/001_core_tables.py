"""Core tables: users, progression, groups, challenges and check-ins.

Revision ID: 001_core_tables
Revises:
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_core_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=nullable)


def upgrade() -> None:
    """Create the challenge and progression schema."""
    # --- Users and progression ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column("xp", sa.BigInteger(), server_default="0", nullable=False),
        sa.Column("level", sa.Integer(), server_default="1", nullable=False),
        sa.Column("level_title", sa.String(64), server_default="Rookie", nullable=False),
        sa.Column("total_check_ins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("on_time_check_ins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("late_night_check_ins", sa.Integer(), server_default="0", nullable=False),
        _ts("created_at"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_id", sa.String(64), nullable=False),
        _ts("earned_at"),
        sa.UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )
    op.create_table(
        "user_titles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title_id", sa.String(96), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        _ts("unlocked_at"),
        sa.UniqueConstraint("user_id", "title_id", name="user_titles_user_id_title_id_key"),
    )
    op.create_table(
        "xp_ledger",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(32), nullable=False),
        sa.Column("source_id", sa.String(128), nullable=True),
        sa.Column("description", sa.String(256), nullable=True),
        _ts("created_at"),
        sa.Column("idempotency_key", sa.String(256), nullable=True, unique=True),
    )
    op.create_index("idx_xp_ledger_user", "xp_ledger", ["user_id", "created_at"])

    # --- Groups ---
    op.create_table(
        "groups",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("owner_id", sa.String(64), sa.ForeignKey("users.id"), nullable=False),
        _ts("created_at"),
    )
    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.String(64), sa.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        _ts("joined_at"),
        sa.UniqueConstraint("group_id", "user_id", name="group_members_group_id_user_id_key"),
    )

    # --- Challenges ---
    op.create_table(
        "challenges",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("group_id", sa.String(64), sa.ForeignKey("groups.id"), nullable=True),
        sa.Column("admin_user_id", sa.String(64), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(128), server_default="", nullable=False),
        sa.Column("type", sa.String(16), server_default="standard", nullable=False),
        sa.Column("state", sa.String(16), server_default="active", nullable=False),
        sa.Column("cadence_unit", sa.String(8), server_default="daily", nullable=False),
        sa.Column("cadence_required_count", sa.Integer(), server_default="1", nullable=False),
        sa.Column("week_starts_on", sa.Integer(), server_default="0", nullable=False),
        sa.Column("due_time_local", sa.String(5), server_default="23:59", nullable=False),
        sa.Column("admin_time_zone", sa.String(64), nullable=True),
        sa.Column("legacy_timezone_offset", sa.Integer(), nullable=True),
        sa.Column("deadline_date", sa.String(10), nullable=True),
        sa.Column("strikes_allowed", sa.Integer(), server_default="0", nullable=False),
        sa.Column("late_grace_minutes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("progress_starts_at", sa.Float(), nullable=True),
        sa.Column("progress_increase_by", sa.Float(), nullable=True),
        sa.Column("progress_comparison", sa.String(8), nullable=True),
        sa.Column("winner_id", sa.String(64), nullable=True),
        sa.Column("next_due_at_utc", sa.BigInteger(), nullable=True),
        _ts("created_at"),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_challenges_state_next_due", "challenges", ["state", "next_due_at_utc"])
    op.execute(
        "ALTER TABLE challenges ADD CONSTRAINT ck_challenges_type "
        "CHECK (type IN ('standard', 'elimination', 'deadline', 'progress'))"
    )
    op.execute(
        "ALTER TABLE challenges ADD CONSTRAINT ck_challenges_cadence "
        "CHECK (cadence_unit IN ('daily', 'weekly'))"
    )

    op.create_table(
        "challenge_members",
        sa.Column("id", sa.String(160), primary_key=True),
        sa.Column("challenge_id", sa.String(64), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("state", sa.String(16), server_default="active", nullable=False),
        sa.Column("strikes", sa.Integer(), server_default="0", nullable=False),
        sa.Column("current_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("longest_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("streak_shields", sa.Integer(), server_default="0", nullable=False),
        sa.Column("streak_shield_used", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("last_check_in_period_key", sa.String(10), nullable=True),
        sa.Column("last_evaluated_period_key", sa.String(10), nullable=True),
        _ts("joined_at"),
    )
    op.create_index("ix_challenge_members_challenge_id", "challenge_members", ["challenge_id"])
    op.create_index("ix_challenge_members_user_id", "challenge_members", ["user_id"])

    op.create_table(
        "check_ins",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("challenge_id", sa.String(64), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("group_id", sa.String(64), nullable=True),
        sa.Column("period_unit", sa.String(8), nullable=False),
        sa.Column("period_key", sa.String(10), nullable=False),
        sa.Column("completion_slot", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(16), server_default="completed", nullable=False),
        sa.Column("payload", _json, nullable=False),
        sa.Column("attachments", _json, nullable=False),
        sa.Column("computed", _json, nullable=True),
        _ts("created_at"),
        sa.UniqueConstraint(
            "challenge_id", "user_id", "period_key", "completion_slot",
            name="check_ins_period_slot_key",
        ),
    )
    op.create_index("idx_check_ins_user_period", "check_ins", ["user_id", "period_key"])

    op.create_table(
        "challenge_evaluations",
        sa.Column("id", sa.String(200), primary_key=True),
        sa.Column("challenge_id", sa.String(64), sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("period_key", sa.String(10), nullable=True),
        sa.Column("members_evaluated", sa.Integer(), server_default="0", nullable=False),
        sa.Column("members_missed", sa.Integer(), server_default="0", nullable=False),
        _ts("evaluated_at"),
    )


def downgrade() -> None:
    """Drop the core schema."""
    for table in (
        "challenge_evaluations",
        "check_ins",
        "challenge_members",
        "challenges",
        "group_members",
        "groups",
        "xp_ledger",
        "user_titles",
        "user_badges",
        "users",
    ):
        op.drop_table(table)
