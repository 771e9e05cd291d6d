"""Initial schema with all tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

This migration creates the SAT Tracker database schema:
- Extensions: uuid-ossp
- Tables: users, study_plan, daily_log, notifications, user_profiles, user_activity, cron_logs
- Indexes: per-user/day lookups, notification dedup key (unique), cron audit lookups
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # EXTENSIONS
    # ==========================================================================
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ==========================================================================
    # USERS TABLE
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # STUDY_PLAN TABLE
    # ==========================================================================
    op.create_table(
        "study_plan",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("section", sa.String(50), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("tasks_text", sa.Text(), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_study_plan_user_date", "study_plan", ["user_id", "date"])

    # ==========================================================================
    # DAILY_LOG TABLE
    # ==========================================================================
    op.create_table(
        "daily_log",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.String(10), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="done"),
        sa.Column("checked_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        # No ON DELETE: plan deletion removes its logs first
        sa.ForeignKeyConstraint(["plan_id"], ["study_plan.id"]),
        sa.CheckConstraint("status IN ('done', 'missed')", name="valid_log_status"),
    )
    op.create_index("idx_daily_log_user_date", "daily_log", ["user_id", "date"])
    op.create_index("ix_daily_log_plan_id", "daily_log", ["plan_id"])

    # ==========================================================================
    # NOTIFICATIONS TABLE
    # ==========================================================================
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(32), nullable=False, server_default="generic"),
        sa.Column("plan_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("end_time", sa.String(5), nullable=True),
        sa.Column("go_to_plan", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("dedup_key", sa.String(64), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("dismissed_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index("idx_notifications_dedup_key", "notifications", ["dedup_key"], unique=True)

    # ==========================================================================
    # USER_PROFILES TABLE
    # ==========================================================================
    op.create_table(
        "user_profiles",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("is_premium", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("premium_expires_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    # ==========================================================================
    # USER_ACTIVITY TABLE
    # ==========================================================================
    op.create_table(
        "user_activity",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("last_seen_at", postgresql.TIMESTAMP(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )

    # ==========================================================================
    # CRON_LOGS TABLE
    # ==========================================================================
    op.create_table(
        "cron_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("uuid_generate_v4()"), nullable=False),
        sa.Column("job", sa.String(50), nullable=False, server_default="dispatch_notifications"),
        sa.Column("run_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("status", sa.String(10), nullable=False),
        sa.Column("users_processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notifications_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("emails_sent", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("status IN ('success', 'error')", name="valid_cron_status"),
    )
    op.create_index("idx_cron_logs_job_run_at", "cron_logs", ["job", "run_at"])


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("cron_logs")
    op.drop_table("user_activity")
    op.drop_table("user_profiles")
    op.drop_table("notifications")
    op.drop_table("daily_log")
    op.drop_table("study_plan")
    op.drop_table("users")
