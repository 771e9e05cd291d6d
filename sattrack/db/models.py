"""
SQLAlchemy 2.0 Models for SAT Tracker.

Uses modern declarative syntax with Mapped[] type annotations.
Column types are the portable ones (Uuid, DateTime(timezone=True), JSON) so the
same metadata runs on the hosted Postgres and on SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sattrack.db.base import Base


# =============================================================================
# ENUMS
# =============================================================================


class LogStatus(str, PyEnum):
    """Outcome of a daily check-in."""

    DONE = "done"
    MISSED = "missed"


class NotificationKind(str, PyEnum):
    """Discriminator for the typed notification payload."""

    PLAN_START = "plan_start"
    PLAN_MISSED = "plan_missed"
    TOMORROW_REMINDER = "tomorrow_reminder"
    PREMIUM_EXPIRED = "premium_expired"
    PREMIUM_EXPIRING = "premium_expiring"
    GENERIC = "generic"


class CronStatus(str, PyEnum):
    """Result of one batch job run."""

    SUCCESS = "success"
    ERROR = "error"


class CronJob(str, PyEnum):
    """Batch jobs that write to the audit log."""

    DISPATCH_NOTIFICATIONS = "dispatch_notifications"
    CHECK_PREMIUM_EXPIRY = "check_premium_expiry"


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Identity mirrored from the hosted auth directory.

    Read-only from the reminder engine's point of view.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    study_plans: Mapped[list["StudyPlan"]] = relationship(
        "StudyPlan", back_populates="user", cascade="all, delete-orphan"
    )
    profile: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class StudyPlan(Base):
    """
    One scheduled study session.

    `date` is a local calendar day and `start_time`/`end_time` are local
    wall-clock HH:MM strings with no timezone. All comparisons on them are
    lexicographic or done through sattrack.services.timeutils.
    """

    __tablename__ = "study_plan"
    __table_args__ = (
        Index("idx_study_plan_user_date", "user_id", "date"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    section: Mapped[str] = mapped_column(String(50), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    tasks_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="study_plans")
    logs: Mapped[list["DailyLog"]] = relationship(
        "DailyLog", back_populates="plan", passive_deletes=True
    )


class DailyLog(Base):
    """
    Completion record for one plan on one date.

    At most one log per plan. This is enforced by checking before insert,
    not by a unique constraint.
    """

    __tablename__ = "daily_log"
    __table_args__ = (
        Index("idx_daily_log_user_date", "user_id", "date"),
        CheckConstraint("status IN ('done', 'missed')", name="valid_log_status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    plan_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_plan.id"), nullable=False, index=True
    )
    date: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default=LogStatus.DONE.value)
    checked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    plan: Mapped["StudyPlan"] = relationship("StudyPlan", back_populates="logs")


class Notification(Base):
    """
    A persisted, user-visible event.

    `message` is display text only. The structured payload lives in its own
    columns (`kind`, `plan_id`, `end_time`, `go_to_plan`). `dedup_key` is the
    hashed (user, day, message) key; its unique index is what makes two
    concurrent producers unable to insert the same notification twice.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
        Index("idx_notifications_dedup_key", "dedup_key", unique=True),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(
        String(32), nullable=False, default=NotificationKind.GENERIC.value
    )
    plan_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(String(5), nullable=True)
    go_to_plan: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dedup_key: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class UserProfile(Base):
    """Per-user profile flags (premium subscription)."""

    __tablename__ = "user_profiles"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    premium_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="profile")


class UserActivity(Base):
    """Last time the user brought the app to the foreground."""

    __tablename__ = "user_activity"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    last_seen_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CronLog(Base):
    """Append-only audit record of one batch job run."""

    __tablename__ = "cron_logs"
    __table_args__ = (
        Index("idx_cron_logs_job_run_at", "job", "run_at"),
        CheckConstraint("status IN ('success', 'error')", name="valid_cron_status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    job: Mapped[str] = mapped_column(
        String(50), nullable=False, default=CronJob.DISPATCH_NOTIFICATIONS.value
    )
    run_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    users_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notifications_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    emails_sent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
