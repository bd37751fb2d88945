"""
scorebot.database.models — SQLAlchemy 2.0 Data Models
=====================================================

Tables:
- users                 — Registered players (Discord snowflake is unique)
- challenges            — Creator-submitted puzzles with a lifecycle state
- progress              — Per (user, challenge) hints / attempts / completion
- rewards               — Append-only issued rewards, one per (user, challenge)
- success_announcements — Append-only record of public completion posts
- admin_log             — Append-only audit trail of mutations
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all ScoreBot ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ChallengeState(enum.StrEnum):
    """Lifecycle states of a challenge (see :mod:`scorebot.engine.lifecycle`)."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    DISABLED = "disabled"


class RewardType(enum.StrEnum):
    BADGE = "badge"
    TEXT = "text"


class AdminActionType(enum.StrEnum):
    """Categories of mutations recorded in admin_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    DISABLE = "DISABLE"
    ENABLE = "ENABLE"
    REVISE = "REVISE"
    RESET_PROGRESS = "RESET_PROGRESS"
    ADJUST_HINTS = "ADJUST_HINTS"


# ---------------------------------------------------------------------------
# Users — one row per registered Discord member
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(254), unique=True, default=None)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    progress: Mapped[list[Progress]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} discord_id={self.discord_id} name={self.username!r}>"


# ---------------------------------------------------------------------------
# Challenges — slug-keyed puzzles
# ---------------------------------------------------------------------------
class Challenge(Base):
    __tablename__ = "challenges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[str] = mapped_column(String(100), nullable=False, default="Anonymous")
    owner_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    answer: Mapped[str] = mapped_column(Text, nullable=False)
    difficulty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    reward_type: Mapped[str] = mapped_column(
        String(10), nullable=False, default=RewardType.BADGE.value
    )
    badge_class_id: Mapped[str | None] = mapped_column(String(100), default=None)
    badge_description: Mapped[str | None] = mapped_column(Text, default=None)
    reward_text: Mapped[str | None] = mapped_column(Text, default=None)
    hints: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChallengeState.PENDING.value
    )

    # Approval metadata is retained while disabled so re-enable is a restore.
    approved_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    rejected_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    rejection_reason: Mapped[str | None] = mapped_column(Text, default=None)
    disabled_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    disabled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    disable_reason: Mapped[str | None] = mapped_column(Text, default=None)
    revision_note: Mapped[str | None] = mapped_column(Text, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_challenges_state", "state"),
        Index("ix_challenges_owner", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Challenge id={self.id!r} name={self.name!r} state={self.state}>"


# ---------------------------------------------------------------------------
# Progress — per (user, challenge) play state
# ---------------------------------------------------------------------------
class Progress(Base):
    __tablename__ = "progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    challenge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    hints_used: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    points_earned: Mapped[int | None] = mapped_column(Integer, default=None)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship(back_populates="progress")

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_progress_user_challenge"),
        Index("ix_progress_challenge", "challenge_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Progress user={self.user_id} challenge={self.challenge_id!r} "
            f"hints={self.hints_used} done={self.completed}>"
        )


# ---------------------------------------------------------------------------
# RewardRecord — issued rewards (append-only)
# ---------------------------------------------------------------------------
class RewardRecord(Base):
    __tablename__ = "rewards"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    challenge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reward_type: Mapped[str] = mapped_column(String(10), nullable=False)
    reward_data: Mapped[str | None] = mapped_column(Text, default=None)
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "challenge_id", name="uq_rewards_user_challenge"),
    )

    def __repr__(self) -> str:
        return f"<RewardRecord user={self.user_id} challenge={self.challenge_id!r}>"


# ---------------------------------------------------------------------------
# SuccessAnnouncement — public completion posts (append-only)
# ---------------------------------------------------------------------------
class SuccessAnnouncement(Base):
    __tablename__ = "success_announcements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    challenge_id: Mapped[str] = mapped_column(String(64), nullable=False)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    channel_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    message_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    announced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_success_announcements_user_challenge", "user_id", "challenge_id"),
    )


# ---------------------------------------------------------------------------
# AdminLog — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    action_type: Mapped[str] = mapped_column(String(30), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), default=None)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, default=None)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_timestamp", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} action={self.action_type} table={self.target_table}>"
