"""ORM models.

One table per logical collection. Identifiers are opaque hex strings and all
timestamps are stored as UTC.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from dna_community.db.base import Base, UTCDateTime, new_id, utcnow


# ---------------------------------------------------------------------------
# Users & social graph
# ---------------------------------------------------------------------------

USER_STATUS_ACTIVE = "active"
USER_STATUS_DELETED = "deleted"


class User(Base):
    """Community member: credentials, profile and engagement counters."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    engagement_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    role: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    profile: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    has_completed_onboarding: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    onboarding_completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=USER_STATUS_ACTIVE)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    workshops_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    workshops_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_login: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == USER_STATUS_ACTIVE

    @property
    def has_admin_access(self) -> bool:
        return self.is_admin or self.role == "admin"


class Follow(Base):
    """Directed follow edge between two users."""

    __tablename__ = "follows"
    __table_args__ = (UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    follower_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    following_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Q&A
# ---------------------------------------------------------------------------


class Question(Base):
    """Forum question. Mentions and reactions are embedded lists."""

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    author_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    mentions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    reactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    answers_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    accepted_answer_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Answer(Base):
    """Answer to a question."""

    __tablename__ = "answers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    question_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    author_name: Mapped[str] = mapped_column(String(128), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    mentions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    reactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    is_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(Base):
    """Persisted in-app notification."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    from_user_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    from_user_name: Mapped[str] = mapped_column(String(128), nullable=False, default="System")
    target_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    target_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    notification_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)


# ---------------------------------------------------------------------------
# Workshops
# ---------------------------------------------------------------------------


class Workshop(Base):
    """Scheduled workshop with capacity and waitlist settings."""

    __tablename__ = "workshops"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="other")
    difficulty: Mapped[str] = mapped_column(String(32), nullable=False, default="beginner")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    requirements: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    scheduled_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)
    enrolled_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="draft", index=True)
    allow_waitlist: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_generate_certificate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    meeting_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    meeting_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    creator_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    creator_name: Mapped[str] = mapped_column(String(128), nullable=False)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class WorkshopEnrollment(Base):
    """A user's single enrollment record for a workshop (reused on re-enroll)."""

    __tablename__ = "workshop_enrollments"
    __table_args__ = (UniqueConstraint("workshop_id", "user_id", name="uq_enrollment_workshop_user"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    workshop_id: Mapped[str] = mapped_column(String(32), ForeignKey("workshops.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    previous_status: Mapped[str | None] = mapped_column(String(16), nullable=True)
    re_enrolled_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    feedback: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    certificate_issued: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    certificate_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class WorkshopCertificate(Base):
    """Issued completion certificate."""

    __tablename__ = "workshop_certificates"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    workshop_id: Mapped[str] = mapped_column(String(32), ForeignKey("workshops.id"), nullable=False, index=True)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    workshop_title: Mapped[str] = mapped_column(String(256), nullable=False)
    user_name: Mapped[str] = mapped_column(String(128), nullable=False)
    creator_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    verification_code: Mapped[str] = mapped_column(String(48), nullable=False, unique=True)
    certificate_url: Mapped[str] = mapped_column(Text, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


class Reward(Base):
    """Catalogue item purchasable with reward tokens."""

    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    cost: Mapped[int] = mapped_column(Integer, nullable=False)
    stock: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)


class UserRewardToken(Base):
    """One token per user per 10-level milestone."""

    __tablename__ = "user_reward_tokens"
    __table_args__ = (UniqueConstraint("user_id", "level", name="uq_reward_token_user_level"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_when_earned: Mapped[int] = mapped_column(Integer, nullable=False)
    earned_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    used_for_reward_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    claim_id: Mapped[str | None] = mapped_column(String(32), nullable=True)


class UserRewardClaim(Base):
    """Redemption of tokens for a reward."""

    __tablename__ = "user_reward_claims"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    reward_id: Mapped[str] = mapped_column(String(32), ForeignKey("rewards.id"), nullable=False, index=True)
    tokens_claimed: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    level_when_claimed: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_when_claimed: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_info: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    claimed_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
