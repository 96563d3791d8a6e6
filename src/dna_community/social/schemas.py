"""Pydantic schemas for social endpoints: follows and notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from dna_community.db.models import Notification
from dna_community.schemas import CamelModel


# --- Follows ---


class FollowUserItem(CamelModel):
    uid: str
    name: str
    engagement_xp: int
    role: str | None = None
    followed_at: datetime


class FollowListResponse(CamelModel):
    users: list[FollowUserItem]
    count: int


# --- Notifications ---


class NotificationResponse(CamelModel):
    id: str
    user_id: str
    type: str
    from_user_id: str | None = None
    from_user_name: str
    target_id: str | None = None
    target_type: str | None = None
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationResponse]
    count: int
    next_before: datetime | None = None


class UnreadCountResponse(CamelModel):
    unread_count: int


def notification_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        user_id=n.user_id,
        type=n.type,
        from_user_id=n.from_user_id,
        from_user_name=n.from_user_name,
        target_id=n.target_id,
        target_type=n.target_type,
        message=n.message,
        metadata=n.notification_metadata or {},
        read=n.read,
        read_at=n.read_at,
        created_at=n.created_at,
    )
