"""Notification creation, fan-out and inbox queries.

Notifications are persisted, then pushed to live clients over Redis pub/sub.
Fan-out from domain workflows goes through :func:`send_notifications_safely`,
which runs after the primary unit of work has committed and never raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.database import session_scope
from dna_community.db.base import utcnow
from dna_community.db.models import Notification
from dna_community.social.notification_push import push_notification_to_user

logger = logging.getLogger(__name__)

VALID_TYPES = {
    "mention",
    "answer",
    "workshop_enrollment",
    "workshop_completed",
    "workshop_cancelled",
    "certificate_issued",
    "reward_token_earned",
    "system",
}

SYSTEM_SENDER = "System"


@dataclass
class NotificationDraft:
    """Everything needed to create one notification."""

    user_id: str
    type: str
    message: str
    from_user_id: str | None = None
    from_user_name: str = SYSTEM_SENDER
    target_id: str | None = None
    target_type: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def build_notification(draft: NotificationDraft) -> Notification:
    """Validate a draft and build the (unsaved) ORM row."""
    if draft.type not in VALID_TYPES:
        raise ValueError(f"Invalid notification type: {draft.type}. Must be one of {sorted(VALID_TYPES)}")
    return Notification(
        user_id=draft.user_id,
        type=draft.type,
        from_user_id=draft.from_user_id,
        from_user_name=draft.from_user_name,
        target_id=draft.target_id,
        target_type=draft.target_type,
        message=draft.message,
        notification_metadata=draft.metadata,
        read=False,
        created_at=utcnow(),
    )


async def send_notifications_safely(
    drafts: list[NotificationDraft],
    redis: Any | None = None,
) -> list[Notification]:
    """Persist a batch of notifications in their own session, swallowing failures.

    Called after the primary operation has committed; a failure here loses only
    the notification batch and never touches the caller's session.
    """
    if not drafts:
        return []
    try:
        notifications = [build_notification(d) for d in drafts]
        async with session_scope() as db:
            db.add_all(notifications)
            await db.commit()
    except Exception:
        logger.warning(
            "Failed to send %d notification(s) of type %s",
            len(drafts),
            drafts[0].type,
            exc_info=True,
        )
        return []

    for notification in notifications:
        await push_notification_to_user(redis, notification)
    return notifications


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------


async def get_notifications(
    db: AsyncSession,
    user_id: str,
    limit: int = 20,
    before: datetime | None = None,
) -> list[Notification]:
    """User's notifications, most recent first, optionally older than ``before``."""
    query = select(Notification).where(Notification.user_id == user_id)
    if before is not None:
        query = query.where(Notification.created_at < before)
    result = await db.execute(query.order_by(Notification.created_at.desc()).limit(limit))
    return list(result.scalars().all())


async def mark_as_read(db: AsyncSession, user_id: str, notification_id: str) -> bool:
    """Mark one of the user's notifications as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read=True, read_at=utcnow())
    )
    await db.flush()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    """Mark all unread notifications as read. Returns count updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True, read_at=utcnow())
    )
    await db.flush()
    return result.rowcount


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    """Count of unread notifications."""
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return result.scalar_one()
