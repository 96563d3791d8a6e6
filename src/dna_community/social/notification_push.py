"""Push freshly created notifications over Redis pub/sub for live clients."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dna_community.db.models import Notification

logger = logging.getLogger(__name__)


def channel_for(user_id: str) -> str:
    return f"notifications:user:{user_id}"


async def push_notification_to_user(redis: object | None, notification: "Notification") -> None:
    """Publish a notification summary to ``notifications:user:{user_id}``.

    The notification must already be flushed (have an ``id``). Publishing is
    best-effort: failures are logged and never raised.
    """
    if redis is None:
        return

    payload = {
        "event": "notification",
        "data": {
            "id": notification.id,
            "type": notification.type,
            "message": notification.message,
            "fromUserName": notification.from_user_name,
            "targetId": notification.target_id,
            "targetType": notification.target_type,
            "createdAt": notification.created_at.isoformat() if notification.created_at else None,
            "read": False,
        },
    }
    try:
        await redis.publish(channel_for(notification.user_id), json.dumps(payload))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to push notification %s to %s", notification.id, notification.user_id, exc_info=True)
