"""Notification API endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session
from dna_community.db.models import User
from dna_community.dependencies import require_self
from dna_community.social.notification_service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)
from dna_community.social.schemas import (
    NotificationListResponse,
    UnreadCountResponse,
    notification_response,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("/{uid}/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    uid: str,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    """Get unread notification count."""
    return UnreadCountResponse(unread_count=await get_unread_count(db, uid))


@router.get("/{uid}", response_model=NotificationListResponse)
async def list_notifications(
    uid: str,
    limit: int = Query(20, ge=1, le=100),
    before: datetime | None = Query(None),
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    """List the user's notifications, newest first. Pass ``before`` to page back."""
    notifications = await get_notifications(db, uid, limit, before)
    return NotificationListResponse(
        notifications=[notification_response(n) for n in notifications],
        count=len(notifications),
        next_before=notifications[-1].created_at if len(notifications) == limit else None,
    )


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Mark one of the caller's notifications as read."""
    found = await mark_as_read(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"message": "Notification marked as read"}


@router.put("/{uid}/mark-all-read")
async def mark_all_read(
    uid: str,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Mark all of the user's notifications as read."""
    count = await mark_all_as_read(db, uid)
    await db.commit()
    return {"message": f"Marked {count} notifications as read", "updated": count}
