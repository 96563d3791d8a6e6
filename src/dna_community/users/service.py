"""User profile, onboarding and account lifecycle."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.schemas import ProfileUpdateRequest
from dna_community.auth.service import get_active_user
from dna_community.db.base import utcnow
from dna_community.db.models import USER_STATUS_ACTIVE, USER_STATUS_DELETED, User
from dna_community.errors import NotFoundError

logger = structlog.get_logger()


async def require_user(db: AsyncSession, user_id: str) -> User:
    """Active user or NotFoundError."""
    user = await get_active_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def apply_profile_update(user: User, body: ProfileUpdateRequest) -> None:
    """Merge the provided fields into the user's profile."""
    changes = body.model_dump(exclude_unset=True, by_alias=True)
    if "name" in changes:
        user.name = changes.pop("name")
    if "role" in changes:
        user.role = changes.pop("role")
    if changes:
        profile: dict[str, Any] = dict(user.profile or {})
        profile.update(changes)
        profile["updatedAt"] = utcnow().isoformat()
        # JSON columns only track reassignment
        user.profile = profile


async def update_profile(db: AsyncSession, user_id: str, body: ProfileUpdateRequest) -> User:
    user = await require_user(db, user_id)
    apply_profile_update(user, body)
    await db.flush()
    logger.info("profile_updated", user_id=user_id)
    return user


async def complete_onboarding(db: AsyncSession, user_id: str, body: ProfileUpdateRequest) -> User:
    """Store the onboarding profile and flag the user as onboarded."""
    user = await require_user(db, user_id)
    apply_profile_update(user, body)
    user.has_completed_onboarding = True
    user.onboarding_completed_at = utcnow()
    await db.flush()
    logger.info("onboarding_completed", user_id=user_id)
    return user


async def soft_delete_user(db: AsyncSession, user_id: str) -> User:
    """Move the account to the ``deleted`` lifecycle state. Rows are never removed."""
    user = await require_user(db, user_id)
    user.status = USER_STATUS_DELETED
    user.deleted_at = utcnow()
    await db.flush()
    logger.info("user_deleted", user_id=user_id)
    return user


async def list_profiles(
    db: AsyncSession,
    role: str | None = None,
    skills: list[str] | None = None,
    limit: int = 50,
) -> list[User]:
    """Onboarded active users, highest XP first.

    Skills are matched case-insensitively after the query (any overlap).
    """
    query = select(User).where(
        User.status == USER_STATUS_ACTIVE,
        User.has_completed_onboarding.is_(True),
    )
    if role:
        query = query.where(User.role == role)
    result = await db.execute(query.order_by(User.engagement_xp.desc()))
    users = list(result.scalars().all())

    if skills:
        wanted = {s.lower() for s in skills}
        users = [
            u for u in users
            if wanted & {str(s).lower() for s in (u.profile or {}).get("skills", [])}
        ]
    return users[:limit]
