"""Follow graph: follow/unfollow edges, lists and counts.

Being followed is worth XP to the followed user; unfollowing takes it back.
"""

from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.config import get_settings
from dna_community.db.models import USER_STATUS_ACTIVE, Follow, User
from dna_community.errors import StateConflictError, ValidationError
from dna_community.gamification.xp_service import grant_xp
from dna_community.users.service import require_user

logger = logging.getLogger(__name__)


async def _get_edge(db: AsyncSession, follower_id: str, following_id: str) -> Follow | None:
    result = await db.execute(
        select(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    return result.scalar_one_or_none()


async def follow_user(db: AsyncSession, follower_id: str, following_id: str) -> Follow:
    """Create a follow edge. Duplicate follows are rejected."""
    if follower_id == following_id:
        raise ValidationError("Users cannot follow themselves")
    await require_user(db, follower_id)
    await require_user(db, following_id)

    if await _get_edge(db, follower_id, following_id) is not None:
        raise StateConflictError("Already following this user")

    edge = Follow(follower_id=follower_id, following_id=following_id)
    db.add(edge)
    try:
        await db.flush()
    except IntegrityError as e:
        raise StateConflictError("Already following this user") from e

    await grant_xp(db, following_id, get_settings().xp_follow, "followed")
    logger.info("User %s followed %s", follower_id, following_id)
    return edge


async def unfollow_user(db: AsyncSession, follower_id: str, following_id: str) -> None:
    """Remove a follow edge and take back the follow XP."""
    result = await db.execute(
        delete(Follow).where(Follow.follower_id == follower_id, Follow.following_id == following_id)
    )
    if result.rowcount == 0:
        raise StateConflictError("Not following this user")
    await grant_xp(db, following_id, -get_settings().xp_follow, "unfollowed")
    logger.info("User %s unfollowed %s", follower_id, following_id)


async def get_followers(db: AsyncSession, user_id: str) -> list[tuple[User, Follow]]:
    """Active users following ``user_id``, newest first."""
    await require_user(db, user_id)
    result = await db.execute(
        select(User, Follow)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.following_id == user_id, User.status == USER_STATUS_ACTIVE)
        .order_by(Follow.created_at.desc())
    )
    return [(u, f) for u, f in result.all()]


async def get_following(db: AsyncSession, user_id: str) -> list[tuple[User, Follow]]:
    """Active users ``user_id`` follows, newest first."""
    await require_user(db, user_id)
    result = await db.execute(
        select(User, Follow)
        .join(Follow, Follow.following_id == User.id)
        .where(Follow.follower_id == user_id, User.status == USER_STATUS_ACTIVE)
        .order_by(Follow.created_at.desc())
    )
    return [(u, f) for u, f in result.all()]


async def count_follows(db: AsyncSession, user_id: str) -> dict[str, int]:
    """Follower and following counts."""
    followers = await db.execute(select(func.count()).select_from(Follow).where(Follow.following_id == user_id))
    following = await db.execute(select(func.count()).select_from(Follow).where(Follow.follower_id == user_id))
    return {"followers": followers.scalar_one(), "following": following.scalar_one()}
