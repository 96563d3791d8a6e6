"""Engagement XP grants.

XP lives on ``users.engagement_xp`` and is only ever changed through a single
atomic ``UPDATE ... SET engagement_xp = engagement_xp + n`` so concurrent
grants never lose updates. Negative grants are floored at zero.
"""

from __future__ import annotations

import logging

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.db.models import User

logger = logging.getLogger(__name__)


async def grant_xp(db: AsyncSession, user_id: str, amount: int, source: str) -> bool:
    """Add ``amount`` XP to a user inside the caller's transaction.

    Returns False when the user does not exist.
    """
    new_total = User.engagement_xp + amount
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(engagement_xp=case((new_total < 0, 0), else_=new_total))
        .execution_options(synchronize_session="fetch")
    )
    granted = result.rowcount > 0
    if granted:
        logger.info("XP %+d for user %s (%s)", amount, user_id, source)
    return granted


async def get_xp(db: AsyncSession, user_id: str) -> int | None:
    """Current XP read from the database (not the identity map)."""
    result = await db.execute(
        select(User.engagement_xp).where(User.id == user_id)
    )
    return result.scalar_one_or_none()
