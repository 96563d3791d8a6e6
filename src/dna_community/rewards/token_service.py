"""Reward tokens: lazy minting from XP, redemption and the reward catalogue.

Tokens are keyed by (user_id, level), one per 10-level milestone. Minting
compares the milestones reached against the tokens already stored and inserts
only the missing ones, so calling it repeatedly never double-mints; the unique
constraint backs this up when two status checks race.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.db.base import utcnow
from dna_community.db.models import Reward, UserRewardClaim, UserRewardToken
from dna_community.errors import InsufficientTokensError, NotFoundError, StateConflictError
from dna_community.gamification.levels import compute_level, next_token_level, token_milestones, xp_to_next_token
from dna_community.gamification.xp_service import get_xp
from dna_community.rewards.schemas import CreateRewardRequest, DeliveryInfo, UpdateRewardRequest
from dna_community.social.notification_service import NotificationDraft, send_notifications_safely

logger = logging.getLogger(__name__)


class RewardTokenService:
    """Token balance, minting and redemption for one request."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    async def _current_xp(self, uid: str) -> int:
        xp = await get_xp(self.db, uid)
        if xp is None:
            raise NotFoundError("User not found")
        return xp

    async def _tokens(self, uid: str) -> list[UserRewardToken]:
        result = await self.db.execute(
            select(UserRewardToken)
            .where(UserRewardToken.user_id == uid)
            .order_by(UserRewardToken.level.asc())
        )
        return list(result.scalars().all())

    async def _mint_missing(self, uid: str, xp: int, minted_levels: set[int]) -> list[int]:
        """Insert a token for every reached milestone not yet minted; returns the new levels."""
        missing = [lvl for lvl in token_milestones(compute_level(xp)) if lvl not in minted_levels]
        if not missing:
            return []
        now = utcnow()
        self.db.add_all([
            UserRewardToken(user_id=uid, level=lvl, xp_when_earned=xp, earned_at=now, is_used=False)
            for lvl in missing
        ])
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent status check minted them first.
            await self.db.rollback()
            logger.info("Token mint for user %s lost a race; nothing new minted", uid)
            return []
        logger.info("Minted %d reward token(s) for user %s at levels %s", len(missing), uid, missing)
        return missing

    async def status(self, uid: str) -> dict[str, Any]:
        """Token balance for a user, minting any newly earned tokens first."""
        xp = await self._current_xp(uid)
        level = compute_level(xp)
        tokens = await self._tokens(uid)
        new_levels = await self._mint_missing(uid, xp, {t.level for t in tokens})
        tokens = await self._tokens(uid)

        notification_sent = False
        if new_levels:
            unused_count = sum(1 for t in tokens if not t.is_used)
            word = "token" if len(new_levels) == 1 else "tokens"
            sent = await send_notifications_safely([NotificationDraft(
                user_id=uid,
                type="reward_token_earned",
                message=(
                    f"Congratulations! You earned {len(new_levels)} reward {word} for reaching level {level}. "
                    "Use your tokens to redeem exclusive rewards."
                ),
                target_type="reward_token",
                metadata={
                    "tokensEarned": len(new_levels),
                    "levels": new_levels,
                    "currentLevel": level,
                    "totalAvailableTokens": unused_count,
                },
            )], self.redis)
            notification_sent = bool(sent)

        unused = [t for t in tokens if not t.is_used]
        used = [t for t in tokens if t.is_used]
        return {
            "current_xp": xp,
            "current_level": level,
            "available_tokens": len(unused),
            "total_earned_tokens": len(tokens),
            "unused_tokens": unused,
            "used_tokens": used,
            "new_tokens_earned": len(new_levels),
            "next_token_level": next_token_level(level),
            "xp_to_next_token": xp_to_next_token(xp),
            "notification_sent": notification_sent,
            "message": f"You earned {len(new_levels)} reward token(s)!" if new_levels else None,
        }

    async def history(self, uid: str, page: int = 1, limit: int = 20) -> tuple[list[UserRewardClaim], int]:
        """Claims newest first."""
        total = await self.db.execute(
            select(func.count()).select_from(UserRewardClaim).where(UserRewardClaim.user_id == uid)
        )
        result = await self.db.execute(
            select(UserRewardClaim)
            .where(UserRewardClaim.user_id == uid)
            .order_by(UserRewardClaim.claimed_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total.scalar_one()

    async def redeem(self, uid: str, reward_id: str, delivery_info: DeliveryInfo | None = None) -> dict[str, Any]:
        """Spend ``reward.cost`` tokens (oldest first) on a reward.

        Stock and tokens are taken with conditional UPDATEs; if either comes
        up short the whole unit is rolled back and nothing changes.
        """
        xp = await self._current_xp(uid)
        reward = await self.db.get(Reward, reward_id)
        if reward is None:
            raise NotFoundError("Reward not found")
        if not reward.is_active:
            raise StateConflictError("Reward is no longer available")
        if reward.stock is not None and reward.stock <= 0:
            raise StateConflictError("Reward is out of stock")

        result = await self.db.execute(
            select(UserRewardToken.id)
            .where(UserRewardToken.user_id == uid, UserRewardToken.is_used.is_(False))
            .order_by(UserRewardToken.earned_at.asc(), UserRewardToken.level.asc())
        )
        unused_ids = list(result.scalars().all())
        if len(unused_ids) < reward.cost:
            raise InsufficientTokensError(required=reward.cost, available=len(unused_ids))

        claim = UserRewardClaim(
            user_id=uid,
            reward_id=reward.id,
            tokens_claimed=reward.cost,
            status="pending",
            level_when_claimed=compute_level(xp),
            xp_when_claimed=xp,
            delivery_info=delivery_info.model_dump(exclude_none=True) if delivery_info else {},
            claimed_at=utcnow(),
        )
        self.db.add(claim)
        await self.db.flush()

        if reward.stock is not None:
            stock_result = await self.db.execute(
                update(Reward)
                .where(Reward.id == reward.id, Reward.stock > 0)
                .values(stock=Reward.stock - 1, updated_at=utcnow())
                .execution_options(synchronize_session="fetch")
            )
            if stock_result.rowcount == 0:
                await self.db.rollback()
                raise StateConflictError("Reward is out of stock")

        spend = unused_ids[:reward.cost]
        token_result = await self.db.execute(
            update(UserRewardToken)
            .where(UserRewardToken.id.in_(spend), UserRewardToken.is_used.is_(False))
            .values(is_used=True, used_at=utcnow(), used_for_reward_id=reward.id, claim_id=claim.id)
            .execution_options(synchronize_session=False)
        )
        if token_result.rowcount != len(spend):
            await self.db.rollback()
            remaining = await self.db.execute(
                select(func.count()).select_from(UserRewardToken)
                .where(UserRewardToken.user_id == uid, UserRewardToken.is_used.is_(False))
            )
            raise InsufficientTokensError(required=reward.cost, available=remaining.scalar_one())

        await self.db.commit()
        logger.info("User %s redeemed reward %s for %d token(s)", uid, reward.id, reward.cost)
        return {
            "claim": claim,
            "reward": reward,
            "tokensUsed": reward.cost,
            "remainingTokens": len(unused_ids) - reward.cost,
        }


class RewardCatalogService:
    """Reward catalogue and claim administration."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get(self, reward_id: str) -> Reward:
        reward = await self.db.get(Reward, reward_id)
        if reward is None:
            raise NotFoundError("Reward not found")
        return reward

    async def list_available(
        self,
        category: str | None = None,
        reward_type: str | None = None,
        min_cost: int | None = None,
        max_cost: int | None = None,
    ) -> list[Reward]:
        """Active rewards, cheapest first."""
        query = select(Reward).where(Reward.is_active.is_(True))
        if category:
            query = query.where(Reward.category == category)
        if reward_type:
            query = query.where(Reward.type == reward_type)
        if min_cost is not None:
            query = query.where(Reward.cost >= min_cost)
        if max_cost is not None:
            query = query.where(Reward.cost <= max_cost)
        result = await self.db.execute(query.order_by(Reward.cost.asc()))
        return list(result.scalars().all())

    async def list_all(self, include_inactive: bool = True) -> list[Reward]:
        query = select(Reward)
        if not include_inactive:
            query = query.where(Reward.is_active.is_(True))
        result = await self.db.execute(query.order_by(Reward.created_at.desc()))
        return list(result.scalars().all())

    async def create(self, body: CreateRewardRequest, created_by: str | None = None) -> Reward:
        reward = Reward(
            name=body.name.strip(),
            description=body.description,
            type=body.type,
            category=body.category,
            cost=body.cost,
            stock=body.stock,
            is_active=body.is_active,
            image_url=body.image_url,
            created_by=created_by,
        )
        self.db.add(reward)
        await self.db.commit()
        logger.info("Reward %s created by %s", reward.id, created_by)
        return reward

    async def update(self, reward_id: str, body: UpdateRewardRequest) -> Reward:
        reward = await self.get(reward_id)
        for field, value in body.model_dump(exclude_unset=True).items():
            if value is None and field not in ("stock", "image_url"):
                continue
            setattr(reward, field, value)
        await self.db.commit()
        return reward

    async def deactivate(self, reward_id: str) -> Reward:
        """Rewards are never hard-deleted: claims keep pointing at them."""
        reward = await self.get(reward_id)
        reward.is_active = False
        await self.db.commit()
        logger.info("Reward %s deactivated", reward.id)
        return reward

    async def list_claims(
        self, status: str | None = None, page: int = 1, limit: int = 20
    ) -> tuple[list[UserRewardClaim], int]:
        base = select(UserRewardClaim)
        count = select(func.count()).select_from(UserRewardClaim)
        if status:
            base = base.where(UserRewardClaim.status == status)
            count = count.where(UserRewardClaim.status == status)
        total = await self.db.execute(count)
        result = await self.db.execute(
            base.order_by(UserRewardClaim.claimed_at.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total.scalar_one()

    async def update_claim_status(self, claim_id: str, status: str, notes: str | None = None) -> UserRewardClaim:
        claim = await self.db.get(UserRewardClaim, claim_id)
        if claim is None:
            raise NotFoundError("Claim not found")
        claim.status = status
        if notes is not None:
            claim.admin_notes = notes
        claim.updated_at = utcnow()
        await self.db.commit()
        logger.info("Claim %s moved to %s", claim.id, status)
        return claim
