"""Rewards router: /api/v1/rewards/* (token status, redemption, catalogue admin)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session
from dna_community.db.models import User
from dna_community.dependencies import require_admin, require_self
from dna_community.redis_client import get_optional_redis
from dna_community.rewards.schemas import (
    ClaimResponse,
    ClaimStatus,
    ClaimStatusUpdateRequest,
    CreateRewardRequest,
    RedeemRequest,
    RewardCategory,
    RewardResponse,
    RewardType,
    TokenStatusResponse,
    UpdateRewardRequest,
)
from dna_community.rewards.token_service import RewardCatalogService, RewardTokenService
from dna_community.schemas import paginate

router = APIRouter(prefix="/api/v1/rewards", tags=["Rewards"])


def _tokens(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_optional_redis),
) -> RewardTokenService:
    return RewardTokenService(db, redis)


def _catalog(db: AsyncSession = Depends(get_session)) -> RewardCatalogService:
    return RewardCatalogService(db)


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------


@router.get("/user/{uid}/status", response_model=TokenStatusResponse, response_model_by_alias=True)
async def token_status(
    uid: str,
    _user: User = Depends(require_self),
    svc: RewardTokenService = Depends(_tokens),
) -> TokenStatusResponse:
    """Token balance; newly earned milestone tokens are minted on the way."""
    return TokenStatusResponse.model_validate(await svc.status(uid))


@router.get("/user/{uid}/history")
async def claim_history(
    uid: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _user: User = Depends(require_self),
    svc: RewardTokenService = Depends(_tokens),
) -> dict[str, object]:
    claims, total = await svc.history(uid, page, limit)
    return {
        "claims": [ClaimResponse.model_validate(c) for c in claims],
        "pagination": paginate(page, limit, total),
    }


@router.post("/user/{uid}/redeem", status_code=201)
async def redeem_reward(
    uid: str,
    body: RedeemRequest,
    _user: User = Depends(require_self),
    svc: RewardTokenService = Depends(_tokens),
) -> dict[str, object]:
    result = await svc.redeem(uid, body.reward_id, body.delivery_info)
    claim = result["claim"]
    return {
        "message": "Reward redeemed successfully",
        "claimId": claim.id,
        "claim": ClaimResponse.model_validate(claim),
        "reward": RewardResponse.model_validate(result["reward"]),
        "tokensUsed": result["tokensUsed"],
        "remainingTokens": result["remainingTokens"],
    }


@router.get("/available")
async def available_rewards(
    category: RewardCategory | None = Query(None),
    reward_type: RewardType | None = Query(None, alias="type"),
    min_cost: int | None = Query(None, alias="minCost", ge=0),
    max_cost: int | None = Query(None, alias="maxCost", ge=0),
    _user: User = Depends(get_current_user),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    rewards = await svc.list_available(category, reward_type, min_cost, max_cost)
    return {
        "rewards": [RewardResponse.model_validate(r) for r in rewards],
        "totalRewards": len(rewards),
        "filters": {"category": category, "type": reward_type, "minCost": min_cost, "maxCost": max_cost},
    }


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("/admin/create", status_code=201)
async def create_reward(
    body: CreateRewardRequest,
    admin: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    reward = await svc.create(body, created_by=admin.id)
    return {"message": "Reward created successfully", "reward": RewardResponse.model_validate(reward)}


@router.put("/admin/update/{reward_id}")
async def update_reward(
    reward_id: str,
    body: UpdateRewardRequest,
    _admin: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    reward = await svc.update(reward_id, body)
    return {"message": "Reward updated successfully", "reward": RewardResponse.model_validate(reward)}


@router.get("/admin/claims")
async def list_claims(
    status: ClaimStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    claims, total = await svc.list_claims(status, page, limit)
    return {
        "claims": [ClaimResponse.model_validate(c) for c in claims],
        "pagination": paginate(page, limit, total),
        "filters": {"status": status},
    }


@router.put("/admin/claims/{claim_id}/status")
async def update_claim_status(
    claim_id: str,
    body: ClaimStatusUpdateRequest,
    _admin: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    claim = await svc.update_claim_status(claim_id, body.status, body.notes)
    return {"message": "Claim status updated successfully", "claim": ClaimResponse.model_validate(claim)}
