"""Request/response schemas for reward tokens, the catalogue and claims."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from dna_community.schemas import CamelModel

RewardType = Literal["digital", "physical", "experience", "discount"]
RewardCategory = Literal["learning", "merchandise", "certification", "exclusive_access", "other"]
ClaimStatus = Literal["pending", "completed", "cancelled"]


class RewardTokenResponse(CamelModel):
    id: str
    level: int
    xp_when_earned: int
    earned_at: datetime
    is_used: bool
    used_at: datetime | None = None
    used_for_reward_id: str | None = None


class TokenStatusResponse(CamelModel):
    current_xp: int = Field(serialization_alias="currentXP")
    current_level: int
    available_tokens: int
    total_earned_tokens: int
    unused_tokens: list[RewardTokenResponse]
    used_tokens: list[RewardTokenResponse]
    new_tokens_earned: int
    next_token_level: int
    xp_to_next_token: int
    notification_sent: bool
    message: str | None = None


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


class CreateRewardRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: str = Field("", max_length=5000)
    type: RewardType
    category: RewardCategory = "other"
    cost: int = Field(..., gt=0)
    stock: int | None = Field(None, ge=0)
    is_active: bool = True
    image_url: str | None = None


class UpdateRewardRequest(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=128)
    description: str | None = Field(None, max_length=5000)
    type: RewardType | None = None
    category: RewardCategory | None = None
    cost: int | None = Field(None, gt=0)
    stock: int | None = Field(None, ge=0)
    is_active: bool | None = None
    image_url: str | None = None


class RewardResponse(CamelModel):
    id: str
    name: str
    description: str
    type: str
    category: str
    cost: int
    stock: int | None = None
    is_active: bool
    image_url: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


class DeliveryInfo(CamelModel):
    address: str | None = None
    email: str | None = None
    phone: str | None = None
    notes: str | None = None


class RedeemRequest(CamelModel):
    reward_id: str
    delivery_info: DeliveryInfo | None = None


class ClaimStatusUpdateRequest(CamelModel):
    status: ClaimStatus
    notes: str | None = Field(None, max_length=2000)


class ClaimResponse(CamelModel):
    id: str
    user_id: str
    reward_id: str
    tokens_claimed: int
    status: str
    level_when_claimed: int
    xp_when_claimed: int
    delivery_info: dict[str, Any] | None = None
    admin_notes: str | None = None
    claimed_at: datetime
    updated_at: datetime | None = None
