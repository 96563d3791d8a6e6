"""Request/response schemas for user endpoints.

User payloads are shared with auth; profile, onboarding and follow bodies live here.
"""

from __future__ import annotations

from pydantic import Field

from dna_community.auth.schemas import (
    ProfileUpdateRequest,
    PublicUserResponse,
    UserResponse,
    public_user_response,
    user_response,
)
from dna_community.schemas import CamelModel

__all__ = [
    "FollowRequest",
    "OnboardingCompleteRequest",
    "ProfileUpdateRequest",
    "PublicUserResponse",
    "UserResponse",
    "public_user_response",
    "user_response",
]


class FollowRequest(CamelModel):
    follower_id: str = Field(..., min_length=1)
    following_id: str = Field(..., min_length=1)


class OnboardingCompleteRequest(ProfileUpdateRequest):
    """Onboarding submits the initial profile in one go."""
