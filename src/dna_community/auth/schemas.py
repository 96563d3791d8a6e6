"""Request/response schemas for authentication and user payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from dna_community.db.models import User
from dna_community.schemas import CamelModel

PROFILE_DEFAULTS: dict[str, Any] = {
    "experience": None,
    "bio": "",
    "location": "",
    "website": "",
    "avatar": None,
    "languages": [],
    "tools": [],
    "skills": [],
    "interests": [],
    "socialLinks": {},
}


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    """Email registration request."""

    name: str = Field(..., min_length=1, max_length=128)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class LoginRequest(CamelModel):
    """Login with email + password."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower().strip()


class ProfileUpdateRequest(CamelModel):
    """Partial profile update. Unknown keys are ignored."""

    name: str | None = Field(None, min_length=1, max_length=128)
    role: str | None = Field(None, max_length=32)
    experience: str | None = None
    bio: str | None = Field(None, max_length=2000)
    location: str | None = None
    website: str | None = None
    avatar: str | None = None
    languages: list[str] | None = None
    tools: list[str] | None = None
    skills: list[str] | None = None
    interests: list[str] | None = None
    social_links: dict[str, str] | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserResponse(CamelModel):
    """Full user payload returned to its owner and admins."""

    uid: str
    name: str
    email: str
    engagement_xp: int
    has_completed_onboarding: bool
    onboarding_completed_at: datetime | None = None
    is_admin: bool = False
    status: str
    created_at: datetime
    profile: dict[str, Any]


class PublicUserResponse(CamelModel):
    """User payload visible to other members."""

    uid: str
    name: str
    engagement_xp: int
    profile: dict[str, Any]


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserResponse
    expires_in: datetime


def profile_dict(user: User) -> dict[str, Any]:
    """Profile with defaults applied and the role column folded in."""
    profile = {**PROFILE_DEFAULTS, **(user.profile or {})}
    profile["role"] = user.role
    return profile


def user_response(user: User) -> UserResponse:
    return UserResponse(
        uid=user.id,
        name=user.name,
        email=user.email,
        engagement_xp=user.engagement_xp,
        has_completed_onboarding=user.has_completed_onboarding,
        onboarding_completed_at=user.onboarding_completed_at,
        is_admin=user.has_admin_access,
        status=user.status,
        created_at=user.created_at,
        profile=profile_dict(user),
    )


def public_user_response(user: User) -> PublicUserResponse:
    return PublicUserResponse(
        uid=user.id,
        name=user.name,
        engagement_xp=user.engagement_xp,
        profile=profile_dict(user),
    )
