"""User router: all /api/v1/users/* endpoints (profiles, onboarding, follows)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session
from dna_community.db.models import User
from dna_community.dependencies import require_self
from dna_community.social.follow_service import (
    count_follows,
    follow_user,
    get_followers,
    get_following,
    unfollow_user,
)
from dna_community.social.schemas import FollowListResponse, FollowUserItem
from dna_community.users.schemas import (
    FollowRequest,
    OnboardingCompleteRequest,
    ProfileUpdateRequest,
    public_user_response,
    user_response,
)
from dna_community.users.service import (
    complete_onboarding,
    list_profiles,
    require_user,
    soft_delete_user,
    update_profile,
)

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


@router.get("/profiles")
async def get_profiles(
    role: str | None = Query(None),
    skills: list[str] | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Onboarded members ranked by XP."""
    users = await list_profiles(db, role=role, skills=skills, limit=limit)
    return {
        "profiles": [public_user_response(u) for u in users],
        "count": len(users),
        "filters": {"role": role, "skills": skills, "limit": limit},
    }


@router.get("/{uid}/profile")
async def get_profile(
    uid: str,
    viewer: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Profile with follow counts. Owners and admins see the full record."""
    user = await require_user(db, uid)
    counts = await count_follows(db, uid)
    is_owner = viewer.id == uid or viewer.has_admin_access
    return {
        "user": user_response(user) if is_owner else public_user_response(user),
        "followersCount": counts["followers"],
        "followingCount": counts["following"],
    }


@router.put("/{uid}/profile")
async def put_profile(
    uid: str,
    body: ProfileUpdateRequest,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Update the user's profile."""
    user = await update_profile(db, uid, body)
    await db.commit()
    return {"message": "Profile updated successfully", "user": user_response(user)}


@router.delete("/{uid}")
async def delete_user(
    uid: str,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Soft-delete the account."""
    await soft_delete_user(db, uid)
    await db.commit()
    return {"message": "User deleted successfully"}


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------


@router.get("/{uid}/onboarding/status")
async def onboarding_status(
    uid: str,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    user = await require_user(db, uid)
    return {
        "hasCompletedOnboarding": user.has_completed_onboarding,
        "onboardingCompletedAt": user.onboarding_completed_at,
    }


@router.post("/{uid}/onboarding/complete")
async def onboarding_complete(
    uid: str,
    body: OnboardingCompleteRequest,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    user = await complete_onboarding(db, uid, body)
    await db.commit()
    return {"message": "Onboarding completed successfully", "user": user_response(user)}


# ---------------------------------------------------------------------------
# Follows
# ---------------------------------------------------------------------------


def _ensure_actor(actor: User, follower_id: str) -> None:
    if actor.id != follower_id and not actor.has_admin_access:
        raise HTTPException(status_code=403, detail="Not allowed to act on behalf of another user")


@router.post("/follow", status_code=201)
async def follow(
    body: FollowRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    _ensure_actor(actor, body.follower_id)
    await follow_user(db, body.follower_id, body.following_id)
    await db.commit()
    return {"message": "User followed successfully"}


@router.post("/unfollow")
async def unfollow(
    body: FollowRequest,
    actor: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    _ensure_actor(actor, body.follower_id)
    await unfollow_user(db, body.follower_id, body.following_id)
    await db.commit()
    return {"message": "User unfollowed successfully"}


@router.get("/{uid}/followers", response_model=FollowListResponse)
async def followers(
    uid: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FollowListResponse:
    rows = await get_followers(db, uid)
    items = [
        FollowUserItem(uid=u.id, name=u.name, engagement_xp=u.engagement_xp, role=u.role, followed_at=f.created_at)
        for u, f in rows
    ]
    return FollowListResponse(users=items, count=len(items))


@router.get("/{uid}/following", response_model=FollowListResponse)
async def following(
    uid: str,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FollowListResponse:
    rows = await get_following(db, uid)
    items = [
        FollowUserItem(uid=u.id, name=u.name, engagement_xp=u.engagement_xp, role=u.role, followed_at=f.created_at)
        for u, f in rows
    ]
    return FollowListResponse(users=items, count=len(items))
