"""Admin router: /api/v1/admin/* (administrators only)."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.admin.schemas import SetAdminRequest
from dna_community.admin.service import AdminService, Period
from dna_community.database import get_session
from dna_community.db.models import User
from dna_community.dependencies import require_admin, require_self
from dna_community.qa.schemas import AnswerResponse, QuestionResponse
from dna_community.rewards.schemas import CreateRewardRequest, RewardResponse, UpdateRewardRequest
from dna_community.rewards.token_service import RewardCatalogService
from dna_community.schemas import paginate
from dna_community.social.schemas import notification_response
from dna_community.users.schemas import public_user_response, user_response
from dna_community.users.service import require_user

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"])


def _admin(db: AsyncSession = Depends(get_session)) -> AdminService:
    return AdminService(db)


def _catalog(db: AsyncSession = Depends(get_session)) -> RewardCatalogService:
    return RewardCatalogService(db)


# ---------------------------------------------------------------------------
# Admin accounts
# ---------------------------------------------------------------------------


@router.get("/check/{uid}")
async def check_admin(
    uid: str,
    _user: User = Depends(require_self),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Whether ``uid`` is an administrator (users may check themselves)."""
    user = await require_user(db, uid)
    return {
        "uid": user.id,
        "isAdmin": user.has_admin_access,
        "userRole": user.role or "user",
        "message": "User is an administrator" if user.has_admin_access else "User is not an administrator",
    }


@router.get("/admins")
async def list_admins(
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    admins = await svc.list_admins()
    return {"admins": [user_response(u) for u in admins], "count": len(admins)}


@router.put("/set/{uid}")
async def set_admin(
    uid: str,
    body: SetAdminRequest,
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    user = await svc.set_admin(uid, body.is_admin)
    return {
        "message": "Admin status updated successfully",
        "uid": user.id,
        "isAdmin": user.is_admin,
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: str | None = Query(None),
    onboarded: bool | None = Query(None),
    search: str | None = Query(None),
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    users, total = await svc.list_users(page, limit, role, onboarded, search)
    return {
        "users": [user_response(u) for u in users],
        "pagination": paginate(page, limit, total),
        "filters": {"role": role, "onboarded": onboarded, "search": search},
    }


@router.get("/users/{uid}")
async def get_user(
    uid: str,
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    user, stats = await svc.user_details(uid)
    return {"user": user_response(user), "stats": stats}


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------


@router.post("/rewards", status_code=201)
async def create_reward(
    body: CreateRewardRequest,
    admin_user: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    reward = await svc.create(body, created_by=admin_user.id)
    return {"message": "Reward created successfully", "reward": RewardResponse.model_validate(reward)}


@router.get("/rewards")
async def list_rewards(
    include_inactive: bool = Query(True, alias="includeInactive"),
    _admin_user: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    rewards = await svc.list_all(include_inactive)
    return {
        "rewards": [RewardResponse.model_validate(r) for r in rewards],
        "count": len(rewards),
        "filters": {"includeInactive": include_inactive},
    }


@router.put("/rewards/{reward_id}")
async def update_reward(
    reward_id: str,
    body: UpdateRewardRequest,
    _admin_user: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    reward = await svc.update(reward_id, body)
    return {"message": "Reward updated successfully", "reward": RewardResponse.model_validate(reward)}


@router.delete("/rewards/{reward_id}")
async def delete_reward(
    reward_id: str,
    _admin_user: User = Depends(require_admin),
    svc: RewardCatalogService = Depends(_catalog),
) -> dict[str, object]:
    reward = await svc.deactivate(reward_id)
    return {"message": "Reward deactivated successfully", "reward": RewardResponse.model_validate(reward)}


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


@router.get("/activity")
async def list_activity(
    notification_type: str | None = Query(None, alias="type"),
    user_id: str | None = Query(None, alias="userId"),
    read: bool | None = Query(None),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    rows, total = await svc.list_activity(notification_type, user_id, read, start_date, end_date, page, limit)
    return {
        "activities": [
            {"notification": notification_response(n), "userName": name}
            for n, name in rows
        ],
        "pagination": paginate(page, limit, total),
        "filters": {
            "type": notification_type,
            "userId": user_id,
            "read": read,
            "startDate": start_date,
            "endDate": end_date,
        },
    }


@router.get("/activity/stats")
async def activity_stats(
    period: Period = Query("7d"),
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    return await svc.activity_stats(period)


@router.get("/activity/notifications/{notification_id}")
async def notification_details(
    notification_id: str,
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    details = await svc.notification_details(notification_id)
    recipient, sender = details["recipient"], details["sender"]
    return {
        "notification": notification_response(details["notification"]),
        "recipient": public_user_response(recipient) if recipient else None,
        "sender": public_user_response(sender) if sender else None,
    }


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


@router.get("/questions")
async def list_questions(
    resolved: bool | None = Query(None),
    author_id: str | None = Query(None, alias="authorId"),
    tag: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    questions, total = await svc.list_questions(resolved, author_id, tag, search, page, limit)
    return {
        "questions": [QuestionResponse.model_validate(q) for q in questions],
        "pagination": paginate(page, limit, total),
        "filters": {"resolved": resolved, "authorId": author_id, "tag": tag, "search": search},
    }


@router.get("/questions/stats")
async def question_stats(
    period: Period = Query("30d"),
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    return await svc.question_stats(period)


@router.get("/questions/{question_id}")
async def question_details(
    question_id: str,
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    question, answers = await svc.question_details(question_id)
    return {
        "question": QuestionResponse.model_validate(question),
        "answers": [AnswerResponse.model_validate(a) for a in answers],
        "answersCount": len(answers),
    }


@router.delete("/questions/{question_id}")
async def delete_question(
    question_id: str,
    _admin_user: User = Depends(require_admin),
    svc: AdminService = Depends(_admin),
) -> dict[str, object]:
    result = await svc.delete_question(question_id)
    return {"message": "Question deleted successfully", **result}
