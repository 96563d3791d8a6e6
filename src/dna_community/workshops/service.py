"""Workshop service: creation, editing, publishing, cancellation and browsing."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.config import get_settings
from dna_community.db.base import utcnow
from dna_community.db.models import User, Workshop, WorkshopCertificate, WorkshopEnrollment
from dna_community.errors import NotFoundError, PermissionDeniedError, StateConflictError, ValidationError
from dna_community.gamification.xp_service import grant_xp
from dna_community.social.notification_service import NotificationDraft, send_notifications_safely
from dna_community.users.service import require_user
from dna_community.workshops.schemas import CreateWorkshopRequest, UpdateWorkshopRequest, parse_schedule
from dna_community.workshops.states import validate_workshop_transition

logger = logging.getLogger(__name__)

CREATOR_ROLE = "workshop_creator"
LOCKED_FOR_EDIT = frozenset({"ongoing", "completed", "cancelled"})


# ---------------------------------------------------------------------------
# Enrollment window policy
# ---------------------------------------------------------------------------


def enrollment_deadline(workshop: Workshop) -> datetime:
    """Last moment enrollment is accepted (``enrollment_cutoff_hours`` before start)."""
    return workshop.scheduled_date - timedelta(hours=get_settings().enrollment_cutoff_hours)


def enrollment_window_open(workshop: Workshop, now: datetime | None = None) -> bool:
    return (now or utcnow()) < enrollment_deadline(workshop)


def remaining_spots(workshop: Workshop) -> int:
    return max(0, workshop.max_participants - workshop.enrolled_count)


def can_enroll(workshop: Workshop, now: datetime | None = None) -> bool:
    """Published, inside the enrollment window, and either a free seat or a waitlist."""
    return (
        workshop.status == "published"
        and enrollment_window_open(workshop, now)
        and (remaining_spots(workshop) > 0 or workshop.allow_waitlist)
    )


def _parse_future_date(value: str) -> datetime:
    if not value:
        raise ValidationError("Scheduled date is required")
    try:
        scheduled = parse_schedule(value)
    except ValueError as e:
        raise ValidationError("Invalid scheduled date") from e
    if scheduled <= utcnow():
        raise ValidationError("Scheduled date must be in the future")
    return scheduled


class WorkshopService:
    """Workshop catalogue owned by creator-role users."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis

    async def get(self, workshop_id: str) -> Workshop:
        workshop = await self.db.get(Workshop, workshop_id)
        if workshop is None:
            raise NotFoundError("Workshop not found")
        return workshop

    async def get_owned(self, workshop_id: str, uid: str, action: str) -> Workshop:
        """Workshop the caller created, else 403."""
        workshop = await self.get(workshop_id)
        if workshop.creator_id != uid:
            raise PermissionDeniedError(f"Only the workshop creator can {action}")
        return workshop

    # --- Create / edit ---

    async def create(self, uid: str, body: CreateWorkshopRequest) -> Workshop:
        """Create a draft workshop; the creator earns XP."""
        creator = await require_user(self.db, uid)
        if creator.role != CREATOR_ROLE and not creator.has_admin_access:
            raise PermissionDeniedError("Only workshop creators can create workshops")
        if not body.title.strip() or not body.description.strip():
            raise ValidationError("Title and description are required")
        scheduled = _parse_future_date(body.scheduled_date)

        workshop = Workshop(
            title=body.title.strip(),
            description=body.description.strip(),
            category=body.category,
            difficulty=body.difficulty,
            tags=[t.strip().lower() for t in body.tags if t.strip()],
            requirements=body.requirements,
            scheduled_date=scheduled,
            duration_minutes=body.duration_minutes,
            timezone=body.timezone,
            max_participants=body.max_participants,
            enrolled_count=0,
            completed_count=0,
            status="draft",
            allow_waitlist=body.allow_waitlist,
            auto_generate_certificate=body.auto_generate_certificate,
            meeting_type=body.meeting_type,
            meeting_link=body.meeting_link,
            creator_id=creator.id,
            creator_name=creator.name,
        )
        self.db.add(workshop)
        await self.db.flush()
        await grant_xp(self.db, creator.id, get_settings().xp_workshop_create, "workshop_created")
        await self.db.execute(
            update(User)
            .where(User.id == creator.id)
            .values(workshops_created=User.workshops_created + 1)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        logger.info("Workshop %s created by %s", workshop.id, creator.id)
        return workshop

    async def update(self, workshop_id: str, uid: str, body: UpdateWorkshopRequest) -> Workshop:
        workshop = await self.get_owned(workshop_id, uid, "edit this workshop")
        if workshop.status in LOCKED_FOR_EDIT:
            raise StateConflictError(f"Cannot edit a workshop that is {workshop.status}")

        changes = body.model_dump(exclude_unset=True)
        if "scheduled_date" in changes:
            changes["scheduled_date"] = _parse_future_date(changes["scheduled_date"] or "")
        for field in ("title", "description"):
            if field in changes and not (changes[field] or "").strip():
                raise ValidationError(f"{field.capitalize()} cannot be empty")
        if changes.get("max_participants") is not None and changes["max_participants"] < workshop.enrolled_count:
            raise ValidationError("Capacity cannot be lower than the number of enrolled participants")

        for field, value in changes.items():
            if value is None and field not in ("meeting_type", "meeting_link"):
                continue
            setattr(workshop, field, value)
        await self.db.commit()
        logger.info("Workshop %s updated by %s", workshop.id, uid)
        return workshop

    async def publish(self, workshop_id: str, uid: str) -> Workshop:
        workshop = await self.get_owned(workshop_id, uid, "publish this workshop")
        if workshop.status != "draft":
            raise StateConflictError("Only draft workshops can be published")
        if not enrollment_window_open(workshop):
            raise StateConflictError("Cannot publish a workshop whose enrollment window has closed")
        validate_workshop_transition(workshop.status, "published")
        workshop.status = "published"
        workshop.published_at = utcnow()
        await self.db.commit()
        logger.info("Workshop %s published", workshop.id)
        return workshop

    async def cancel(self, workshop_id: str, uid: str, reason: str | None = None) -> dict[str, Any]:
        """Cancel the workshop and every open enrollment, then notify participants."""
        workshop = await self.get_owned(workshop_id, uid, "cancel this workshop")
        if workshop.status in ("completed", "cancelled"):
            raise StateConflictError(f"Cannot cancel a workshop that is already {workshop.status}")
        validate_workshop_transition(workshop.status, "cancelled")

        open_statuses = ("enrolled", "waitlisted")
        result = await self.db.execute(
            select(WorkshopEnrollment.user_id).where(
                WorkshopEnrollment.workshop_id == workshop.id,
                WorkshopEnrollment.status.in_(open_statuses),
            )
        )
        affected = [row[0] for row in result]

        now = utcnow()
        await self.db.execute(
            update(WorkshopEnrollment)
            .where(WorkshopEnrollment.workshop_id == workshop.id, WorkshopEnrollment.status.in_(open_statuses))
            .values(previous_status=WorkshopEnrollment.status, status="cancelled", cancelled_at=now)
            .execution_options(synchronize_session="fetch")
        )
        workshop.status = "cancelled"
        workshop.cancelled_at = now
        workshop.cancellation_reason = reason
        workshop.enrolled_count = 0
        await self.db.commit()
        logger.info("Workshop %s cancelled, %d enrollments closed", workshop.id, len(affected))

        suffix = f" Reason: {reason}" if reason else ""
        await send_notifications_safely([
            NotificationDraft(
                user_id=user_id,
                type="workshop_cancelled",
                from_user_id=workshop.creator_id,
                from_user_name=workshop.creator_name,
                target_id=workshop.id,
                target_type="workshop",
                message=f'The workshop "{workshop.title}" has been cancelled.{suffix}',
                metadata={"reason": reason},
            )
            for user_id in affected
        ], self.redis)
        return {"workshop": workshop, "affectedParticipants": len(affected)}

    # --- Browsing ---

    async def list_available(
        self,
        category: str | None = None,
        difficulty: str | None = None,
        search: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Workshop], int]:
        """Published workshops still in the future, soonest first."""
        query = select(Workshop).where(Workshop.status == "published", Workshop.scheduled_date > utcnow())
        if category:
            query = query.where(Workshop.category == category)
        if difficulty:
            query = query.where(Workshop.difficulty == difficulty)
        result = await self.db.execute(query.order_by(Workshop.scheduled_date.asc()))
        workshops = list(result.scalars().all())

        if search:
            term = search.lower()
            workshops = [
                w for w in workshops
                if term in w.title.lower() or term in w.description.lower() or any(term in t for t in w.tags or [])
            ]
        total = len(workshops)
        start = (page - 1) * limit
        return workshops[start:start + limit], total

    async def list_created(self, uid: str, status: str | None = None) -> list[Workshop]:
        query = select(Workshop).where(Workshop.creator_id == uid)
        if status:
            query = query.where(Workshop.status == status)
        result = await self.db.execute(query.order_by(Workshop.created_at.desc()))
        return list(result.scalars().all())

    async def get_enrollment(self, workshop_id: str, user_id: str) -> WorkshopEnrollment | None:
        result = await self.db.execute(
            select(WorkshopEnrollment).where(
                WorkshopEnrollment.workshop_id == workshop_id,
                WorkshopEnrollment.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def user_stats(self, uid: str) -> dict[str, Any]:
        """Counts for a user's dashboard, as participant and as creator."""
        user = await require_user(self.db, uid)

        enrollment_rows = await self.db.execute(
            select(WorkshopEnrollment.status, func.count())
            .where(WorkshopEnrollment.user_id == uid)
            .group_by(WorkshopEnrollment.status)
        )
        by_status = dict(enrollment_rows.all())

        created_rows = await self.db.execute(
            select(
                func.count(Workshop.id),
                func.coalesce(func.sum(Workshop.enrolled_count), 0),
                func.coalesce(func.sum(Workshop.completed_count), 0),
            ).where(Workshop.creator_id == uid)
        )
        created, participants, completions = created_rows.one()

        certificates = await self.db.execute(
            select(func.count()).select_from(WorkshopCertificate).where(WorkshopCertificate.user_id == uid)
        )
        return {
            "enrolled": by_status.get("enrolled", 0),
            "waitlisted": by_status.get("waitlisted", 0),
            "completed": by_status.get("completed", 0),
            "cancelled": by_status.get("cancelled", 0),
            "certificates": certificates.scalar_one(),
            "workshopsCreated": created,
            "totalParticipants": int(participants),
            "totalCompletions": int(completions),
            "engagementXp": user.engagement_xp,
        }
