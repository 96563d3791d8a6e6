"""Enrollment state machine: enroll, cancel, complete and waitlist promotion.

Seats are claimed with a conditional ``UPDATE`` on the workshop row so two
requests racing for the last seat can never both win. Every transition
commits its record change, counter change and XP grant as one unit; the
notifications and certificate issuance that follow run in their own sessions
and never undo the transition.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, NoReturn

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from dna_community.config import get_settings
from dna_community.database import session_scope
from dna_community.db.base import utcnow
from dna_community.db.models import User, Workshop, WorkshopCertificate, WorkshopEnrollment
from dna_community.errors import NotFoundError, StateConflictError
from dna_community.gamification.xp_service import grant_xp
from dna_community.social.notification_service import NotificationDraft, send_notifications_safely
from dna_community.workshops.certificates import CertificateService
from dna_community.workshops.schemas import Feedback
from dna_community.workshops.service import WorkshopService, enrollment_window_open
from dna_community.workshops.states import ALREADY_ENROLLED_MESSAGES, validate_enrollment_transition

logger = logging.getLogger(__name__)

PARTICIPANT_STATUSES = ("enrolled", "waitlisted", "attended", "completed", "no_show", "cancelled")


def _check_enrollable(status: str) -> None:
    if status in ALREADY_ENROLLED_MESSAGES:
        raise StateConflictError(ALREADY_ENROLLED_MESSAGES[status])


def _check_cancellable(status: str) -> None:
    if status == "cancelled":
        raise StateConflictError("Enrollment already cancelled")
    if status == "completed":
        raise StateConflictError("Cannot cancel a completed workshop")
    validate_enrollment_transition(status, "cancelled")


def _check_completable(status: str) -> None:
    if status == "completed":
        raise StateConflictError("Workshop already completed")
    if status not in ("enrolled", "attended"):
        raise StateConflictError("User did not attend the workshop")


class EnrollmentService:
    """A user's relationship to a single workshop."""

    def __init__(self, db: AsyncSession, redis: object | None = None) -> None:
        self.db = db
        self.redis = redis
        self.workshops = WorkshopService(db, redis)

    # --- Seat counter ---

    async def _claim_seat(self, workshop_id: str) -> bool:
        """Take one seat if the workshop is published and not full."""
        result = await self.db.execute(
            update(Workshop)
            .where(
                Workshop.id == workshop_id,
                Workshop.status == "published",
                Workshop.enrolled_count < Workshop.max_participants,
            )
            .values(enrolled_count=Workshop.enrolled_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount > 0

    async def _release_seat(self, workshop_id: str) -> None:
        await self.db.execute(
            update(Workshop)
            .where(Workshop.id == workshop_id, Workshop.enrolled_count > 0)
            .values(enrolled_count=Workshop.enrolled_count - 1)
            .execution_options(synchronize_session="fetch")
        )

    async def _require_enrollment(self, workshop_id: str, user_id: str) -> WorkshopEnrollment:
        enrollment = await self.workshops.get_enrollment(workshop_id, user_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        return enrollment

    async def _transition(
        self, enrollment: WorkshopEnrollment, from_status: str, **values: Any  # noqa: ANN401
    ) -> bool:
        """Move the row out of ``from_status``; False when another request moved it first."""
        values = {"previous_status": from_status, "updated_at": utcnow(), **values}
        result = await self.db.execute(
            update(WorkshopEnrollment)
            .where(WorkshopEnrollment.id == enrollment.id, WorkshopEnrollment.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return False
        for key, value in values.items():
            set_committed_value(enrollment, key, value)
        return True

    async def _lost_race(self, enrollment: WorkshopEnrollment, check: Callable[[str], None]) -> NoReturn:
        """Undo the unit of work and report the status the winning request left behind."""
        await self.db.rollback()
        await self.db.refresh(enrollment)
        check(enrollment.status)
        raise StateConflictError("Enrollment was changed by another request")

    # --- Enroll ---

    async def enroll(self, workshop_id: str, uid: str) -> dict[str, Any]:
        """Enroll (or waitlist) a user; a cancelled record is reused."""
        workshop = await self.workshops.get(workshop_id)
        if workshop.status != "published":
            raise StateConflictError("Workshop is not available for enrollment")
        if not enrollment_window_open(workshop):
            raise StateConflictError("Enrollment period has ended")

        existing = await self.workshops.get_enrollment(workshop.id, uid)
        if existing is not None:
            _check_enrollable(existing.status)
            validate_enrollment_transition(existing.status, "enrolled")

        user = await self.db.get(User, uid)
        if user is None or not user.is_active:
            raise NotFoundError("User not found")

        if await self._claim_seat(workshop.id):
            status = "enrolled"
        elif workshop.allow_waitlist:
            status = "waitlisted"
        else:
            raise StateConflictError("Workshop is full")

        now = utcnow()
        if existing is not None:
            reused = await self._transition(
                existing,
                existing.status,
                status=status,
                re_enrolled_at=now,
                enrolled_at=now,
                cancelled_at=None,
                completed_at=None,
            )
            if not reused:
                await self._lost_race(existing, _check_enrollable)
            enrollment = existing
        else:
            enrollment = WorkshopEnrollment(
                workshop_id=workshop.id,
                user_id=user.id,
                status=status,
                enrolled_at=now,
                certificate_issued=False,
            )
            self.db.add(enrollment)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise StateConflictError(ALREADY_ENROLLED_MESSAGES["enrolled"]) from e

        xp = get_settings().xp_workshop_enroll if status == "enrolled" else 0
        if xp:
            await grant_xp(self.db, user.id, xp, "workshop_enrolled")
        await self.db.commit()
        await self.db.refresh(workshop)
        logger.info("User %s %s in workshop %s", user.id, status, workshop.id)

        if status == "enrolled":
            await send_notifications_safely([
                NotificationDraft(
                    user_id=user.id,
                    type="workshop_enrollment",
                    from_user_id=workshop.creator_id,
                    from_user_name=workshop.creator_name,
                    target_id=workshop.id,
                    target_type="workshop",
                    message=f'You are enrolled in "{workshop.title}"',
                    metadata={"scheduledDate": workshop.scheduled_date.isoformat()},
                ),
                NotificationDraft(
                    user_id=workshop.creator_id,
                    type="workshop_enrollment",
                    from_user_id=user.id,
                    from_user_name=user.name,
                    target_id=workshop.id,
                    target_type="workshop",
                    message=f'{user.name} enrolled in your workshop "{workshop.title}"',
                ),
            ], self.redis)

        return {
            "message": "Enrollment successful" if status == "enrolled" else "Added to the waitlist",
            "workshop": workshop,
            "enrollment": enrollment,
            "status": status,
            "xpAwarded": xp,
        }

    # --- Cancel ---

    async def cancel(self, workshop_id: str, uid: str) -> WorkshopEnrollment:
        """Cancel an enrollment; frees the seat when it held one. No automatic promotion."""
        enrollment = await self._require_enrollment(workshop_id, uid)
        _check_cancellable(enrollment.status)

        held_seat = enrollment.status == "enrolled"
        if not await self._transition(enrollment, enrollment.status, status="cancelled", cancelled_at=utcnow()):
            await self._lost_race(enrollment, _check_cancellable)
        if held_seat:
            await self._release_seat(workshop_id)
        await self.db.commit()
        logger.info("User %s cancelled enrollment in workshop %s", uid, workshop_id)
        return enrollment

    # --- Complete ---

    async def complete(self, workshop_id: str, uid: str, feedback: Feedback | None = None) -> dict[str, Any]:
        """Mark an enrollment completed, award XP, then try to issue a certificate."""
        enrollment = await self._require_enrollment(workshop_id, uid)
        _check_completable(enrollment.status)
        workshop = await self.workshops.get(workshop_id)

        xp = get_settings().xp_workshop_complete
        now = utcnow()
        values: dict[str, Any] = {"status": "completed", "completed_at": now}
        if feedback is not None:
            values["feedback"] = {
                "rating": feedback.rating,
                "comment": feedback.comment,
                "submittedAt": now.isoformat(),
            }
        if not await self._transition(enrollment, enrollment.status, **values):
            await self._lost_race(enrollment, _check_completable)
        await self.db.execute(
            update(Workshop)
            .where(Workshop.id == workshop.id)
            .values(completed_count=Workshop.completed_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(
            update(User)
            .where(User.id == uid)
            .values(workshops_completed=User.workshops_completed + 1)
            .execution_options(synchronize_session="fetch")
        )
        await grant_xp(self.db, uid, xp, "workshop_completed")
        await self.db.commit()
        logger.info("User %s completed workshop %s", uid, workshop.id)

        certificate = None
        if workshop.auto_generate_certificate:
            certificate = await self._issue_certificate_safely(enrollment.id)
            if certificate is not None:
                await self.db.refresh(enrollment)

        drafts = [NotificationDraft(
            user_id=uid,
            type="workshop_completed",
            from_user_id=workshop.creator_id,
            from_user_name=workshop.creator_name,
            target_id=workshop.id,
            target_type="workshop",
            message=f'You completed "{workshop.title}" and earned {xp} XP',
            metadata={"xpAwarded": xp},
        )]
        if certificate is not None:
            drafts.append(NotificationDraft(
                user_id=uid,
                type="certificate_issued",
                target_id=certificate.id,
                target_type="certificate",
                message=f'Your certificate for "{workshop.title}" is ready',
                metadata={"verificationCode": certificate.verification_code},
            ))
        await send_notifications_safely(drafts, self.redis)

        return {
            "message": "Workshop completed successfully",
            "enrollment": enrollment,
            "xpAwarded": xp,
            "certificate": certificate,
            "feedback": enrollment.feedback,
        }

    async def _issue_certificate_safely(self, enrollment_id: str) -> WorkshopCertificate | None:
        try:
            async with session_scope() as cert_db:
                certificate = await CertificateService(cert_db).issue_for_enrollment(enrollment_id)
                await cert_db.commit()
                return certificate
        except Exception:
            logger.warning("Certificate issuance failed for enrollment %s", enrollment_id, exc_info=True)
            return None

    # --- Waitlist ---

    async def promote_waitlisted(self, workshop_id: str, uid: str) -> WorkshopEnrollment:
        """Creator action: move the oldest waitlisted enrollment into a free seat."""
        workshop = await self.workshops.get_owned(workshop_id, uid, "manage the waitlist")
        result = await self.db.execute(
            select(WorkshopEnrollment)
            .where(WorkshopEnrollment.workshop_id == workshop.id, WorkshopEnrollment.status == "waitlisted")
            .order_by(WorkshopEnrollment.enrolled_at.asc())
            .limit(1)
        )
        enrollment = result.scalar_one_or_none()
        if enrollment is None:
            raise StateConflictError("No waitlisted enrollments")
        if not await self._claim_seat(workshop.id):
            raise StateConflictError("Workshop is full")

        if not await self._transition(enrollment, "waitlisted", status="enrolled"):
            await self.db.rollback()
            raise StateConflictError("Enrollment is no longer waitlisted")
        await grant_xp(self.db, enrollment.user_id, get_settings().xp_workshop_enroll, "workshop_enrolled")
        await self.db.commit()
        logger.info("Promoted user %s from waitlist of workshop %s", enrollment.user_id, workshop.id)

        await send_notifications_safely([NotificationDraft(
            user_id=enrollment.user_id,
            type="workshop_enrollment",
            from_user_id=workshop.creator_id,
            from_user_name=workshop.creator_name,
            target_id=workshop.id,
            target_type="workshop",
            message=f'A seat opened up: you are now enrolled in "{workshop.title}"',
        )], self.redis)
        return enrollment

    # --- Listings ---

    async def list_for_user(
        self, uid: str, status: str | None = None
    ) -> list[tuple[WorkshopEnrollment, Workshop]]:
        query = (
            select(WorkshopEnrollment, Workshop)
            .join(Workshop, Workshop.id == WorkshopEnrollment.workshop_id)
            .where(WorkshopEnrollment.user_id == uid)
        )
        if status:
            query = query.where(WorkshopEnrollment.status == status)
        result = await self.db.execute(query.order_by(WorkshopEnrollment.enrolled_at.desc()))
        return [(row[0], row[1]) for row in result.all()]

    async def participants(self, workshop_id: str, uid: str) -> dict[str, Any]:
        """Creator view of every enrollment with a per-status summary."""
        workshop = await self.workshops.get_owned(workshop_id, uid, "view participants")
        result = await self.db.execute(
            select(WorkshopEnrollment, User.name, User.email)
            .join(User, User.id == WorkshopEnrollment.user_id)
            .where(WorkshopEnrollment.workshop_id == workshop.id)
            .order_by(WorkshopEnrollment.enrolled_at.asc())
        )
        rows = result.all()
        counts = await self.db.execute(
            select(WorkshopEnrollment.status, func.count())
            .where(WorkshopEnrollment.workshop_id == workshop.id)
            .group_by(WorkshopEnrollment.status)
        )
        by_status = dict(counts.all())
        summary = {"total": len(rows)}
        for status in PARTICIPANT_STATUSES:
            key = "noShow" if status == "no_show" else status
            summary[key] = by_status.get(status, 0)
        return {
            "workshop": workshop,
            "participants": [
                {"enrollment": enrollment, "userName": name, "userEmail": email}
                for enrollment, name, email in rows
            ],
            "summary": summary,
        }
