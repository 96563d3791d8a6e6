"""Workshop router: /api/v1/workshops/* (catalogue, enrollment, certificates)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session
from dna_community.db.models import User, WorkshopCertificate
from dna_community.dependencies import require_self
from dna_community.errors import NotFoundError
from dna_community.redis_client import get_optional_redis
from dna_community.schemas import paginate
from dna_community.workshops.certificates import CertificateService
from dna_community.workshops.enrollment_service import EnrollmentService
from dna_community.workshops.schemas import (
    CancelWorkshopRequest,
    CertificateResponse,
    CompleteWorkshopRequest,
    CreateWorkshopRequest,
    EnrollmentResponse,
    UpdateWorkshopRequest,
    WorkshopResponse,
)
from dna_community.workshops.service import WorkshopService, can_enroll, remaining_spots

router = APIRouter(prefix="/api/v1/workshops", tags=["Workshops"])


def _workshops(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_optional_redis),
) -> WorkshopService:
    return WorkshopService(db, redis)


def _enrollments(
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_optional_redis),
) -> EnrollmentService:
    return EnrollmentService(db, redis)


def _certificates(db: AsyncSession = Depends(get_session)) -> CertificateService:
    return CertificateService(db)


def _certificate(certificate: WorkshopCertificate | None) -> CertificateResponse | None:
    return CertificateResponse.model_validate(certificate) if certificate is not None else None


# ---------------------------------------------------------------------------
# Fixed-prefix routes (declared before the /{uid} and /{workshopId}/{uid} ones)
# ---------------------------------------------------------------------------


@router.get("/workshop/{workshop_id}")
async def get_workshop(
    workshop_id: str,
    uid: str | None = Query(None),
    user: User = Depends(get_current_user),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    """Workshop details with the viewer's enrollment and whether they can enroll.

    ``uid`` selects another viewer; only that user or an admin may pass it.
    """
    if uid is not None:
        await require_self(uid, user)
    workshop = await svc.get(workshop_id)
    viewer_id = uid or user.id
    enrollment = await svc.get_enrollment(workshop.id, viewer_id)
    return {
        "workshop": WorkshopResponse.model_validate(workshop),
        "canEnroll": can_enroll(workshop) and (enrollment is None or enrollment.status in ("cancelled", "no_show")),
        "remainingSpots": remaining_spots(workshop),
        "isCreator": workshop.creator_id == viewer_id,
        "enrollment": EnrollmentResponse.model_validate(enrollment) if enrollment else None,
    }


@router.get("/certificate/verify/{verification_code}")
async def verify_certificate(
    verification_code: str,
    svc: CertificateService = Depends(_certificates),
) -> dict[str, object]:
    """Public lookup by verification code."""
    certificate = await svc.verify(verification_code)
    if certificate is None:
        raise NotFoundError("Certificate not found", valid=False)
    return {"valid": True, "certificate": _certificate(certificate)}


@router.get("/certificate/{certificate_id}", response_model=CertificateResponse)
async def get_certificate(
    certificate_id: str,
    _user: User = Depends(get_current_user),
    svc: CertificateService = Depends(_certificates),
) -> CertificateResponse:
    return CertificateResponse.model_validate(await svc.get(certificate_id))


@router.get("/certificate/{certificate_id}/download")
async def download_certificate(
    certificate_id: str,
    user: User = Depends(get_current_user),
    svc: CertificateService = Depends(_certificates),
) -> RedirectResponse:
    url = await svc.download_url(certificate_id, user.id)
    return RedirectResponse(url, status_code=302)


@router.put("/certificate/{certificate_id}/regenerate")
async def regenerate_certificate(
    certificate_id: str,
    user: User = Depends(get_current_user),
    svc: CertificateService = Depends(_certificates),
) -> dict[str, object]:
    certificate = await svc.regenerate(certificate_id, user.id)
    return {"message": "Certificate regenerated successfully", "certificate": _certificate(certificate)}


# ---------------------------------------------------------------------------
# Per-user routes
# ---------------------------------------------------------------------------


@router.post("/{uid}", status_code=201)
async def create_workshop(
    uid: str,
    body: CreateWorkshopRequest,
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    workshop = await svc.create(uid, body)
    return {"message": "Workshop created successfully", "workshop": WorkshopResponse.model_validate(workshop)}


@router.get("/{uid}/available")
async def list_available(
    uid: str,
    category: str | None = Query(None),
    difficulty: str | None = Query(None),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    workshops, total = await svc.list_available(
        category=category, difficulty=difficulty, search=search, page=page, limit=limit,
    )
    return {
        "workshops": [WorkshopResponse.model_validate(w) for w in workshops],
        "pagination": paginate(page, limit, total),
        "filters": {"category": category, "difficulty": difficulty, "search": search},
    }


@router.get("/{uid}/created")
async def list_created(
    uid: str,
    status: str | None = Query(None),
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    workshops = await svc.list_created(uid, status)
    return {
        "workshops": [WorkshopResponse.model_validate(w) for w in workshops],
        "count": len(workshops),
        "filters": {"status": status},
    }


@router.get("/{uid}/stats")
async def user_stats(
    uid: str,
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    return {"stats": await svc.user_stats(uid)}


@router.get("/{uid}/enrollments")
async def list_enrollments(
    uid: str,
    status: str | None = Query(None),
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    rows = await svc.list_for_user(uid, status)
    return {
        "enrollments": [
            {
                "enrollment": EnrollmentResponse.model_validate(enrollment),
                "workshop": WorkshopResponse.model_validate(workshop),
            }
            for enrollment, workshop in rows
        ],
        "count": len(rows),
        "filters": {"status": status},
    }


@router.get("/{uid}/certificates")
async def list_certificates(
    uid: str,
    _user: User = Depends(require_self),
    svc: CertificateService = Depends(_certificates),
) -> dict[str, object]:
    certificates = await svc.list_for_user(uid)
    return {"certificates": [_certificate(c) for c in certificates], "count": len(certificates)}


@router.get("/{uid}/certificate-analytics")
async def certificate_analytics(
    uid: str,
    _user: User = Depends(require_self),
    svc: CertificateService = Depends(_certificates),
) -> dict[str, object]:
    return {"analytics": await svc.analytics(uid)}


# ---------------------------------------------------------------------------
# Per-workshop routes
# ---------------------------------------------------------------------------


@router.put("/{workshop_id}/{uid}")
async def update_workshop(
    workshop_id: str,
    uid: str,
    body: UpdateWorkshopRequest,
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    workshop = await svc.update(workshop_id, uid, body)
    return {"message": "Workshop updated successfully", "workshop": WorkshopResponse.model_validate(workshop)}


@router.put("/{workshop_id}/{uid}/publish")
async def publish_workshop(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    workshop = await svc.publish(workshop_id, uid)
    return {"message": "Workshop published successfully", "workshop": WorkshopResponse.model_validate(workshop)}


@router.put("/{workshop_id}/{uid}/cancel")
async def cancel_workshop(
    workshop_id: str,
    uid: str,
    body: CancelWorkshopRequest | None = None,
    _user: User = Depends(require_self),
    svc: WorkshopService = Depends(_workshops),
) -> dict[str, object]:
    result = await svc.cancel(workshop_id, uid, body.reason if body else None)
    return {
        "message": "Workshop cancelled successfully",
        "workshop": WorkshopResponse.model_validate(result["workshop"]),
        "affectedParticipants": result["affectedParticipants"],
    }


@router.post("/{workshop_id}/{uid}/enroll", status_code=201)
async def enroll(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    result = await svc.enroll(workshop_id, uid)
    return {
        "message": result["message"],
        "workshop": WorkshopResponse.model_validate(result["workshop"]),
        "enrollment": EnrollmentResponse.model_validate(result["enrollment"]),
        "status": result["status"],
        "xpAwarded": result["xpAwarded"],
    }


@router.delete("/{workshop_id}/{uid}/enroll")
async def cancel_enrollment(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    enrollment = await svc.cancel(workshop_id, uid)
    return {"message": "Enrollment cancelled successfully", "enrollment": EnrollmentResponse.model_validate(enrollment)}


@router.put("/{workshop_id}/{uid}/complete")
async def complete_workshop(
    workshop_id: str,
    uid: str,
    body: CompleteWorkshopRequest | None = None,
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    result = await svc.complete(workshop_id, uid, body.feedback if body else None)
    return {
        "message": result["message"],
        "enrollment": EnrollmentResponse.model_validate(result["enrollment"]),
        "xpAwarded": result["xpAwarded"],
        "certificate": _certificate(result["certificate"]),
        "feedback": result["feedback"],
    }


@router.get("/{workshop_id}/{uid}/participants")
async def list_participants(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    result = await svc.participants(workshop_id, uid)
    return {
        "workshop": WorkshopResponse.model_validate(result["workshop"]),
        "participants": [
            {
                "enrollment": EnrollmentResponse.model_validate(p["enrollment"]),
                "userName": p["userName"],
                "userEmail": p["userEmail"],
            }
            for p in result["participants"]
        ],
        "summary": result["summary"],
    }


@router.post("/{workshop_id}/{uid}/waitlist/promote")
async def promote_waitlisted(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: EnrollmentService = Depends(_enrollments),
) -> dict[str, object]:
    enrollment = await svc.promote_waitlisted(workshop_id, uid)
    return {"message": "Waitlisted participant enrolled", "enrollment": EnrollmentResponse.model_validate(enrollment)}


@router.put("/{workshop_id}/{uid}/certificates/regenerate")
async def bulk_regenerate_certificates(
    workshop_id: str,
    uid: str,
    _user: User = Depends(require_self),
    svc: CertificateService = Depends(_certificates),
) -> dict[str, object]:
    results = await svc.bulk_regenerate(workshop_id, uid)
    return {"message": "Bulk regeneration finished", "results": results}
