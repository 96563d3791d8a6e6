"""Certificate issuance, verification and regeneration.

PDF rendering is delegated to a :class:`CertificateRenderer`; the default
renderer only produces the storage URL the document would live at.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.config import get_settings
from dna_community.db.base import utcnow
from dna_community.db.models import User, Workshop, WorkshopCertificate, WorkshopEnrollment
from dna_community.errors import NotFoundError, PermissionDeniedError, StateConflictError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase
_CODE_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Lowercase base-36 representation of a non-negative integer."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_verification_code(now_ms: int | None = None) -> str:
    """``DNA-<base36 millisecond timestamp>-<8 uppercase base36 chars>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(8))
    return f"DNA-{to_base36(now_ms)}-{suffix}"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CertificateData:
    workshop_id: str
    workshop_title: str
    user_id: str
    user_name: str
    completed_at: datetime
    verification_code: str
    creator_name: str | None = None
    duration_minutes: int | None = None


class CertificateRenderer(Protocol):
    async def render(self, data: CertificateData) -> str:
        """Render the certificate document and return its public URL."""
        ...


class PlaceholderCertificateRenderer:
    """Returns the deterministic storage URL without producing a document."""

    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    async def render(self, data: CertificateData) -> str:
        filename = f"certificate_{data.user_id}_{data.workshop_id}_{int(time.time() * 1000)}.pdf"
        return f"{self.base_url}/{filename}"


_renderer: CertificateRenderer | None = None


def get_renderer() -> CertificateRenderer:
    """Process-wide renderer (placeholder unless one was installed)."""
    global _renderer  # noqa: PLW0603
    if _renderer is None:
        _renderer = PlaceholderCertificateRenderer(get_settings().certificate_storage_base_url)
    return _renderer


def set_renderer(renderer: CertificateRenderer | None) -> None:
    """Install a renderer; ``None`` restores the placeholder."""
    global _renderer  # noqa: PLW0603
    _renderer = renderer


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class CertificateService:
    """Certificates for completed enrollments."""

    def __init__(self, db: AsyncSession, renderer: CertificateRenderer | None = None) -> None:
        self.db = db
        self.renderer = renderer or get_renderer()

    async def issue_for_enrollment(self, enrollment_id: str) -> WorkshopCertificate:
        """Create a certificate for a completed enrollment and link it. Caller commits."""
        enrollment = await self.db.get(WorkshopEnrollment, enrollment_id)
        if enrollment is None:
            raise NotFoundError("Enrollment not found")
        if enrollment.status != "completed" or enrollment.completed_at is None:
            raise StateConflictError("Certificates are only issued for completed enrollments")
        if enrollment.certificate_id:
            existing = await self.db.get(WorkshopCertificate, enrollment.certificate_id)
            if existing is not None:
                return existing

        workshop = await self.db.get(Workshop, enrollment.workshop_id)
        user = await self.db.get(User, enrollment.user_id)
        if workshop is None or user is None:
            raise NotFoundError("Workshop or user not found")

        code = generate_verification_code()
        url = await self.renderer.render(CertificateData(
            workshop_id=workshop.id,
            workshop_title=workshop.title,
            user_id=user.id,
            user_name=user.name,
            completed_at=enrollment.completed_at,
            verification_code=code,
            creator_name=workshop.creator_name,
            duration_minutes=workshop.duration_minutes,
        ))
        certificate = WorkshopCertificate(
            workshop_id=workshop.id,
            user_id=user.id,
            workshop_title=workshop.title,
            user_name=user.name,
            creator_name=workshop.creator_name,
            verification_code=code,
            certificate_url=url,
            completed_at=enrollment.completed_at,
            issued_at=utcnow(),
        )
        self.db.add(certificate)
        await self.db.flush()

        enrollment.certificate_issued = True
        enrollment.certificate_id = certificate.id
        await self.db.flush()
        logger.info("Certificate %s issued to %s for workshop %s", code, user.id, workshop.id)
        return certificate

    async def get(self, certificate_id: str) -> WorkshopCertificate:
        certificate = await self.db.get(WorkshopCertificate, certificate_id)
        if certificate is None:
            raise NotFoundError("Certificate not found")
        return certificate

    async def verify(self, verification_code: str) -> WorkshopCertificate | None:
        result = await self.db.execute(
            select(WorkshopCertificate).where(WorkshopCertificate.verification_code == verification_code)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: str) -> list[WorkshopCertificate]:
        result = await self.db.execute(
            select(WorkshopCertificate)
            .where(WorkshopCertificate.user_id == user_id)
            .order_by(WorkshopCertificate.issued_at.desc())
        )
        return list(result.scalars().all())

    async def download_url(self, certificate_id: str, uid: str) -> str:
        """Owner-only access to the document URL."""
        certificate = await self.get(certificate_id)
        if certificate.user_id != uid:
            raise PermissionDeniedError("Access to this certificate is denied")
        if not certificate.certificate_url:
            raise NotFoundError("Certificate URL not found")
        return certificate.certificate_url

    async def _rerender(self, certificate: WorkshopCertificate) -> WorkshopCertificate:
        certificate.certificate_url = await self.renderer.render(CertificateData(
            workshop_id=certificate.workshop_id,
            workshop_title=certificate.workshop_title,
            user_id=certificate.user_id,
            user_name=certificate.user_name,
            completed_at=certificate.completed_at,
            verification_code=certificate.verification_code,
            creator_name=certificate.creator_name,
        ))
        certificate.updated_at = utcnow()
        await self.db.flush()
        return certificate

    async def regenerate(self, certificate_id: str, uid: str) -> WorkshopCertificate:
        """Re-render a certificate; allowed for its owner or the workshop creator."""
        certificate = await self.get(certificate_id)
        workshop = await self.db.get(Workshop, certificate.workshop_id)
        creator_id = workshop.creator_id if workshop else None
        if uid not in (certificate.user_id, creator_id):
            raise PermissionDeniedError("Only the certificate owner or the workshop creator can regenerate it")
        await self._rerender(certificate)
        await self.db.commit()
        return certificate

    async def bulk_regenerate(self, workshop_id: str, uid: str) -> dict[str, Any]:
        """Re-render every certificate of a workshop; individual failures are counted, not raised."""
        workshop = await self.db.get(Workshop, workshop_id)
        if workshop is None:
            raise NotFoundError("Workshop not found")
        if workshop.creator_id != uid:
            raise PermissionDeniedError("Only the workshop creator can regenerate certificates in bulk")

        result = await self.db.execute(
            select(WorkshopCertificate).where(WorkshopCertificate.workshop_id == workshop_id)
        )
        certificates = list(result.scalars().all())
        successful = failed = 0
        for certificate in certificates:
            try:
                await self._rerender(certificate)
                successful += 1
            except Exception:
                logger.warning("Regeneration failed for certificate %s", certificate.id, exc_info=True)
                failed += 1
        await self.db.commit()
        return {"total": len(certificates), "successful": successful, "failed": failed}

    async def analytics(self, creator_id: str) -> dict[str, Any]:
        """Certificates issued across the creator's workshops."""
        result = await self.db.execute(select(Workshop).where(Workshop.creator_id == creator_id))
        workshops = list(result.scalars().all())
        if not workshops:
            return {"totalCertificates": 0, "workshopBreakdown": [], "recentCertificates": []}

        ids = [w.id for w in workshops]
        counts_result = await self.db.execute(
            select(WorkshopCertificate.workshop_id, func.count())
            .where(WorkshopCertificate.workshop_id.in_(ids))
            .group_by(WorkshopCertificate.workshop_id)
        )
        counts = dict(counts_result.all())
        recent_result = await self.db.execute(
            select(WorkshopCertificate)
            .where(WorkshopCertificate.workshop_id.in_(ids))
            .order_by(WorkshopCertificate.issued_at.desc())
            .limit(10)
        )

        breakdown = []
        for w in workshops:
            issued = counts.get(w.id, 0)
            seats = w.enrolled_count
            breakdown.append({
                "workshopId": w.id,
                "workshopTitle": w.title,
                "certificatesIssued": issued,
                "completionRate": round(issued / seats * 100, 1) if seats else 0.0,
            })
        return {
            "totalCertificates": sum(counts.values()),
            "workshopBreakdown": breakdown,
            "recentCertificates": [
                {"id": c.id, "userName": c.user_name, "workshopTitle": c.workshop_title, "issuedAt": c.issued_at}
                for c in recent_result.scalars().all()
            ],
        }
