"""Request/response schemas for workshop, enrollment and certificate endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import Field

from dna_community.schemas import CamelModel

Difficulty = Literal["beginner", "intermediate", "advanced"]
MeetingType = Literal["google_meet", "teams", "zoom", "other"]


# ---------------------------------------------------------------------------
# Workshops
# ---------------------------------------------------------------------------


class CreateWorkshopRequest(CamelModel):
    """Title, description and schedule are checked by the service so gaps surface as 400s."""

    title: str = Field("", max_length=256)
    description: str = ""
    category: str = Field("other", max_length=64)
    difficulty: Difficulty = "beginner"
    tags: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    scheduled_date: str = ""
    duration_minutes: int = Field(60, ge=1, le=24 * 60)
    timezone: str = "UTC"
    max_participants: int = Field(..., ge=1, le=10_000)
    allow_waitlist: bool = True
    auto_generate_certificate: bool = True
    meeting_type: MeetingType | None = None
    meeting_link: str | None = None


class UpdateWorkshopRequest(CamelModel):
    """Partial update; only provided fields change."""

    title: str | None = Field(None, max_length=256)
    description: str | None = None
    category: str | None = Field(None, max_length=64)
    difficulty: Difficulty | None = None
    tags: list[str] | None = None
    requirements: list[str] | None = None
    scheduled_date: str | None = None
    duration_minutes: int | None = Field(None, ge=1, le=24 * 60)
    timezone: str | None = None
    max_participants: int | None = Field(None, ge=1, le=10_000)
    allow_waitlist: bool | None = None
    auto_generate_certificate: bool | None = None
    meeting_type: MeetingType | None = None
    meeting_link: str | None = None


class CancelWorkshopRequest(CamelModel):
    reason: str | None = Field(None, max_length=1000)


class WorkshopResponse(CamelModel):
    id: str
    title: str
    description: str
    category: str
    difficulty: str
    tags: list[str]
    requirements: list[str]
    scheduled_date: datetime
    duration_minutes: int
    timezone: str
    max_participants: int
    enrolled_count: int
    completed_count: int
    status: str
    allow_waitlist: bool
    auto_generate_certificate: bool
    meeting_type: str | None = None
    meeting_link: str | None = None
    creator_id: str
    creator_name: str
    cancellation_reason: str | None = None
    published_at: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


class Feedback(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=2000)


class CompleteWorkshopRequest(CamelModel):
    feedback: Feedback | None = None


class EnrollmentResponse(CamelModel):
    id: str
    workshop_id: str
    user_id: str
    status: str
    enrolled_at: datetime
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    previous_status: str | None = None
    re_enrolled_at: datetime | None = None
    feedback: dict[str, Any] | None = None
    certificate_issued: bool
    certificate_id: str | None = None


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


class CertificateResponse(CamelModel):
    id: str
    workshop_id: str
    user_id: str
    workshop_title: str
    user_name: str
    creator_name: str | None = None
    verification_code: str
    certificate_url: str
    completed_at: datetime
    issued_at: datetime
    updated_at: datetime | None = None


def parse_schedule(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError) as e:
        raise ValueError("Invalid scheduled date") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

