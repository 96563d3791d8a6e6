"""Enrollment transitions that lose a race against a concurrent request.

Each test loads the enrollment into a second session, lets the API move it
first, then replays the same transition from the stale session.
"""

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from dna_community.database import session_scope
from dna_community.db.models import User, Workshop, WorkshopEnrollment
from dna_community.errors import StateConflictError
from dna_community.workshops.enrollment_service import EnrollmentService

BASE = "/api/v1/workshops"


async def _enroll(client: AsyncClient, workshop_id: str, user: dict[str, Any]):
    return await client.post(f"{BASE}/{workshop_id}/{user['id']}/enroll", headers=user["headers"])


async def _cancel(client: AsyncClient, workshop_id: str, user: dict[str, Any]):
    return await client.delete(f"{BASE}/{workshop_id}/{user['id']}/enroll", headers=user["headers"])


async def _complete(client: AsyncClient, workshop_id: str, user: dict[str, Any]):
    return await client.put(f"{BASE}/{workshop_id}/{user['id']}/complete", json={}, headers=user["headers"])


async def _seats(workshop_id: str) -> tuple[int, int]:
    """(enrolled_count on the workshop, number of rows actually enrolled)."""
    async with session_scope() as db:
        workshop = await db.get(Workshop, workshop_id)
        rows = await db.execute(
            select(func.count()).select_from(WorkshopEnrollment).where(
                WorkshopEnrollment.workshop_id == workshop_id,
                WorkshopEnrollment.status == "enrolled",
            )
        )
        return workshop.enrolled_count, rows.scalar_one()


async def _user_counters(user_id: str) -> tuple[int, int]:
    async with session_scope() as db:
        user = await db.get(User, user_id)
        return user.engagement_xp, user.workshops_completed


class TestStaleTransitions:
    @pytest.mark.asyncio
    async def test_stale_cancel_does_not_free_a_second_seat(
        self, client: AsyncClient, creator, make_user, make_workshop
    ):
        workshop = await make_workshop(creator, maxParticipants=2, allowWaitlist=False)
        ana, ben, cleo, dan = [await make_user(name=name) for name in ("Ana", "Ben", "Cleo", "Dan")]
        await _enroll(client, workshop["id"], ana)
        await _enroll(client, workshop["id"], ben)

        async with session_scope() as db:
            svc = EnrollmentService(db)
            stale = await svc.workshops.get_enrollment(workshop["id"], ana["id"])
            assert stale.status == "enrolled"

            assert (await _cancel(client, workshop["id"], ana)).status_code == 200
            with pytest.raises(StateConflictError, match="Enrollment already cancelled"):
                await svc.cancel(workshop["id"], ana["id"])

        assert await _seats(workshop["id"]) == (1, 1)
        assert (await _enroll(client, workshop["id"], cleo)).json()["status"] == "enrolled"
        response = await _enroll(client, workshop["id"], dan)
        assert response.status_code == 400
        assert response.json()["detail"] == "Workshop is full"
        assert await _seats(workshop["id"]) == (2, 2)

    @pytest.mark.asyncio
    async def test_stale_complete_awards_xp_once(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator, autoGenerateCertificate=False)
        user = await make_user()
        await _enroll(client, workshop["id"], user)

        async with session_scope() as db:
            svc = EnrollmentService(db)
            await svc.workshops.get_enrollment(workshop["id"], user["id"])

            assert (await _complete(client, workshop["id"], user)).status_code == 200
            with pytest.raises(StateConflictError, match="Workshop already completed"):
                await svc.complete(workshop["id"], user["id"])

        assert await _user_counters(user["id"]) == (210, 1)
        async with session_scope() as db:
            assert (await db.get(Workshop, workshop["id"])).completed_count == 1

    @pytest.mark.asyncio
    async def test_stale_re_enroll_claims_one_seat(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator)
        user = await make_user()
        await _enroll(client, workshop["id"], user)
        await _cancel(client, workshop["id"], user)

        async with session_scope() as db:
            svc = EnrollmentService(db)
            stale = await svc.workshops.get_enrollment(workshop["id"], user["id"])
            assert stale.status == "cancelled"

            assert (await _enroll(client, workshop["id"], user)).status_code == 201
            with pytest.raises(StateConflictError, match="User is already enrolled in this workshop"):
                await svc.enroll(workshop["id"], user["id"])

        assert await _seats(workshop["id"]) == (1, 1)
        xp, _ = await _user_counters(user["id"])
        assert xp == 20
