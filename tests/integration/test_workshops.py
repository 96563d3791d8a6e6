"""Workshop creation, publishing, browsing, editing and cancellation."""

from datetime import timedelta
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from dna_community.database import session_scope
from dna_community.db.base import utcnow
from dna_community.db.models import User, WorkshopEnrollment
from dna_community.gamification.xp_service import get_xp

BASE = "/api/v1/workshops"


def _payload(**overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    payload: dict[str, Any] = {
        "title": "Intro to Genomics",
        "description": "Reading a genome end to end",
        "category": "science",
        "tags": ["Genomics"],
        "scheduledDate": (utcnow() + timedelta(days=7)).isoformat(),
        "maxParticipants": 10,
    }
    payload.update(overrides)
    return payload


async def _enroll(client: AsyncClient, workshop_id: str, user: dict[str, Any]):
    return await client.post(f"{BASE}/{workshop_id}/{user['id']}/enroll", headers=user["headers"])


class TestCreate:
    @pytest.mark.asyncio
    async def test_creator_creates_draft_and_earns_xp(self, client: AsyncClient, creator):
        response = await client.post(f"{BASE}/{creator['id']}", json=_payload(), headers=creator["headers"])
        assert response.status_code == 201
        workshop = response.json()["workshop"]
        assert workshop["status"] == "draft"
        assert workshop["tags"] == ["genomics"]
        assert workshop["enrolledCount"] == 0
        assert workshop["creatorName"] == "Carla Creator"

        async with session_scope() as db:
            assert await get_xp(db, creator["id"]) == 50
            user = await db.get(User, creator["id"])
            assert user.workshops_created == 1

    @pytest.mark.asyncio
    async def test_regular_user_cannot_create(self, client: AsyncClient, make_user):
        user = await make_user()
        response = await client.post(f"{BASE}/{user['id']}", json=_payload(), headers=user["headers"])
        assert response.status_code == 403
        assert response.json()["detail"] == "Only workshop creators can create workshops"

    @pytest.mark.asyncio
    async def test_admin_can_create(self, client: AsyncClient, admin):
        response = await client.post(f"{BASE}/{admin['id']}", json=_payload(), headers=admin["headers"])
        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_past_date_rejected(self, client: AsyncClient, creator):
        past = (utcnow() - timedelta(days=1)).isoformat()
        response = await client.post(
            f"{BASE}/{creator['id']}", json=_payload(scheduledDate=past), headers=creator["headers"]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Scheduled date must be in the future"

    @pytest.mark.asyncio
    async def test_missing_title_rejected(self, client: AsyncClient, creator):
        response = await client.post(f"{BASE}/{creator['id']}", json=_payload(title="  "), headers=creator["headers"])
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_garbage_date_rejected(self, client: AsyncClient, creator):
        response = await client.post(
            f"{BASE}/{creator['id']}", json=_payload(scheduledDate="next tuesday"), headers=creator["headers"]
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid scheduled date"


class TestPublish:
    @pytest.mark.asyncio
    async def test_publish_draft(self, client: AsyncClient, creator, make_workshop):
        workshop = await make_workshop(creator)
        assert workshop["status"] == "published"
        assert workshop["publishedAt"] is not None

    @pytest.mark.asyncio
    async def test_cannot_publish_twice(self, client: AsyncClient, creator, make_workshop):
        workshop = await make_workshop(creator)
        response = await client.put(f"{BASE}/{workshop['id']}/{creator['id']}/publish", headers=creator["headers"])
        assert response.status_code == 400
        assert response.json()["detail"] == "Only draft workshops can be published"

    @pytest.mark.asyncio
    async def test_only_creator_can_publish(self, client: AsyncClient, creator, make_user):
        other = await make_user(role="workshop_creator")
        created = await client.post(f"{BASE}/{creator['id']}", json=_payload(), headers=creator["headers"])
        workshop_id = created.json()["workshop"]["id"]
        response = await client.put(f"{BASE}/{workshop_id}/{other['id']}/publish", headers=other["headers"])
        assert response.status_code == 403


class TestBrowse:
    @pytest.mark.asyncio
    async def test_details_for_viewer(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator)
        viewer = await make_user()
        response = await client.get(f"{BASE}/workshop/{workshop['id']}", headers=viewer["headers"])
        data = response.json()
        assert data["canEnroll"] is True
        assert data["remainingSpots"] == 10
        assert data["isCreator"] is False
        assert data["enrollment"] is None

        await _enroll(client, workshop["id"], viewer)
        response = await client.get(f"{BASE}/workshop/{workshop['id']}", headers=viewer["headers"])
        data = response.json()
        assert data["canEnroll"] is False
        assert data["remainingSpots"] == 9
        assert data["enrollment"]["status"] == "enrolled"

    @pytest.mark.asyncio
    async def test_unknown_workshop_is_404(self, client: AsyncClient, make_user):
        viewer = await make_user()
        response = await client.get(f"{BASE}/workshop/missing", headers=viewer["headers"])
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_other_users_enrollment_is_private(
        self, client: AsyncClient, creator, admin, make_user, make_workshop
    ):
        workshop = await make_workshop(creator)
        member = await make_user()
        snoop = await make_user()
        await _enroll(client, workshop["id"], member)
        url = f"{BASE}/workshop/{workshop['id']}?uid={member['id']}"

        response = await client.get(url, headers=snoop["headers"])
        assert response.status_code == 403

        response = await client.get(url, headers=member["headers"])
        assert response.json()["enrollment"]["status"] == "enrolled"

        response = await client.get(url, headers=admin["headers"])
        assert response.status_code == 200
        assert response.json()["enrollment"]["userId"] == member["id"]

    @pytest.mark.asyncio
    async def test_available_lists_only_published(self, client: AsyncClient, creator, make_user, make_workshop):
        await make_workshop(creator, title="Protein Folding")
        await client.post(f"{BASE}/{creator['id']}", json=_payload(title="Draft only"), headers=creator["headers"])
        viewer = await make_user()

        response = await client.get(f"{BASE}/{viewer['id']}/available", headers=viewer["headers"])
        data = response.json()
        assert [w["title"] for w in data["workshops"]] == ["Protein Folding"]
        assert data["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_available_search_and_filters(self, client: AsyncClient, creator, make_user, make_workshop):
        await make_workshop(creator, title="Protein Folding", category="science")
        await make_workshop(creator, title="Lab Safety", category="lab", difficulty="advanced")
        viewer = await make_user()

        by_search = await client.get(
            f"{BASE}/{viewer['id']}/available", params={"search": "protein"}, headers=viewer["headers"]
        )
        assert [w["title"] for w in by_search.json()["workshops"]] == ["Protein Folding"]
        by_difficulty = await client.get(
            f"{BASE}/{viewer['id']}/available", params={"difficulty": "advanced"}, headers=viewer["headers"]
        )
        assert [w["title"] for w in by_difficulty.json()["workshops"]] == ["Lab Safety"]

    @pytest.mark.asyncio
    async def test_created_list_and_status_filter(self, client: AsyncClient, creator, make_workshop):
        await make_workshop(creator)
        await client.post(f"{BASE}/{creator['id']}", json=_payload(), headers=creator["headers"])

        everything = await client.get(f"{BASE}/{creator['id']}/created", headers=creator["headers"])
        assert everything.json()["count"] == 2
        drafts = await client.get(
            f"{BASE}/{creator['id']}/created", params={"status": "draft"}, headers=creator["headers"]
        )
        assert drafts.json()["count"] == 1


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_fields(self, client: AsyncClient, creator, make_workshop):
        workshop = await make_workshop(creator)
        response = await client.put(
            f"{BASE}/{workshop['id']}/{creator['id']}",
            json={"title": "Advanced Genomics", "maxParticipants": 20},
            headers=creator["headers"],
        )
        assert response.status_code == 200
        updated = response.json()["workshop"]
        assert updated["title"] == "Advanced Genomics"
        assert updated["maxParticipants"] == 20
        assert updated["description"] == workshop["description"]

    @pytest.mark.asyncio
    async def test_capacity_below_enrolled_rejected(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator, maxParticipants=3)
        for _ in range(2):
            await _enroll(client, workshop["id"], await make_user())

        response = await client.put(
            f"{BASE}/{workshop['id']}/{creator['id']}",
            json={"maxParticipants": 1},
            headers=creator["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_cancelled_workshop_is_locked(self, client: AsyncClient, creator, make_workshop):
        workshop = await make_workshop(creator)
        await client.put(f"{BASE}/{workshop['id']}/{creator['id']}/cancel", json={}, headers=creator["headers"])
        response = await client.put(
            f"{BASE}/{workshop['id']}/{creator['id']}", json={"title": "New"}, headers=creator["headers"]
        )
        assert response.status_code == 400


class TestCancelWorkshop:
    @pytest.mark.asyncio
    async def test_cancel_closes_open_enrollments_and_notifies(
        self, client: AsyncClient, creator, make_user, make_workshop,
    ):
        workshop = await make_workshop(creator, maxParticipants=1)
        alice = await make_user(name="Alice")
        bruno = await make_user(name="Bruno")
        await _enroll(client, workshop["id"], alice)
        await _enroll(client, workshop["id"], bruno)

        response = await client.put(
            f"{BASE}/{workshop['id']}/{creator['id']}/cancel",
            json={"reason": "Speaker unavailable"},
            headers=creator["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["affectedParticipants"] == 2
        assert data["workshop"]["status"] == "cancelled"
        assert data["workshop"]["enrolledCount"] == 0
        assert data["workshop"]["cancellationReason"] == "Speaker unavailable"

        async with session_scope() as db:
            result = await db.execute(
                select(WorkshopEnrollment).where(WorkshopEnrollment.workshop_id == workshop["id"])
            )
            enrollments = {e.user_id: e for e in result.scalars().all()}
        assert enrollments[alice["id"]].status == "cancelled"
        assert enrollments[alice["id"]].previous_status == "enrolled"
        assert enrollments[bruno["id"]].previous_status == "waitlisted"

        inbox = await client.get(f"/api/v1/notifications/{bruno['id']}", headers=bruno["headers"])
        types = [n["type"] for n in inbox.json()["notifications"]]
        assert types == ["workshop_cancelled"]

    @pytest.mark.asyncio
    async def test_cannot_cancel_twice(self, client: AsyncClient, creator, make_workshop):
        workshop = await make_workshop(creator)
        url = f"{BASE}/{workshop['id']}/{creator['id']}/cancel"
        await client.put(url, json={}, headers=creator["headers"])
        response = await client.put(url, json={}, headers=creator["headers"])
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_enroll_after_cancel_rejected(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator)
        await client.put(f"{BASE}/{workshop['id']}/{creator['id']}/cancel", json={}, headers=creator["headers"])
        response = await _enroll(client, workshop["id"], await make_user())
        assert response.status_code == 400
        assert response.json()["detail"] == "Workshop is not available for enrollment"
