"""Notification inbox endpoints."""

from typing import Any

import pytest
from httpx import AsyncClient

from dna_community.social.notification_service import NotificationDraft, send_notifications_safely


async def _notify(user: dict[str, Any], count: int) -> None:
    await send_notifications_safely([
        NotificationDraft(user_id=user["id"], type="system", message=f"Message {i}")
        for i in range(count)
    ])


class TestInbox:
    @pytest.mark.asyncio
    async def test_unread_count_and_list(self, client: AsyncClient, make_user):
        ana = await make_user()
        await _notify(ana, 3)

        count = await client.get(f"/api/v1/notifications/{ana['id']}/unread-count", headers=ana["headers"])
        assert count.json() == {"unreadCount": 3}

        inbox = await client.get(f"/api/v1/notifications/{ana['id']}", headers=ana["headers"])
        data = inbox.json()
        assert data["count"] == 3
        assert all(n["read"] is False for n in data["notifications"])
        assert data["nextBefore"] is None

    @pytest.mark.asyncio
    async def test_limit_sets_next_before(self, client: AsyncClient, make_user):
        ana = await make_user()
        await _notify(ana, 3)
        inbox = await client.get(f"/api/v1/notifications/{ana['id']}", params={"limit": 2}, headers=ana["headers"])
        assert inbox.json()["count"] == 2
        assert inbox.json()["nextBefore"] is not None

    @pytest.mark.asyncio
    async def test_mark_one_read(self, client: AsyncClient, make_user):
        ana = await make_user()
        await _notify(ana, 2)
        inbox = await client.get(f"/api/v1/notifications/{ana['id']}", headers=ana["headers"])
        first = inbox.json()["notifications"][0]["id"]

        response = await client.put(f"/api/v1/notifications/{first}/read", headers=ana["headers"])
        assert response.status_code == 200
        count = await client.get(f"/api/v1/notifications/{ana['id']}/unread-count", headers=ana["headers"])
        assert count.json()["unreadCount"] == 1

    @pytest.mark.asyncio
    async def test_cannot_mark_someone_elses_notification(self, client: AsyncClient, make_user):
        ana = await make_user()
        bob = await make_user()
        await _notify(ana, 1)
        inbox = await client.get(f"/api/v1/notifications/{ana['id']}", headers=ana["headers"])
        notification_id = inbox.json()["notifications"][0]["id"]

        response = await client.put(f"/api/v1/notifications/{notification_id}/read", headers=bob["headers"])
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, make_user):
        ana = await make_user()
        await _notify(ana, 4)
        response = await client.put(f"/api/v1/notifications/{ana['id']}/mark-all-read", headers=ana["headers"])
        assert response.json()["updated"] == 4
        again = await client.put(f"/api/v1/notifications/{ana['id']}/mark-all-read", headers=ana["headers"])
        assert again.json()["updated"] == 0

    @pytest.mark.asyncio
    async def test_other_users_inbox_is_forbidden(self, client: AsyncClient, make_user):
        ana = await make_user()
        bob = await make_user()
        response = await client.get(f"/api/v1/notifications/{ana['id']}", headers=bob["headers"])
        assert response.status_code == 403
