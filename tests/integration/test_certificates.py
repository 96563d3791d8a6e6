"""Certificate lookup, verification, download and regeneration."""

from typing import Any

import pytest
from httpx import AsyncClient

from dna_community.workshops.certificates import CertificateData, set_renderer

BASE = "/api/v1/workshops"


class RecordingRenderer:
    def __init__(self) -> None:
        self.rendered: list[CertificateData] = []

    async def render(self, data: CertificateData) -> str:
        self.rendered.append(data)
        return f"https://files.example.com/{data.verification_code}-{len(self.rendered)}.pdf"


async def _completed_certificate(
    client: AsyncClient, creator: dict[str, Any], user: dict[str, Any], make_workshop,
) -> dict[str, Any]:
    workshop = await make_workshop(creator)
    await client.post(f"{BASE}/{workshop['id']}/{user['id']}/enroll", headers=user["headers"])
    response = await client.put(f"{BASE}/{workshop['id']}/{user['id']}/complete", json={}, headers=user["headers"])
    assert response.status_code == 200, response.text
    return response.json()["certificate"]


class TestVerify:
    @pytest.mark.asyncio
    async def test_verify_is_public(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user(name="Fatima")
        certificate = await _completed_certificate(client, creator, user, make_workshop)

        response = await client.get(f"{BASE}/certificate/verify/{certificate['verificationCode']}")
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["certificate"]["userName"] == "Fatima"
        assert data["certificate"]["workshopTitle"] == "Intro to Genomics"

    @pytest.mark.asyncio
    async def test_unknown_code(self, client: AsyncClient):
        response = await client.get(f"{BASE}/certificate/verify/DNA-nope-AAAAAAAA")
        assert response.status_code == 404
        assert response.json() == {"detail": "Certificate not found", "valid": False}


class TestAccess:
    @pytest.mark.asyncio
    async def test_get_and_list(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        certificate = await _completed_certificate(client, creator, user, make_workshop)

        response = await client.get(f"{BASE}/certificate/{certificate['id']}", headers=user["headers"])
        assert response.json()["verificationCode"] == certificate["verificationCode"]

        listed = await client.get(f"{BASE}/{user['id']}/certificates", headers=user["headers"])
        assert listed.json()["count"] == 1

    @pytest.mark.asyncio
    async def test_download_redirects_owner(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        certificate = await _completed_certificate(client, creator, user, make_workshop)

        response = await client.get(f"{BASE}/certificate/{certificate['id']}/download", headers=user["headers"])
        assert response.status_code == 302
        assert response.headers["location"] == certificate["certificateUrl"]

    @pytest.mark.asyncio
    async def test_download_denied_to_others(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        certificate = await _completed_certificate(client, creator, user, make_workshop)
        stranger = await make_user()

        response = await client.get(f"{BASE}/certificate/{certificate['id']}/download", headers=stranger["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_certificate_is_404(self, client: AsyncClient, make_user):
        user = await make_user()
        response = await client.get(f"{BASE}/certificate/missing", headers=user["headers"])
        assert response.status_code == 404


class TestRegenerate:
    @pytest.mark.asyncio
    async def test_owner_regenerates_and_keeps_code(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        certificate = await _completed_certificate(client, creator, user, make_workshop)
        renderer = RecordingRenderer()
        set_renderer(renderer)

        response = await client.put(f"{BASE}/certificate/{certificate['id']}/regenerate", headers=user["headers"])
        assert response.status_code == 200
        regenerated = response.json()["certificate"]
        assert regenerated["verificationCode"] == certificate["verificationCode"]
        assert regenerated["certificateUrl"].startswith("https://files.example.com/")
        assert regenerated["updatedAt"] is not None

        fetched = await client.get(f"{BASE}/certificate/{certificate['id']}", headers=user["headers"])
        assert fetched.json()["certificateUrl"] == regenerated["certificateUrl"]

    @pytest.mark.asyncio
    async def test_stranger_cannot_regenerate(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        certificate = await _completed_certificate(client, creator, user, make_workshop)
        stranger = await make_user()
        response = await client.put(f"{BASE}/certificate/{certificate['id']}/regenerate", headers=stranger["headers"])
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_bulk_regenerate_by_creator(self, client: AsyncClient, creator, make_user, make_workshop):
        workshop = await make_workshop(creator)
        for _ in range(2):
            user = await make_user()
            await client.post(f"{BASE}/{workshop['id']}/{user['id']}/enroll", headers=user["headers"])
            await client.put(f"{BASE}/{workshop['id']}/{user['id']}/complete", json={}, headers=user["headers"])
        renderer = RecordingRenderer()
        set_renderer(renderer)

        response = await client.put(
            f"{BASE}/{workshop['id']}/{creator['id']}/certificates/regenerate", headers=creator["headers"]
        )
        assert response.status_code == 200
        assert response.json()["results"] == {"total": 2, "successful": 2, "failed": 0}
        assert len(renderer.rendered) == 2


class TestAnalytics:
    @pytest.mark.asyncio
    async def test_creator_analytics(self, client: AsyncClient, creator, make_user, make_workshop):
        user = await make_user()
        await _completed_certificate(client, creator, user, make_workshop)

        response = await client.get(f"{BASE}/{creator['id']}/certificate-analytics", headers=creator["headers"])
        analytics = response.json()["analytics"]
        assert analytics["totalCertificates"] == 1
        assert analytics["workshopBreakdown"][0]["certificatesIssued"] == 1
        assert analytics["workshopBreakdown"][0]["completionRate"] == 100.0

    @pytest.mark.asyncio
    async def test_no_workshops(self, client: AsyncClient, make_user):
        user = await make_user()
        response = await client.get(f"{BASE}/{user['id']}/certificate-analytics", headers=user["headers"])
        assert response.json()["analytics"] == {
            "totalCertificates": 0,
            "workshopBreakdown": [],
            "recentCertificates": [],
        }
