"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database built from the model
metadata. Redis is not initialised, so rate limiting and live push are skipped.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import timedelta
from typing import Any

os.environ["DNA_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DNA_REDIS_URL"] = ""
os.environ["DNA_LOG_FORMAT"] = "console"

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dna_community.auth.jwt import create_access_token  # noqa: E402
from dna_community.auth.password import hash_password  # noqa: E402
from dna_community.config import get_settings  # noqa: E402
from dna_community.database import close_db, get_engine, init_db, session_scope  # noqa: E402
from dna_community.db import models  # noqa: E402, F401
from dna_community.db.base import Base, utcnow  # noqa: E402
from dna_community.db.models import User  # noqa: E402
from dna_community.main import create_app  # noqa: E402
from dna_community.redis_client import close_redis  # noqa: E402
from dna_community.workshops.certificates import set_renderer  # noqa: E402

get_settings.cache_clear()

TEST_PASSWORD = "secret123"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)

MakeUser = Callable[..., Awaitable[dict[str, Any]]]


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over a fresh in-memory database."""
    get_settings.cache_clear()
    await close_redis()
    await init_db(
        get_settings().database_url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    set_renderer(None)
    await close_db()


@pytest_asyncio.fixture
async def db_session(client: AsyncClient) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for assertions."""
    async with session_scope() as session:
        yield session


@pytest_asyncio.fixture
async def make_user(client: AsyncClient) -> MakeUser:
    """Factory: insert a user and return its id, email and auth headers."""

    async def _make(
        name: str = "Test User",
        role: str | None = None,
        xp: int = 0,
        is_admin: bool = False,
    ) -> dict[str, Any]:
        email = f"{uuid.uuid4().hex[:12]}@example.com"
        async with session_scope() as db:
            user = User(
                name=name,
                email=email,
                password_hash=_PASSWORD_HASH,
                engagement_xp=xp,
                role=role,
                is_admin=is_admin,
                profile={},
            )
            db.add(user)
            await db.commit()
            user_id = user.id
        token = create_access_token(user_id, email)
        return {
            "id": user_id,
            "email": email,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _make


@pytest_asyncio.fixture
async def creator(make_user: MakeUser) -> dict[str, Any]:
    return await make_user(name="Carla Creator", role="workshop_creator")


@pytest_asyncio.fixture
async def admin(make_user: MakeUser) -> dict[str, Any]:
    return await make_user(name="Ada Admin", is_admin=True)


def workshop_payload(**overrides: Any) -> dict[str, Any]:  # noqa: ANN401
    payload: dict[str, Any] = {
        "title": "Intro to Genomics",
        "description": "Reading a genome end to end",
        "category": "science",
        "difficulty": "beginner",
        "tags": ["Genomics", "DNA"],
        "scheduledDate": (utcnow() + timedelta(days=7)).isoformat(),
        "durationMinutes": 90,
        "maxParticipants": 10,
        "allowWaitlist": True,
        "autoGenerateCertificate": True,
    }
    payload.update(overrides)
    return payload


async def _create_published_workshop(
    client: AsyncClient,
    creator: dict[str, Any],
    **overrides: Any,  # noqa: ANN401
) -> dict[str, Any]:
    response = await client.post(
        f"/api/v1/workshops/{creator['id']}",
        json=workshop_payload(**overrides),
        headers=creator["headers"],
    )
    assert response.status_code == 201, response.text
    workshop = response.json()["workshop"]
    response = await client.put(
        f"/api/v1/workshops/{workshop['id']}/{creator['id']}/publish",
        headers=creator["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()["workshop"]


@pytest_asyncio.fixture
async def make_workshop(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory: create a workshop through the API as ``creator`` and publish it."""

    async def _make(creator: dict[str, Any], **overrides: Any) -> dict[str, Any]:  # noqa: ANN401
        return await _create_published_workshop(client, creator, **overrides)

    return _make
