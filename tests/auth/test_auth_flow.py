"""Signup, login and /me flow."""

import pytest
from httpx import AsyncClient


async def _signup(client: AsyncClient, email: str = "ana@example.com", password: str = "secret123"):
    return await client.post("/api/v1/auth/signup", json={
        "name": "Ana Silva",
        "email": email,
        "password": password,
    })


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_returns_token_and_user(self, client: AsyncClient):
        response = await _signup(client)
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "User registered successfully"
        assert data["token"]
        assert data["user"]["email"] == "ana@example.com"
        assert data["user"]["engagementXp"] == 0
        assert data["user"]["hasCompletedOnboarding"] is False
        assert "expiresIn" in data

    @pytest.mark.asyncio
    async def test_email_is_normalized(self, client: AsyncClient):
        response = await _signup(client, email="Ana@Example.COM")
        assert response.json()["user"]["email"] == "ana@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, client: AsyncClient):
        await _signup(client)
        response = await _signup(client)
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, client: AsyncClient):
        response = await _signup(client, password="abc")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_email_is_422(self, client: AsyncClient):
        response = await _signup(client, email="not-an-email")
        assert response.status_code == 422


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_and_me(self, client: AsyncClient):
        await _signup(client)
        response = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        assert response.status_code == 200
        token = response.json()["token"]

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["name"] == "Ana Silva"

    @pytest.mark.asyncio
    async def test_wrong_password_is_401(self, client: AsyncClient):
        await _signup(client)
        response = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_unknown_email_is_401(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/login", json={"email": "nobody@example.com", "password": "secret123"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_deleted_user_cannot_log_in(self, client: AsyncClient):
        signup = await _signup(client)
        data = signup.json()
        headers = {"Authorization": f"Bearer {data['token']}"}
        uid = data["user"]["uid"]

        response = await client.delete(f"/api/v1/users/{uid}", headers=headers)
        assert response.status_code == 200

        me = await client.get("/api/v1/auth/me", headers=headers)
        assert me.status_code == 401
        login = await client.post("/api/v1/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        assert login.status_code == 401
