"""Authentication endpoints: signup, login and current user."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.dependencies import get_current_user
from dna_community.auth.jwt import create_access_token, token_lifetime
from dna_community.auth.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
    user_response,
)
from dna_community.auth.service import authenticate_user, register_user
from dna_community.database import get_session
from dna_community.db.models import User

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


def _issue(user: User, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=create_access_token(user.id, user.email),
        user=user_response(user),
        expires_in=datetime.now(timezone.utc) + token_lifetime(),
    )


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Register with name + email + password."""
    try:
        user = await register_user(db, name=body.name, email=body.email, password=body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _issue(user, "User registered successfully")


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Login with email + password."""
    try:
        user = await authenticate_user(db, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()
    return _issue(user, "Login successful")


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """Return the authenticated user."""
    return user_response(user)
