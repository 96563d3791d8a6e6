"""
Authentication business logic: user lookup, registration and login.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from dna_community.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from dna_community.config import get_settings
from dna_community.db.base import utcnow
from dna_community.db.models import USER_STATUS_ACTIVE, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID (including soft-deleted users)."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_active_user(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID, hiding soft-deleted accounts."""
    result = await db.execute(select(User).where(User.id == user_id, User.status == USER_STATUS_ACTIVE))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(db: AsyncSession, name: str, email: str, password: str) -> User:
    """
    Register a new user with email + password and an empty profile.

    Raises:
        PasswordStrengthError: If the password is too weak.
        ValueError: If the email is already registered.
    """
    validate_password_strength(password)

    existing = await get_user_by_email(db, email)
    if existing is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    settings = get_settings()
    email_normalized = email.lower().strip()
    user = User(
        name=name.strip(),
        email=email_normalized,
        password_hash=hash_password(password),
        engagement_xp=0,
        profile={},
        has_completed_onboarding=False,
        is_admin=email_normalized in {e.lower() for e in settings.admin_emails},
        last_login=utcnow(),
    )
    db.add(user)
    await db.flush()
    logger.info("user_created", user_id=user.id, email=email_normalized)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate a user with email + password.

    Raises:
        ValueError: If credentials are invalid or the account was deleted.
    """
    user = await get_user_by_email(db, email)
    if user is None or not user.is_active:
        msg = "Invalid email or password"
        raise ValueError(msg)

    if not verify_password(password, user.password_hash):
        logger.info("login_failed", user_id=user.id)
        msg = "Invalid email or password"
        raise ValueError(msg)

    user.last_login = utcnow()
    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    await db.flush()
    return user
