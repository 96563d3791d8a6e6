"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import Depends, HTTPException

from dna_community.auth.dependencies import get_current_user
from dna_community.database import get_session as _get_session
from dna_community.db.models import User

get_db = _get_session


async def require_self(uid: str, user: User = Depends(get_current_user)) -> User:
    """Ensure the bearer acts as the ``{uid}`` path user (admins may act for anyone)."""
    if user.id != uid and not user.has_admin_access:
        raise HTTPException(status_code=403, detail="Not allowed to act on behalf of another user")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Ensure the bearer is an administrator."""
    if not user.has_admin_access:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return user
