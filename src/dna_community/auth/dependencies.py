"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dna_community.auth.jwt import verify_token
from dna_community.auth.service import get_user_by_id
from dna_community.database import get_session
from dna_community.db.models import User

_bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User model.

    Raises 401 on a missing/invalid token or a deleted account.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided")
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, str(payload["sub"]))
    if user is None or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user
