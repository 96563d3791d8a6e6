"""Tests for session JWT creation and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from dna_community.auth.jwt import create_access_token, verify_token
from dna_community.config import get_settings


class TestJWT:
    def test_round_trip_claims(self):
        payload = verify_token(create_access_token("abc123", "ana@example.com"))
        assert payload["sub"] == "abc123"
        assert payload["email"] == "ana@example.com"
        assert payload["iss"] == get_settings().jwt_issuer
        assert payload["type"] == "access"

    def test_default_lifetime_is_seven_days(self):
        payload = verify_token(create_access_token("abc123", "ana@example.com"))
        assert payload["exp"] - payload["iat"] == int(timedelta(days=7).total_seconds())

    def test_wrong_type_rejected(self):
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "abc", "iat": now, "exp": now + timedelta(minutes=5), "iss": settings.jwt_issuer, "type": "refresh"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)

    def test_expired_token_rejected(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = jwt.encode(
            {"sub": "abc", "iat": past, "exp": past + timedelta(minutes=5), "iss": settings.jwt_issuer, "type": "access"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        token = jwt.encode({"sub": "abc", "type": "access"}, "other-secret", algorithm="HS256")
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token)
