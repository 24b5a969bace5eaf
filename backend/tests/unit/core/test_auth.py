"""
Tests for JWT verification.

WHY: The tracker trusts tokens minted by the host application. These
tests ensure:
1. Minted tokens carry user_id and the standard lifetime claims
2. Expired tokens are rejected as expired
3. Foreign signatures and algorithms are rejected as invalid
"""

import pytest
from datetime import datetime, timedelta
from jose import jwt

from tracker.core.auth import create_access_token, verify_token
from tracker.core.config import settings
from tracker.core.exceptions import (
    AuthenticationError,
    TokenExpiredError,
    TokenInvalidError,
)


class TestTokenCreation:
    """Test JWT token creation."""

    def test_create_access_token_with_user_id(self):
        token = create_access_token({"user_id": 42})

        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        assert decoded["user_id"] == 42

    def test_create_access_token_includes_standard_claims(self):
        """Verify token includes exp, iat, and nbf claims."""
        token = create_access_token({"user_id": 1})

        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

        assert "exp" in decoded
        assert "iat" in decoded
        assert "nbf" in decoded

    def test_create_access_token_custom_expiration(self):
        expires_delta = timedelta(minutes=30)
        token = create_access_token({"user_id": 1}, expires_delta=expires_delta)

        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])

        # WHY: Use UTC for both expected and actual to ensure consistent comparison
        expected_exp = datetime.utcnow() + expires_delta
        actual_exp = datetime.utcfromtimestamp(decoded["exp"])

        assert abs((expected_exp - actual_exp).total_seconds()) < 10


class TestTokenVerification:
    """Test JWT token verification."""

    def test_verify_token_valid(self):
        payload = verify_token(create_access_token({"user_id": 7}))

        assert payload["user_id"] == 7

    def test_verify_token_expired(self):
        token = create_access_token({"user_id": 1}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(TokenExpiredError) as exc_info:
            verify_token(token)

        assert "expired" in str(exc_info.value).lower()

    def test_verify_token_invalid_signature(self):
        token = jwt.encode({"user_id": 1}, "wrong-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(TokenInvalidError):
            verify_token(token)

    def test_verify_token_malformed(self):
        with pytest.raises(TokenInvalidError):
            verify_token("not.a.valid.jwt.token")

    def test_verify_token_wrong_algorithm(self):
        token = jwt.encode({"user_id": 1}, settings.JWT_SECRET, algorithm="HS512")

        with pytest.raises(TokenInvalidError):
            verify_token(token)

    def test_token_errors_are_authentication_errors(self):
        """Both failures surface as 401 through the shared handler."""
        assert issubclass(TokenExpiredError, AuthenticationError)
        assert issubclass(TokenInvalidError, AuthenticationError)
