"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens
"""
import pytest
from datetime import timedelta
from jose import jwt

from portal.core.config import settings
from portal.core.exceptions import InvalidTokenError
from portal.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    decode_token,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_different_each_time(self):
        """Bcrypt generates different salts"""
        assert get_password_hash("testpassword123") != get_password_hash("testpassword123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_verify_against_non_bcrypt_value(self):
        assert verify_password("password", "not-a-bcrypt-hash") is False

    def test_long_password_truncated_to_72_bytes(self):
        password = "a" * 100
        hashed = get_password_hash(password)

        assert verify_password("a" * 72, hashed) is True


class TestJWTTokens:
    """Test access tokens"""

    def test_create_and_decode(self):
        token = create_access_token({"sub": "user-1", "level": "100 ICT"})

        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["level"] == "100 ICT"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "user-1"}, "other-secret", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_garbage_token(self):
        with pytest.raises(InvalidTokenError):
            decode_token("not.a.jwt")
