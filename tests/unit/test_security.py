"""
Unit tests for password hashing and JWT session tokens.

Tests cover:
- bcrypt hashing and verification
- Malformed hash handling
- Token creation with claims
- Token validation (signature, expiry, issuer, audience)
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from users_api.src.services.security import PasswordHasher, TokenService


SECRET = "unit-test-secret-key-with-at-least-32-characters"


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(
        secret_key=SECRET,
        expires_delta=timedelta(minutes=5),
        issuer="users-api",
        audience="users-api-clients",
    )


# ============================================================================
# PASSWORD HASHING
# ============================================================================


class TestPasswordHasher:
    """Tests for PasswordHasher."""

    def test_hash_and_verify(self, hasher):
        """Test a hashed password verifies and a wrong one does not."""
        hashed = hasher.hash_password("12345678")

        assert hashed != "12345678"
        assert hasher.verify_password("12345678", hashed)
        assert not hasher.verify_password("87654321", hashed)

    def test_hashes_are_salted(self, hasher):
        """Test hashing the same password twice yields different hashes."""
        assert hasher.hash_password("12345678") != hasher.hash_password("12345678")

    def test_malformed_hash_does_not_verify(self, hasher):
        """Test an unrecognized hash string counts as a mismatch."""
        assert not hasher.verify_password("12345678", "not-a-bcrypt-hash")

    def test_nul_byte_password_does_not_verify(self, hasher):
        """Test a password bcrypt cannot hash counts as a mismatch."""
        hashed = hasher.hash_password("12345678")

        assert not hasher.verify_password("1234567\x00", hashed)

    def test_dummy_hash_is_cached_bcrypt_hash(self, hasher):
        """Test the placeholder hash is a real bcrypt hash computed once."""
        dummy = hasher.dummy_hash

        assert dummy.startswith("$2")
        assert hasher.dummy_hash is dummy
        assert not hasher.verify_password("12345678", dummy)


# ============================================================================
# TOKENS
# ============================================================================


class TestTokenService:
    """Tests for TokenService."""

    def test_token_round_trip_claims(self, tokens):
        """Test a created token decodes to the expected claims."""
        before = int(datetime.now(timezone.utc).timestamp())
        token = tokens.create_access_token("user-123")

        payload = tokens.decode_token(token)

        assert payload is not None
        assert payload.sub == "user-123"
        assert payload.iss == "users-api"
        assert payload.aud == "users-api-clients"
        assert payload.iat >= before
        assert payload.exp - payload.iat == 300

    def test_expires_in_matches_delta(self, tokens):
        """Test expires_in reports the token lifetime in seconds."""
        assert tokens.expires_in == 300

    def test_expired_token_rejected(self, tokens):
        """Test expired tokens decode to None."""
        token = tokens.create_access_token("user-123", expires_delta=timedelta(seconds=-1))

        assert tokens.decode_token(token) is None

    def test_wrong_secret_rejected(self, tokens):
        """Test tokens signed with another key are rejected."""
        forged = TokenService(
            secret_key="another-secret-key-with-at-least-32-characters",
            issuer="users-api",
            audience="users-api-clients",
        ).create_access_token("user-123")

        assert tokens.decode_token(forged) is None

    def test_wrong_audience_rejected(self, tokens):
        """Test tokens issued for another audience are rejected."""
        other = TokenService(
            secret_key=SECRET,
            issuer="users-api",
            audience="someone-else",
        ).create_access_token("user-123")

        assert tokens.decode_token(other) is None

    def test_wrong_issuer_rejected(self, tokens):
        """Test tokens from another issuer are rejected."""
        other = TokenService(
            secret_key=SECRET,
            issuer="other-service",
            audience="users-api-clients",
        ).create_access_token("user-123")

        assert tokens.decode_token(other) is None

    def test_token_without_subject_rejected(self, tokens):
        """Test a correctly signed token lacking required claims is rejected."""
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {"exp": now + 60, "iat": now, "iss": "users-api", "aud": "users-api-clients"},
            SECRET,
            algorithm="HS256",
        )

        assert tokens.decode_token(token) is None

    def test_garbage_rejected(self, tokens):
        """Test non-JWT strings are rejected."""
        assert tokens.decode_token("garbage") is None
        assert tokens.decode_token("") is None
