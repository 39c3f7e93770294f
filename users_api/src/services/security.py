"""
Credential primitives used by the user service.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT session token creation and validation (python-jose)
"""

import structlog
from datetime import datetime, timedelta, timezone
from typing import Optional
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import ValidationError as PydanticValidationError

from users_api.src.config import Settings
from users_api.src.models.user import TokenPayload

logger = structlog.get_logger(__name__)


class PasswordHasher:
    """Hashes and verifies passwords with bcrypt."""

    def __init__(self, rounds: int = 12):
        """
        Initialize password hasher.

        Args:
            rounds: bcrypt cost factor
        """
        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds
        )
        self._dummy_hash: Optional[str] = None

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt.

        Args:
            password: Plain text password

        Returns:
            Hashed password
        """
        hashed = self.pwd_context.hash(password)
        logger.debug("password_hashed")
        return hashed

    @property
    def dummy_hash(self) -> str:
        """
        Hash of a throwaway password at the configured cost.

        Verified against when a login names an unknown email, so both
        failure paths spend the same bcrypt time.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.pwd_context.hash("unknown-user-placeholder")
        return self._dummy_hash

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Malformed hashes count as a mismatch.

        Args:
            plain_password: Plain text password
            hashed_password: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        try:
            verified = self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning("password_verify_failed", error=str(e))
            return False
        logger.debug("password_verified", verified=verified)
        return verified


class TokenService:
    """Issues and validates signed, time-bounded session tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expires_delta: timedelta = timedelta(minutes=60),
        issuer: Optional[str] = None,
        audience: Optional[str] = None
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expires_delta = expires_delta
        self.issuer = issuer
        self.audience = audience

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires_delta=timedelta(minutes=settings.jwt_access_token_expire_minutes),
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience
        )

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.expires_delta.total_seconds())

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """
        Create JWT access token.

        Args:
            user_id: User ID stored in the "sub" claim
            expires_delta: Custom expiration time (optional)

        Returns:
            JWT token string
        """
        if expires_delta is None:
            expires_delta = self.expires_delta

        now = datetime.now(timezone.utc)
        expire = now + expires_delta

        payload = {
            "sub": user_id,
            "exp": int(expire.timestamp()),
            "iat": int(now.timestamp())
        }
        if self.issuer:
            payload["iss"] = self.issuer
        if self.audience:
            payload["aud"] = self.audience

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

        logger.info(
            "access_token_created",
            user_id=user_id,
            expires_in=expires_delta.total_seconds()
        )
        return token

    def decode_token(self, token: str) -> Optional[TokenPayload]:
        """
        Decode and validate JWT token.

        Checks signature, expiry and, when configured, issuer and audience.

        Args:
            token: JWT token string

        Returns:
            Token payload or None if invalid
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer
            )
            token_payload = TokenPayload(**payload)
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            return None
        except PydanticValidationError as e:
            logger.warning("token_claims_invalid", error=str(e))
            return None

        if not token_payload.sub:
            logger.warning("token_missing_subject")
            return None

        logger.debug("token_decoded", user_id=token_payload.sub)
        return token_payload
