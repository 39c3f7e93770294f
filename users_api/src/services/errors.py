"""
User service errors.

Every error is scoped to a single request. The HTTP layer maps each one
to a status code through its status_code attribute.
"""

from fastapi import status


class UserServiceError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "USER_ERROR"

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class ValidationError(UserServiceError):
    """Malformed or missing input. The client must correct and resend."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "USER_VALIDATION"


class ConflictError(UserServiceError):
    """The email is already registered."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "USER_CONFLICT"


class AuthenticationError(UserServiceError):
    """Bad credentials on login, or a missing/invalid session token."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTH_FAILED"


class InvalidTokenError(AuthenticationError):
    """The bearer token is missing, malformed, expired or unknown."""

    status_code = status.HTTP_403_FORBIDDEN
    error_code = "AUTH_TOKEN_INVALID"
