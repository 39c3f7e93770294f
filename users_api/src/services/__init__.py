"""Business logic services.

This package contains the user service, the credential primitives it
depends on, and the errors it raises to the HTTP layer.
"""

from users_api.src.services.errors import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    UserServiceError,
    ValidationError,
)
from users_api.src.services.security import PasswordHasher, TokenService
from users_api.src.services.user_service import UserService

__all__ = [
    "UserService",
    "PasswordHasher",
    "TokenService",
    "UserServiceError",
    "ValidationError",
    "ConflictError",
    "AuthenticationError",
    "InvalidTokenError",
]
