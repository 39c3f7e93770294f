"""Data models for the users API.

Pydantic schemas for request/response validation and the stored user record.
"""

from users_api.src.models.user import (
    CreateUserRequest,
    CurrentUser,
    ErrorResponse,
    LoginRequest,
    LoginResult,
    TokenPayload,
    User,
    UserResponse,
)

__all__ = [
    "User",
    "CreateUserRequest",
    "LoginRequest",
    "UserResponse",
    "ErrorResponse",
    "TokenPayload",
    "LoginResult",
    "CurrentUser",
]
