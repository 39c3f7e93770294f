"""
User models.

Provides the stored user record and the Pydantic schemas for:
- User creation and login requests
- The public user view returned to clients
- JWT token payloads and the authenticated caller
- Error responses

Request and response bodies use camelCase keys on the wire
(firstName, repeatPassword, ...) and snake_case attributes in Python.
"""

from datetime import datetime, timezone
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Stored Record
# ============================================================================


class User(BaseModel):
    """
    Stored user record.

    Immutable once created. The password hash never leaves the service
    layer; clients only ever see a UserResponse.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    first_name: str
    last_name: str
    email: str
    password_hash: str = Field(repr=False)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Pydantic Request Models
# ============================================================================


class CreateUserRequest(CamelModel):
    """Create user request schema."""

    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    email: str = Field(..., description="Email address, unique across users")
    password: str = Field(..., description="Password")
    repeat_password: str = Field(..., description="Password confirmation, must equal password")

    @field_validator("email")
    @classmethod
    def validate_email_syntax(cls, v: str) -> str:
        """Check the address syntax but keep the address exactly as submitted."""
        try:
            validate_email(v.strip(), check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"Invalid email address: {e}") from e
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "password": "12345678",
                "repeatPassword": "12345678"
            }
        }
    )


class LoginRequest(CamelModel):
    """Login request schema."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "ada@example.com",
                "password": "12345678"
            }
        }
    )


# ============================================================================
# Pydantic Response Models
# ============================================================================


class UserResponse(CamelModel):
    """Public user view: every user field except the password hash."""

    id: str = Field(..., description="User ID")
    first_name: str = Field(..., description="First name")
    last_name: str = Field(..., description="Last name")
    email: str = Field(..., description="Email address")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
        )


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str = Field(..., min_length=1, description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")

    model_config = {
        "json_schema_extra": {
            "example": {
                "detail": "Invalid credentials",
                "error_code": "AUTH_FAILED"
            }
        }
    }


# ============================================================================
# Token Models
# ============================================================================


class TokenPayload(BaseModel):
    """JWT claims carried by a session token."""

    sub: str = Field(..., description="Subject (user ID)")
    exp: int = Field(..., description="Expiration timestamp (Unix epoch)")
    iat: int = Field(..., description="Issued at timestamp (Unix epoch)")
    iss: Optional[str] = Field(None, description="Issuer")
    aud: Optional[str] = Field(None, description="Audience")


class LoginResult(BaseModel):
    """Outcome of a successful login."""

    access_token: str
    user_id: str
    expires_in: int = Field(..., gt=0, description="Token lifetime in seconds")


class CurrentUser(BaseModel):
    """
    Current authenticated user.

    Attached to request.state by the authentication middleware.
    """

    id: str
    email: str

    model_config = {
        "from_attributes": True
    }
