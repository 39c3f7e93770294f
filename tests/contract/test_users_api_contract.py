"""
Contract tests for the users API.

Tests verify the wire contract shared with clients:
- camelCase request and response keys
- Required request fields and email format
- Public user view never carrying password material
- Published OpenAPI paths and status codes
- Error response schema
"""

import pytest
from pydantic import ValidationError

from users_api.src.models.user import (
    CreateUserRequest,
    ErrorResponse,
    LoginRequest,
    User,
    UserResponse,
)


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================


class TestCreateUserRequestContract:
    """Contract tests for the POST /users body."""

    def test_accepts_camel_case_body(self, user_details):
        """Test the documented camelCase body parses."""
        request = CreateUserRequest.model_validate(user_details)

        assert request.first_name == "TestFirstName"
        assert request.last_name == "TestLastName"
        assert request.email == "test@gmail.com"
        assert request.repeat_password == "12345678"

    def test_accepts_field_names(self):
        """Test snake_case field names are accepted in Python code."""
        request = CreateUserRequest(
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            password="12345678",
            repeat_password="12345678",
        )

        assert request.model_dump(by_alias=True)["repeatPassword"] == "12345678"

    @pytest.mark.parametrize(
        "missing", ["firstName", "lastName", "email", "password", "repeatPassword"]
    )
    def test_rejects_missing_field(self, user_details, missing):
        """Test every create field is required."""
        del user_details[missing]

        with pytest.raises(ValidationError) as exc_info:
            CreateUserRequest.model_validate(user_details)

        assert any(e["loc"] == (missing,) for e in exc_info.value.errors())

    @pytest.mark.parametrize("email", ["not-an-email", "missing-domain@", "@example.com"])
    def test_rejects_malformed_email(self, user_details, email):
        """Test malformed email addresses are rejected."""
        user_details["email"] = email

        with pytest.raises(ValidationError):
            CreateUserRequest.model_validate(user_details)

    def test_rejects_display_name_form(self, user_details):
        """Test "Name <address>" is rejected rather than reduced to the address."""
        user_details["email"] = "Joe Bloggs <joe@example.com>"

        with pytest.raises(ValidationError):
            CreateUserRequest.model_validate(user_details)

    def test_keeps_email_as_submitted(self, user_details):
        """Test a valid email is not normalized."""
        user_details["email"] = "Test@GMAIL.COM"

        assert CreateUserRequest.model_validate(user_details).email == "Test@GMAIL.COM"


class TestLoginRequestContract:
    """Contract tests for the POST /users/login body."""

    def test_accepts_email_and_password(self):
        """Test the login body parses."""
        request = LoginRequest.model_validate({"email": "test@gmail.com", "password": "12345678"})

        assert request.email == "test@gmail.com"
        assert request.password == "12345678"

    def test_rejects_missing_password(self):
        """Test password is required."""
        with pytest.raises(ValidationError):
            LoginRequest.model_validate({"email": "test@gmail.com"})


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================


class TestUserResponseContract:
    """Contract tests for the public user view."""

    def test_serializes_camel_case_keys_only(self):
        """Test the public view has exactly id, firstName, lastName and email."""
        user = User(
            id="user-123",
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            password_hash="$2b$04$secret-hash",
        )

        body = UserResponse.from_user(user).model_dump(by_alias=True)

        assert body == {
            "id": "user-123",
            "firstName": "Ada",
            "lastName": "Lovelace",
            "email": "ada@example.com",
        }

    def test_stored_record_repr_hides_hash(self):
        """Test the password hash is left out of the record repr."""
        user = User(
            id="user-123",
            first_name="Ada",
            last_name="Lovelace",
            email="ada@example.com",
            password_hash="$2b$04$secret-hash",
        )

        assert "secret-hash" not in repr(user)

    def test_error_response_requires_detail(self):
        """Test error responses carry a non-empty detail."""
        assert ErrorResponse(detail="Invalid credentials", error_code="AUTH_FAILED").detail

        with pytest.raises(ValidationError):
            ErrorResponse(detail="")


# ============================================================================
# OPENAPI
# ============================================================================


class TestOpenAPIContract:
    """Contract tests for the published OpenAPI document."""

    @pytest.fixture
    def openapi(self, client):
        response = client.get("/openapi.json")
        assert response.status_code == 200
        return response.json()

    def test_paths_published(self, openapi):
        """Test the three user operations are published."""
        paths = openapi["paths"]

        assert "post" in paths["/users"]
        assert "get" in paths["/users"]
        assert "post" in paths["/users/login"]

    def test_documented_status_codes(self, openapi):
        """Test documented error status codes per operation."""
        paths = openapi["paths"]

        assert {"200", "400", "409"} <= set(paths["/users"]["post"]["responses"])
        assert {"200", "401"} <= set(paths["/users/login"]["post"]["responses"])
        assert {"200", "403"} <= set(paths["/users"]["get"]["responses"])

    def test_create_body_uses_camel_case(self, openapi):
        """Test the create request schema publishes camelCase properties."""
        schema = openapi["components"]["schemas"]["CreateUserRequest"]

        assert set(schema["properties"]) == {
            "firstName", "lastName", "email", "password", "repeatPassword"
        }
        assert set(schema["required"]) == set(schema["properties"])

    def test_user_response_has_no_password(self, openapi):
        """Test the public user schema has no password properties."""
        schema = openapi["components"]["schemas"]["UserResponse"]

        assert set(schema["properties"]) == {"id", "firstName", "lastName", "email"}
