"""
Shared pytest fixtures for the users API test suite.

Provides settings tuned for fast tests (low bcrypt cost), the in-memory
user store, a fully wired user service and a FastAPI test client.
"""

import pytest
from fastapi.testclient import TestClient

from shared.metrics import ServiceMetrics
from users_api.src.config import Settings
from users_api.src.main import create_app
from users_api.src.models.user import CreateUserRequest
from users_api.src.repositories.user_repo import InMemoryUserRepository
from users_api.src.services.security import PasswordHasher, TokenService
from users_api.src.services.user_service import UserService


TEST_SECRET_KEY = "test-secret-key-for-users-api-do-not-use-in-production"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: in-memory store, cheap bcrypt, text logs."""
    return Settings(
        environment="test",
        storage_backend="memory",
        jwt_secret_key=TEST_SECRET_KEY,
        password_bcrypt_rounds=4,
        log_level="WARNING",
        log_format="text",
    )


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def password_hasher(settings) -> PasswordHasher:
    return PasswordHasher(rounds=settings.password_bcrypt_rounds)


@pytest.fixture
def token_service(settings) -> TokenService:
    return TokenService.from_settings(settings)


@pytest.fixture
def service_metrics() -> ServiceMetrics:
    return ServiceMetrics()


@pytest.fixture
def user_service(user_repo, password_hasher, token_service, settings, service_metrics) -> UserService:
    return UserService(
        user_repo=user_repo,
        password_hasher=password_hasher,
        token_service=token_service,
        password_min_length=settings.password_min_length,
        metrics=service_metrics.users,
    )


@pytest.fixture
def app(settings, user_repo):
    """FastAPI application wired to the test settings and store."""
    return create_app(settings=settings, user_repo=user_repo)


@pytest.fixture
def client(app):
    """Create FastAPI test client with lifespan events."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def user_details() -> dict:
    """Create-user body as sent over the wire."""
    return {
        "firstName": "TestFirstName",
        "lastName": "TestLastName",
        "email": "test@gmail.com",
        "password": "12345678",
        "repeatPassword": "12345678",
    }


@pytest.fixture
def make_create_request():
    """Factory building a valid CreateUserRequest with selected fields overridden."""

    def _make(**overrides) -> CreateUserRequest:
        fields = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@example.com",
            "password": "analytical-engine",
            "repeat_password": "analytical-engine",
        }
        fields.update(overrides)
        return CreateUserRequest(**fields)

    return _make
