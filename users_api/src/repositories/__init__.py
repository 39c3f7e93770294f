"""User store implementations."""

from users_api.src.repositories.user_repo import (
    DuplicateEmailError,
    InMemoryUserRepository,
    PostgresUserRepository,
    UserRepository,
)

__all__ = [
    "UserRepository",
    "InMemoryUserRepository",
    "PostgresUserRepository",
    "DuplicateEmailError",
]
