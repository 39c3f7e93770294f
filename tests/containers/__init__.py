"""Testcontainers for integration testing."""

from .postgres import UsersPostgresContainer, get_postgres_container, stop_postgres_container

__all__ = [
    "UsersPostgresContainer",
    "get_postgres_container",
    "stop_postgres_container",
]
