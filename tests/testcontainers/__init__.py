"""Testcontainers for integration testing."""

from .containers import PostgresContainer, get_postgres_container

__all__ = [
    "PostgresContainer",
    "get_postgres_container",
]
