"""Reusable Testcontainers configurations for integration tests.

Provides a pre-configured PostgreSQL container for the catalog tables.
"""

from typing import Optional

from testcontainers.postgres import PostgresContainer as BasePostgresContainer


class PostgresContainer(BasePostgresContainer):
    """PostgreSQL container with the catalog database."""

    def __init__(
        self,
        image: str = "postgres:16-alpine",
        dbname: str = "softmotion_xml",
        **kwargs: object,
    ) -> None:
        """Initialize PostgreSQL container.

        Args:
            image: PostgreSQL image tag
            dbname: Database created on startup
            **kwargs: Additional container arguments
        """
        super().__init__(image=image, dbname=dbname, driver=None, **kwargs)

    def get_dsn(self) -> str:
        """Get a DSN usable by asyncpg.

        Returns:
            postgresql:// connection string without a SQLAlchemy driver suffix
        """
        return self.get_connection_url().replace("postgresql+psycopg2://", "postgresql://")


# Singleton container instance for test session
_postgres_container: Optional[PostgresContainer] = None


def get_postgres_container() -> PostgresContainer:
    """Get or create PostgreSQL container instance.

    Returns:
        Started PostgresContainer instance
    """
    global _postgres_container
    if _postgres_container is None:
        _postgres_container = PostgresContainer()
        _postgres_container.start()
    return _postgres_container
