"""asyncpg connection pool lifecycle."""

from typing import Optional

import asyncpg
import structlog

from .config import PostgresConfig
from .utils.error_handler import RetryConfig, retry_with_backoff

logger = structlog.get_logger(__name__)


async def create_pool(config: PostgresConfig, retry_config: Optional[RetryConfig] = None) -> asyncpg.Pool:
    """
    Create the database connection pool.

    Connection failures are retried with exponential backoff.

    Args:
        config: PostgreSQL configuration
        retry_config: Retry policy for the initial connection

    Returns:
        asyncpg connection pool
    """
    @retry_with_backoff(retry_config or RetryConfig(max_attempts=5, initial_delay=1.0))
    async def _connect() -> asyncpg.Pool:
        return await asyncpg.create_pool(
            config.dsn,
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            command_timeout=config.command_timeout,
        )

    try:
        pool = await _connect()
    except Exception as e:
        logger.error("database_pool_init_failed", error=str(e))
        raise

    logger.info(
        "database_pool_initialized",
        pool_size=config.max_pool_size,
        database=config.dsn.split("@")[-1]
    )
    return pool
