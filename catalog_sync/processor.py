"""High-level catalog processor: feed in, PostgreSQL tables out."""

from typing import Dict, List, Optional

import asyncpg
import structlog

from shared.metrics import CatalogSyncMetrics

from .config import SyncConfig
from .feed.loader import FeedLoader
from .models.catalog import Catalog
from .writer.catalog_writer import CatalogWriter
from .writer.schema_manager import SchemaManager
from .writer.tables import get_table, get_table_ddl, get_table_names

logger = structlog.get_logger(__name__)


class CatalogProcessor:
    """
    Keeps the catalog tables in sync with the feed.

    The feed is loaded once, on first use, and reused by later updates
    until ``load(reload=True)`` is called.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        loader: FeedLoader,
        config: Optional[SyncConfig] = None,
        metrics: Optional[CatalogSyncMetrics] = None,
    ):
        self.pool = pool
        self.loader = loader
        self.config = config or SyncConfig()
        self.schema_manager = SchemaManager(pool, cache_ttl=self.config.schema_cache_ttl)
        self.writer = CatalogWriter(
            pool,
            self.schema_manager,
            batch_size=self.config.batch_size,
            metrics=metrics,
        )
        self._catalog: Optional[Catalog] = None

    @property
    def catalog(self) -> Optional[Catalog]:
        return self._catalog

    async def load(self, reload: bool = False) -> Catalog:
        """Load the feed unless it is already loaded (or ``reload`` is set)."""
        if self._catalog is None or reload:
            self._catalog = await self.loader.load()
        return self._catalog

    def get_table_names(self) -> List[str]:
        return get_table_names()

    def get_table_ddl(self, table: str) -> str:
        return get_table_ddl(table)

    async def update(self, table: Optional[str] = None) -> Dict[str, int]:
        """
        Update one catalog table, or all of them in dependency order.

        Args:
            table: Table name (case-insensitive); None updates every table

        Returns:
            Rows written per table

        Raises:
            UnknownTableError: Before any feed or database access
            SchemaMismatchError: If a live table lacks a synced column
            TableUpdateError: If writing fails; that table is rolled back
        """
        tables = [get_table(table).name] if table is not None else get_table_names()
        catalog = await self.load()

        results = {}
        for name in tables:
            results[name] = await self.writer.update_table(name, catalog)

        logger.info("catalog_updated", tables=results)
        return results

    async def create_tables(self) -> List[str]:
        return await self.schema_manager.create_tables()

    async def get_column_names(self, table: str) -> List[str]:
        return await self.schema_manager.get_column_names(table)

    async def is_column_id(self, table: str, column: str) -> bool:
        return await self.schema_manager.is_column_id(table, column)

    async def get_ddl_change(self, table: str) -> str:
        return await self.schema_manager.get_ddl_change(table)

    async def apply_ddl_change(self, table: str) -> str:
        return await self.schema_manager.apply_ddl_change(table)

    async def close(self) -> None:
        """Close the connection pool; failures are logged, not raised."""
        try:
            await self.pool.close()
            logger.info("database_pool_closed")
        except Exception as e:
            logger.error("database_pool_close_failed", error=str(e))
