"""Upserts of parsed catalog entities into PostgreSQL."""

import time
from typing import List, Optional

import asyncpg
import structlog

from shared.metrics import CatalogSyncMetrics

from ..errors import SchemaError, TableUpdateError
from ..models.catalog import Catalog, Category, Offer
from .batch_processor import BatchProcessor
from .schema_manager import SchemaManager
from .tables import expected_columns, get_table

logger = structlog.get_logger(__name__)

CURRENCY_UPSERT = """
    INSERT INTO currency (id, rate, updated_at)
    VALUES ($1, $2, CURRENT_TIMESTAMP)
    ON CONFLICT (id) DO UPDATE SET
        rate = EXCLUDED.rate,
        updated_at = EXCLUDED.updated_at
"""

CATEGORY_UPSERT = """
    INSERT INTO categories (id, name, parent_id, updated_at)
    VALUES ($1, $2, $3, CURRENT_TIMESTAMP)
    ON CONFLICT (id) DO UPDATE SET
        name = EXCLUDED.name,
        parent_id = EXCLUDED.parent_id,
        updated_at = EXCLUDED.updated_at
"""

OFFER_UPSERT = """
    INSERT INTO offers (id, available, url, price, currency_id, category_id,
        picture, name, vendor, vendor_code, description, count, updated_at)
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, CURRENT_TIMESTAMP)
    ON CONFLICT (id) DO UPDATE SET
        available = EXCLUDED.available,
        url = EXCLUDED.url,
        price = EXCLUDED.price,
        currency_id = EXCLUDED.currency_id,
        category_id = EXCLUDED.category_id,
        picture = EXCLUDED.picture,
        name = EXCLUDED.name,
        vendor = EXCLUDED.vendor,
        vendor_code = EXCLUDED.vendor_code,
        description = EXCLUDED.description,
        count = EXCLUDED.count,
        updated_at = EXCLUDED.updated_at
"""

PARAMS_DELETE = "DELETE FROM offer_params WHERE offer_id = ANY($1::integer[])"

PARAM_INSERT = """
    INSERT INTO offer_params (offer_id, param_name, param_value)
    VALUES ($1, $2, $3)
"""


def order_by_parent(categories: List[Category]) -> List[Category]:
    """
    Order categories so every parent present in the list precedes its children.

    Relative feed order is otherwise preserved. Parents missing from the list
    and cycles do not block their members; those keep feed order.
    """
    by_id = {category.id: category for category in categories}
    ordered: List[Category] = []
    placed = set()

    for category in categories:
        chain: List[Category] = []
        chain_ids = set()
        current: Optional[Category] = category
        while current is not None and current.id not in placed and current.id not in chain_ids:
            chain.append(current)
            chain_ids.add(current.id)
            current = by_id.get(current.parent_id) if current.parent_id is not None else None
        for item in reversed(chain):
            placed.add(item.id)
            ordered.append(item)

    return ordered


class CatalogWriter:
    """Writes one catalog table per transaction."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        schema_manager: SchemaManager,
        batch_size: int = 1000,
        metrics: Optional[CatalogSyncMetrics] = None,
    ):
        """
        Initialize catalog writer.

        Args:
            pool: asyncpg connection pool
            schema_manager: Used for the pre-write structure check
            batch_size: Offers per write batch
            metrics: Optional Prometheus metrics
        """
        self.pool = pool
        self.schema_manager = schema_manager
        self.batch_size = batch_size
        self.metrics = metrics

    async def update_table(self, table: str, catalog: Catalog) -> int:
        """
        Upsert the feed rows of one table.

        The table structure is verified first. Everything runs in one
        transaction which is rolled back on failure.

        Args:
            table: Catalog table name (case-insensitive)
            catalog: Parsed feed

        Returns:
            Number of rows written

        Raises:
            UnknownTableError: If the table is not a catalog table
            SchemaMismatchError: If the live table lacks a synced column
            TableUpdateError: If writing fails or a currency has no valid
                id or rate
        """
        name = get_table(table).name
        writers = {
            "currency": self._write_currencies,
            "categories": self._write_categories,
            "offers": self._write_offers,
        }

        start_time = time.time()
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await self.schema_manager.check_table_structure(
                        name, expected_columns(name), conn=conn
                    )
                    written = await writers[name](conn, catalog)
        except (SchemaError, TableUpdateError) as e:
            self._record_failure(name, e)
            raise
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self._record_failure(name, e)
            raise TableUpdateError(name, str(e)) from e

        duration = time.time() - start_time
        if self.metrics:
            self.metrics.rows_written.labels(table=name).inc(written)
            self.metrics.update_duration.labels(table=name).observe(duration)

        logger.info(
            "table_updated",
            table=name,
            rows_written=written,
            duration_seconds=round(duration, 3)
        )
        return written

    def _record_failure(self, table: str, error: Exception) -> None:
        logger.error("table_update_failed", table=table, error_type=type(error).__name__, error=str(error))
        if self.metrics:
            self.metrics.update_failures.labels(table=table, error_type=type(error).__name__).inc()

    async def _write_currencies(self, conn: asyncpg.Connection, catalog: Catalog) -> int:
        for currency in catalog.currencies:
            if not currency.is_valid():
                raise TableUpdateError(
                    "currency",
                    f"Invalid currency {currency.id!r} rate {currency.raw_rate!r}",
                )
        rows = [currency.to_row() for currency in catalog.currencies]
        if rows:
            await conn.executemany(CURRENCY_UPSERT, rows)
        return len(rows)

    async def _write_categories(self, conn: asyncpg.Connection, catalog: Catalog) -> int:
        rows = [category.to_row() for category in order_by_parent(catalog.categories)]
        if rows:
            await conn.executemany(CATEGORY_UPSERT, rows)
        return len(rows)

    async def _write_offers(self, conn: asyncpg.Connection, catalog: Catalog) -> int:
        async def write_batch(offers: List[Offer]) -> None:
            # Order matters: params reference the upserted offers
            await conn.executemany(OFFER_UPSERT, [offer.to_row() for offer in offers])
            await conn.execute(PARAMS_DELETE, [offer.id for offer in offers])
            param_rows = [row for offer in offers for row in offer.param_rows()]
            if param_rows:
                await conn.executemany(PARAM_INSERT, param_rows)
            logger.debug("offer_batch_written", offers=len(offers), params=len(param_rows))

        batcher: BatchProcessor[Offer] = BatchProcessor(
            batch_size=self.batch_size,
            flush_callback=write_batch,
        )
        await batcher.add_records(catalog.offers)
        await batcher.flush()

        metrics = batcher.get_metrics()
        logger.info(
            "offers_processed",
            offers=metrics["records_processed"],
            batches=metrics["batches_flushed"]
        )
        return metrics["records_processed"]
