"""Inspection and evolution of the catalog tables in PostgreSQL."""

from typing import List, Optional, Sequence

import asyncpg
import structlog

from ..errors import SchemaError, SchemaMismatchError
from .schema_cache import SchemaCache
from .tables import TABLES, get_table, quote_identifier

logger = structlog.get_logger(__name__)

COLUMNS_QUERY = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = current_schema() AND table_name = $1
    ORDER BY ordinal_position
"""


class SchemaManager:
    """Reads live table structure and creates or extends catalog tables."""

    def __init__(self, pool: asyncpg.Pool, cache_ttl: int = 300):
        """
        Initialize schema manager.

        Args:
            pool: asyncpg connection pool
            cache_ttl: Column cache TTL in seconds (default: 5 minutes)
        """
        self.pool = pool
        self.cache = SchemaCache(ttl_seconds=cache_ttl)

    async def get_column_names(
        self,
        table: str,
        use_cache: bool = True,
        conn: Optional[asyncpg.Connection] = None,
    ) -> List[str]:
        """
        Get column names of a table in ordinal order.

        Args:
            table: Table name (any table in the current schema)
            use_cache: Whether to use the cached column list
            conn: Connection to run on; a pooled connection otherwise

        Returns:
            Column names, empty if the table does not exist

        Raises:
            SchemaError: On database error
        """
        if use_cache:
            cached = self.cache.get(table)
            if cached is not None:
                return cached

        try:
            if conn is not None:
                rows = await conn.fetch(COLUMNS_QUERY, table)
            else:
                async with self.pool.acquire() as pooled:
                    rows = await pooled.fetch(COLUMNS_QUERY, table)
        except asyncpg.PostgresError as e:
            raise SchemaError(f"Failed to read columns of table {table}: {e}") from e

        columns = [row["column_name"] for row in rows]
        if columns:
            self.cache.set(table, columns)
        logger.debug("table_columns_loaded", table=table, columns=len(columns))
        return columns

    async def check_table_structure(
        self,
        table: str,
        expected: Sequence[str],
        conn: Optional[asyncpg.Connection] = None,
    ) -> None:
        """
        Verify a table still has every column the sync writes.

        Always reads the live structure.

        Raises:
            SchemaMismatchError: Naming the first missing column
        """
        actual = {name.lower() for name in await self.get_column_names(table, use_cache=False, conn=conn)}
        for column in expected:
            if column.lower() not in actual:
                logger.error("table_structure_changed", table=table, missing_column=column)
                raise SchemaMismatchError(table, column)

    async def is_column_id(self, table: str, column: str) -> bool:
        """
        Check whether a column could serve as an identifier.

        Table and column names are case-insensitive.

        Returns:
            True when the column has at least one non-null value and no
            duplicate non-null values

        Raises:
            ValueError: If table or column is not a plain identifier
            SchemaError: On database error (e.g. unknown table or column)
        """
        # Unquoted SQL folds names to lower case; keep that for quoted ones
        quoted_column = quote_identifier(column.lower())
        quoted_table = quote_identifier(table.lower())
        query = (
            f"SELECT COUNT(DISTINCT {quoted_column}) AS distinct_count, "
            f"COUNT({quoted_column}) AS total_count "
            f"FROM {quoted_table}"
        )
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query)
        except asyncpg.PostgresError as e:
            raise SchemaError(f"Failed to check uniqueness of {table}.{column}: {e}") from e

        if row is None:
            return False
        total = row["total_count"]
        return total > 0 and row["distinct_count"] == total

    async def get_ddl_change(self, table: str) -> str:
        """
        Build the DDL that brings a live table up to its definition.

        Only column additions are produced; columns present in the
        database but not in the definition are left alone.

        Args:
            table: Catalog table name (``offers`` covers ``offer_params``)

        Returns:
            Semicolon-terminated statements, the full CREATE script when
            the table is missing, or an empty string when up to date

        Raises:
            UnknownTableError: If the table is not a catalog table
        """
        definition = get_table(table)
        statements: List[str] = []

        for current in (definition,) + definition.children:
            existing = await self.get_column_names(current.name, use_cache=False)
            if not existing:
                statements.extend(current.create_statements(include_children=False))
            else:
                statements.extend(current.add_column_statements(existing))

        if not statements:
            logger.info("table_up_to_date", table=definition.name)
            return ""

        logger.info("table_ddl_change_built", table=definition.name, statements=len(statements))
        return ";\n".join(statements) + ";\n"

    async def create_tables(self) -> List[str]:
        """
        Create every catalog table and index that does not exist yet.

        Runs in a single transaction, in dependency order.

        Returns:
            Names of the tables processed
        """
        created = []
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    for definition in TABLES.values():
                        for statement in definition.create_statements():
                            await conn.execute(statement)
                        created.append(definition.name)
                        created.extend(child.name for child in definition.children)
        except asyncpg.PostgresError as e:
            raise SchemaError(f"Failed to create catalog tables: {e}") from e
        finally:
            self.cache.clear()

        logger.info("catalog_tables_ensured", tables=created)
        return created

    async def apply_ddl_change(self, table: str) -> str:
        """
        Execute the DDL returned by get_ddl_change.

        Returns:
            The executed DDL (empty when nothing changed)
        """
        ddl = await self.get_ddl_change(table)
        if not ddl:
            return ddl

        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(ddl)
        except asyncpg.PostgresError as e:
            raise SchemaError(f"Failed to apply DDL change to {table}: {e}") from e
        finally:
            self.cache.clear()

        logger.info("table_ddl_change_applied", table=table)
        return ddl
