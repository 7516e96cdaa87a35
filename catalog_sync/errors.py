"""Exception hierarchy for catalog sync."""

from typing import Optional


class CatalogSyncError(Exception):
    """Base class for catalog sync failures."""


class FeedLoadError(CatalogSyncError):
    """The feed could not be downloaded or read."""


class FeedParseError(CatalogSyncError):
    """The feed is not well-formed or violates the catalog format."""


class UnknownTableError(CatalogSyncError, ValueError):
    """A table name outside the managed catalog tables was requested."""

    def __init__(self, table: str):
        super().__init__(f"Unknown table name: {table}")
        self.table = table


class SchemaError(CatalogSyncError):
    """Reading or changing table structure failed."""


class SchemaMismatchError(SchemaError):
    """A live table lacks a column the sync writes."""

    def __init__(self, table: str, missing_column: str):
        super().__init__(
            f"Structure of table {table} has changed. Missing column: {missing_column}"
        )
        self.table = table
        self.missing_column = missing_column


class TableUpdateError(CatalogSyncError):
    """Writing feed rows into a table failed and was rolled back."""

    def __init__(self, table: str, message: Optional[str] = None):
        super().__init__(f"Failed to update table {table}: {message}" if message else f"Failed to update table {table}")
        self.table = table
