"""PostgreSQL writer components."""

from .schema_cache import SchemaCache
from .schema_manager import SchemaManager
from .catalog_writer import CatalogWriter
from .tables import get_table_ddl, get_table_names

__all__ = ["SchemaManager", "SchemaCache", "CatalogWriter", "get_table_ddl", "get_table_names"]
