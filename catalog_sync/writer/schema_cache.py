"""TTL-based caching for live table column lists.

Avoids an information_schema round trip for every structure check.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


class SchemaCache:
    """TTL cache mapping table name to its column names."""

    def __init__(self, ttl_seconds: int = 300):
        """
        Initialize cache.

        Args:
            ttl_seconds: Time-to-live in seconds (default: 5 minutes)
        """
        self._cache: Dict[str, Tuple[List[str], datetime]] = {}
        self._ttl = timedelta(seconds=ttl_seconds)
        self.hits = 0
        self.misses = 0

    def get(self, table: str) -> Optional[List[str]]:
        """
        Get cached columns if not expired.

        Args:
            table: Table name

        Returns:
            Copy of the cached column list, or None if missing or expired
        """
        entry = self._cache.get(table)
        if entry is not None:
            columns, cached_at = entry
            if datetime.now() - cached_at < self._ttl:
                self.hits += 1
                return list(columns)
            logger.debug("schema_cache_expired", table=table)
            del self._cache[table]

        self.misses += 1
        return None

    def set(self, table: str, columns: List[str]) -> None:
        self._cache[table] = (list(columns), datetime.now())
        logger.debug("schema_cached", table=table, columns=len(columns))

    def invalidate(self, table: str) -> None:
        """Drop one table's entry; unknown tables are ignored."""
        if self._cache.pop(table, None) is not None:
            logger.debug("schema_cache_invalidated", table=table)

    def clear(self) -> None:
        count = len(self._cache)
        self._cache.clear()
        logger.debug("schema_cache_cleared", entries_removed=count)
