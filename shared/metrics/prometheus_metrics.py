"""Prometheus metrics definitions and helpers.

Provides metric definitions for the catalog sync pipeline.
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class CatalogSyncMetrics:
    """Catalog sync pipeline metrics."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize catalog sync metrics.

        Args:
            registry: Prometheus registry to use
        """
        # Rows written
        self.rows_written = Counter(
            "catalog_sync_rows_written_total",
            "Total number of rows upserted into catalog tables",
            ["table"],
            registry=registry,
        )

        # Table update failures
        self.update_failures = Counter(
            "catalog_sync_update_failures_total",
            "Total number of failed table updates",
            ["table", "error_type"],
            registry=registry,
        )

        # Update duration
        self.update_duration = Histogram(
            "catalog_sync_update_duration_seconds",
            "Time spent updating a catalog table",
            ["table"],
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=registry,
        )

        # Feed fetch duration
        self.feed_fetch_duration = Histogram(
            "catalog_sync_feed_fetch_duration_seconds",
            "Time spent downloading and parsing the catalog feed",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
            registry=registry,
        )

        # Offers skipped by the parser
        self.offers_skipped = Counter(
            "catalog_sync_offers_skipped_total",
            "Number of feed offers skipped because of a missing or invalid id",
            registry=registry,
        )


_metrics_instance: Optional[CatalogSyncMetrics] = None


def get_metrics() -> CatalogSyncMetrics:
    """Get or create the process-wide metrics instance.

    Returns:
        CatalogSyncMetrics registered on the default registry
    """
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = CatalogSyncMetrics()
    return _metrics_instance


def start_metrics_server(port: int) -> bool:
    """Expose the default registry over HTTP.

    Args:
        port: Port to listen on; 0 disables the exporter

    Returns:
        True if the exporter was started
    """
    if port <= 0:
        return False
    start_http_server(port)
    return True

