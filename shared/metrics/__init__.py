"""Metrics module using Prometheus."""

from .prometheus_metrics import (
    CatalogSyncMetrics,
    get_metrics,
    start_metrics_server,
)

__all__ = [
    "CatalogSyncMetrics",
    "get_metrics",
    "start_metrics_server",
]
