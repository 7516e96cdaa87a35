"""Download or read the catalog feed and turn it into a Catalog."""

import asyncio
import time
from pathlib import Path
from typing import Optional

import aiohttp
import structlog

from shared.metrics import CatalogSyncMetrics

from ..config import FeedConfig
from ..errors import FeedLoadError
from ..models.catalog import Catalog
from ..utils.error_handler import RetryConfig, RetryMetrics, retry_with_backoff
from .parser import parse_catalog

logger = structlog.get_logger(__name__)


class FeedLoader:
    """Loads the YML feed from a URL or a local file."""

    def __init__(
        self,
        config: FeedConfig,
        metrics: Optional[CatalogSyncMetrics] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        """
        Initialize feed loader.

        Args:
            config: Feed source configuration
            metrics: Optional Prometheus metrics
            retry_config: Download retry policy (defaults to config.max_attempts)
        """
        self.config = config
        self.metrics = metrics
        self.retry_config = retry_config or RetryConfig(max_attempts=config.max_attempts)
        self.retry_metrics = RetryMetrics()

    async def load(self) -> Catalog:
        """
        Fetch and parse the feed.

        Returns:
            Parsed catalog

        Raises:
            FeedLoadError: If the feed cannot be obtained
            FeedParseError: If the feed cannot be parsed
        """
        start_time = time.time()
        data = await self.fetch()
        catalog = parse_catalog(data)
        duration = time.time() - start_time

        if self.metrics:
            self.metrics.feed_fetch_duration.observe(duration)
            if catalog.skipped_offers:
                self.metrics.offers_skipped.inc(catalog.skipped_offers)

        logger.info(
            "feed_loaded",
            source=self.source,
            bytes=len(data),
            duration_seconds=round(duration, 3),
            **catalog.summary()
        )
        return catalog

    @property
    def source(self) -> str:
        return self.config.path or self.config.url

    async def fetch(self) -> bytes:
        """
        Get the raw feed bytes.

        A configured local path takes precedence over the URL.

        Raises:
            FeedLoadError: On any read or download failure
        """
        if self.config.path:
            return await self._read_file(Path(self.config.path))

        download = retry_with_backoff(self.retry_config, metrics=self.retry_metrics)(self._download)
        try:
            return await download(self.config.url)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise FeedLoadError(f"Failed to download feed {self.config.url}: {e}") from e

    async def _download(self, url: str) -> bytes:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.read()

    async def _read_file(self, path: Path) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FeedLoadError(f"Failed to read feed file {path}: {e}") from e

