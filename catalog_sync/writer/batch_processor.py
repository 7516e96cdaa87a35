"""Batching of feed records before they are written to PostgreSQL."""

from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BatchProcessor(Generic[T]):
    """Collects records and hands them to an async callback in fixed-size batches."""

    def __init__(
        self,
        batch_size: int = 1000,
        flush_callback: Optional[Callable[[List[T]], Awaitable[None]]] = None
    ):
        """
        Initialize batch processor.

        Args:
            batch_size: Maximum records per batch (default: 1000)
            flush_callback: Coroutine function receiving each batch
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.batch_size = batch_size
        self.flush_callback = flush_callback

        self._batch: List[T] = []
        self._metrics = {
            "batches_flushed": 0,
            "records_processed": 0,
            "size_flushes": 0,
        }

    async def add_record(self, record: T) -> None:
        """
        Add a record to the current batch.

        If batch size is reached, flush immediately.
        """
        self._batch.append(record)
        self._metrics["records_processed"] += 1

        if len(self._batch) >= self.batch_size:
            logger.debug("batch_size_reached", size=len(self._batch))
            await self._flush(reason="size")
            self._metrics["size_flushes"] += 1

    async def add_records(self, records: List[T]) -> None:
        for record in records:
            await self.add_record(record)

    async def flush(self) -> int:
        """
        Flush the remaining records.

        Returns:
            Number of records flushed
        """
        return await self._flush(reason="final")

    async def _flush(self, reason: str) -> int:
        if not self._batch:
            return 0

        batch_copy = self._batch.copy()
        self._batch.clear()

        batch_size = len(batch_copy)
        self._metrics["batches_flushed"] += 1

        logger.debug(
            "batch_flushing",
            size=batch_size,
            reason=reason,
            total_batches=self._metrics["batches_flushed"]
        )

        if self.flush_callback:
            try:
                await self.flush_callback(batch_copy)
            except Exception as e:
                logger.error("batch_flush_failed", size=batch_size, error=str(e))
                raise

        return batch_size

    def get_current_batch_size(self) -> int:
        return len(self._batch)

    def get_metrics(self) -> Dict[str, Any]:
        return {
            **self._metrics,
            "current_batch_size": len(self._batch),
        }
