"""Bounded-concurrency executor."""

import asyncio
import logging
from typing import Any, Iterable, Optional
from datetime import datetime

from .base import BaseExecutor, KeyFunc, Operation, ProgressCallback, record_id
from ..models.migration import BatchResult

logger = logging.getLogger(__name__)


class ConcurrentBatchExecutor(BaseExecutor):
    """
    Runs operations concurrently, at most ``concurrency`` in flight.

    Outcomes are merged by a single loop as each invocation settles, so the
    error map and counters are only ever touched from one place. The final
    BatchResult does not depend on the concurrency bound.
    """

    def __init__(self, concurrency: int = 10):
        """
        Initialize the executor.

        Args:
            concurrency: Maximum number of operations in flight
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency

    async def run(
        self,
        items: Iterable[Any],
        operation: Operation,
        key: KeyFunc = record_id,
        progress: Optional[ProgressCallback] = None
    ) -> BatchResult:
        """Apply the operation to every item with bounded concurrency."""
        items = list(items)
        result = self._start(len(items))

        if not items:
            result.completed_at = datetime.utcnow()
            return result

        semaphore = asyncio.Semaphore(self.concurrency)

        async def invoke_with_semaphore(item: Any):
            async with semaphore:
                return await self._invoke(item, operation, key)

        tasks = [asyncio.ensure_future(invoke_with_semaphore(item)) for item in items]

        completed = 0
        for next_done in asyncio.as_completed(tasks):
            outcome = await next_done
            completed += 1
            self._record(result, outcome, completed, progress)

        result.completed_at = datetime.utcnow()
        logger.info(
            f"Batch finished: {result.succeeded}/{result.total} succeeded, "
            f"{result.failed} failed (concurrency={self.concurrency})"
        )
        return result
