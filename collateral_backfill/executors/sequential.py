"""One-at-a-time executor with a fixed pause between operations."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional
from datetime import datetime

from .base import BaseExecutor, KeyFunc, Operation, ProgressCallback, record_id
from ..models.migration import BatchResult

logger = logging.getLogger(__name__)


class RateLimitedSequentialApplier(BaseExecutor):
    """
    Applies operations strictly in input order, never overlapping.

    After each invocation, successful or not, it waits ``delay_seconds``
    before starting the next one. This keeps the request rate under the
    document database budget; a throttled request is still just a
    per-element error.
    """

    def __init__(
        self,
        delay_seconds: float = 0.1,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        """
        Initialize the applier.

        Args:
            delay_seconds: Pause between two consecutive operations
            sleep: Async sleep function
        """
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds cannot be negative, got {delay_seconds}")
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def run(
        self,
        items: Iterable[Any],
        operation: Operation,
        key: KeyFunc = record_id,
        progress: Optional[ProgressCallback] = None
    ) -> BatchResult:
        """Apply the operation to each item in order, pausing in between."""
        items = list(items)
        result = self._start(len(items))

        for index, item in enumerate(items):
            outcome = await self._invoke(item, operation, key)
            self._record(result, outcome, index + 1, progress)

            if index < len(items) - 1 and self.delay_seconds > 0:
                await self._sleep(self.delay_seconds)

        result.completed_at = datetime.utcnow()
        logger.info(
            f"Sequential batch finished: {result.succeeded}/{result.total} succeeded, "
            f"{result.failed} failed (delay={self.delay_seconds}s)"
        )
        return result
