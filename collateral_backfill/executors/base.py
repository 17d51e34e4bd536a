"""Base executor interface for bulk record operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Optional
from datetime import datetime
import logging

from ..models.migration import BatchResult

logger = logging.getLogger(__name__)


Operation = Callable[[Any], Awaitable[Any]]
KeyFunc = Callable[[Any], str]
ProgressCallback = Callable[[int, int], None]


def record_id(item: Any) -> str:
    """Default key: the item's ``id`` attribute."""
    return str(getattr(item, "id", item))


@dataclass
class ElementOutcome:
    """How a single invocation settled."""
    key: str
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.error is None


class BaseExecutor(ABC):
    """
    Base class for executors.

    Executors apply an async operation to every element of a collection.
    Every element gets exactly one invocation; a failure is recorded against
    the element's key and never stops the batch.
    """

    @abstractmethod
    async def run(
        self,
        items: Iterable[Any],
        operation: Operation,
        key: KeyFunc = record_id,
        progress: Optional[ProgressCallback] = None
    ) -> BatchResult:
        """
        Apply the operation to every item.

        Args:
            items: Elements to process
            operation: Async function called once per element
            key: Identifier of an element, used to key errors
            progress: Called with (completed, total) as each element settles

        Returns:
            BatchResult with success count and per-element errors
        """
        pass

    async def _invoke(self, item: Any, operation: Operation, key: KeyFunc) -> ElementOutcome:
        """Run the operation once, capturing any failure."""
        try:
            item_key = key(item)
        except Exception as e:
            item_key = repr(item)
            logger.warning(f"Key function failed for {item_key}: {e}")

        try:
            await operation(item)
        except Exception as e:
            logger.error(f"Operation failed for {item_key}: {e}")
            return ElementOutcome(key=item_key, error=e)
        return ElementOutcome(key=item_key)

    @staticmethod
    def _start(total: int) -> BatchResult:
        return BatchResult(total=total, started_at=datetime.utcnow())

    @staticmethod
    def _record(
        result: BatchResult,
        outcome: ElementOutcome,
        completed: int,
        progress: Optional[ProgressCallback]
    ) -> None:
        """Merge one outcome into the batch result."""
        if outcome.success:
            result.succeeded += 1
        else:
            result.errors[outcome.key] = outcome.error

        if progress:
            progress(completed, result.total)
