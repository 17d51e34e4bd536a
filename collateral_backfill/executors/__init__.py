"""Executors applying an operation to every record of a batch."""

from .base import BaseExecutor, record_id
from .concurrent import ConcurrentBatchExecutor
from .sequential import RateLimitedSequentialApplier

__all__ = [
    "BaseExecutor",
    "ConcurrentBatchExecutor",
    "RateLimitedSequentialApplier",
    "record_id",
]
