"""Data models for the backfill."""

from .catalog import (
    CatalogPage,
    PageMeta,
)
from .migration import (
    TASK_ORDER,
    BackfillConfig,
    BackfillRun,
    BatchResult,
    CatalogSettings,
    DocumentStoreSettings,
    MigrationResult,
    TaskStatus,
)
from .record import Record

__all__ = [
    "CatalogPage",
    "PageMeta",
    "TASK_ORDER",
    "BackfillConfig",
    "BackfillRun",
    "BatchResult",
    "CatalogSettings",
    "DocumentStoreSettings",
    "MigrationResult",
    "TaskStatus",
    "Record",
]
