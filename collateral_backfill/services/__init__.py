"""Services for the backfill."""

from .classification import ClassificationMap, DEFAULT_CLASSIFICATIONS, load_classification_map
from .reporting import ProgressLogger, ReportWriter

__all__ = [
    "ClassificationMap",
    "DEFAULT_CLASSIFICATIONS",
    "load_classification_map",
    "ProgressLogger",
    "ReportWriter",
]
