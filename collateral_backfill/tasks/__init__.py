"""Backfill tasks."""

from .base import MigrationTask
from .products import ProductsTask
from .promotions import PromotionsTask
from .salons import SalonsTask

__all__ = ["MigrationTask", "ProductsTask", "PromotionsTask", "SalonsTask"]
