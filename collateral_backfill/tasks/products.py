"""Backfill xp.IsCollateralProduct on catalog products."""

import logging
from typing import Any, Dict, List, Optional

from .base import MigrationTask
from ..clients.catalog import CatalogClient
from ..executors.base import BaseExecutor
from ..extractors.base import PagedCollector
from ..models.record import Record
from ..services.reporting import ReportWriter

logger = logging.getLogger(__name__)


COLLATERAL_PRODUCT_FIELD = "IsCollateralProduct"


class ProductsTask(MigrationTask):
    """
    Adds ``xp.IsCollateralProduct = false`` to products that lack the key.

    Products already carrying the key are left alone whatever its value.
    """

    name = "collateral-products"
    entity = "product"

    def __init__(
        self,
        catalog: CatalogClient,
        executor: BaseExecutor,
        reporter: Optional[ReportWriter] = None,
        **kwargs
    ):
        super().__init__(executor, reporter, **kwargs)
        self.catalog = catalog

    async def collect(self) -> List[Record]:
        return await PagedCollector(self.catalog.list_products, label="products").collect()

    def is_candidate(self, record: Record) -> bool:
        return not record.has_xp_field(COLLATERAL_PRODUCT_FIELD)

    async def migrate_record(self, record: Record) -> Dict[str, Any]:
        return await self.catalog.patch_product(
            record.id,
            {"xp": {COLLATERAL_PRODUCT_FIELD: False}},
        )
