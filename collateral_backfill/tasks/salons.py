"""Backfill xp.CollateralClassificationID on salons (buyer user groups)."""

import functools
import logging
from typing import Any, Dict, List, Optional

from .base import MigrationTask
from ..clients.catalog import CatalogClient
from ..exceptions import ConfigurationError
from ..executors.base import BaseExecutor
from ..extractors.base import PagedCollector
from ..models.migration import MigrationResult
from ..models.record import Record
from ..services.classification import ClassificationMap
from ..services.reporting import ReportWriter

logger = logging.getLogger(__name__)


CLASSIFICATION_FIELD = "Classification"
COLLATERAL_CLASSIFICATION_FIELD = "CollateralClassificationID"
SALON_ID_FILTER = {"ID": "SoldTo*"}


class SalonsTask(MigrationTask):
    """
    Sets ``xp.CollateralClassificationID`` from the salon's ``xp.Classification``.

    Only user groups of one explicitly configured buyer are considered, and
    only those whose ID starts with ``SoldTo``. Salons without a
    Classification cannot be migrated; they are counted as unclassified and
    left untouched, with no error recorded.
    """

    name = "collateral-salons"
    entity = "salon"

    def __init__(
        self,
        catalog: CatalogClient,
        buyer_id: Optional[str],
        classifications: ClassificationMap,
        executor: BaseExecutor,
        reporter: Optional[ReportWriter] = None,
        **kwargs
    ):
        if not buyer_id:
            raise ConfigurationError("A buyer id is required to migrate salons")

        super().__init__(executor, reporter, **kwargs)
        self.catalog = catalog
        self.buyer_id = buyer_id
        self.classifications = classifications

    async def collect(self) -> List[Record]:
        fetch = functools.partial(self.catalog.list_user_groups, self.buyer_id)
        collector = PagedCollector(fetch, filters=SALON_ID_FILTER, label=f"salons of buyer {self.buyer_id}")
        return await collector.collect()

    def is_candidate(self, record: Record) -> bool:
        return (
            record.xp is not None
            and bool(record.get_xp(CLASSIFICATION_FIELD))
            and not record.has_xp_field(COLLATERAL_CLASSIFICATION_FIELD)
        )

    def is_unclassified(self, record: Record) -> bool:
        """Not migrated yet, but has no Classification to migrate from."""
        return (
            not record.has_xp_field(COLLATERAL_CLASSIFICATION_FIELD)
            and not record.get_xp(CLASSIFICATION_FIELD)
        )

    def select_candidates(self, records: List[Record], result: MigrationResult) -> List[Record]:
        unclassified = [r for r in records if self.is_unclassified(r)]
        result.total_unclassified = len(unclassified)
        if unclassified:
            logger.warning(
                f"{self.name}: {len(unclassified)} salons have no Classification and will not be migrated"
            )
            logger.debug(f"Unclassified salons: {', '.join(r.id for r in unclassified)}")

        return super().select_candidates(records, result)

    async def migrate_record(self, record: Record) -> Dict[str, Any]:
        classification_id = self.classifications.resolve(
            record.get_xp(CLASSIFICATION_FIELD),
            record_id=record.id,
            record=record.data,
        )
        return await self.catalog.patch_user_group(
            self.buyer_id,
            record.id,
            {"xp": {COLLATERAL_CLASSIFICATION_FIELD: classification_id}},
        )
