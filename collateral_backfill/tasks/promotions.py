"""Backfill HasCollateralBundle on promotion documents."""

import logging
from typing import Any, Dict, List, Optional

from .base import MigrationTask
from ..clients.documents import CosmosDocumentStore
from ..executors.base import BaseExecutor
from ..models.record import Record
from ..services.reporting import ReportWriter

logger = logging.getLogger(__name__)


COLLATERAL_BUNDLE_FIELD = "HasCollateralBundle"
PROMOTIONS_QUERY = "SELECT * FROM root"


class PromotionsTask(MigrationTask):
    """
    Adds ``HasCollateralBundle = false`` to promotions that lack the field.

    The document database only replaces whole documents, so each candidate
    is changed in memory and written back in full. Run it with a
    RateLimitedSequentialApplier: bursts get throttled.
    """

    name = "collateral-promos"
    entity = "promotion"

    def __init__(
        self,
        documents: CosmosDocumentStore,
        executor: BaseExecutor,
        reporter: Optional[ReportWriter] = None,
        **kwargs
    ):
        super().__init__(executor, reporter, **kwargs)
        self.documents = documents

    async def collect(self) -> List[Record]:
        documents = await self.documents.query_all(PROMOTIONS_QUERY)
        return [Record.from_document(self.entity, doc) for doc in documents or []]

    def is_candidate(self, record: Record) -> bool:
        return COLLATERAL_BUNDLE_FIELD not in record.data

    async def migrate_record(self, record: Record) -> Dict[str, Any]:
        record.data[COLLATERAL_BUNDLE_FIELD] = False
        return await self.documents.replace(record.data)
