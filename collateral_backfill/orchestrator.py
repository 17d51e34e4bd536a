"""Backfill orchestrator - runs the migration tasks in order."""

import logging
from datetime import datetime
from typing import Optional

from .clients.catalog import CatalogClient
from .clients.documents import CosmosDocumentStore
from .executors.concurrent import ConcurrentBatchExecutor
from .executors.sequential import RateLimitedSequentialApplier
from .models.migration import (
    BackfillConfig,
    BackfillRun,
    MigrationResult,
    TaskStatus,
)
from .services.classification import ClassificationMap, load_classification_map
from .services.reporting import ReportWriter
from .tasks.base import MigrationTask
from .tasks.products import ProductsTask
from .tasks.promotions import PromotionsTask
from .tasks.salons import SalonsTask

logger = logging.getLogger(__name__)


# Config task name -> task class
TASK_CLASSES = {
    "products": ProductsTask,
    "salons": SalonsTask,
    "promotions": PromotionsTask,
}


class BackfillOrchestrator:
    """
    Runs products, salons and promotions one after the other.

    Tasks are independent: a task that fails outright (bad configuration,
    collection error) is marked failed and the next one still runs.
    Concurrency lives inside each task's executor, never across tasks.
    """

    def __init__(
        self,
        config: BackfillConfig,
        catalog: Optional[CatalogClient] = None,
        documents: Optional[CosmosDocumentStore] = None,
        reporter: Optional[ReportWriter] = None,
        classifications: Optional[ClassificationMap] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Backfill configuration
            catalog: Catalog client (created from config when omitted)
            documents: Document store (created from config when omitted)
            reporter: Report writer (defaults to config.output_dir)
            classifications: Salon classification map
        """
        self.config = config
        self.reporter = reporter or ReportWriter(config.output_dir)
        self._catalog = catalog
        self._documents = documents
        self._classifications = classifications
        self._owned_clients = []

        # Runtime state
        self.run: Optional[BackfillRun] = None

    @property
    def catalog(self) -> CatalogClient:
        if self._catalog is None:
            self._catalog = CatalogClient(self.config.catalog)
            self._owned_clients.append(self._catalog)
        return self._catalog

    @property
    def documents(self) -> CosmosDocumentStore:
        if self._documents is None:
            self._documents = CosmosDocumentStore(self.config.documents)
            self._owned_clients.append(self._documents)
        return self._documents

    @property
    def classifications(self) -> ClassificationMap:
        if self._classifications is None:
            self._classifications = load_classification_map(self.config.classification_map_file)
        return self._classifications

    async def run_backfill(self) -> BackfillRun:
        """
        Run every selected task.

        Returns:
            BackfillRun with one MigrationResult per task
        """
        self.run = BackfillRun(dry_run=self.config.dry_run)
        self.run.started_at = datetime.utcnow()

        try:
            for task_name in self.config.selected_tasks:
                logger.info(f"=== {task_name.upper()} ===")
                self.run.results.append(await self._run_task(task_name))

        finally:
            await self._close_clients()
            self.run.completed_at = datetime.utcnow()
            self.reporter.save_run(self.run)

        logger.info("=== BACKFILL COMPLETED ===")
        return self.run

    async def _run_task(self, task_name: str) -> MigrationResult:
        """Build and run one task, turning a fatal error into a failed result."""
        started_at = datetime.utcnow()
        try:
            task = self._create_task(task_name)
            return await task.run()

        except Exception as e:
            logger.exception(f"Task {task_name} failed: {e}")
            task_class = TASK_CLASSES.get(task_name)
            result = MigrationResult(
                task=task_class.name if task_class else task_name,
                entity=task_class.entity if task_class else "",
                status=TaskStatus.FAILED,
                fatal_error=str(e),
            )
            result.started_at = started_at
            result.completed_at = datetime.utcnow()
            return result

    def _create_task(self, task_name: str) -> MigrationTask:
        """Create the task for a name in TASK_ORDER."""
        options = {
            "reporter": self.reporter,
            "dry_run": self.config.dry_run,
            "save_candidates": self.config.save_candidates,
        }

        if task_name == "products":
            return ProductsTask(
                self.catalog,
                ConcurrentBatchExecutor(self.config.catalog.concurrency),
                **options,
            )
        elif task_name == "salons":
            return SalonsTask(
                self.catalog,
                self.config.catalog.buyer_id,
                self.classifications,
                ConcurrentBatchExecutor(self.config.catalog.concurrency),
                **options,
            )
        elif task_name == "promotions":
            return PromotionsTask(
                self.documents,
                RateLimitedSequentialApplier(self.config.documents.delay_seconds),
                **options,
            )
        else:
            raise ValueError(f"Unsupported task: {task_name}")

    async def _close_clients(self) -> None:
        for client in self._owned_clients:
            try:
                if isinstance(client, CatalogClient):
                    await client.aclose()
                else:
                    await client.close()
            except Exception as e:
                logger.warning(f"Failed to close {type(client).__name__}: {e}")
        self._owned_clients = []
