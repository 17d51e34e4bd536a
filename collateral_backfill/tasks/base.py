"""Base migration task: collect, filter, migrate, report."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from datetime import datetime
import logging

from ..executors.base import BaseExecutor
from ..models.migration import MigrationResult, TaskStatus
from ..models.record import Record
from ..services.reporting import ProgressLogger, ReportWriter

logger = logging.getLogger(__name__)


class MigrationTask(ABC):
    """
    Base class for backfill tasks.

    A task collects every record of one kind, keeps the ones still missing
    the target field (the candidates) and runs a mutation on each of them
    through its executor. Re-running a task only touches records that are
    still candidates, including the ones that failed last time.

    A collection failure propagates: nothing has been mutated yet.
    Per-record failures end up in the task's error report.
    """

    name: str = ""
    entity: str = ""

    def __init__(
        self,
        executor: BaseExecutor,
        reporter: Optional[ReportWriter] = None,
        dry_run: bool = False,
        save_candidates: bool = False
    ):
        """
        Initialize the task.

        Args:
            executor: Executor used to apply the mutation
            reporter: Writer for error reports and candidate snapshots
            dry_run: If True, stop after selecting candidates
            save_candidates: If True, snapshot candidates to disk
        """
        self.executor = executor
        self.reporter = reporter
        self.dry_run = dry_run
        self.save_candidates = save_candidates

    @abstractmethod
    async def collect(self) -> List[Record]:
        """Fetch every record this task may migrate."""
        pass

    @abstractmethod
    def is_candidate(self, record: Record) -> bool:
        """Whether the record still lacks the target field."""
        pass

    @abstractmethod
    async def migrate_record(self, record: Record) -> Any:
        """Apply the mutation to one candidate. Raises on failure."""
        pass

    def select_candidates(self, records: List[Record], result: MigrationResult) -> List[Record]:
        """Filter collected records down to candidates."""
        return [r for r in records if self.is_candidate(r)]

    async def run(self) -> MigrationResult:
        """
        Run the task.

        Returns:
            MigrationResult with candidate, update and error counts
        """
        result = MigrationResult(task=self.name, entity=self.entity)
        result.started_at = datetime.utcnow()
        result.status = TaskStatus.COLLECTING

        records = await self.collect()
        result.total_records = len(records)

        candidates = self.select_candidates(records, result)
        result.total_candidates = len(candidates)
        logger.info(f"{self.name}: {len(candidates)} of {len(records)} {self.entity} records need migrating")

        if self.save_candidates and self.reporter and candidates:
            self.reporter.save_candidates(self.name, candidates)

        if self.dry_run:
            result.status = TaskStatus.SKIPPED
            result.completed_at = datetime.utcnow()
            logger.info(f"{self.name}: dry run, no records changed")
            return result

        result.status = TaskStatus.MIGRATING
        batch = await self.executor.run(
            candidates,
            self.migrate_record,
            progress=ProgressLogger(self.name),
        )
        result.apply_batch(batch)
        result.completed_at = datetime.utcnow()

        if self.reporter:
            result.report_path = str(self.reporter.save_errors(self.name, result))

        logger.info(
            f"{self.name}: updated {result.total_updated}/{result.total_candidates}, "
            f"{result.total_failed} failed"
        )
        return result
