"""Progress logging and JSON report persistence."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List

from ..models.migration import BackfillRun, MigrationResult
from ..models.record import Record

logger = logging.getLogger(__name__)


class ProgressLogger:
    """Logs "K of N done" as elements settle."""

    def __init__(self, label: str, every: int = 1):
        self.label = label
        self.every = max(1, every)
        self.last_completed = 0

    def __call__(self, completed: int, total: int) -> None:
        self.last_completed = completed
        if completed % self.every == 0 or completed == total:
            logger.info(f"{self.label}: {completed} of {total} done")


class ReportWriter:
    """Writes error reports, candidate snapshots and run summaries as JSON."""

    def __init__(self, output_dir: str = "./data"):
        base = Path(output_dir)
        self.reports_dir = base / "reports"
        self.candidates_dir = base / "candidates"
        self.logs_dir = base / "logs"

    def _write(self, directory: Path, name: str, payload: Any) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.utcnow().strftime('%Y%m%d_%H%M%S_%f')
        filepath = directory / f"{name}_{timestamp}.json"
        with open(filepath, 'w') as f:
            json.dump(payload, f, indent=2, default=str)
        return filepath

    def save_errors(self, name: str, result: MigrationResult) -> Path:
        """Save failed record id -> error detail for one task."""
        filepath = self._write(self.reports_dir, name, result.error_report())
        if result.errors:
            logger.warning(f"{name}: {len(result.errors)} record(s) failed, see {filepath}")
        else:
            logger.info(f"{name}: no errors, report saved to {filepath}")
        return filepath

    def save_candidates(self, name: str, records: List[Record]) -> Path:
        """Save the records selected for migration."""
        filepath = self._write(self.candidates_dir, name, [r.to_dict() for r in records])
        logger.debug(f"Saved {len(records)} {name} candidates to {filepath}")
        return filepath

    def save_run(self, run: BackfillRun) -> Path:
        """Save the run summary."""
        filepath = self._write(self.logs_dir, "backfill_run", run.to_dict())
        logger.info(f"Saved backfill report to {filepath}")
        return filepath
