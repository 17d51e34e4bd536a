"""Backfill execution models and configuration."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
from pathlib import Path
import json
import os
import uuid

from ..exceptions import ConfigurationError, describe_error


# Tasks always run in this order
TASK_ORDER = ["products", "salons", "promotions"]


class TaskStatus(str, Enum):
    """Status of a migration task."""
    PENDING = "pending"
    COLLECTING = "collecting"
    MIGRATING = "migrating"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dry run, nothing mutated


@dataclass
class BatchResult:
    """Result of applying an operation to every element of a batch."""
    total: int = 0
    succeeded: int = 0
    errors: Dict[str, Exception] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def failed(self) -> int:
        return len(self.errors)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationResult:
    """Outcome of one migration task."""
    task: str
    entity: str = ""
    status: TaskStatus = TaskStatus.PENDING
    total_records: int = 0
    total_candidates: int = 0
    total_updated: int = 0
    total_unclassified: int = 0
    errors: Dict[str, Exception] = field(default_factory=dict)
    fatal_error: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    report_path: Optional[str] = None

    @property
    def total_failed(self) -> int:
        return len(self.errors)

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def apply_batch(self, batch: BatchResult) -> None:
        """Fold an executor result into this task result."""
        self.total_updated = batch.succeeded
        self.errors = dict(batch.errors)
        self.status = TaskStatus.COMPLETED_WITH_ERRORS if batch.errors else TaskStatus.COMPLETED

    def error_report(self) -> Dict[str, Dict[str, Any]]:
        """Failed record id -> error detail."""
        return {record_id: describe_error(error) for record_id, error in self.errors.items()}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task": self.task,
            "entity": self.entity,
            "status": self.status.value,
            "total_records": self.total_records,
            "total_candidates": self.total_candidates,
            "total_updated": self.total_updated,
            "total_failed": self.total_failed,
            "total_unclassified": self.total_unclassified,
            "errors": self.error_report(),
            "fatal_error": self.fatal_error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "report_path": self.report_path,
        }


@dataclass
class BackfillRun:
    """A complete backfill run over the selected tasks."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    dry_run: bool = False
    results: List[MigrationResult] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def has_failures(self) -> bool:
        """True when a task failed outright or any record could not be migrated."""
        return any(
            r.status == TaskStatus.FAILED or r.errors
            for r in self.results
        )

    @property
    def exit_code(self) -> int:
        return 1 if self.has_failures else 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def get_result(self, task: str) -> Optional[MigrationResult]:
        for result in self.results:
            if result.task == task:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class CatalogSettings:
    """Connection and throughput settings for the catalog service."""
    api_url: str = "https://api.ordercloud.io/v1"
    auth_url: str = "https://auth.ordercloud.io"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    scope: str = "FullAccess"
    buyer_id: Optional[str] = None  # Scope of the salons task
    page_size: int = 100
    concurrency: int = 10
    timeout_seconds: float = 30.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "api_url": self.api_url,
            "auth_url": self.auth_url,
            "client_id": self.client_id,
            "scope": self.scope,
            "buyer_id": self.buyer_id,
            "page_size": self.page_size,
            "concurrency": self.concurrency,
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass
class DocumentStoreSettings:
    """Connection settings for the promotions document database."""
    endpoint: Optional[str] = None
    key: Optional[str] = None
    database: Optional[str] = None
    container: str = "promotions"
    delay_seconds: float = 0.1  # Pause between replaces, keeps under the request-rate budget

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "database": self.database,
            "container": self.container,
            "delay_seconds": self.delay_seconds,
        }


@dataclass
class BackfillConfig:
    """Configuration for a backfill run."""
    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    documents: DocumentStoreSettings = field(default_factory=DocumentStoreSettings)
    tasks: List[str] = field(default_factory=lambda: list(TASK_ORDER))

    # Execution options
    dry_run: bool = False

    # Output
    output_dir: str = "./data"
    save_candidates: bool = True

    classification_map_file: Optional[str] = None

    ENV_VARS = {
        "CATALOG_API_URL": ("catalog", "api_url"),
        "CATALOG_AUTH_URL": ("catalog", "auth_url"),
        "CATALOG_CLIENT_ID": ("catalog", "client_id"),
        "CATALOG_CLIENT_SECRET": ("catalog", "client_secret"),
        "CATALOG_BUYER_ID": ("catalog", "buyer_id"),
        "COSMOS_ENDPOINT": ("documents", "endpoint"),
        "COSMOS_KEY": ("documents", "key"),
        "COSMOS_DATABASE": ("documents", "database"),
        "COSMOS_CONTAINER": ("documents", "container"),
    }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (secrets omitted)."""
        return {
            "catalog": self.catalog.to_dict(),
            "documents": self.documents.to_dict(),
            "tasks": self.tasks,
            "dry_run": self.dry_run,
            "output_dir": self.output_dir,
            "save_candidates": self.save_candidates,
            "classification_map_file": self.classification_map_file,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackfillConfig":
        """
        Create from dictionary representation.

        Raises:
            ConfigurationError: A section is not an object or a number is malformed
        """
        catalog_data = data.get("catalog") or {}
        documents_data = data.get("documents") or {}
        for section, section_data in (("catalog", catalog_data), ("documents", documents_data)):
            if not isinstance(section_data, dict):
                raise ConfigurationError(f"Config section '{section}' must be an object")

        try:
            page_size = int(catalog_data.get("page_size", 100))
            concurrency = int(catalog_data.get("concurrency", 10))
            timeout_seconds = float(catalog_data.get("timeout_seconds", 30.0))
            delay_seconds = float(documents_data.get("delay_seconds", 0.1))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        catalog = CatalogSettings(
            api_url=catalog_data.get("api_url", CatalogSettings.api_url),
            auth_url=catalog_data.get("auth_url", CatalogSettings.auth_url),
            client_id=catalog_data.get("client_id"),
            client_secret=catalog_data.get("client_secret"),
            scope=catalog_data.get("scope", CatalogSettings.scope),
            buyer_id=catalog_data.get("buyer_id"),
            page_size=page_size,
            concurrency=concurrency,
            timeout_seconds=timeout_seconds,
        )

        documents = DocumentStoreSettings(
            endpoint=documents_data.get("endpoint"),
            key=documents_data.get("key"),
            database=documents_data.get("database"),
            container=documents_data.get("container", "promotions"),
            delay_seconds=delay_seconds,
        )

        return cls(
            catalog=catalog,
            documents=documents,
            tasks=list(data.get("tasks", TASK_ORDER)),
            dry_run=data.get("dry_run", False),
            output_dir=data.get("output_dir", "./data"),
            save_candidates=data.get("save_candidates", True),
            classification_map_file=data.get("classification_map_file"),
        )

    @classmethod
    def from_file(cls, path: str) -> "BackfillConfig":
        """Load configuration from a JSON file."""
        filepath = Path(path)
        if not filepath.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        try:
            with open(filepath) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a JSON object")

        return cls.from_dict(data)

    def with_env(self, environ: Optional[Dict[str, str]] = None) -> "BackfillConfig":
        """Overlay connection settings from environment variables."""
        environ = os.environ if environ is None else environ

        for var, (section, attr) in self.ENV_VARS.items():
            value = environ.get(var)
            if value:
                setattr(getattr(self, section), attr, value)

        return self

    def validate(self) -> List[str]:
        """
        Validate the configuration.

        Returns:
            List of validation error messages
        """
        errors = []

        unknown = [t for t in self.tasks if t not in TASK_ORDER]
        if unknown:
            errors.append(f"Unknown tasks: {', '.join(unknown)} (expected {', '.join(TASK_ORDER)})")

        if self.catalog.concurrency < 1:
            errors.append("catalog.concurrency must be at least 1")

        if self.catalog.page_size < 1:
            errors.append("catalog.page_size must be at least 1")

        if self.documents.delay_seconds < 0:
            errors.append("documents.delay_seconds cannot be negative")

        if {"products", "salons"} & set(self.tasks):
            if not self.catalog.client_id or not self.catalog.client_secret:
                errors.append("Catalog client_id and client_secret are required (CATALOG_CLIENT_ID / CATALOG_CLIENT_SECRET)")

        if "salons" in self.tasks and not self.catalog.buyer_id:
            errors.append("catalog.buyer_id is required for the salons task (CATALOG_BUYER_ID)")

        if "promotions" in self.tasks:
            if not self.documents.endpoint or not self.documents.key or not self.documents.database:
                errors.append("Document store endpoint, key and database are required (COSMOS_ENDPOINT / COSMOS_KEY / COSMOS_DATABASE)")

        return errors

    @property
    def selected_tasks(self) -> List[str]:
        """Selected tasks in execution order."""
        return [t for t in TASK_ORDER if t in self.tasks]
