"""
Exception hierarchy for the collateral backfill.

Errors fall into two groups:
- Fatal for a task: configuration, authentication and collection failures.
  They abort the task before any record is mutated.
- Per record: API rejections and unresolvable classifications. They are
  captured against the record id and the batch keeps going.
"""

from typing import Any, Dict, Optional


class BackfillError(Exception):
    """Base exception for the collateral backfill."""
    pass


class ConfigurationError(BackfillError):
    """Missing or invalid configuration."""
    pass


class AuthenticationError(BackfillError):
    """Could not obtain an access token for the catalog service."""
    pass


class CatalogAPIError(BackfillError):
    """
    Error returned by the catalog service.

    status_code is None for transport failures (DNS, connection reset...).
    """
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        prefix = f"Catalog API error ({status_code})" if status_code else "Catalog API error"
        super().__init__(f"{prefix}: {message}")


class PaginationError(BackfillError):
    """A page claimed more results but gave no way to reach them."""
    pass


class UnresolvedClassificationError(BackfillError):
    """A salon classification label is not in the classification map."""
    def __init__(
        self,
        record_id: str,
        classification: Any,
        record: Optional[Dict[str, Any]] = None
    ):
        self.record_id = record_id
        self.classification = classification
        self.record = record
        super().__init__(
            f"No collateral classification for {classification!r} (salon {record_id})"
        )


def describe_error(error: BaseException) -> Dict[str, Any]:
    """Render an exception as a JSON-safe dict for error reports."""
    detail: Dict[str, Any] = {
        "error": str(error),
        "error_type": type(error).__name__,
    }

    status_code = getattr(error, "status_code", None)
    if status_code is not None:
        detail["status_code"] = status_code

    if isinstance(error, UnresolvedClassificationError):
        detail["classification"] = error.classification
        if error.record is not None:
            detail["record"] = error.record

    return detail
