"""Salon classification label -> collateral classification id lookup."""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping, Optional

from ..exceptions import ConfigurationError, UnresolvedClassificationError

logger = logging.getLogger(__name__)


DEFAULT_CLASSIFICATIONS: Mapping[str, str] = MappingProxyType({
    "20208": "20208",
    "20401": "20401",
    "Company Owned Institute": "company-owned-institute",
    "Company Owned Salon/Spa": "company-owned-salonspa",
    "Concept Salon": "concept-salon",
    "Exclusive Destination Spa": "exclusive-destination-spa",
    "Exclusive Salon": "exclusive-salon",
    "Exclusive Spa": "exclusive-spa",
    "Experience Center": "experience-center",
    "Family Salon": "family-salon",
    "Ind Lifestyle Store": "ind-lifestyle-store",
    "Institute": "institute",
    "Lifestyle Salon": "lifestyle-salon",
})


class ClassificationMap(Mapping[str, str]):
    """Read-only map from a salon's Classification label to its collateral id."""

    def __init__(self, entries: Optional[Mapping[str, str]] = None):
        entries = DEFAULT_CLASSIFICATIONS if entries is None else entries
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def from_json_file(cls, path: str) -> "ClassificationMap":
        """Load a map from a JSON object of label -> id."""
        filepath = Path(path)
        if not filepath.exists():
            raise ConfigurationError(f"Classification map not found: {path}")

        try:
            with open(filepath) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        return cls(cls._validate(data, path))

    @staticmethod
    def _validate(data: Any, source: str) -> Dict[str, str]:
        if not isinstance(data, dict):
            raise ConfigurationError(f"Classification map {source} must be a JSON object")

        bad = [k for k, v in data.items() if not isinstance(k, str) or not isinstance(v, str) or not v]
        if bad:
            raise ConfigurationError(
                f"Classification map {source} has non-string entries: {', '.join(map(str, bad))}"
            )
        return data

    def resolve(self, label: Any, record_id: str = "", record: Optional[Dict[str, Any]] = None) -> str:
        """
        Look up the collateral classification id for a label.

        Numeric labels (e.g. ``20208``) are matched by their string form;
        otherwise the lookup is exact and case-sensitive.

        Raises:
            UnresolvedClassificationError: The label is not in the map
        """
        key = label
        if isinstance(label, int) and not isinstance(label, bool):
            key = str(label)
        if isinstance(key, str) and key in self._entries:
            return self._entries[key]
        raise UnresolvedClassificationError(record_id, label, record)

    def __getitem__(self, label: str) -> str:
        return self._entries[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ClassificationMap({len(self)} labels)"


def load_classification_map(path: Optional[str] = None) -> ClassificationMap:
    """Load the map from a file, or the built-in table when no path is given."""
    if path:
        classifications = ClassificationMap.from_json_file(path)
        logger.info(f"Loaded {len(classifications)} classifications from {path}")
        return classifications
    return ClassificationMap()
