"""Record models for backfill data."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from datetime import datetime


@dataclass
class Record:
    """A record read from a backend store (product, user group or document)."""
    id: str
    entity: str
    data: Dict[str, Any]
    fetched_at: datetime = field(default_factory=datetime.utcnow)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_catalog(cls, entity: str, item: Dict[str, Any]) -> "Record":
        """Create a record from a catalog list item (keyed by ``ID``)."""
        return cls(id=str(item.get("ID", "")), entity=entity, data=item)

    @classmethod
    def from_document(cls, entity: str, document: Dict[str, Any]) -> "Record":
        """Create a record from a database document (keyed by ``id``)."""
        return cls(id=str(document.get("id", "")), entity=entity, data=document)

    @property
    def xp(self) -> Optional[Mapping[str, Any]]:
        """The extension bag, or None when it is absent, null or not an object."""
        xp = self.data.get("xp")
        if isinstance(xp, Mapping):
            return xp
        return None

    def has_xp_field(self, name: str) -> bool:
        """Check whether the extension bag carries a key, whatever its value."""
        xp = self.xp
        return xp is not None and name in xp

    def get_xp(self, name: str, default: Any = None) -> Any:
        """Get a value from the extension bag."""
        xp = self.xp
        if xp is None:
            return default
        return xp.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "entity": self.entity,
            "data": self.data,
            "fetched_at": self.fetched_at.isoformat(),
            "metadata": self.metadata,
        }
