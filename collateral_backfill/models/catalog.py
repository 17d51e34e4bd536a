"""Pydantic models for catalog service list responses."""

from typing import Any, Dict, List
from pydantic import BaseModel, Field


class PageMeta(BaseModel):
    Page: int = 1
    PageSize: int = 0
    TotalCount: int = 0
    TotalPages: int = 0


class CatalogPage(BaseModel):
    """One page of a catalog list endpoint: ``{"Items": [...], "Meta": {...}}``."""
    Items: List[Dict[str, Any]] = Field(default_factory=list)
    Meta: PageMeta = Field(default_factory=PageMeta)

    @property
    def has_more(self) -> bool:
        return self.Meta.Page < self.Meta.TotalPages
