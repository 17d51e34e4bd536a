"""Record collection from remote stores."""

from .base import FetchPage, Page, PagedCollector

__all__ = ["FetchPage", "Page", "PagedCollector"]
