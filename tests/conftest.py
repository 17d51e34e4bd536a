"""
Pytest configuration and shared fixtures for the collateral backfill tests.

Provides in-memory fakes of the catalog service (paging, prefix filters,
merge-patch) and of the promotions document store (whole-document replace).
"""
import asyncio
import copy
import time
from typing import Any, Dict, Iterable, List, Optional

import pytest

from collateral_backfill.exceptions import CatalogAPIError
from collateral_backfill.extractors.base import Page
from collateral_backfill.models.record import Record
from collateral_backfill.services.reporting import ReportWriter


def merge_patch(target: Dict[str, Any], partial: Dict[str, Any]) -> Dict[str, Any]:
    """Merge partial into target the way the catalog PATCH endpoints do."""
    for key, value in partial.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            merge_patch(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def _matches(item: Dict[str, Any], params: Dict[str, Any]) -> bool:
    for field, expected in params.items():
        actual = str(item.get(field, ""))
        expected = str(expected)
        if expected.endswith("*"):
            if not actual.startswith(expected[:-1]):
                return False
        elif actual != expected:
            return False
    return True


# ---------------------------------------------------------------------------
# Catalog fake
# ---------------------------------------------------------------------------

class FakeCatalog:
    """In-memory catalog service with the CatalogClient interface."""

    def __init__(
        self,
        products: Iterable[Dict[str, Any]] = (),
        user_groups: Optional[Dict[str, Iterable[Dict[str, Any]]]] = None,
        page_size: int = 2,
        fail_ids: Iterable[str] = (),
        patch_delay: float = 0.0,
    ):
        self.products = {p["ID"]: copy.deepcopy(p) for p in products}
        self.user_groups = {
            buyer_id: {g["ID"]: copy.deepcopy(g) for g in groups}
            for buyer_id, groups in (user_groups or {}).items()
        }
        self.page_size = page_size
        self.fail_ids = set(fail_ids)
        self.patch_delay = patch_delay
        self.patch_calls: List[Any] = []
        self.list_calls: List[Any] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _page(self, entity: str, items: List[Dict[str, Any]], page: Optional[int], params) -> Page:
        page = page or 1
        matching = [i for i in items if _matches(i, params or {})]
        start = (page - 1) * self.page_size
        chunk = matching[start:start + self.page_size]
        has_more = start + self.page_size < len(matching)
        return Page(
            records=[Record.from_catalog(entity, copy.deepcopy(i)) for i in chunk],
            has_more=has_more,
            next_cursor=page + 1 if has_more else None,
        )

    async def list_products(self, page=None, params=None) -> Page:
        self.list_calls.append(("products", page, params))
        return self._page("product", list(self.products.values()), page, params)

    async def list_buyers(self, page=None, params=None) -> Page:
        self.list_calls.append(("buyers", page, params))
        buyers = [{"ID": buyer_id, "Name": buyer_id} for buyer_id in self.user_groups]
        return self._page("buyer", buyers, page, params)

    async def list_user_groups(self, buyer_id, page=None, params=None) -> Page:
        self.list_calls.append(("user_groups", buyer_id, page, params))
        groups = self.user_groups.get(buyer_id, {})
        return self._page("user_group", list(groups.values()), page, params)

    async def _patch(self, store: Dict[str, Dict[str, Any]], item_id: str, partial: Dict[str, Any]):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.patch_delay:
                await asyncio.sleep(self.patch_delay)
            if item_id in self.fail_ids:
                raise CatalogAPIError(f"{item_id} rejected", status_code=400)
            if item_id not in store:
                raise CatalogAPIError(f"{item_id} not found", status_code=404)
            return copy.deepcopy(merge_patch(store[item_id], partial))
        finally:
            self.in_flight -= 1

    async def patch_product(self, product_id, partial):
        self.patch_calls.append(("product", product_id, copy.deepcopy(partial)))
        return await self._patch(self.products, product_id, partial)

    async def patch_user_group(self, buyer_id, user_group_id, partial):
        self.patch_calls.append(("user_group", buyer_id, user_group_id, copy.deepcopy(partial)))
        return await self._patch(self.user_groups.get(buyer_id, {}), user_group_id, partial)


# ---------------------------------------------------------------------------
# Document store fake
# ---------------------------------------------------------------------------

class ThrottledError(Exception):
    status_code = 429


class FakeDocumentStore:
    """In-memory document container with whole-document replace."""

    def __init__(self, documents: Iterable[Dict[str, Any]] = (), fail_ids: Iterable[str] = ()):
        self.documents = {d["id"]: copy.deepcopy(d) for d in documents}
        self.fail_ids = set(fail_ids)
        self.queries: List[str] = []
        self.replace_log: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def query_all(self, query: str = "SELECT * FROM root"):
        self.queries.append(query)
        return [copy.deepcopy(d) for d in self.documents.values()]

    async def replace(self, document: Dict[str, Any]):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        entry = {"id": document["id"], "started": time.monotonic()}
        self.replace_log.append(entry)
        try:
            await asyncio.sleep(0)
            if document["id"] in self.fail_ids:
                raise ThrottledError("Request rate is large")
            self.documents[document["id"]] = copy.deepcopy(document)
            return copy.deepcopy(document)
        finally:
            entry["finished"] = time.monotonic()
            self.in_flight -= 1


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def reporter(tmp_path):
    """ReportWriter writing under a temporary directory."""
    return ReportWriter(str(tmp_path / "data"))


@pytest.fixture
def sample_products():
    """Three products: already flagged, no xp, unrelated xp only."""
    return [
        {"ID": "prod-flagged", "Name": "Flagged", "xp": {"IsCollateralProduct": False}},
        {"ID": "prod-no-xp", "Name": "No xp", "xp": None},
        {"ID": "prod-other-xp", "Name": "Other xp", "xp": {"Foo": "bar"}},
    ]


@pytest.fixture
def sample_salons():
    """Salons of buyer 'aveda', plus one group outside the SoldTo prefix."""
    return [
        {"ID": "SoldTo-001", "xp": {"Classification": "Concept Salon"}},
        {"ID": "SoldTo-002", "xp": {"Classification": "Institute", "Region": "West"}},
        {"ID": "SoldTo-003", "xp": {"Classification": "Concept Salon", "CollateralClassificationID": "concept-salon"}},
        {"ID": "SoldTo-004", "xp": {"Classification": "Unknown Label"}},
        {"ID": "SoldTo-005", "xp": {"Region": "East"}},
        {"ID": "SoldTo-006", "xp": None},
        {"ID": "Internal-001", "xp": {"Classification": "Concept Salon"}},
    ]


@pytest.fixture
def sample_promotions():
    return [
        {"id": "promo-1", "Code": "SPRING", "Discount": 10},
        {"id": "promo-2", "Code": "SUMMER", "HasCollateralBundle": False},
        {"id": "promo-3", "Code": "FALL", "HasCollateralBundle": True},
        {"id": "promo-4", "Code": "WINTER"},
    ]
