"""
Tests for ProductsTask.

Tests cover:
- candidate selection is a presence check (explicit false excluded)
- merge semantics keep unrelated xp keys
- end-to-end: 3 products, 2 patched, empty error report
- idempotence: second run finds no candidates
- partial-failure isolation and error report on disk
- dry run mutates nothing
- collection failure propagates before any patch
"""
import json

import pytest
from unittest.mock import AsyncMock

from collateral_backfill.exceptions import CatalogAPIError
from collateral_backfill.executors.concurrent import ConcurrentBatchExecutor
from collateral_backfill.models.migration import TaskStatus
from collateral_backfill.models.record import Record
from collateral_backfill.tasks.products import ProductsTask

from .conftest import FakeCatalog


pytestmark = pytest.mark.unit


def _task(catalog, reporter=None, **kwargs):
    return ProductsTask(catalog, ConcurrentBatchExecutor(concurrency=3), reporter, **kwargs)


class TestProductCandidates:

    @pytest.mark.parametrize("data,expected", [
        ({"ID": "p"}, True),
        ({"ID": "p", "xp": None}, True),
        ({"ID": "p", "xp": {}}, True),
        ({"ID": "p", "xp": {"Foo": "bar"}}, True),
        ({"ID": "p", "xp": {"IsCollateralProduct": False}}, False),
        ({"ID": "p", "xp": {"IsCollateralProduct": True}}, False),
        ({"ID": "p", "xp": {"IsCollateralProduct": None}}, False),
    ])
    def test_is_candidate(self, data, expected):
        task = _task(FakeCatalog())
        assert task.is_candidate(Record.from_catalog("product", data)) is expected


class TestProductsTask:

    @pytest.mark.asyncio
    async def test_end_to_end_three_products(self, sample_products, reporter):
        catalog = FakeCatalog(sample_products)

        result = await _task(catalog, reporter).run()

        assert result.status == TaskStatus.COMPLETED
        assert result.total_records == 3
        assert result.total_candidates == 2
        assert result.total_updated == 2
        assert result.errors == {}
        assert sorted(call[1] for call in catalog.patch_calls) == ["prod-no-xp", "prod-other-xp"]
        for product in catalog.products.values():
            assert product["xp"]["IsCollateralProduct"] is False

        with open(result.report_path) as f:
            assert json.load(f) == {}

    @pytest.mark.asyncio
    async def test_patch_sends_only_the_flag(self, sample_products):
        catalog = FakeCatalog(sample_products)

        await _task(catalog).run()

        for _, _, partial in catalog.patch_calls:
            assert partial == {"xp": {"IsCollateralProduct": False}}

    @pytest.mark.asyncio
    async def test_unrelated_xp_keys_survive(self, sample_products):
        catalog = FakeCatalog(sample_products)

        await _task(catalog).run()

        assert catalog.products["prod-other-xp"]["xp"] == {"Foo": "bar", "IsCollateralProduct": False}
        assert catalog.products["prod-other-xp"]["Name"] == "Other xp"

    @pytest.mark.asyncio
    async def test_second_run_has_no_candidates(self, sample_products):
        catalog = FakeCatalog(sample_products)
        await _task(catalog).run()
        catalog.patch_calls.clear()

        result = await _task(catalog).run()

        assert result.total_candidates == 0
        assert result.total_updated == 0
        assert catalog.patch_calls == []

    @pytest.mark.asyncio
    async def test_failed_product_is_reported_and_retried_next_run(self, reporter):
        products = [{"ID": f"p{i}", "xp": {}} for i in range(6)]
        catalog = FakeCatalog(products, fail_ids={"p4"})

        result = await _task(catalog, reporter).run()

        assert result.status == TaskStatus.COMPLETED_WITH_ERRORS
        assert result.total_updated == 5
        assert list(result.errors) == ["p4"]
        assert isinstance(result.errors["p4"], CatalogAPIError)
        with open(result.report_path) as f:
            report = json.load(f)
        assert list(report) == ["p4"]
        assert report["p4"]["status_code"] == 400
        assert report["p4"]["error_type"] == "CatalogAPIError"

        catalog.fail_ids.clear()
        retry = await _task(catalog, reporter).run()

        assert retry.total_candidates == 1
        assert retry.total_updated == 1

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, sample_products, reporter):
        catalog = FakeCatalog(sample_products)

        result = await _task(catalog, reporter, dry_run=True, save_candidates=True).run()

        assert result.status == TaskStatus.SKIPPED
        assert result.total_candidates == 2
        assert catalog.patch_calls == []
        snapshots = list(reporter.candidates_dir.glob("collateral-products_*.json"))
        assert len(snapshots) == 1

    @pytest.mark.asyncio
    async def test_collection_failure_propagates(self):
        catalog = FakeCatalog()
        catalog.list_products = AsyncMock(side_effect=CatalogAPIError("down", status_code=503))
        catalog.patch_product = AsyncMock()

        with pytest.raises(CatalogAPIError):
            await _task(catalog).run()

        catalog.patch_product.assert_not_awaited()
