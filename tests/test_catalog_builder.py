"""Tests for CatalogSnapshotBuilder against the FakePrintful stub.

Tests:
- Paging stops on the first short page
- Two-level fetch (listing then detail)
- Variant id fallback and silent discard
- External ids normalized to strings
- Failure modes: missing token, listing failure, broken product detail
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest

from podrelay.catalog.builder import CatalogSnapshotBuilder, variant_sync_id
from podrelay.errors import ConfigError, UpstreamUnavailable
from podrelay.providers.printful import PrintfulClient


class TestVariantSyncId:
    def test_primary_field(self):
        assert variant_sync_id({"id": 555, "sync_variant_id": 1}) == 555

    def test_fallback_field(self):
        assert variant_sync_id({"id": None, "sync_variant_id": "777"}) == 777

    def test_primary_invalid_uses_fallback(self):
        assert variant_sync_id({"id": "n/a", "sync_variant_id": 12}) == 12

    def test_neither(self):
        assert variant_sync_id({"sku": "A1"}) is None


@pytest.mark.asyncio
async def test_scenario_single_product(printful_client, fake_printful):
    fake_printful.add_product(1, [{"sku": "A1", "external_id": "99", "id": 555}])
    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()
    assert dict(snap.by_sku) == {"A1": 555}
    assert dict(snap.by_external_id) == {"99": 555}


@pytest.mark.asyncio
async def test_pages_until_short_page(printful_client, fake_printful):
    for pid in range(1, 6):
        fake_printful.add_product(pid, [{"sku": f"S{pid}", "id": 100 + pid}])

    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()

    assert fake_printful.list_calls == [(0, 2), (2, 2), (4, 2)]
    assert snap.sku_count == 5
    assert sorted(fake_printful.detail_calls) == ["1", "2", "3", "4", "5"]


@pytest.mark.asyncio
async def test_exact_multiple_of_page_size_fetches_empty_page(printful_client, fake_printful):
    for pid in range(1, 5):
        fake_printful.add_product(pid, [{"sku": f"S{pid}", "id": pid}])

    await CatalogSnapshotBuilder(printful_client, page_size=2).build()

    assert fake_printful.list_calls == [(0, 2), (2, 2), (4, 2)]


@pytest.mark.asyncio
async def test_empty_catalog(printful_client, fake_printful):
    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()
    assert snap.is_empty
    assert fake_printful.list_calls == [(0, 2)]


@pytest.mark.asyncio
async def test_variants_without_numeric_id_are_dropped(printful_client, fake_printful):
    fake_printful.add_product(
        1,
        [
            {"sku": "GOOD", "external_id": 1, "id": 10},
            {"sku": "NOID", "external_id": 2},
            {"sku": "BADID", "external_id": 3, "id": "abc"},
            {"sku": "FALLBACK", "external_id": 4, "sync_variant_id": "40"},
        ],
    )
    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()

    assert dict(snap.by_sku) == {"GOOD": 10, "FALLBACK": 40}
    assert dict(snap.by_external_id) == {"1": 10, "4": 40}


@pytest.mark.asyncio
async def test_external_id_normalized_and_sku_optional(printful_client, fake_printful):
    fake_printful.add_product(
        1,
        [
            {"sku": "", "external_id": 4567890123, "id": 11},
            {"sku": None, "external_id": "4567890124", "id": 12},
            {"sku": "ONLY_SKU", "id": 13},
        ],
    )
    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()

    assert dict(snap.by_sku) == {"ONLY_SKU": 13}
    assert dict(snap.by_external_id) == {"4567890123": 11, "4567890124": 12}


@pytest.mark.asyncio
async def test_merge_follows_listing_order(printful_client, fake_printful):
    fake_printful.add_product(1, [{"sku": "DUP", "id": 1}])
    fake_printful.add_product(2, [{"sku": "DUP", "id": 2}])
    fake_printful.add_product(3, [{"sku": "DUP", "id": 3}])

    snap = await CatalogSnapshotBuilder(printful_client, page_size=2, concurrency=3).build()

    # later products in the listing win
    assert snap.by_sku["DUP"] == 3


@pytest.mark.asyncio
async def test_failed_product_detail_is_skipped(printful_client, fake_printful):
    fake_printful.add_product(1, [{"sku": "A", "id": 1}])
    fake_printful.add_product(2, [{"sku": "B", "id": 2}])
    fake_printful.failing_details.add("1")

    snap = await CatalogSnapshotBuilder(printful_client, page_size=2).build()

    assert dict(snap.by_sku) == {"B": 2}


@pytest.mark.asyncio
async def test_listing_failure_raises_upstream_unavailable(printful_client, fake_printful):
    fake_printful.fail_listing = True
    with pytest.raises(UpstreamUnavailable) as exc_info:
        await CatalogSnapshotBuilder(printful_client, page_size=2).build()
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_listing_with_object_result_raises_upstream_unavailable(printful_client, fake_printful):
    fake_printful.listing_result = {"unexpected": 1}
    with pytest.raises(UpstreamUnavailable):
        await CatalogSnapshotBuilder(printful_client, page_size=2).build()
    assert fake_printful.detail_calls == []


@pytest.mark.asyncio
async def test_malformed_listing_entries_are_skipped(printful_client, fake_printful):
    fake_printful.add_product(7, [{"sku": "S7", "id": 70}])
    fake_printful.listing_result = ["junk", {"id": 7}]

    snap = await CatalogSnapshotBuilder(printful_client, page_size=5).build()

    assert dict(snap.by_sku) == {"S7": 70}
    assert fake_printful.detail_calls == ["7"]


@pytest.mark.asyncio
async def test_missing_token_raises_config_error(fake_printful):
    client = PrintfulClient(token="", base_url="https://printful.test", transport=fake_printful.transport)
    try:
        with pytest.raises(ConfigError):
            await CatalogSnapshotBuilder(client).build()
        assert fake_printful.requests == []
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_detail_fan_out_respects_concurrency_cap(fake_printful):
    for pid in range(1, 9):
        fake_printful.add_product(pid, [{"sku": f"S{pid}", "id": pid}])

    active = 0
    peak = 0

    class SlowClient:
        token = "t"

        async def list_sync_products(self, offset, limit):
            return fake_printful.products[offset : offset + limit]

        async def get_sync_variants(self, product_id):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return fake_printful.variants[str(product_id)]

    snap = await CatalogSnapshotBuilder(SlowClient(), page_size=100, concurrency=3).build()

    assert snap.sku_count == 8
    assert peak <= 3


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        CatalogSnapshotBuilder(MagicMock(), page_size=0)
