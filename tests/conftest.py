"""Shared fixtures for the podrelay test suite.

``FakePrintful`` is an in-memory stand-in for the three Printful endpoints
the relay uses, served through ``httpx.MockTransport`` so the real client
code (headers, paging, error handling) runs unchanged.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
import pytest
import pytest_asyncio

from podrelay.config import Settings
from podrelay.providers.printful import PrintfulClient

_DETAIL_RE = re.compile(r"^/sync/products/(?P<pid>[^/]+)$")
_ORDER_RE = re.compile(r"^/orders/@(?P<ext>.+)$")


class FakePrintful:
    """Printful stub keyed by external order id (upsert semantics)."""

    def __init__(self) -> None:
        self.products: list[dict[str, Any]] = []
        self.variants: dict[str, list[dict[str, Any]]] = {}
        self.orders: dict[str, dict[str, Any]] = {}
        self.order_writes = 0
        self.list_calls: list[tuple[int, int]] = []
        self.detail_calls: list[str] = []
        self.requests: list[httpx.Request] = []
        self.fail_listing = False
        self.listing_result: Any = None
        self.failing_details: set[str] = set()
        self.order_error: tuple[int, dict[str, Any]] | None = None
        self._next_order_id = 1000

    def add_product(self, product_id: int, variants: list[dict[str, Any]], name: str = "") -> None:
        self.products.append({"id": product_id, "name": name or f"Product {product_id}"})
        self.variants[str(product_id)] = variants

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/sync/products":
            if self.fail_listing:
                return httpx.Response(401, json={"code": 401, "error": {"message": "Unauthorized"}})
            offset = int(request.url.params.get("offset", 0))
            limit = int(request.url.params.get("limit", 20))
            self.list_calls.append((offset, limit))
            if self.listing_result is not None:
                return httpx.Response(200, json={"code": 200, "result": self.listing_result})
            page = self.products[offset : offset + limit]
            return httpx.Response(200, json={"code": 200, "result": page})

        match = _DETAIL_RE.match(path)
        if request.method == "GET" and match:
            pid = match.group("pid")
            self.detail_calls.append(pid)
            if pid in self.failing_details or pid not in self.variants:
                return httpx.Response(404, json={"code": 404, "error": {"message": "Not found"}})
            return httpx.Response(
                200,
                json={"code": 200, "result": {"sync_product": {"id": pid}, "sync_variants": self.variants[pid]}},
            )

        match = _ORDER_RE.match(path)
        if request.method == "PUT" and match:
            if self.order_error is not None:
                status, body = self.order_error
                return httpx.Response(status, json=body)
            ext = match.group("ext")
            payload = json.loads(request.content)
            self.order_writes += 1
            existing = self.orders.get(ext)
            order_id = existing["id"] if existing else self._next_order_id
            if existing is None:
                self._next_order_id += 1
            self.orders[ext] = {"id": order_id, "status": "draft", **payload}
            return httpx.Response(200, json={"code": 200, "result": self.orders[ext]})

        return httpx.Response(404, json={"code": 404, "error": {"message": f"no route {path}"}})


@pytest.fixture()
def fake_printful() -> FakePrintful:
    return FakePrintful()


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        printful_token="pf-test-token",
        printful_api_base="https://printful.test",
        shopify_webhook_secret="shopify-test-secret",
        sku_map_file=str(tmp_path / "skuMap.json"),
        catalog_page_size=2,
        upstream_max_retries=0,
        sync_on_startup=False,
        _env_file=None,
    )


@pytest_asyncio.fixture()
async def printful_client(settings, fake_printful):
    client = PrintfulClient.from_settings(settings, transport=fake_printful.transport)
    yield client
    await client.aclose()


class StubPublisher:
    """ArtifactPublisher that records calls and returns a fixed URL."""

    def __init__(self, url: str = "https://img.test/qr.png", error: Exception | None = None):
        self.url = url
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def publish(self, text: str, order_id: str) -> str:
        self.calls.append((text, order_id))
        if self.error is not None:
            raise self.error
        return self.url


@pytest.fixture()
def publisher() -> StubPublisher:
    return StubPublisher()


def _shopify_order(
    order_id: Any = 820982911946154508,
    items: list[dict[str, Any]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """A trimmed Shopify orders/create payload."""
    payload = {
        "id": order_id,
        "email": "jon@example.com",
        "shipping_address": {
            "first_name": "Jon",
            "last_name": "Snow",
            "address1": "1 Wall St",
            "address2": "",
            "city": "Winterfell",
            "province_code": "NY",
            "country_code": "US",
            "zip": "10005",
        },
        "customer": {"first_name": "J", "last_name": "S", "email": "customer@example.com"},
        "line_items": items
        if items is not None
        else [
            {
                "title": "QR Tee",
                "sku": "A1",
                "variant_id": 99,
                "quantity": 2,
                "properties": [{"name": "QR Text", "value": "https://example.com/hello"}],
            }
        ],
    }
    payload.update(extra)
    return payload


@pytest.fixture()
def make_order():
    """Factory for Shopify order payloads."""
    return _shopify_order
