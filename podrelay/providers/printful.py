"""Printful REST API client.

Only the three calls the relay needs:

- ``GET /sync/products``            paginated listing of synced products
- ``GET /sync/products/{id}``       product detail with its sync_variants
- ``PUT /orders/@{external_id}``    idempotent order upsert keyed by our id

Every call carries a bounded timeout and goes through the backoff wrapper.
The upsert is safe to retry because it is keyed by external id.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from podrelay.config import Settings
from podrelay.errors import ConfigError, SubmissionError, UpstreamUnavailable
from podrelay.providers.retry import retry_with_backoff

logger = logging.getLogger(__name__)


def _body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text[:500]}


class PrintfulClient:
    """Async wrapper around the Printful API."""

    def __init__(
        self,
        token: str,
        base_url: str = "https://api.printful.com",
        store_id: str = "",
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.store_id = store_id
        self.max_retries = max_retries
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> PrintfulClient:
        return cls(
            token=settings.printful_token,
            base_url=settings.printful_api_base,
            store_id=settings.printful_store_id,
            timeout=settings.upstream_timeout_seconds,
            max_retries=settings.upstream_max_retries,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            raise ConfigError("PRINTFUL_TOKEN")
        headers = {"Authorization": f"Bearer {self.token}"}
        if self.store_id:
            headers["X-PF-Store-Id"] = self.store_id
        return headers

    @retry_with_backoff(max_retries=lambda self: self.max_retries, base_delay=1.0, max_delay=30.0)
    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        return await self._http.request(
            method, path, params=params, json=json, headers=self._headers()
        )

    async def _get_result(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._request("GET", path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(
                f"Printful request failed: {type(e).__name__}", url=path
            ) from e

        data = _body(response)
        if response.is_error:
            logger.error("Printful %s failed (HTTP %d): %s", path, response.status_code, data)
            raise UpstreamUnavailable(
                f"Printful {path} returned HTTP {response.status_code}",
                url=path,
                status_code=response.status_code,
            )
        if not isinstance(data, dict) or "result" not in data:
            raise UpstreamUnavailable(
                f"Printful {path} returned an unexpected body", url=path,
                status_code=response.status_code,
            )
        return data["result"]

    async def list_sync_products(self, offset: int, limit: int) -> list[dict[str, Any]]:
        """One page of synced product summaries.

        Entries that are not objects are kept in the page so its length still
        drives paging; callers skip them.
        """
        result = await self._get_result(
            "/sync/products", params={"offset": offset, "limit": limit}
        )
        if result is None:
            return []
        if not isinstance(result, list):
            raise UpstreamUnavailable(
                f"Printful /sync/products returned {type(result).__name__}, expected a list",
                url="/sync/products",
            )
        return result

    async def get_sync_variants(self, product_id: Any) -> list[dict[str, Any]]:
        """The sync_variants of one product."""
        result = await self._get_result(f"/sync/products/{product_id}")
        if not isinstance(result, dict):
            return []
        return list(result.get("sync_variants") or [])

    async def upsert_order(self, external_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create or replace the order identified by ``external_id``.

        Returns the ``result`` object from Printful. Raises SubmissionError
        with the provider's error body on failure.
        """
        path = f"/orders/@{quote(str(external_id), safe='')}"
        try:
            response = await self._request("PUT", path, json=payload)
        except httpx.HTTPError as e:
            raise SubmissionError(
                external_id, {"error": f"transport failure: {type(e).__name__}"}
            ) from e

        data = _body(response)
        if response.is_error:
            logger.error("Printful error for order %s: %s", external_id, data)
            raise SubmissionError(external_id, data, status_code=response.status_code)

        result = data.get("result") if isinstance(data, dict) else None
        return result if isinstance(result, dict) else {}
