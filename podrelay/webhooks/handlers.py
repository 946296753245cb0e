"""HTTP handlers — order webhook, admin rebuild, health.

Order webhook flow:
1. Read raw body (needed for HMAC verification)
2. Verify Shopify signature (401 on failure)
3. Parse the order
4. Run it through the OrderRelay
5. Map the outcome to a status code

Security contract:
- Never return exception details to the webhook caller
- 5xx only when a retry by Shopify could succeed later
- Log all webhook activity for audit trail
"""

from __future__ import annotations

import hmac
import json
import logging
import time

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from podrelay.catalog.sync import CatalogSync
from podrelay.config import Settings
from podrelay.errors import ConfigError, SignatureInvalid, SubmissionError, UpstreamUnavailable
from podrelay.orders.models import Order
from podrelay.orders.relay import ArtifactPublishError, OrderRelay, RelayStatus
from podrelay.webhooks.verification import require_shopify_signature

logger = logging.getLogger(__name__)

_STATUS_MESSAGES = {
    RelayStatus.DUPLICATE: "Already processed",
    RelayStatus.NO_ARTIFACT_TEXT: "No QR Text",
    RelayStatus.SKIPPED: "No mapped items; skipped Printful creation",
    RelayStatus.SUBMITTED: "Processed and sent to Printful",
}


def _log_webhook(order_id: str, status: str) -> None:
    """Audit log for webhook activity."""
    logger.info("WEBHOOK_AUDIT provider=shopify topic=orders/create id=%s status=%s", order_id, status)


def _error(status: str, message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"status": status, "message": message}, status_code=status_code)


async def handle_order_webhook(request: Request) -> JSONResponse:
    """Receive a Shopify orders/create webhook."""
    start = time.time()
    settings: Settings = request.app.state.settings
    relay: OrderRelay = request.app.state.relay

    body = await request.body()
    headers = {k.lower(): v for k, v in request.headers.items()}

    try:
        require_shopify_signature(body, headers, settings.shopify_webhook_secret)
    except SignatureInvalid:
        _log_webhook("unknown", "signature_failed")
        return _error("unauthorized", "Invalid signature", 401)

    try:
        payload = json.loads(body)
        order = Order.from_payload(payload)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError, AttributeError):
        _log_webhook("unknown", "invalid_payload")
        return _error("invalid", "Invalid order payload", 400)

    logger.info("Received Shopify order %s (line_items: %d)", order.id, len(order.line_items))

    try:
        outcome = await relay.handle(order)
    except ArtifactPublishError:
        logger.exception("Artifact publish failed for order %s", order.id)
        _log_webhook(order.id, "artifact_failed")
        return _error("error", "Artifact upload failed", 500)
    except SubmissionError as e:
        logger.error("Printful order failed for %s: %s", order.id, e.payload)
        _log_webhook(order.id, "submission_failed")
        return _error("error", "Printful order failed", 500)
    except ConfigError as e:
        logger.error("Cannot submit order %s: %s", order.id, e)
        _log_webhook(order.id, "config_error")
        return _error("error", "Server error", 500)

    _log_webhook(order.id, outcome.status.value)
    elapsed_ms = (time.time() - start) * 1000
    logger.debug("Webhook processed in %.1fms: order %s", elapsed_ms, order.id)
    return JSONResponse(
        {"status": outcome.status.value, "message": _STATUS_MESSAGES[outcome.status]},
        status_code=200,
    )


def _admin_allowed(request: Request, settings: Settings) -> bool:
    if not settings.admin_token:
        return True
    supplied = request.headers.get("x-admin-token", "")
    return hmac.compare_digest(supplied, settings.admin_token)


async def handle_rebuild(request: Request) -> JSONResponse:
    """Force a catalog rebuild and report the resulting map sizes."""
    settings: Settings = request.app.state.settings
    catalog: CatalogSync = request.app.state.catalog

    if not _admin_allowed(request, settings):
        return JSONResponse({"ok": False, "error": "unauthorized"}, status_code=401)

    try:
        outcome = await catalog.refresh()
    except (ConfigError, UpstreamUnavailable) as e:
        logger.error("Admin rebuild error: %s", e)
        return JSONResponse({"ok": False, "error": str(e)}, status_code=500)

    return JSONResponse(
        {
            "ok": True,
            "skuKeys": outcome.snapshot.sku_count,
            "externalKeys": outcome.snapshot.external_count,
            "changed": outcome.changed,
        }
    )


def register_routes(app: FastAPI) -> None:
    """Register relay routes on the FastAPI app."""

    @app.post("/webhook/orders_create")
    async def orders_create_webhook(request: Request):
        """Receive Shopify orders/create webhooks (signature-verified)."""
        return await handle_order_webhook(request)

    @app.post("/admin/rebuild-sku-map")
    async def rebuild_sku_map(request: Request):
        """Rebuild the SKU maps from Printful now."""
        return await handle_rebuild(request)

    @app.get("/")
    async def root():
        return {"status": "running", "service": "podrelay"}

    @app.get("/health")
    async def health(request: Request):
        catalog: CatalogSync = request.app.state.catalog
        snapshot = catalog.snapshot
        return {
            "status": "ok",
            "skuKeys": snapshot.sku_count,
            "externalKeys": snapshot.external_count,
            "refreshing": catalog.refreshing,
        }

    logger.info("Routes registered: /webhook/orders_create, /admin/rebuild-sku-map")
