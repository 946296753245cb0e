"""Shopify webhook signature verification — constant-time HMAC.

Security contract:
- Verification uses hmac.compare_digest() (constant-time, no timing attacks)
- Verification failure -> 401 immediately, no payload processing
- Missing secret -> verification always fails (fail-closed)
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from podrelay.errors import SignatureInvalid

logger = logging.getLogger(__name__)

SHOPIFY_HMAC_HEADER = "x-shopify-hmac-sha256"


def verify_shopify(body: bytes, signature_header: str | None, secret: str) -> bool:
    """Verify Shopify webhook HMAC-SHA256 signature.

    Shopify sends: X-Shopify-Hmac-SHA256 header (base64-encoded HMAC-SHA256).

    Args:
        body: Raw request body bytes
        signature_header: Value of X-Shopify-Hmac-SHA256 header
        secret: Shared webhook secret

    Returns:
        True if signature is valid
    """
    if not secret:
        logger.warning("SHOPIFY_WEBHOOK_SECRET not set, rejecting webhook")
        return False
    if not signature_header:
        return False

    computed = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    computed_b64 = base64.b64encode(computed).decode("utf-8")

    return hmac.compare_digest(computed_b64, signature_header.strip())


def require_shopify_signature(body: bytes, headers: dict[str, str], secret: str) -> None:
    """Raise SignatureInvalid unless ``body`` carries a valid signature.

    ``headers`` must have lowercase keys.
    """
    if not verify_shopify(body, headers.get(SHOPIFY_HMAC_HEADER), secret):
        raise SignatureInvalid("invalid Shopify webhook signature")
