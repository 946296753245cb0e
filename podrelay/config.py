"""Relay configuration."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for the order relay."""

    # Printful
    printful_token: str = ""
    printful_store_id: str = ""
    printful_api_base: str = "https://api.printful.com"

    # Shopify webhook HMAC secret (empty = reject every webhook)
    shopify_webhook_secret: str = ""

    # Optional guard for /admin routes
    admin_token: str = ""

    # Catalog sync
    sku_map_file: str = "skuMap.json"
    # Printful caps `limit` at 100; a larger page would end paging early
    catalog_page_size: int = Field(100, ge=1, le=100)
    catalog_detail_concurrency: int = Field(5, ge=1)
    sync_on_startup: bool = True

    # Upstream call limits
    upstream_timeout_seconds: float = 30.0
    upstream_max_retries: int = 3

    # Artifact placement on the printed product
    artifact_placement: str = "back"
    artifact_text_property: str = "qr text"

    log_level: str = "INFO"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
