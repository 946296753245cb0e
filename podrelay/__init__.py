"""podrelay — Shopify order relay to Printful with a synced variant map."""

__version__ = "0.3.0"
