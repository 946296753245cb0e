"""Webhook inbound routes.

Receives Shopify orders/create webhooks. Each webhook is signature-verified,
deduplicated, and relayed to Printful.
"""
