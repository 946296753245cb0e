"""Command line tooling for the relay.

Usage:
    python -m podrelay sync            # rebuild the SKU maps from Printful now
    python -m podrelay show -n 20      # print persisted map stats and a sample
    python -m podrelay serve --publisher mypkg.artifacts:publisher
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import logging
import sys

from podrelay.app import build_catalog
from podrelay.catalog.store import SnapshotStore
from podrelay.config import get_settings
from podrelay.errors import ConfigError, UpstreamUnavailable
from podrelay.providers.printful import PrintfulClient


async def _sync() -> int:
    settings = get_settings()
    client = PrintfulClient.from_settings(settings)
    catalog = build_catalog(settings, client)
    catalog.load()
    try:
        outcome = await catalog.refresh()
    finally:
        await client.aclose()

    snapshot = outcome.snapshot
    print(f"SKU keys:      {snapshot.sku_count}")
    print(f"External keys: {snapshot.external_count}")
    print(f"Changed:       {outcome.changed}  (written: {outcome.persisted})")
    for sku, sync_id in snapshot.sample():
        print(f"  {sku} -> {sync_id}")
    return 0


def cmd_sync(args: argparse.Namespace) -> None:
    """Rebuild and persist the SKU maps."""
    try:
        sys.exit(asyncio.run(_sync()))
    except (ConfigError, UpstreamUnavailable) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_show(args: argparse.Namespace) -> None:
    """Print stats about the persisted SKU maps."""
    settings = get_settings()
    store = SnapshotStore(args.file or settings.sku_map_file)
    if not store.path.exists():
        print(f"ERROR: snapshot not found: {store.path}", file=sys.stderr)
        sys.exit(1)

    snapshot = store.load()
    print(f"Snapshot: {store.path}")
    print(f"  SKU keys:      {snapshot.sku_count}")
    print(f"  External keys: {snapshot.external_count}")
    for sku, sync_id in snapshot.sample(args.limit):
        print(f"  {sku} -> {sync_id}")


def load_publisher(spec: str):
    """Import ``module:attribute`` and return the attribute."""
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ValueError(f"publisher must look like 'module:attribute', got {spec!r}")
    module = importlib.import_module(module_name)
    return getattr(module, attr)


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the webhook server."""
    import uvicorn

    from podrelay.app import create_app

    publisher = load_publisher(args.publisher)
    app = create_app(publisher)
    uvicorn.run(app, host=args.host, port=args.port)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="podrelay",
        description="Shopify -> Printful order relay tooling",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default from LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_sync = sub.add_parser("sync", help="Rebuild SKU maps from Printful")
    p_sync.set_defaults(func=cmd_sync)

    p_show = sub.add_parser("show", help="Print persisted SKU map stats")
    p_show.add_argument("-f", "--file", help="Snapshot path (default SKU_MAP_FILE)")
    p_show.add_argument("-n", "--limit", type=int, default=8, help="Sample size")
    p_show.set_defaults(func=cmd_show)

    p_serve = sub.add_parser("serve", help="Run the webhook server")
    p_serve.add_argument("--publisher", required=True, help="Artifact publisher as module:attribute")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=3000)
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=(args.log_level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
