"""Tests for the podrelay CLI."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from podrelay import cli
from podrelay.catalog.snapshot import CatalogSnapshot
from podrelay.catalog.store import SnapshotStore


def test_show_prints_stats(tmp_path, capsys):
    path = tmp_path / "skuMap.json"
    SnapshotStore(path).save(CatalogSnapshot(by_sku={"A1": 555, "B2": 600}, by_external_id={"99": 555}))

    cli.main(["show", "-f", str(path), "-n", "1"])

    out = capsys.readouterr().out
    assert "SKU keys:      2" in out
    assert "External keys: 1" in out
    assert "A1 -> 555" in out
    assert "B2 -> 600" not in out


def test_show_legacy_file(tmp_path, capsys):
    path = tmp_path / "syncMap.json"
    path.write_text(json.dumps({"LEG": 1}), encoding="utf-8")
    cli.main(["show", "-f", str(path)])
    assert "External keys: 0" in capsys.readouterr().out


def test_show_missing_file_exits_nonzero(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["show", "-f", str(tmp_path / "missing.json")])
    assert exc_info.value.code == 1


def test_sync_without_token_exits_nonzero(tmp_path, capsys, settings):
    settings.printful_token = ""
    with patch("podrelay.cli.get_settings", return_value=settings):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["sync"])
    assert exc_info.value.code == 1
    assert "PRINTFUL_TOKEN" in capsys.readouterr().err


def test_sync_writes_snapshot(settings, fake_printful, capsys):
    fake_printful.add_product(1, [{"sku": "A1", "external_id": "99", "id": 555}])
    real_from_settings = cli.PrintfulClient.from_settings

    def with_fake_transport(s):
        return real_from_settings(s, transport=fake_printful.transport)

    with patch("podrelay.cli.get_settings", return_value=settings), patch.object(
        cli.PrintfulClient, "from_settings", side_effect=with_fake_transport
    ):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["sync"])

    assert exc_info.value.code == 0
    assert SnapshotStore(settings.sku_map_file).load().by_sku["A1"] == 555
    assert "A1 -> 555" in capsys.readouterr().out


def test_load_publisher_rejects_bad_spec():
    with pytest.raises(ValueError):
        cli.load_publisher("no_colon_here")


def test_load_publisher_imports_attribute():
    assert cli.load_publisher("podrelay.orders.dedupe:DeliveryDedupeGuard").__name__ == "DeliveryDedupeGuard"
