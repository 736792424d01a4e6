"""Tests for the CLI module."""

from __future__ import annotations

import json
from unittest.mock import patch

import httpx
import pytest
import respx
from click.testing import CliRunner

from steam_pricer.cli import cli

BASE_URL = "https://steamcommunity.test"
OVERVIEW_URL = f"{BASE_URL}/market/priceoverview/"
OWNER = "76561198000000001"
INVENTORY_URL = f"{BASE_URL}/inventory/{OWNER}/730/2"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    monkeypatch.delenv("STEAM_PRICER_CONFIG", raising=False)
    path = tmp_path / "steam-pricer.yml"
    path.write_text(
        f"market:\n  base_url: {BASE_URL}\n"
        "queue:\n  item_delay_seconds: 0\n"
        "inventory:\n  retry_delay_seconds: 0\n"
        f"storage:\n  backend: json\n  data_dir: {tmp_path / 'data'}\n"
    )
    return str(path)


@pytest.fixture
def market():
    with respx.mock(assert_all_called=False) as mock:
        mock.get(OVERVIEW_URL).mock(
            return_value=httpx.Response(200, json={"success": True, "lowest_price": "$3.15"})
        )
        mock.get(INVENTORY_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "success": 1,
                    "assets": [{"assetid": "111", "classid": "c1"}],
                    "descriptions": [
                        {"classid": "c1", "market_name": "Glove Case", "marketable": 1}
                    ],
                },
            )
        )
        yield mock


# ---------------------------------------------------------------------------
# Group
# ---------------------------------------------------------------------------


class TestGroup:
    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("quote", "inventory", "history", "serve", "status"):
            assert command in result.output

    def test_missing_config_file(self, runner):
        result = runner.invoke(cli, ["-c", "/nonexistent.yml", "status"])
        assert result.exit_code != 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


class TestQuote:
    def test_json_output(self, runner, config_file, market):
        result = runner.invoke(
            cli, ["-c", config_file, "quote", "Glove Case", "--format", "json"]
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload == [{"asset_name": "Glove Case", "price": 3.15, "source": "overview"}]

    def test_requires_a_name(self, runner, config_file):
        result = runner.invoke(cli, ["-c", config_file, "quote"])
        assert result.exit_code != 0


class TestInventory:
    def test_update_prices_then_show(self, runner, config_file, market):
        result = runner.invoke(cli, ["-c", config_file, "inventory", OWNER, "--update-prices"])
        assert result.exit_code == 0, result.output
        assert "Resolving 1 prices" in result.output

        result = runner.invoke(cli, ["-c", config_file, "inventory", OWNER])
        assert result.exit_code == 0, result.output
        assert "3.15" in result.output

    def test_inventory_failure(self, runner, config_file, market):
        market.get(f"{BASE_URL}/inventory/private/730/2").mock(return_value=httpx.Response(500))
        result = runner.invoke(cli, ["-c", config_file, "inventory", "private"])
        assert result.exit_code == 1
        assert "Inventory fetch failed" in result.output


class TestHistoryAndStatus:
    def test_history_empty(self, runner, config_file):
        result = runner.invoke(cli, ["-c", config_file, "history"])
        assert result.exit_code == 0
        assert "No history recorded yet" in result.output

    def test_item_history_after_refresh(self, runner, config_file, market):
        runner.invoke(cli, ["-c", config_file, "inventory", OWNER, "--update-prices"])
        result = runner.invoke(cli, ["-c", config_file, "history", "--item", "Glove Case"])
        assert result.exit_code == 0, result.output
        assert "3.15" in result.output

    def test_status(self, runner, config_file):
        result = runner.invoke(cli, ["-c", config_file, "status"])
        assert result.exit_code == 0, result.output
        assert "Price records" in result.output
        assert "json" in result.output


class TestServe:
    def test_serve_invokes_uvicorn(self, runner, config_file, monkeypatch):
        # serve exports the config path for the server process
        monkeypatch.setenv("STEAM_PRICER_CONFIG", config_file)
        with patch("uvicorn.run") as mock_run:
            result = runner.invoke(cli, ["-c", config_file, "serve", "--port", "9000"])
        assert result.exit_code == 0, result.output
        args, kwargs = mock_run.call_args
        assert args[0] == "steam_pricer.api.app:create_app"
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9000
