"""Tests for the FastAPI REST API module."""

from __future__ import annotations

import time

import httpx
import pytest
import respx
from fastapi.testclient import TestClient

from steam_pricer.api.app import create_app, error_status
from steam_pricer.core.config import (
    APIConfig,
    InventoryConfig,
    MarketConfig,
    PricerConfig,
    QueueConfig,
    StorageConfig,
)
from steam_pricer.core.exceptions import (
    ConfigError,
    InventoryError,
    RateLimitError,
    StorageError,
)
from steam_pricer.core.models import StorageBackend

BASE_URL = "https://steamcommunity.test"
OVERVIEW_URL = f"{BASE_URL}/market/priceoverview/"
OWNER = "76561198000000001"
INVENTORY_URL = f"{BASE_URL}/inventory/{OWNER}/730/2"

INVENTORY_BODY = {
    "success": 1,
    "assets": [
        {"assetid": "111", "classid": "c1"},
        {"assetid": "222", "classid": "c2"},
    ],
    "descriptions": [
        {"classid": "c1", "market_name": "Glove Case", "marketable": 1},
        {"classid": "c2", "market_name": "Service Medal", "marketable": 0},
    ],
}


# -- Fixtures --


def _make_config(tmp_path, api_key=None):
    """Create a test config."""
    return PricerConfig(
        market=MarketConfig(base_url=BASE_URL),
        queue=QueueConfig(item_delay_seconds=0),
        inventory=InventoryConfig(retry_delay_seconds=0),
        storage=StorageConfig(
            backend=StorageBackend.JSON,
            data_dir=str(tmp_path / "data"),
        ),
        api=APIConfig(api_key=api_key),
    )


@pytest.fixture
def market():
    with respx.mock(assert_all_called=False) as mock:
        mock.get(INVENTORY_URL).mock(return_value=httpx.Response(200, json=INVENTORY_BODY))
        mock.get(OVERVIEW_URL).mock(
            return_value=httpx.Response(200, json={"success": True, "lowest_price": "$3.15"})
        )
        yield mock


@pytest.fixture
def client(tmp_path, market):
    app = create_app(config=_make_config(tmp_path))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def authed_client(tmp_path, market):
    app = create_app(config=_make_config(tmp_path, api_key="test-secret-key"))
    with TestClient(app) as c:
        yield c


def _wait_for_queue(client, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not client.get("/api/queue").json()["in_flight"]:
            return
        time.sleep(0.01)
    raise AssertionError("price queue did not go idle")


# -- Health --


class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["storage_backend"] == "json"
        assert data["price_records"] == 0
        assert data["queue_in_flight"] is False


# -- Inventory --


class TestInventory:
    def test_unpriced_listing(self, client):
        resp = client.get(f"/api/inventory/{OWNER}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 2
        assert data["items"][0]["name"] == "Glove Case"

    def test_priced_without_refresh(self, client):
        resp = client.get(f"/api/inventory/{OWNER}/priced")
        assert resp.status_code == 200
        data = resp.json()
        assert data["queued_count"] == 0
        assert data["total_value"] == 0
        assert all(item["price"] is None for item in data["items"])

    def test_update_prices_queues_and_resolves(self, client):
        resp = client.get(f"/api/inventory/{OWNER}/priced", params={"update_prices": "true"})
        assert resp.json()["queued_count"] == 1
        assert resp.json()["last_price_refresh"] is not None

        _wait_for_queue(client)
        data = client.get(f"/api/inventory/{OWNER}/priced").json()
        assert data["items"][0]["price"] == 3.15
        assert data["total_value"] == 3.15

        history = client.get("/api/history/item/Glove Case").json()
        assert [p["price"] for p in history] == [3.15]
        totals = client.get("/api/history/total").json()
        assert [s["value"] for s in totals] == [3.15]

    def test_second_refresh_within_cooldown(self, client):
        client.get(f"/api/inventory/{OWNER}/priced", params={"update_prices": "true"})
        _wait_for_queue(client)
        resp = client.get(f"/api/inventory/{OWNER}/priced", params={"update_prices": "true"})
        assert resp.json()["queued_count"] == 0

    def test_live_quotes(self, client):
        data = client.get(f"/api/inventory/{OWNER}/priced", params={"live": "true"}).json()
        assert data["items"][0]["price"] == 3.15
        assert data["items"][0]["price_source"] == "overview"

    def test_limit(self, client):
        data = client.get(f"/api/inventory/{OWNER}/priced", params={"limit": 1}).json()
        assert len(data["items"]) == 1

    def test_inventory_failure_is_502(self, client, market):
        market.get(f"{BASE_URL}/inventory/private/730/2").mock(return_value=httpx.Response(403))
        resp = client.get("/api/inventory/private")
        assert resp.status_code == 502
        assert resp.json()["error"] == "InventoryError"


# -- Portfolio --


class TestPortfolio:
    def test_set_price(self, client):
        resp = client.post("/api/portfolio/set-price", json={"asset_id": "111", "price": 2.5})
        assert resp.status_code == 200
        assert resp.json()["purchase_price"] == 2.5

        data = client.get(f"/api/inventory/{OWNER}/priced").json()
        assert data["items"][0]["purchase_price"] == 2.5
        assert data["total_purchase_value"] == 2.5

    def test_clear_price(self, client):
        client.post("/api/portfolio/set-price", json={"asset_id": "111", "price": 2.5})
        resp = client.post("/api/portfolio/set-price", json={"asset_id": "111", "price": None})
        assert resp.json()["purchase_price"] is None

    def test_negative_price_rejected(self, client):
        resp = client.post("/api/portfolio/set-price", json={"asset_id": "111", "price": -1})
        assert resp.status_code == 422

    def test_toggle_watch(self, client):
        resp = client.post("/api/portfolio/toggle-watch", json={"asset_id": "111", "watched": True})
        assert resp.status_code == 200
        assert resp.json()["watched"] is True
        data = client.get(f"/api/inventory/{OWNER}/priced").json()
        assert data["items"][0]["watched"] is True


# -- History / quotes / queue --


class TestHistoryAndQuotes:
    def test_empty_history(self, client):
        assert client.get("/api/history/total").json() == []
        assert client.get("/api/history/item/Never Seen").json() == []

    def test_quote(self, client):
        resp = client.get("/api/prices/quote", params=[("name", "Glove Case"), ("name", "Glove Case")])
        assert resp.status_code == 200
        data = resp.json()
        assert len(data) == 1
        assert data[0] == {"asset_name": "Glove Case", "price": 3.15, "source": "overview"}

    def test_quote_requires_name(self, client):
        assert client.get("/api/prices/quote").status_code == 422

    def test_queue_status(self, client):
        data = client.get("/api/queue").json()
        assert data["pending"] == 0
        assert data["loops_started"] == 0


# -- Auth --


class TestAuth:
    def test_missing_key_rejected(self, authed_client):
        resp = authed_client.get("/api/queue")
        assert resp.status_code == 401

    def test_valid_key(self, authed_client):
        resp = authed_client.get("/api/queue", headers={"X-API-Key": "test-secret-key"})
        assert resp.status_code == 200

    def test_health_exempt(self, authed_client):
        assert authed_client.get("/api/health").status_code == 200


# -- Error mapping --


class TestErrorStatus:
    @pytest.mark.parametrize(
        "exc, status",
        [
            (InventoryError("private inventory"), 502),
            (ConfigError("bad setting"), 400),
            (RateLimitError("429"), 500),
            (StorageError("disk full"), 500),
        ],
    )
    def test_status_mapping(self, exc, status):
        assert error_status(exc) == status

    def test_error_envelope(self, client, market):
        market.get(f"{BASE_URL}/inventory/private/730/2").mock(return_value=httpx.Response(403))
        body = client.get("/api/inventory/private").json()
        assert body["success"] is False
        assert body["error"] == "InventoryError"
        assert "private" in body["detail"]
