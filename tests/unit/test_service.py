"""Tests for steam_pricer.service (PricingService)."""

from __future__ import annotations

import httpx
import pytest
import respx

from steam_pricer.core.models import InventoryItem, PriceSource
from steam_pricer.service import PricingService

OVERVIEW_URL = "https://steamcommunity.test/market/priceoverview/"


def _item(asset_id: str, name: str, marketable: bool = True) -> InventoryItem:
    return InventoryItem(asset_id=asset_id, class_id=f"c{asset_id}", name=name, marketable=marketable)


ITEMS = [
    _item("1", "Glove Case"),
    _item("2", "AK-47 | Redline (Field-Tested)"),
    _item("3", "Service Medal", marketable=False),
]


# --- Fixtures ---


@pytest.fixture
async def service(pricer_config, clock):
    svc = await PricingService.create(pricer_config, clock=clock)
    yield svc
    await svc.close()


@pytest.fixture
def overview_route():
    with respx.mock(assert_all_called=False) as mock:
        route = mock.get(OVERVIEW_URL).mock(
            return_value=httpx.Response(200, json={"success": True, "lowest_price": "$5.00"})
        )
        yield route


# --- Totals ---


class TestPriceItems:
    async def test_totals(self, service, clock):
        await service.prices.record("Glove Case", 3.15, clock.now())
        await service.prices.record("AK-47 | Redline (Field-Tested)", 13.40, clock.now())
        await service.set_purchase_price("2", 10.00)
        await service.set_purchase_price("3", 1.00)

        result = await service.price_items("owner", ITEMS)

        assert result.total_value == pytest.approx(16.55)
        assert result.total_purchase_value == pytest.approx(11.00)
        # Only purchased items that also have a price
        assert result.total_value_for_profit_calc == pytest.approx(13.40)
        assert result.profit == pytest.approx(2.40)
        assert result.queued_count == 0

    async def test_item_fields(self, service, clock):
        await service.prices.record("Glove Case", 3.00, clock.now())
        clock.advance(hours=2)
        await service.prices.record("Glove Case", 3.15, clock.now())
        await service.set_watched("1", True)

        result = await service.price_items("owner", ITEMS)
        case = result.items[0]
        assert case.price == 3.15
        assert case.previous_price == 3.00
        assert case.watched is True
        assert case.last_updated == clock.now()
        assert case.price_source == PriceSource.STORE

        unpriced = result.items[1]
        assert unpriced.price is None
        assert unpriced.price_source is None

    async def test_limit_truncates_list_only(self, service, clock):
        await service.prices.record("AK-47 | Redline (Field-Tested)", 13.40, clock.now())
        result = await service.price_items("owner", ITEMS, result_limit=1)
        assert len(result.items) == 1
        assert result.total_value == pytest.approx(13.40)


# --- Manual refresh ---


class TestManualRefresh:
    async def test_queues_marketable_items(self, service, clock, overview_route):
        result = await service.price_items("owner", ITEMS, manual_refresh=True)
        assert result.queued_count == 2
        assert result.last_price_refresh == clock.now()

        await service.queue.wait_idle()
        assert service.prices.price_of("Glove Case") == 5.00
        assert service.prices.get("Service Medal") is None

    async def test_cooldown_blocks_second_refresh(self, service, clock, overview_route):
        first = await service.price_items("owner", ITEMS, manual_refresh=True)
        await service.queue.wait_idle()
        stamp = service.portfolio.last_price_refresh

        clock.advance(hours=2)
        second = await service.price_items("owner", ITEMS, manual_refresh=True)

        assert first.queued_count == 2
        assert second.queued_count == 0
        assert service.portfolio.last_price_refresh == stamp
        assert service.queue.loops_started == 1

    async def test_refresh_allowed_after_cooldown(self, service, clock, overview_route):
        await service.price_items("owner", ITEMS, manual_refresh=True)
        await service.queue.wait_idle()

        clock.advance(hours=4, seconds=1)
        again = await service.price_items("owner", ITEMS, manual_refresh=True)
        # Records are now older than the freshness window, so both requeue
        assert again.queued_count == 2
        assert service.portfolio.last_price_refresh == clock.now()
        await service.queue.wait_idle()


# --- Live quotes ---


class TestLive:
    async def test_live_fills_unresolved_without_persisting(self, service, overview_route):
        result = await service.price_items("owner", ITEMS, live=True)

        prices = {i.name: (i.price, i.price_source) for i in result.items}
        assert prices["Glove Case"] == (5.00, PriceSource.OVERVIEW)
        assert prices["Service Medal"] == (None, None)
        assert result.total_value == pytest.approx(10.00)
        assert service.prices.get("Glove Case") is None
        # Non-marketable items are never quoted
        assert overview_route.call_count == 2

    async def test_stored_price_wins_over_live(self, service, clock, overview_route):
        await service.prices.record("Glove Case", 3.15, clock.now())
        result = await service.price_items("owner", ITEMS, live=True)
        assert result.items[0].price == 3.15
        assert result.items[0].price_source == PriceSource.STORE
        assert overview_route.call_count == 1


# --- Portfolio / stats ---


class TestPortfolioAndStats:
    async def test_set_and_clear_purchase_price(self, service):
        entry = await service.set_purchase_price("1", 2.5)
        assert entry.purchase_price == 2.5
        assert await service.set_purchase_price("1", None) is None

    async def test_statistics(self, service, clock):
        await service.prices.record("Glove Case", 3.15, clock.now())
        await service.history.append_item_point("Glove Case", 3.15, clock.now())
        stats = service.statistics()
        assert stats["price_records"] == 1
        assert stats["tracked_items"] == 1
        assert stats["last_price_refresh"] is None

    async def test_stores_reload_on_create(self, pricer_config, clock):
        first = await PricingService.create(pricer_config, clock=clock)
        await first.prices.record("Glove Case", 3.15, clock.now())
        await first.close()

        second = await PricingService.create(pricer_config, clock=clock)
        try:
            assert second.prices.price_of("Glove Case") == 3.15
        finally:
            await second.close()
