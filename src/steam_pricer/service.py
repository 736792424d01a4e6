"""Process-wide pricing service: owns the caches, stores, clients and queue."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from steam_pricer.core.clock import Clock, SystemClock
from steam_pricer.core.config import PricerConfig
from steam_pricer.core.models import (
    AssetId,
    AssetName,
    HistoryPoint,
    Identity,
    InventoryItem,
    PortfolioEntry,
    PricedInventory,
    PricedItem,
    PriceQuote,
    PriceSource,
    QueueStatus,
    TotalValueSample,
)
from steam_pricer.inventory.client import InventoryClient
from steam_pricer.pricing.cache import PriceCache
from steam_pricer.pricing.listing import ListingScraper
from steam_pricer.pricing.overview import PriceOverviewClient
from steam_pricer.pricing.queue import PriceResolutionQueue
from steam_pricer.pricing.resolver import PriceResolver
from steam_pricer.storage.documents import DocumentStore, create_document_store
from steam_pricer.storage.stores import HistoryStore, PortfolioStore, PriceStore

logger = logging.getLogger(__name__)


class PricingService:
    """Everything a request handler needs, constructed once per process.

    Build with ``await PricingService.create(config)`` so the stores are
    loaded before the first request, and ``await service.close()`` on
    shutdown.
    """

    def __init__(
        self,
        config: PricerConfig,
        clock: Clock,
        prices: PriceStore,
        portfolio: PortfolioStore,
        history: HistoryStore,
        overview: PriceOverviewClient,
        listing: ListingScraper,
        inventory: InventoryClient,
        queue: PriceResolutionQueue,
        resolver: PriceResolver,
        backend: DocumentStore,
    ) -> None:
        self.config = config
        self.clock = clock
        self.prices = prices
        self.portfolio = portfolio
        self.history = history
        self.overview = overview
        self.listing = listing
        self.inventory = inventory
        self.queue = queue
        self.resolver = resolver
        self._backend = backend

    @classmethod
    async def create(
        cls,
        config: PricerConfig,
        clock: Clock | None = None,
        backend: DocumentStore | None = None,
    ) -> PricingService:
        """Wire up every component from config and load the stores."""
        clock = clock or SystemClock()
        backend = backend or create_document_store(config.storage)

        prices = PriceStore(backend)
        portfolio = PortfolioStore(backend)
        history = HistoryStore(backend, min_spacing=config.history.total_value_min_spacing)
        for store in (prices, portfolio, history):
            await store.load()

        overview = PriceOverviewClient(
            config.market,
            cache=PriceCache(config.cache.overview_ttl, clock, name="overview"),
            clock=clock,
        )
        listing = ListingScraper(
            config.market,
            config.scraper,
            cache=PriceCache(config.cache.listing_ttl, clock, name="listing"),
            clock=clock,
        )
        inventory = InventoryClient(
            config.market, config.inventory, ttl=config.cache.inventory_ttl, clock=clock
        )
        queue = PriceResolutionQueue(
            overview,
            prices,
            history,
            clock,
            inventory=inventory,
            item_delay=config.queue.item_delay_seconds,
            record_max_age=config.pricing.record_fresh,
        )
        resolver = PriceResolver(overview, listing, workers=config.queue.pool_workers)

        return cls(
            config=config,
            clock=clock,
            prices=prices,
            portfolio=portfolio,
            history=history,
            overview=overview,
            listing=listing,
            inventory=inventory,
            queue=queue,
            resolver=resolver,
            backend=backend,
        )

    async def close(self, wait_for_queue: bool = False) -> None:
        await self.queue.close(wait=wait_for_queue)
        await self.overview.close()
        await self.listing.close()
        await self.inventory.close()
        await self._backend.close()

    # --- Priced inventory ---

    async def priced_inventory(
        self,
        identity: Identity,
        manual_refresh: bool = False,
        result_limit: int | None = None,
        live: bool = False,
    ) -> PricedInventory:
        """Fetch an inventory and price it.

        Raises:
            InventoryError: The inventory listing could not be fetched.
        """
        items = await self.inventory.get_items(identity)
        return await self.price_items(
            identity,
            items,
            manual_refresh=manual_refresh,
            result_limit=result_limit,
            live=live,
        )

    async def price_items(
        self,
        identity: Identity,
        items: Sequence[InventoryItem],
        manual_refresh: bool = False,
        result_limit: int | None = None,
        live: bool = False,
    ) -> PricedInventory:
        """Attach stored prices and portfolio data to a caller-supplied item list.

        Totals cover every item; ``result_limit`` only truncates the returned
        list. ``live`` fills items that have never been resolved with an
        on-demand quote (reported, not persisted). ``manual_refresh`` queues
        marketable items for background resolution when the cooldown allows.
        """
        refresh_allowed = await self._claim_manual_refresh() if manual_refresh else False

        live_quotes: dict[AssetName, PriceQuote] = {}
        if live:
            unresolved = [
                item.name for item in items
                if item.marketable and self.prices.get(item.name) is None
            ]
            if unresolved:
                live_quotes = await self.resolver.quote(unresolved)

        total_value = 0.0
        total_purchase_value = 0.0
        total_value_for_profit_calc = 0.0
        priced: list[PricedItem] = []

        for item in items:
            record = self.prices.get(item.name)
            price = record.price if record else None
            source = PriceSource.STORE if price is not None else None
            if price is None and item.name in live_quotes:
                quote = live_quotes[item.name]
                price, source = quote.price, quote.source

            entry = self.portfolio.get(item.asset_id)
            purchase_price = entry.purchase_price if entry else None

            if price is not None:
                total_value += price
            if purchase_price is not None:
                total_purchase_value += purchase_price
                if price is not None:
                    total_value_for_profit_calc += price

            priced.append(
                PricedItem(
                    **item.model_dump(),
                    price=price,
                    previous_price=record.previous_price if record else None,
                    purchase_price=purchase_price,
                    watched=entry.watched if entry else False,
                    last_updated=record.observed_at if record else None,
                    price_source=source,
                )
            )

        queued = 0
        if refresh_allowed:
            queued = self.queue.submit(item.name for item in items if item.marketable)

        if result_limit is not None:
            priced = priced[:result_limit]

        return PricedInventory(
            identity=identity,
            items=priced,
            total_value=round(total_value, 2),
            total_purchase_value=round(total_purchase_value, 2),
            total_value_for_profit_calc=round(total_value_for_profit_calc, 2),
            queued_count=queued,
            last_price_refresh=self.portfolio.last_price_refresh,
        )

    async def _claim_manual_refresh(self) -> bool:
        """Advance the refresh timestamp if the cooldown has passed."""
        now = self.clock.now()
        last = self.portfolio.last_price_refresh
        cooldown = self.config.pricing.manual_refresh_cooldown
        if last is not None and now - last <= cooldown:
            logger.info(
                "Manual update ignored: cooldown active until %s",
                (last + cooldown).isoformat(),
            )
            return False
        await self.portfolio.mark_price_refresh(now)
        logger.info("Manual price update triggered")
        return True

    # --- Live quotes ---

    async def quote(self, names: Iterable[AssetName]) -> dict[AssetName, PriceQuote]:
        return await self.resolver.quote(names)

    # --- Portfolio ---

    async def set_purchase_price(
        self, asset_id: AssetId, price: float | None
    ) -> PortfolioEntry | None:
        return await self.portfolio.set_purchase_price(asset_id, price, self.clock.now())

    async def set_watched(self, asset_id: AssetId, watched: bool) -> PortfolioEntry:
        return await self.portfolio.set_watched(asset_id, watched, self.clock.now())

    # --- History / status ---

    def item_history(self, asset_name: AssetName) -> list[HistoryPoint]:
        return self.history.item_history(asset_name)

    def total_value_history(self) -> list[TotalValueSample]:
        return self.history.total_value_history()

    def queue_status(self) -> QueueStatus:
        return self.queue.status()

    def statistics(self) -> dict:
        """Basic counts for health and status output."""
        last_refresh = self.portfolio.last_price_refresh
        return {
            "price_records": len(self.prices),
            "portfolio_entries": len(self.portfolio.all()),
            "tracked_items": self.history.tracked_items,
            "total_value_samples": len(self.history.total_value_history()),
            "last_price_refresh": last_refresh.isoformat() if last_refresh else None,
        }
