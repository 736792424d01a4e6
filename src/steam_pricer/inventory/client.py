"""Paginated inventory listing client."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import httpx
from aiolimiter import AsyncLimiter

from steam_pricer.core.clock import Clock, SystemClock
from steam_pricer.core.config import InventoryConfig, MarketConfig
from steam_pricer.core.exceptions import InventoryError
from steam_pricer.core.models import Identity, InventoryItem, InventoryPage
from steam_pricer.pricing.retry import RetryPolicy

logger = logging.getLogger(__name__)

_INVENTORY_PATH = "/inventory/{identity}/{app_id}/{context_id}"
_ICON_BASE = "https://steamcommunity-a.akamaihd.net/economy/image/"


class InventoryClient:
    """Fetches and caches an owner's full inventory.

    Pages are followed by cursor until the listing says there is no more,
    the cursor repeats, or the page ceiling is reached. Each page request is
    retried on failure. The per-identity cache doubles as the set of
    "recently viewed" identities that the price queue revalues.
    """

    def __init__(
        self,
        market: MarketConfig,
        config: InventoryConfig | None = None,
        ttl: timedelta = timedelta(minutes=5),
        clock: Clock | None = None,
        limiter: AsyncLimiter | None = None,
    ) -> None:
        self._market = market
        self._config = config or InventoryConfig()
        self._ttl = ttl
        self._clock = clock or SystemClock()
        self._policy = RetryPolicy(
            max_attempts=self._config.fetch_attempts,
            backoff_seconds=self._config.retry_delay_seconds,
            retry_on=(InventoryError,),
        )
        self._limiter = limiter or AsyncLimiter(
            max_rate=self._config.rate_limit, time_period=self._config.rate_period
        )
        self._cache: dict[Identity, tuple[list[InventoryItem], datetime]] = {}
        self._client = httpx.AsyncClient(
            headers={"User-Agent": market.user_agent},
            timeout=httpx.Timeout(market.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> InventoryClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    def inventory_url(self, identity: Identity) -> str:
        path = _INVENTORY_PATH.format(
            identity=identity,
            app_id=self._market.app_id,
            context_id=self._market.context_id,
        )
        return f"{self._market.base_url}{path}"

    def recent_identities(self) -> list[Identity]:
        """Identities whose inventory has been fetched by this process."""
        return list(self._cache)

    def cached_items(self, identity: Identity) -> list[InventoryItem] | None:
        """Last fetched inventory regardless of age, or None."""
        cached = self._cache.get(identity)
        return list(cached[0]) if cached else None

    async def get_items(self, identity: Identity) -> list[InventoryItem]:
        """Return the full inventory, from cache while it is fresh.

        Raises:
            InventoryError: A page could not be fetched after retries, or the
                listing was malformed.
        """
        cached = self._cache.get(identity)
        now = self._clock.now()
        if cached is not None and now - cached[1] < self._ttl:
            logger.debug("Serving inventory from cache: %s", identity)
            return list(cached[0])

        assets: list[dict] = []
        descriptions: dict[str, dict] = {}
        cursor: str | None = None
        visited: set[str] = set()

        for page_number in range(1, self._config.max_pages + 1):
            logger.info("Fetching inventory page %d for %s", page_number, identity)
            page = await self._policy.run(
                lambda attempt, cursor=cursor: self.fetch_page(identity, cursor),
                self._clock.sleep,
            )
            assets.extend(page.assets)
            for description in page.descriptions:
                class_id = str(description.get("classid", ""))
                if class_id:
                    descriptions[class_id] = description

            if not page.more or not page.next_cursor:
                break
            if page.next_cursor in visited:
                logger.warning("Stopping: inventory cursor %s repeated", page.next_cursor)
                break
            visited.add(page.next_cursor)
            cursor = page.next_cursor
        else:
            logger.warning(
                "Stopped inventory walk for %s at the %d page limit",
                identity, self._config.max_pages,
            )

        items = [self._to_item(asset, descriptions) for asset in assets]
        self._cache[identity] = (items, now)
        return list(items)

    async def fetch_page(self, identity: Identity, cursor: str | None = None) -> InventoryPage:
        """Fetch one page of the listing.

        Raises:
            InventoryError: Transport error, non-200 status, or a body without
                an ``assets`` list.
        """
        url = self.inventory_url(identity)
        params = {"l": "english", "count": str(self._config.page_size)}
        if cursor:
            params["start_assetid"] = cursor
        context = {"identity": identity, "cursor": cursor, "url": url}

        await self._limiter.acquire()
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise InventoryError(
                f"Inventory request failed: {type(e).__name__}: {e}",
                context={**context, "error": str(e)},
            ) from e

        if response.status_code != 200:
            raise InventoryError(
                f"HTTP {response.status_code} from inventory for {identity}",
                context={**context, "status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise InventoryError("Malformed inventory body", context=context) from e

        if not isinstance(data, dict):
            raise InventoryError(f"Inventory not found for {identity}", context=context)
        if "assets" not in data and data.get("success") in (1, True):
            # An empty inventory omits the assets list entirely
            return InventoryPage()
        if not isinstance(data.get("assets"), list):
            raise InventoryError(f"Inventory not found for {identity}", context=context)

        last_assetid = data.get("last_assetid")
        return InventoryPage(
            assets=data["assets"],
            descriptions=data.get("descriptions") or [],
            more=bool(data.get("more_items")),
            next_cursor=str(last_assetid) if last_assetid else None,
        )

    @staticmethod
    def _to_item(asset: dict, descriptions: dict[str, dict]) -> InventoryItem:
        """Join an asset with its description by class id."""
        class_id = str(asset.get("classid", ""))
        meta = descriptions.get(class_id, {})
        icon = meta.get("icon_url")
        return InventoryItem(
            asset_id=str(asset.get("assetid", "")),
            class_id=class_id,
            name=meta.get("market_name") or meta.get("name") or "Unknown",
            icon_url=f"{_ICON_BASE}{icon}" if icon else None,
            type=meta.get("type") or "",
            marketable=meta.get("marketable") in (1, True, "1"),
        )
