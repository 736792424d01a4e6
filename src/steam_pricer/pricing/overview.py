"""Structured price source: the market price overview JSON endpoint."""

from __future__ import annotations

import logging

import httpx
from aiolimiter import AsyncLimiter

from steam_pricer.core.clock import Clock, SystemClock
from steam_pricer.core.config import CacheConfig, MarketConfig
from steam_pricer.core.exceptions import RateLimitError, SourceError
from steam_pricer.core.models import AssetName, PricePreference
from steam_pricer.pricing.cache import PriceCache
from steam_pricer.pricing.parsing import parse_numeric

logger = logging.getLogger(__name__)

_OVERVIEW_PATH = "/market/priceoverview/"


class PriceOverviewClient:
    """Rate-limited, cache-first client for ``/market/priceoverview/``.

    One lookup is one request: there are no retries here. A 429 is answered
    from the previous cache entry when one exists, however old. Every other
    failure degrades to None; nothing raised by the transport or upstream
    reaches the caller.

    Use via `async with PriceOverviewClient(...) as client:` or call close().
    """

    def __init__(
        self,
        market: MarketConfig,
        cache: PriceCache | None = None,
        clock: Clock | None = None,
        limiter: AsyncLimiter | None = None,
    ) -> None:
        self._market = market
        self._clock = clock or SystemClock()
        self._cache = cache or PriceCache(CacheConfig().overview_ttl, self._clock, name="overview")
        self._limiter = limiter or AsyncLimiter(
            max_rate=market.rate_limit, time_period=market.rate_period
        )
        self._client = httpx.AsyncClient(
            headers={"User-Agent": market.user_agent},
            timeout=httpx.Timeout(market.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> PriceOverviewClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client. Called automatically by __aexit__."""
        await self._client.aclose()

    @property
    def cache(self) -> PriceCache:
        return self._cache

    @property
    def url(self) -> str:
        return f"{self._market.base_url}{_OVERVIEW_PATH}"

    async def get_price(self, asset_name: AssetName) -> float | None:
        """Return the market price for one asset name, or None if unknown."""
        cached = self._cache.get_fresh(asset_name)
        if cached is not None:
            return cached.value

        try:
            payload = await self._fetch(asset_name)
        except RateLimitError:
            stale = self._cache.peek(asset_name)
            if stale is not None:
                logger.warning(
                    "Price overview rate limited for %r, serving cached value from %s",
                    asset_name, stale.stored_at.isoformat(),
                )
                return stale.value
            logger.warning("Price overview rate limited for %r, no cached value", asset_name)
            return None
        except SourceError as e:
            logger.warning("Price overview unavailable for %r: %s", asset_name, e)
            return None

        price = self._select_price(payload)
        # Negative answers are cached too so the same name is not re-asked
        # until the TTL passes.
        self._cache.put(asset_name, price)
        if price is None:
            logger.info("No price overview quote for %r", asset_name)
        return price

    def _select_price(self, payload: dict) -> float | None:
        """Pick the quoted value according to the configured preference."""
        if not payload.get("success"):
            return None

        if self._market.price_preference == PricePreference.MEDIAN:
            order = ("median_price", "lowest_price")
        else:
            order = ("lowest_price", "median_price")

        for key in order:
            raw = payload.get(key)
            if isinstance(raw, str) and raw:
                value = parse_numeric(raw)
                if value is not None:
                    return value
        return None

    async def _fetch(self, asset_name: AssetName) -> dict:
        """Issue the single request and decode its JSON body.

        Raises:
            RateLimitError: HTTP 429.
            SourceError: Transport failure, timeout, other non-200 status, or
                a body that is not a JSON object.
        """
        params = {
            "currency": str(self._market.currency),
            "appid": str(self._market.app_id),
            "market_hash_name": asset_name,
        }
        context = {"asset_name": asset_name, "url": self.url}

        await self._limiter.acquire()
        try:
            response = await self._client.get(self.url, params=params)
        except httpx.HTTPError as e:
            raise SourceError(
                f"Request failed: {type(e).__name__}: {e}",
                context={**context, "error": str(e)},
            ) from e

        if response.status_code == 429:
            raise RateLimitError(
                f"Rate limited (429) on {self.url}",
                context={**context, "status_code": 429},
            )
        if response.status_code != 200:
            raise SourceError(
                f"HTTP {response.status_code} from {self.url}",
                context={**context, "status_code": response.status_code},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError(
                "Malformed price overview body", context=context
            ) from e
        if not isinstance(payload, dict):
            raise SourceError("Price overview body is not an object", context=context)
        return payload
