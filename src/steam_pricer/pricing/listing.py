"""Scraped price source: the market listing HTML page."""

from __future__ import annotations

import json
import logging
import re
from urllib.parse import quote

import httpx
from aiolimiter import AsyncLimiter
from bs4 import BeautifulSoup

from steam_pricer.core.clock import Clock, SystemClock
from steam_pricer.core.config import CacheConfig, MarketConfig, ScraperConfig
from steam_pricer.core.exceptions import RateLimitError, SourceError
from steam_pricer.core.models import AssetName
from steam_pricer.pricing.cache import PriceCache
from steam_pricer.pricing.parsing import parse_numeric
from steam_pricer.pricing.retry import RetryPolicy

logger = logging.getLogger(__name__)

_LISTING_PATH = "/market/listings/{app_id}/{name}"

# JSON string fields embedded in the page's inline scripts
_EMBEDDED_PRICE_RE = re.compile(
    r'"(?:lowest_price|sell_price_text)"\s*:\s*"((?:[^"\\]|\\.)*)"'
)
_PRICE_SELECTOR = ".market_listing_price_with_fee"


def extract_listing_price(markup: str) -> float | None:
    """Find a price in a listing page.

    The embedded structured field is tried first on the raw markup; only
    when that finds nothing is the document parsed and the first listing
    price element read.
    """
    for match in _EMBEDDED_PRICE_RE.finditer(markup):
        try:
            text = json.loads(f'"{match.group(1)}"')
        except ValueError:
            text = match.group(1)
        value = parse_numeric(text)
        if value is not None:
            return value

    soup = BeautifulSoup(markup, "html.parser")
    element = soup.select_one(_PRICE_SELECTOR)
    if element is None:
        return None
    return parse_numeric(element.get_text(" ", strip=True))


class ListingScraper:
    """Fallback price source that scrapes ``/market/listings/{app}/{name}``.

    Slower than the overview endpoint, so its cache keeps entries much
    longer. It has its own request rate limit; 429s are retried under a
    RetryPolicy and any other failure returns None at once so the fallback
    never stalls a request.
    """

    def __init__(
        self,
        market: MarketConfig,
        scraper: ScraperConfig | None = None,
        cache: PriceCache | None = None,
        clock: Clock | None = None,
        limiter: AsyncLimiter | None = None,
    ) -> None:
        scraper = scraper or ScraperConfig()
        self._market = market
        self._clock = clock or SystemClock()
        self._cache = cache or PriceCache(CacheConfig().listing_ttl, self._clock, name="listing")
        self._policy = RetryPolicy(
            max_attempts=scraper.max_attempts,
            backoff_seconds=scraper.backoff_seconds,
            multiplier=scraper.backoff_multiplier,
            retry_on=(RateLimitError,),
        )
        self._limiter = limiter or AsyncLimiter(
            max_rate=scraper.rate_limit, time_period=scraper.rate_period
        )
        self._client = httpx.AsyncClient(
            headers={"User-Agent": market.user_agent},
            timeout=httpx.Timeout(market.request_timeout),
            follow_redirects=True,
        )

    async def __aenter__(self) -> ListingScraper:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def cache(self) -> PriceCache:
        return self._cache

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def listing_url(self, asset_name: AssetName) -> str:
        path = _LISTING_PATH.format(
            app_id=self._market.app_id, name=quote(asset_name, safe="")
        )
        return f"{self._market.base_url}{path}"

    async def get_price(self, asset_name: AssetName) -> float | None:
        """Return the scraped listing price for one asset name, or None."""
        cached = self._cache.get_fresh(asset_name)
        if cached is not None:
            return cached.value

        url = self.listing_url(asset_name)

        async def attempt(n: int) -> str:
            return await self._fetch(url, asset_name, n)

        try:
            markup = await self._policy.run(attempt, self._clock.sleep)
        except RateLimitError:
            logger.warning(
                "Listing page for %r still rate limited after %d attempts",
                asset_name, self._policy.max_attempts,
            )
            return None
        except SourceError as e:
            logger.warning("Listing page unavailable for %r: %s", asset_name, e)
            return None

        price = extract_listing_price(markup)
        self._cache.put(asset_name, price)
        if price is None:
            logger.info("No price found on listing page for %r", asset_name)
        return price

    async def _fetch(self, url: str, asset_name: AssetName, attempt: int) -> str:
        """Fetch the listing page once.

        Raises:
            RateLimitError: HTTP 429.
            SourceError: Transport failure, timeout, or other non-200 status.
        """
        context = {"asset_name": asset_name, "url": url, "attempt": attempt}
        await self._limiter.acquire()
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise SourceError(
                f"Request failed: {type(e).__name__}: {e}",
                context={**context, "error": str(e)},
            ) from e

        if response.status_code == 429:
            raise RateLimitError(
                f"Rate limited (429) on listing page for {asset_name!r}",
                context={**context, "status_code": 429},
            )
        if response.status_code != 200:
            raise SourceError(
                f"HTTP {response.status_code} from {url}",
                context={**context, "status_code": response.status_code},
            )
        return response.text
