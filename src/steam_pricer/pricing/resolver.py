"""Live quote pass combining the structured source and the scraped fallback."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from steam_pricer.core.models import AssetName, PriceQuote, PriceSource
from steam_pricer.pricing.pool import run_bounded

logger = logging.getLogger(__name__)


@runtime_checkable
class PriceLookup(Protocol):
    """Anything that can price one asset name (None when unknown)."""

    async def get_price(self, asset_name: AssetName) -> float | None: ...


class PriceResolver:
    """Resolves a batch of names on demand.

    Pass 1 runs the structured source over every distinct name on a bounded
    worker pool. Pass 2 asks the scraper, one name at a time, for whatever
    pass 1 left unpriced. The background queue never uses this class; it
    serves the on-demand paths only.
    """

    def __init__(
        self,
        overview: PriceLookup,
        listing: PriceLookup | None = None,
        workers: int = 3,
    ) -> None:
        self._overview = overview
        self._listing = listing
        self._workers = workers

    async def quote(self, names: Iterable[AssetName]) -> dict[AssetName, PriceQuote]:
        """Price each distinct name once. Result keys keep first-seen order."""
        distinct = list(dict.fromkeys(n for n in names if n and n.strip()))
        if not distinct:
            return {}

        prices = await run_bounded(distinct, self._overview.get_price, workers=self._workers)
        quotes: dict[AssetName, PriceQuote] = {}
        missing: list[AssetName] = []
        for name, price in zip(distinct, prices):
            if price is None:
                missing.append(name)
            else:
                quotes[name] = PriceQuote(asset_name=name, price=price, source=PriceSource.OVERVIEW)

        if missing and self._listing is not None:
            logger.info("Falling back to listing pages for %d names", len(missing))
            for name in missing:
                price = await self._listing.get_price(name)
                quotes[name] = PriceQuote(
                    asset_name=name,
                    price=price,
                    source=PriceSource.LISTING if price is not None else None,
                )
        else:
            for name in missing:
                quotes[name] = PriceQuote(asset_name=name)

        return {name: quotes[name] for name in distinct}
