"""Market price resolution.

Architecture
------------
Two cooperating sources behind one cache-first interface:

    PriceOverviewClient (fast JSON)  ─┐
                                      ├→ PriceResolver → on-demand quotes
    ListingScraper (HTML fallback)   ─┘

    PriceOverviewClient → PriceResolutionQueue → PriceStore / HistoryStore

Key pieces:

- ``parse_numeric``: amount extraction from "$13.40" / "1.234,56 TL" text.
- ``PriceCache``: per-source TTL cache; stale entries remain peekable.
- ``RetryPolicy``: bounded retries with a backoff schedule.
- ``run_bounded``: fixed-size worker pool preserving input order.
- ``PriceResolutionQueue``: deduplicating, single-flight background drain.
"""

from steam_pricer.pricing.cache import PriceCache
from steam_pricer.pricing.listing import ListingScraper, extract_listing_price
from steam_pricer.pricing.overview import PriceOverviewClient
from steam_pricer.pricing.parsing import parse_numeric
from steam_pricer.pricing.pool import run_bounded
from steam_pricer.pricing.queue import InventorySource, PriceResolutionQueue
from steam_pricer.pricing.resolver import PriceLookup, PriceResolver
from steam_pricer.pricing.retry import RetryPolicy

__all__ = [
    "parse_numeric",
    "PriceCache",
    "RetryPolicy",
    "run_bounded",
    # Sources
    "PriceLookup",
    "PriceOverviewClient",
    "ListingScraper",
    "extract_listing_price",
    "PriceResolver",
    # Queue
    "InventorySource",
    "PriceResolutionQueue",
]
