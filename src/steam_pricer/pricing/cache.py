"""TTL-keyed in-memory lookup cache."""

from __future__ import annotations

from datetime import timedelta

from steam_pricer.core.clock import Clock
from steam_pricer.core.models import AssetName, CacheEntry


class PriceCache:
    """In-memory map from asset name to the last lookup result.

    Each price source owns its own PriceCache, so the structured and scraped
    sources never see each other's entries even for the same name. Entries
    are kept after they go stale: `get_fresh` ignores them, `peek` does not.
    """

    def __init__(self, ttl: timedelta, clock: Clock, name: str = "prices") -> None:
        self._ttl = ttl
        self._clock = clock
        self._name = name
        self._entries: dict[AssetName, CacheEntry] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def get_fresh(self, asset_name: AssetName) -> CacheEntry | None:
        """Return the entry only while it is younger than the TTL."""
        entry = self._entries.get(asset_name)
        if entry is None or not entry.is_fresh(self._clock.now(), self._ttl):
            return None
        return entry

    def peek(self, asset_name: AssetName) -> CacheEntry | None:
        """Return the entry regardless of age (stale-but-available reads)."""
        return self._entries.get(asset_name)

    def put(self, asset_name: AssetName, value: float | None) -> CacheEntry:
        """Store a lookup result stamped with the current time."""
        entry = CacheEntry(value=value, stored_at=self._clock.now())
        self._entries[asset_name] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, asset_name: object) -> bool:
        return asset_name in self._entries
