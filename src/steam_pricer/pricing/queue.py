"""Single-flight background queue that resolves and persists prices."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from steam_pricer.core.clock import Clock
from steam_pricer.core.exceptions import InventoryError
from steam_pricer.core.models import AssetName, Identity, InventoryItem, QueueStatus
from steam_pricer.pricing.resolver import PriceLookup
from steam_pricer.storage.stores import HistoryStore, PriceStore

logger = logging.getLogger(__name__)


@runtime_checkable
class InventorySource(Protocol):
    """The slice of the inventory client the end-of-drain revaluation needs."""

    def recent_identities(self) -> list[Identity]: ...

    async def get_items(self, identity: Identity) -> list[InventoryItem]: ...


class PriceResolutionQueue:
    """Deduplicating pending set drained by at most one loop at a time.

    ``submit`` only ever adds names; the first submit while idle starts the
    drain task and later ones feed the loop that is already running. The
    loop resolves one name at a time through the structured source, writes
    the price and a history point, and then waits ``item_delay`` seconds
    before the next name whether the lookup succeeded or not. Once the
    pending set is empty it revalues every recently viewed inventory into
    the total-value history and goes idle.

    Lifecycle:
        queue = PriceResolutionQueue(overview, prices, history, clock=clock)
        queue.submit(["AK-47 | Redline (Field-Tested)", ...])
        await queue.wait_idle()   # tests / shutdown only
        await queue.close()
    """

    def __init__(
        self,
        lookup: PriceLookup,
        prices: PriceStore,
        history: HistoryStore,
        clock: Clock,
        inventory: InventorySource | None = None,
        item_delay: float = 3.5,
        record_max_age: timedelta | None = timedelta(hours=1),
    ) -> None:
        self._lookup = lookup
        self._prices = prices
        self._history = history
        self._clock = clock
        self._inventory = inventory
        self._item_delay = item_delay
        self._record_max_age = record_max_age

        # dict keys as an insertion-ordered set
        self._pending: dict[AssetName, None] = {}
        self._in_flight = False
        self._current: AssetName | None = None
        self._task: asyncio.Task | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        self.loops_started = 0
        self.processed = 0
        self.failed = 0

    # --- Submission ---

    def submit(self, names: Iterable[AssetName]) -> int:
        """Add names to the pending set. Returns how many were newly added.

        A name is skipped if it is already pending, is the one being
        resolved right now, or already has a fresh price record.
        """
        now = self._clock.now()
        added = 0
        for name in names:
            if self._accepts(name, now):
                self._pending[name] = None
                added += 1
        if added:
            logger.info("Added %d items to price queue (%d pending)", added, len(self._pending))
        if self._pending:
            self._ensure_draining()
        return added

    def enqueue(self, name: AssetName) -> bool:
        """Submit a single name. Returns True if it was newly added."""
        return self.submit([name]) == 1

    def _accepts(self, name: AssetName, now: datetime) -> bool:
        if not name or name in self._pending or name == self._current:
            return False
        if self._record_max_age is not None and self._prices.is_fresh(
            name, now, self._record_max_age
        ):
            return False
        return True

    # --- State ---

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def pending(self) -> list[AssetName]:
        """Pending names in the order they will be resolved."""
        return list(self._pending)

    def status(self) -> QueueStatus:
        return QueueStatus(
            pending=len(self._pending),
            in_flight=self._in_flight,
            current=self._current,
            loops_started=self.loops_started,
            processed=self.processed,
            failed=self.failed,
        )

    async def wait_idle(self) -> None:
        """Block until no drain loop is running."""
        await self._idle.wait()

    async def close(self, wait: bool = False) -> None:
        """Stop the drain task.

        With ``wait=True`` the current loop runs to completion first;
        otherwise it is cancelled. Every finished item has already been
        persisted either way.
        """
        task = self._task
        if task is None or task.done():
            return
        if wait:
            await task
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        # A task cancelled before its first step never reaches its finally
        self._in_flight = False
        self._current = None
        self._idle.set()
        logger.info("Price queue stopped with %d names pending", len(self._pending))

    # --- Drain loop ---

    def _ensure_draining(self) -> None:
        if self._in_flight:
            return
        # Flag flips before the task exists so a second submit in the same
        # tick cannot start another loop.
        self._in_flight = True
        self._idle.clear()
        self.loops_started += 1
        self._task = asyncio.create_task(self._drain(), name="price-queue-drain")

    async def _drain(self) -> None:
        logger.info("Starting queue processing: %d pending", len(self._pending))
        try:
            while True:
                while self._pending:
                    name = next(iter(self._pending))
                    del self._pending[name]
                    self._current = name
                    try:
                        await self._resolve_one(name)
                    finally:
                        self._current = None
                    await self._clock.sleep(self._item_delay)

                await self._revalue_recent()
                # Names submitted during the revaluation are handled by this
                # same loop.
                if not self._pending:
                    break
        finally:
            self._in_flight = False
            self._current = None
            self._idle.set()
        logger.info(
            "Queue processing finished: %d resolved, %d failed",
            self.processed, self.failed,
        )

    async def _resolve_one(self, name: AssetName) -> None:
        logger.info("Queue fetching: %s", name)
        try:
            price = await self._lookup.get_price(name)
        except Exception:
            logger.exception("Price lookup raised for %s", name)
            price = None

        if price is None:
            self.failed += 1
            logger.warning("Failed to fetch: %s", name)
            return

        now = self._clock.now()
        await self._prices.record(name, price, now)
        await self._history.append_item_point(name, price, now)
        self.processed += 1

    async def _revalue_recent(self) -> None:
        """Append a forced total-value sample for every recently viewed inventory."""
        if self._inventory is None:
            return

        identities = self._inventory.recent_identities()
        if identities:
            logger.info("Updating total value history for %d cached identities", len(identities))
        for identity in identities:
            try:
                items = await self._inventory.get_items(identity)
            except InventoryError as e:
                logger.error("Failed to update history for %s: %s", identity, e)
                continue

            total = 0.0
            for item in items:
                price = self._prices.price_of(item.name)
                if price is not None:
                    total += price
            if total > 0:
                total = round(total, 2)
                logger.info("Recording history for %s: %.2f", identity, total)
                await self._history.append_total_value(total, self._clock.now(), force=True)
