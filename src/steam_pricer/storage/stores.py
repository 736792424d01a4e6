"""Typed, in-memory-first stores for prices, portfolio and history.

Each store loads its whole document once and rewrites it whole after every
mutation. A failed write is logged and otherwise ignored: the in-memory copy
stays authoritative and the next successful write carries it to disk.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, ClassVar

from pydantic import ValidationError

from steam_pricer.core.exceptions import StorageError
from steam_pricer.core.models import (
    AssetId,
    AssetName,
    HistoryPoint,
    PortfolioEntry,
    PriceRecord,
    TotalValueSample,
)
from steam_pricer.storage.documents import DocumentStore

logger = logging.getLogger(__name__)


class _PersistedDocument:
    """Load/flush plumbing shared by the typed stores."""

    document_name: ClassVar[str]

    def __init__(self, backend: DocumentStore) -> None:
        self._backend = backend
        self._lock = asyncio.Lock()
        self._loaded = False
        self.last_error: StorageError | None = None

    async def load(self) -> None:
        """Read the document into memory. Unreadable documents start empty."""
        try:
            raw = await self._backend.load(self.document_name)
        except StorageError as e:
            logger.error("Could not load %s, starting empty: %s", self.document_name, e)
            self.last_error = e
            raw = None
        self._hydrate(raw or {})
        self._loaded = True

    async def flush(self) -> bool:
        """Write the current in-memory document. Returns False on failure."""
        async with self._lock:
            document = self._dump()
            try:
                await self._backend.save(self.document_name, document)
            except StorageError as e:
                logger.error("Failed to persist %s: %s", self.document_name, e)
                self.last_error = e
                return False
        self.last_error = None
        return True

    def _hydrate(self, raw: dict[str, Any]) -> None:
        raise NotImplementedError

    def _dump(self) -> dict[str, Any]:
        raise NotImplementedError


class PriceStore(_PersistedDocument):
    """Asset name → PriceRecord."""

    document_name: ClassVar[str] = "prices"

    def __init__(self, backend: DocumentStore) -> None:
        super().__init__(backend)
        self._records: dict[AssetName, PriceRecord] = {}

    def _hydrate(self, raw: dict[str, Any]) -> None:
        self._records = {}
        for name, body in raw.items():
            if not isinstance(body, dict):
                logger.warning("Skipping malformed price record for %r", name)
                continue
            try:
                self._records[name] = PriceRecord(asset_name=name, **body)
            except (ValidationError, TypeError) as e:
                logger.warning("Skipping malformed price record for %r: %s", name, e)
        logger.info("Loaded price store: %d records", len(self._records))

    def _dump(self) -> dict[str, Any]:
        return {
            name: record.model_dump(mode="json", exclude={"asset_name"})
            for name, record in self._records.items()
        }

    def get(self, asset_name: AssetName) -> PriceRecord | None:
        return self._records.get(asset_name)

    def price_of(self, asset_name: AssetName) -> float | None:
        record = self._records.get(asset_name)
        return record.price if record else None

    def all(self) -> dict[AssetName, PriceRecord]:
        """Snapshot of all records. Returns a shallow copy."""
        return dict(self._records)

    def is_fresh(self, asset_name: AssetName, now: datetime, max_age: timedelta) -> bool:
        record = self._records.get(asset_name)
        return record is not None and now - record.observed_at < max_age

    async def record(
        self, asset_name: AssetName, price: float, observed_at: datetime
    ) -> PriceRecord:
        """Write a new price, moving the current one into ``previous_price``."""
        prior = self._records.get(asset_name)
        record = PriceRecord(
            asset_name=asset_name,
            price=price,
            previous_price=prior.price if prior else None,
            observed_at=observed_at,
        )
        self._records[asset_name] = record
        await self.flush()
        return record

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, asset_name: object) -> bool:
        return asset_name in self._records


class PortfolioStore(_PersistedDocument):
    """Asset id → PortfolioEntry, plus the reserved ``_meta`` key."""

    document_name: ClassVar[str] = "portfolio"
    META_KEY: ClassVar[str] = "_meta"

    def __init__(self, backend: DocumentStore) -> None:
        super().__init__(backend)
        self._entries: dict[AssetId, PortfolioEntry] = {}
        self._last_price_refresh: datetime | None = None

    def _hydrate(self, raw: dict[str, Any]) -> None:
        self._entries = {}
        meta = raw.get(self.META_KEY) or {}
        refresh = meta.get("last_price_refresh") if isinstance(meta, dict) else None
        try:
            self._last_price_refresh = datetime.fromisoformat(refresh) if refresh else None
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed last_price_refresh %r", refresh)
            self._last_price_refresh = None

        for asset_id, body in raw.items():
            if asset_id == self.META_KEY:
                continue
            if not isinstance(body, dict):
                logger.warning("Skipping malformed portfolio entry for %r", asset_id)
                continue
            try:
                self._entries[asset_id] = PortfolioEntry(asset_id=asset_id, **body)
            except (ValidationError, TypeError) as e:
                logger.warning("Skipping malformed portfolio entry for %r: %s", asset_id, e)
        logger.info("Loaded portfolio store: %d entries", len(self._entries))

    def _dump(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            asset_id: entry.model_dump(mode="json", exclude={"asset_id"})
            for asset_id, entry in self._entries.items()
        }
        if self._last_price_refresh is not None:
            document[self.META_KEY] = {
                "last_price_refresh": self._last_price_refresh.isoformat()
            }
        return document

    def get(self, asset_id: AssetId) -> PortfolioEntry | None:
        return self._entries.get(asset_id)

    def all(self) -> dict[AssetId, PortfolioEntry]:
        return dict(self._entries)

    @property
    def last_price_refresh(self) -> datetime | None:
        return self._last_price_refresh

    async def mark_price_refresh(self, at: datetime) -> None:
        self._last_price_refresh = at
        await self.flush()

    async def set_purchase_price(
        self, asset_id: AssetId, price: float | None, at: datetime
    ) -> PortfolioEntry | None:
        """Set or clear (``price=None``) what was paid for an asset.

        Clearing drops the entry entirely unless the asset is watched.
        """
        current = self._entries.get(asset_id)
        if price is None:
            if current is None:
                return None
            if not current.watched:
                del self._entries[asset_id]
                logger.info("Removed purchase price for %s", asset_id)
                await self.flush()
                return None
            entry = current.model_copy(update={"purchase_price": None, "updated_at": at})
        else:
            entry = PortfolioEntry(
                asset_id=asset_id,
                purchase_price=price,
                watched=current.watched if current else False,
                updated_at=at,
            )
        self._entries[asset_id] = entry
        logger.info("Set purchase price for %s: %s", asset_id, price)
        await self.flush()
        return entry

    async def set_watched(self, asset_id: AssetId, watched: bool, at: datetime) -> PortfolioEntry:
        current = self._entries.get(asset_id)
        if current is None:
            entry = PortfolioEntry(asset_id=asset_id, watched=watched, updated_at=at)
        else:
            entry = current.model_copy(update={"watched": watched, "updated_at": at})
        self._entries[asset_id] = entry
        logger.info("Set watch status for %s: %s", asset_id, watched)
        await self.flush()
        return entry


class HistoryStore(_PersistedDocument):
    """Per-asset price series and the global total-value series."""

    document_name: ClassVar[str] = "history"

    def __init__(self, backend: DocumentStore, min_spacing: timedelta = timedelta(minutes=5)) -> None:
        super().__init__(backend)
        self._min_spacing = min_spacing
        self._items: dict[AssetName, list[HistoryPoint]] = {}
        self._total_value: list[TotalValueSample] = []

    def _hydrate(self, raw: dict[str, Any]) -> None:
        self._items = {}
        self._total_value = []
        items = raw.get("items") or {}
        if not isinstance(items, dict):
            logger.warning("Ignoring malformed item history of type %s", type(items).__name__)
            items = {}
        for name, points in items.items():
            if not isinstance(points, list):
                logger.warning("Skipping malformed history for %r", name)
                continue
            try:
                self._items[name] = [HistoryPoint.model_validate(p) for p in points]
            except (ValidationError, TypeError) as e:
                logger.warning("Skipping malformed history for %r: %s", name, e)

        samples = raw.get("total_value") or []
        if not isinstance(samples, list):
            logger.warning(
                "Ignoring malformed total value history of type %s", type(samples).__name__
            )
            samples = []
        for sample in samples:
            try:
                self._total_value.append(TotalValueSample.model_validate(sample))
            except ValidationError as e:
                logger.warning("Skipping malformed total value sample: %s", e)
        logger.info(
            "Loaded history store: %d items, %d total value samples",
            len(self._items), len(self._total_value),
        )

    def _dump(self) -> dict[str, Any]:
        return {
            "total_value": [s.model_dump(mode="json") for s in self._total_value],
            "items": {
                name: [p.model_dump(mode="json") for p in points]
                for name, points in self._items.items()
            },
        }

    def item_history(self, asset_name: AssetName) -> list[HistoryPoint]:
        return list(self._items.get(asset_name, []))

    def total_value_history(self) -> list[TotalValueSample]:
        return list(self._total_value)

    @property
    def tracked_items(self) -> int:
        return len(self._items)

    async def append_item_point(
        self, asset_name: AssetName, price: float, at: datetime
    ) -> HistoryPoint:
        point = HistoryPoint(observed_at=at, price=price)
        self._items.setdefault(asset_name, []).append(point)
        await self.flush()
        return point

    async def append_total_value(
        self, value: float, at: datetime, force: bool = False
    ) -> bool:
        """Append a total-value sample unless the last one is too recent.

        Returns True when a sample was appended. ``force`` bypasses the
        spacing check.
        """
        last = self._total_value[-1] if self._total_value else None
        if not force and last is not None and at - last.observed_at < self._min_spacing:
            logger.debug("Skipping total value sample, last one at %s", last.observed_at)
            return False
        self._total_value.append(TotalValueSample(observed_at=at, value=value))
        await self.flush()
        return True
