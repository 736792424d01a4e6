"""Pydantic data models: the system's type contracts."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Type Aliases ---

AssetName = str
AssetId = str
Identity = str

# --- Enumerations ---


class PricePreference(StrEnum):
    """Which quoted value the price overview endpoint is read from first."""

    LOWEST = "lowest"
    MEDIAN = "median"


class PriceSource(StrEnum):
    """Where a reported price came from."""

    STORE = "store"
    OVERVIEW = "overview"
    LISTING = "listing"


class StorageBackend(StrEnum):
    """Supported document storage backends."""

    JSON = "json"
    SQLITE = "sqlite"


# --- Price Models ---


class CacheEntry(BaseModel):
    """A cached lookup result. `value` is None when the source had no price."""

    model_config = ConfigDict(frozen=True)

    value: float | None = None
    stored_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.stored_at < ttl


class PriceRecord(BaseModel):
    """Last resolved price for one asset name, with the value it replaced."""

    model_config = ConfigDict(frozen=True)

    asset_name: AssetName
    price: float | None = None
    previous_price: float | None = None
    observed_at: datetime

    @field_validator("asset_name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("asset_name must not be blank")
        return v

    @property
    def change(self) -> float | None:
        """Absolute change from the previous price, if both are known."""
        if self.price is None or self.previous_price is None:
            return None
        return round(self.price - self.previous_price, 4)


class HistoryPoint(BaseModel):
    """One observation in an asset's price history."""

    model_config = ConfigDict(frozen=True)

    observed_at: datetime
    price: float


class TotalValueSample(BaseModel):
    """One observation of total held value."""

    model_config = ConfigDict(frozen=True)

    observed_at: datetime
    value: float


class PriceQuote(BaseModel):
    """Result of a live lookup against the market sources."""

    model_config = ConfigDict(frozen=True)

    asset_name: AssetName
    price: float | None = None
    source: PriceSource | None = None


# --- Portfolio Models ---


class PortfolioEntry(BaseModel):
    """Owner bookkeeping for a single asset instance."""

    model_config = ConfigDict(frozen=True)

    asset_id: AssetId
    purchase_price: float | None = None
    watched: bool = False
    updated_at: datetime | None = None

    @field_validator("purchase_price")
    @classmethod
    def purchase_price_non_negative(cls, v: float | None) -> float | None:
        if v is not None and v < 0:
            raise ValueError(f"purchase_price must be >= 0, got {v}")
        return v


# --- Inventory Models ---


class InventoryItem(BaseModel):
    """An owned asset joined with its market description."""

    model_config = ConfigDict(frozen=True)

    asset_id: AssetId
    class_id: str
    name: AssetName
    icon_url: str | None = None
    type: str = ""
    marketable: bool = False


class InventoryPage(BaseModel):
    """One page of the paginated inventory listing."""

    model_config = ConfigDict(frozen=True)

    assets: list[dict] = Field(default_factory=list)
    descriptions: list[dict] = Field(default_factory=list)
    more: bool = False
    next_cursor: str | None = None


class PricedItem(InventoryItem):
    """An inventory item with its price and portfolio data attached."""

    price: float | None = None
    previous_price: float | None = None
    purchase_price: float | None = None
    watched: bool = False
    last_updated: datetime | None = None
    price_source: PriceSource | None = None


class PricedInventory(BaseModel):
    """Priced view of one identity's inventory plus aggregate totals."""

    model_config = ConfigDict(frozen=True)

    identity: Identity
    items: list[PricedItem]
    total_value: float = 0.0
    total_purchase_value: float = 0.0
    total_value_for_profit_calc: float = 0.0
    queued_count: int = 0
    last_price_refresh: datetime | None = None

    @property
    def profit(self) -> float:
        """Current value of purchased items minus what was paid for them."""
        return round(self.total_value_for_profit_calc - self.total_purchase_value, 2)


# --- Queue Models ---


class QueueStatus(BaseModel):
    """Snapshot of the price resolution queue."""

    model_config = ConfigDict(frozen=True)

    pending: int
    in_flight: bool
    current: AssetName | None = None
    loops_started: int = 0
    processed: int = 0
    failed: int = 0
