"""API-specific request/response schemas (Pydantic v2)."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from steam_pricer.core.models import InventoryItem, PricedItem, PriceSource


# -- Error --


class ErrorResponse(BaseModel):
    """Body returned for any PricerError."""

    success: bool = False
    error: str
    detail: str | None = None


# -- Health --


class HealthResponse(BaseModel):
    """System health check response."""

    status: str
    version: str
    storage_backend: str
    price_records: int
    queue_pending: int
    queue_in_flight: bool


# -- Inventory --


class InventoryResponse(BaseModel):
    """Unpriced inventory listing."""

    success: bool = True
    total: int
    items: list[InventoryItem]


class PricedInventoryResponse(BaseModel):
    """Priced inventory with aggregate totals."""

    success: bool = True
    identity: str
    items: list[PricedItem]
    total_value: float
    total_purchase_value: float
    total_value_for_profit_calc: float
    profit: float
    queued_count: int
    last_price_refresh: datetime | None = None


# -- Portfolio --


class SetPriceRequest(BaseModel):
    """Set or clear (null) the purchase price of an asset."""

    asset_id: str = Field(..., min_length=1)
    price: float | None = Field(None, ge=0)


class ToggleWatchRequest(BaseModel):
    """Watch or unwatch an asset."""

    asset_id: str = Field(..., min_length=1)
    watched: bool


class PortfolioResponse(BaseModel):
    """Portfolio mutation acknowledgement."""

    success: bool = True
    asset_id: str
    purchase_price: float | None = None
    watched: bool = False


# -- History --


class HistoryPointResponse(BaseModel):
    observed_at: datetime
    price: float


class TotalValueResponse(BaseModel):
    observed_at: datetime
    value: float


# -- Quotes --


class QuoteResponse(BaseModel):
    """Live quote for one asset name."""

    asset_name: str
    price: float | None = None
    source: PriceSource | None = None


# -- Queue --


class QueueStatusResponse(BaseModel):
    """Background resolution queue status."""

    pending: int
    in_flight: bool
    current: str | None = None
    loops_started: int
    processed: int
    failed: int
