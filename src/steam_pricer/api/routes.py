"""FastAPI route definitions for the steam-pricer API."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

import steam_pricer
from steam_pricer.api.deps import get_config, get_service
from steam_pricer.api.schemas import (
    HealthResponse,
    HistoryPointResponse,
    InventoryResponse,
    PortfolioResponse,
    PricedInventoryResponse,
    QueueStatusResponse,
    QuoteResponse,
    SetPriceRequest,
    ToggleWatchRequest,
    TotalValueResponse,
)
from steam_pricer.core.config import PricerConfig
from steam_pricer.service import PricingService

router = APIRouter()


# -- Health --


@router.get("/health", response_model=HealthResponse)
async def health_check(
    service: PricingService = Depends(get_service),
    config: PricerConfig = Depends(get_config),
):
    """System health and basic statistics."""
    stats = service.statistics()
    queue = service.queue_status()
    return HealthResponse(
        status="ok",
        version=steam_pricer.__version__,
        storage_backend=str(config.storage.backend.value),
        price_records=stats["price_records"],
        queue_pending=queue.pending,
        queue_in_flight=queue.in_flight,
    )


# -- Inventory --


@router.get("/inventory/{identity}", response_model=InventoryResponse)
async def get_inventory(
    identity: str,
    service: PricingService = Depends(get_service),
):
    """Unpriced inventory listing."""
    items = await service.inventory.get_items(identity)
    return InventoryResponse(total=len(items), items=items)


@router.get("/inventory/{identity}/priced", response_model=PricedInventoryResponse)
async def get_priced_inventory(
    identity: str,
    update_prices: bool = Query(False, description="Request a manual price refresh"),
    limit: int | None = Query(None, ge=1, le=5000),
    live: bool = Query(False, description="Quote never-resolved items on demand"),
    service: PricingService = Depends(get_service),
):
    """Inventory with stored prices, portfolio data and totals."""
    result = await service.priced_inventory(
        identity,
        manual_refresh=update_prices,
        result_limit=limit,
        live=live,
    )
    return PricedInventoryResponse(
        identity=result.identity,
        items=result.items,
        total_value=result.total_value,
        total_purchase_value=result.total_purchase_value,
        total_value_for_profit_calc=result.total_value_for_profit_calc,
        profit=result.profit,
        queued_count=result.queued_count,
        last_price_refresh=result.last_price_refresh,
    )


# -- Portfolio --


@router.post("/portfolio/set-price", response_model=PortfolioResponse)
async def set_purchase_price(
    request: SetPriceRequest,
    service: PricingService = Depends(get_service),
):
    """Set or clear what was paid for an asset."""
    entry = await service.set_purchase_price(request.asset_id, request.price)
    return PortfolioResponse(
        asset_id=request.asset_id,
        purchase_price=entry.purchase_price if entry else None,
        watched=entry.watched if entry else False,
    )


@router.post("/portfolio/toggle-watch", response_model=PortfolioResponse)
async def toggle_watch(
    request: ToggleWatchRequest,
    service: PricingService = Depends(get_service),
):
    """Watch or unwatch an asset."""
    entry = await service.set_watched(request.asset_id, request.watched)
    return PortfolioResponse(
        asset_id=entry.asset_id,
        purchase_price=entry.purchase_price,
        watched=entry.watched,
    )


# -- History --


@router.get("/history/total", response_model=list[TotalValueResponse])
async def total_value_history(service: PricingService = Depends(get_service)):
    """Total held value over time."""
    return [
        TotalValueResponse(observed_at=s.observed_at, value=s.value)
        for s in service.total_value_history()
    ]


@router.get("/history/item/{name:path}", response_model=list[HistoryPointResponse])
async def item_history(name: str, service: PricingService = Depends(get_service)):
    """Price history for one asset name (empty if never resolved)."""
    return [
        HistoryPointResponse(observed_at=p.observed_at, price=p.price)
        for p in service.item_history(name)
    ]


# -- Quotes --


@router.get("/prices/quote", response_model=list[QuoteResponse])
async def quote_prices(
    name: list[str] = Query(..., min_length=1, max_length=50),
    service: PricingService = Depends(get_service),
):
    """Live quotes for up to 50 asset names."""
    quotes = await service.quote(name)
    return [
        QuoteResponse(asset_name=q.asset_name, price=q.price, source=q.source)
        for q in quotes.values()
    ]


# -- Queue --


@router.get("/queue", response_model=QueueStatusResponse)
async def queue_status(service: PricingService = Depends(get_service)):
    """Background price queue status."""
    status = service.queue_status()
    return QueueStatusResponse(**status.model_dump())
