"""Integration test fixtures: real SQLite I/O, mocked market endpoints."""

from __future__ import annotations

from pathlib import Path

import pytest

from steam_pricer.core.config import (
    InventoryConfig,
    MarketConfig,
    PricerConfig,
    QueueConfig,
    StorageConfig,
)
from steam_pricer.core.models import StorageBackend
from steam_pricer.service import PricingService


@pytest.fixture
def sqlite_config(tmp_path: Path) -> PricerConfig:
    return PricerConfig(
        market=MarketConfig(base_url="https://steamcommunity.test"),
        queue=QueueConfig(item_delay_seconds=3.5, pool_workers=3),
        inventory=InventoryConfig(page_size=2),
        storage=StorageConfig(
            backend=StorageBackend.SQLITE,
            sqlite_path=str(tmp_path / "integration.db"),
        ),
    )


@pytest.fixture
async def service(sqlite_config: PricerConfig, clock) -> PricingService:
    svc = await PricingService.create(sqlite_config, clock=clock)
    yield svc
    await svc.close()
