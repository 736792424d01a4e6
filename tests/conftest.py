"""Shared pytest fixtures for steam-pricer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from steam_pricer.core.config import (
    MarketConfig,
    PricerConfig,
    QueueConfig,
    StorageConfig,
)
from steam_pricer.core.models import StorageBackend
from steam_pricer.storage.documents import JsonDocumentStore

START = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock. ``sleep`` records the delay and advances time."""

    def __init__(self, start: datetime = START) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs: float) -> None:
        self._now += timedelta(seconds=seconds, **kwargs)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self._now += timedelta(seconds=seconds)
        # Yield so other tasks get a turn, like a real sleep would
        await asyncio.sleep(0)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def market_config() -> MarketConfig:
    return MarketConfig(base_url="https://steamcommunity.test", request_timeout=5)


@pytest.fixture
def json_backend(tmp_path) -> JsonDocumentStore:
    return JsonDocumentStore(tmp_path / "data")


@pytest.fixture
def pricer_config(tmp_path, market_config) -> PricerConfig:
    return PricerConfig(
        market=market_config,
        queue=QueueConfig(item_delay_seconds=0, pool_workers=3),
        storage=StorageConfig(
            backend=StorageBackend.JSON,
            data_dir=str(tmp_path / "data"),
        ),
    )
