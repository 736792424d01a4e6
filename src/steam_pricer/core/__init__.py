"""steam_pricer.core: Foundation types, config, clock, and exceptions."""

from steam_pricer.core.clock import Clock, SystemClock
from steam_pricer.core.config import (
    APIConfig,
    CacheConfig,
    HistoryConfig,
    InventoryConfig,
    MarketConfig,
    PricerConfig,
    PricingConfig,
    QueueConfig,
    ScraperConfig,
    StorageConfig,
    load_config,
)
from steam_pricer.core.exceptions import (
    ConfigError,
    InventoryError,
    PricerError,
    RateLimitError,
    SourceError,
    StorageError,
)
from steam_pricer.core.models import (
    AssetId,
    AssetName,
    CacheEntry,
    HistoryPoint,
    Identity,
    InventoryItem,
    InventoryPage,
    PortfolioEntry,
    PricedInventory,
    PricedItem,
    PricePreference,
    PriceQuote,
    PriceRecord,
    PriceSource,
    QueueStatus,
    StorageBackend,
    TotalValueSample,
)

__all__ = [
    # Type aliases
    "AssetId",
    "AssetName",
    "Identity",
    # Enums
    "PricePreference",
    "PriceSource",
    "StorageBackend",
    # Price models
    "CacheEntry",
    "PriceRecord",
    "HistoryPoint",
    "TotalValueSample",
    "PriceQuote",
    # Portfolio / inventory models
    "PortfolioEntry",
    "InventoryItem",
    "InventoryPage",
    "PricedItem",
    "PricedInventory",
    "QueueStatus",
    # Clock
    "Clock",
    "SystemClock",
    # Config
    "PricerConfig",
    "MarketConfig",
    "CacheConfig",
    "ScraperConfig",
    "QueueConfig",
    "PricingConfig",
    "HistoryConfig",
    "InventoryConfig",
    "StorageConfig",
    "APIConfig",
    "load_config",
    # Exceptions
    "PricerError",
    "ConfigError",
    "SourceError",
    "RateLimitError",
    "InventoryError",
    "StorageError",
]
