"""Configuration loading, validation, and access."""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from steam_pricer.core.exceptions import ConfigError
from steam_pricer.core.models import PricePreference, StorageBackend

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class MarketConfig(BaseModel):
    """Steam Community Market access configuration."""

    model_config = ConfigDict(frozen=True)

    base_url: str = "https://steamcommunity.com"
    app_id: int = 730
    context_id: int = 2
    currency: int = 1
    user_agent: str = _DEFAULT_USER_AGENT
    request_timeout: float = 10.0
    rate_limit: int = 20
    rate_period: float = 60.0
    price_preference: PricePreference = PricePreference.LOWEST

    @field_validator("base_url")
    @classmethod
    def base_url_is_http(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def timeout_bounded(cls, v: float) -> float:
        if v < 1 or v > 60:
            raise ValueError("request_timeout must be between 1 and 60 seconds")
        return v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v


class CacheConfig(BaseModel):
    """TTLs for the in-memory lookup caches."""

    model_config = ConfigDict(frozen=True)

    overview_ttl_seconds: int = 600
    listing_ttl_seconds: int = 3600
    inventory_ttl_seconds: int = 300

    @model_validator(mode="after")
    def ttls_positive(self) -> CacheConfig:
        for name in ("overview_ttl_seconds", "listing_ttl_seconds", "inventory_ttl_seconds"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        return self

    @property
    def overview_ttl(self) -> timedelta:
        return timedelta(seconds=self.overview_ttl_seconds)

    @property
    def listing_ttl(self) -> timedelta:
        return timedelta(seconds=self.listing_ttl_seconds)

    @property
    def inventory_ttl(self) -> timedelta:
        return timedelta(seconds=self.inventory_ttl_seconds)


class ScraperConfig(BaseModel):
    """Retry policy and request rate for the listing page scraper."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = 3
    backoff_seconds: float = 5.0
    backoff_multiplier: float = 1.0
    rate_limit: int = 10
    rate_period: float = 60.0

    @field_validator("max_attempts")
    @classmethod
    def attempts_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v


class QueueConfig(BaseModel):
    """Throttling for the background resolution queue and the worker pool."""

    model_config = ConfigDict(frozen=True)

    item_delay_seconds: float = 3.5
    pool_workers: int = 3

    @field_validator("item_delay_seconds")
    @classmethod
    def delay_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("item_delay_seconds must be >= 0")
        return v

    @field_validator("pool_workers")
    @classmethod
    def workers_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("pool_workers must be >= 1")
        return v


class PricingConfig(BaseModel):
    """Manual refresh gating and record freshness."""

    model_config = ConfigDict(frozen=True)

    manual_refresh_cooldown_seconds: int = 4 * 60 * 60
    record_fresh_seconds: int = 60 * 60

    @property
    def manual_refresh_cooldown(self) -> timedelta:
        return timedelta(seconds=self.manual_refresh_cooldown_seconds)

    @property
    def record_fresh(self) -> timedelta:
        return timedelta(seconds=self.record_fresh_seconds)


class HistoryConfig(BaseModel):
    """Total-value history throttling."""

    model_config = ConfigDict(frozen=True)

    total_value_min_spacing_seconds: int = 300

    @property
    def total_value_min_spacing(self) -> timedelta:
        return timedelta(seconds=self.total_value_min_spacing_seconds)


class InventoryConfig(BaseModel):
    """Inventory listing pagination and request rate."""

    model_config = ConfigDict(frozen=True)

    page_size: int = 200
    max_pages: int = 10
    fetch_attempts: int = 3
    retry_delay_seconds: float = 2.0
    rate_limit: int = 10
    rate_period: float = 60.0

    @field_validator("page_size")
    @classmethod
    def page_size_within_limit(cls, v: int) -> int:
        if v < 1 or v > 5000:
            raise ValueError("page_size must be between 1 and 5000")
        return v

    @field_validator("rate_limit")
    @classmethod
    def rate_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("rate_limit must be >= 1")
        return v


class StorageConfig(BaseModel):
    """Storage backend configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StorageBackend = StorageBackend.JSON
    data_dir: str = "./data"
    sqlite_path: str = "./data/steam_pricer.db"


class APIConfig(BaseModel):
    """FastAPI server configuration."""

    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = 8000
    api_key: str | None = None


class PricerConfig(BaseModel):
    """Root configuration for the entire steam-pricer system."""

    model_config = ConfigDict(frozen=True)

    market: MarketConfig = MarketConfig()
    cache: CacheConfig = CacheConfig()
    scraper: ScraperConfig = ScraperConfig()
    queue: QueueConfig = QueueConfig()
    pricing: PricingConfig = PricingConfig()
    history: HistoryConfig = HistoryConfig()
    inventory: InventoryConfig = InventoryConfig()
    storage: StorageConfig = StorageConfig()
    api: APIConfig = APIConfig()


CONFIG_FILE_NAME = "steam-pricer.yml"


def load_config(
    config_path: str | None = None,
    env_prefix: str = "STEAM_PRICER_",
) -> PricerConfig:
    """Build a PricerConfig from defaults, a YAML file and the environment.

    Environment variables win over the file, and the file wins over defaults.
    A variable such as ``STEAM_PRICER_QUEUE__ITEM_DELAY_SECONDS=5`` sets
    ``queue.item_delay_seconds``. The file is ``config_path`` when given,
    else ``$STEAM_PRICER_CONFIG``, else ``./steam-pricer.yml`` if present.

    Raises:
        ConfigError: Missing or unparseable file, or values that fail validation.
    """
    try:
        path = _find_config_file(config_path, env_prefix)
        settings = _read_yaml(path) if path is not None else {}
        return PricerConfig.model_validate(_merge_env_vars(settings, env_prefix))
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(str(e), context={"source": "load_config"}) from e


def _find_config_file(explicit: str | None, env_prefix: str) -> Path | None:
    env_var = f"{env_prefix}CONFIG"
    if explicit is not None:
        candidate, origin = explicit, "config_path"
    elif os.environ.get(env_var):
        candidate, origin = os.environ[env_var], env_var
    else:
        default = Path(CONFIG_FILE_NAME)
        return default if default.exists() else None

    path = Path(candidate)
    if not path.exists():
        raise ConfigError(
            f"Config file named by {origin} not found: {candidate}",
            context={"field": origin, "value": candidate},
        )
    return path


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Failed to parse YAML config {path}: {e}",
            context={"field": "config_file", "value": str(path)},
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"YAML config must be a mapping, got {type(data).__name__}",
            context={"field": "config_file", "value": str(path)},
        )
    return data


def _merge_env_vars(base: dict, prefix: str) -> dict:
    """Return a copy of ``base`` with every ``<prefix>SECTION__KEY`` variable applied.

    Sections touched by a variable are copied, never mutated in place.
    """
    merged = dict(base)
    for name, raw in os.environ.items():
        if not name.startswith(prefix):
            continue
        path = name[len(prefix) :].lower().split("__")
        if path == ["config"]:
            continue

        section = merged
        for key in path[:-1]:
            nested = section.get(key)
            section[key] = dict(nested) if isinstance(nested, dict) else {}
            section = section[key]
        section[path[-1]] = _auto_cast(raw)
    return merged


def _auto_cast(value: str) -> str | int | float | bool:
    """Interpret an environment string as bool, int or float where it reads as one."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for cast in (int, float):
        try:
            return cast(value)
        except ValueError:
            continue
    return value
