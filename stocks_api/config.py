"""
Provider Configuration
API keys come from the environment (optionally a .env file); everything else has defaults
"""

import logging
import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .capabilities import Capability
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class ProviderFeatures(BaseModel):
    """Coarse data categories a provider account can serve"""
    realtime: bool = False
    historical: bool = False
    fundamentals: bool = False
    news: bool = False
    forex: bool = False
    crypto: bool = False
    technicals: bool = False

    def categories(self) -> List[Capability]:
        flags = {
            Capability.REALTIME: self.realtime,
            Capability.HISTORICAL: self.historical,
            Capability.FUNDAMENTALS: self.fundamentals,
            Capability.NEWS: self.news,
        }
        return [capability for capability, enabled in flags.items() if enabled]


class ProviderConfig(BaseModel):
    name: str
    display_name: str = ""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    enabled: bool = True
    priority: int = 0
    rate_limit: Optional[int] = Field(None, description="Requests per minute")
    is_premium: bool = False
    features: ProviderFeatures = Field(default_factory=ProviderFeatures)


class StocksApiConfig(BaseModel):
    request_timeout: float = Field(30.0, description="Per-request timeout in seconds")
    batch_chunk_size: int = 5
    batch_pause: float = Field(1.0, description="Seconds to wait between batch chunks")
    batch_concurrency: Optional[int] = Field(None, description="Defaults to batch_chunk_size")
    providers: Dict[str, ProviderConfig] = Field(default_factory=dict)


# Environment variable holding each provider's API key
API_KEY_VARIABLES = {
    "twelve_data": "TWELVE_DATA_API_KEY",
    "finnhub": "FINNHUB_API_KEY",
    "polygon": "POLYGON_API_KEY",
    "fmp": "FMP_API_KEY",
}


def default_providers() -> Dict[str, ProviderConfig]:
    return {
        "twelve_data": ProviderConfig(
            name="twelve_data",
            display_name="Twelve Data",
            priority=1,
            rate_limit=8,
            features=ProviderFeatures(realtime=True, historical=True, fundamentals=True,
                                      forex=True, crypto=True, technicals=True),
        ),
        "finnhub": ProviderConfig(
            name="finnhub",
            display_name="Finnhub",
            priority=2,
            rate_limit=60,
            features=ProviderFeatures(realtime=True, historical=True, fundamentals=True,
                                      news=True, forex=True, crypto=True),
        ),
        "polygon": ProviderConfig(
            name="polygon",
            display_name="Polygon.io",
            priority=3,
            rate_limit=5,
            features=ProviderFeatures(realtime=True, historical=True, fundamentals=True,
                                      news=True, forex=True, crypto=True),
        ),
        "fmp": ProviderConfig(
            name="fmp",
            display_name="Financial Modeling Prep",
            priority=4,
            rate_limit=5,
            features=ProviderFeatures(realtime=True, historical=True, fundamentals=True, news=True),
        ),
    }


def _env_number(name: str, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


def load_config(env_file: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> StocksApiConfig:
    """
    Build a config from defaults, environment variables and explicit overrides

    Args:
        env_file: Optional path to a .env file (defaults to searching the working directory)
        overrides: Top-level StocksApiConfig fields to set last

    Returns:
        StocksApiConfig with API keys filled in from the environment
    """
    load_dotenv(env_file)

    providers = default_providers()
    for name, provider in providers.items():
        provider.api_key = os.getenv(API_KEY_VARIABLES[name]) or None
        priority = _env_number(f"{name.upper()}_PRIORITY", int)
        if priority is not None:
            provider.priority = priority

    settings: Dict[str, Any] = {"providers": providers}
    for field, variable, cast in (
        ("request_timeout", "STOCKS_API_REQUEST_TIMEOUT", float),
        ("batch_chunk_size", "STOCKS_API_BATCH_CHUNK_SIZE", int),
        ("batch_pause", "STOCKS_API_BATCH_PAUSE", float),
    ):
        value = _env_number(variable, cast)
        if value is not None:
            settings[field] = value

    settings.update(overrides or {})
    return StocksApiConfig(**settings)


def validate_config(config: StocksApiConfig) -> StocksApiConfig:
    """Return a copy with keyless providers disabled; reject unusable batch settings"""
    if config.batch_chunk_size < 1:
        raise ConfigurationError("batch_chunk_size must be at least 1")
    if config.batch_pause < 0:
        raise ConfigurationError("batch_pause cannot be negative")
    if config.request_timeout <= 0:
        raise ConfigurationError("request_timeout must be positive")

    config = config.model_copy(deep=True)
    for name, provider in config.providers.items():
        if provider.enabled and not provider.api_key:
            logger.warning(f"{provider.display_name or name} is enabled but has no API key, disabling it")
            provider.enabled = False
    return config


def get_enabled_providers(config: StocksApiConfig) -> List[ProviderConfig]:
    """Enabled providers, lowest priority number first"""
    enabled = [p for p in config.providers.values() if p.enabled]
    return sorted(enabled, key=lambda p: p.priority)
