"""
Vendor Adapters
One BaseStockApiClient subclass per market data vendor
"""

from typing import Dict, Type

from .base import BaseStockApiClient
from .finnhub import FinnhubClient
from .fmp import FMPClient
from .polygon import PolygonClient
from .twelve_data import TwelveDataClient
from ..errors import ConfigurationError

PROVIDER_CLASSES: Dict[str, Type[BaseStockApiClient]] = {
    "twelve_data": TwelveDataClient,
    "finnhub": FinnhubClient,
    "polygon": PolygonClient,
    "fmp": FMPClient,
}


def create_provider(provider_config, config) -> BaseStockApiClient:
    """
    Build an adapter from its provider config and the client-wide settings

    Raises:
        ConfigurationError: unknown provider name or missing API key
    """
    client_class = PROVIDER_CLASSES.get(provider_config.name)
    if client_class is None:
        raise ConfigurationError(f"Unknown provider: {provider_config.name}")

    return client_class(
        api_key=provider_config.api_key,
        base_url=provider_config.base_url,
        request_timeout=config.request_timeout,
        batch_chunk_size=config.batch_chunk_size,
        batch_pause=config.batch_pause,
        batch_concurrency=config.batch_concurrency,
    )


__all__ = [
    'BaseStockApiClient',
    'FinnhubClient',
    'FMPClient',
    'PolygonClient',
    'TwelveDataClient',
    'PROVIDER_CLASSES',
    'create_provider',
]
