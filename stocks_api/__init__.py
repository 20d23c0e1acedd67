"""
Stocks API
Multi-provider market data with priority fallback and per-symbol batch resolution
"""

from .batch import BatchResolver, resolve_in_chunks
from .capabilities import Capability, CapabilityMatrix, ProviderDescriptor
from .client import StocksAPI
from .config import ProviderConfig, ProviderFeatures, StocksApiConfig, load_config
from .errors import (
    AllProvidersFailedError,
    ConfigurationError,
    DuplicateProviderError,
    EmptyResultError,
    NoProviderAvailableError,
    NotYetResolvedError,
    ProviderError,
    ProviderRequestError,
    StocksApiError,
    UnsupportedOperationError,
)
from .fallback import FallbackExecutor
from .logging_config import configure_logging
from .models import (
    CompanyProfile,
    Dividend,
    EarningsReport,
    FinancialMetrics,
    NewsArticle,
    PerformanceMetrics,
    StockQuote,
    StockSymbol,
    TimeInterval,
    TimeSeriesPoint,
    VolumeMetrics,
)
from .registry import ProviderRegistry
from .results import BatchResult, KeyedResult, is_complete

__version__ = "0.1.0"

__all__ = [
    'StocksAPI',
    'ProviderRegistry',
    'FallbackExecutor',
    'BatchResolver',
    'resolve_in_chunks',
    'Capability',
    'CapabilityMatrix',
    'ProviderDescriptor',
    'KeyedResult',
    'BatchResult',
    'is_complete',
    'StocksApiConfig',
    'ProviderConfig',
    'ProviderFeatures',
    'load_config',
    'configure_logging',
    'StockQuote',
    'CompanyProfile',
    'TimeSeriesPoint',
    'TimeInterval',
    'FinancialMetrics',
    'Dividend',
    'EarningsReport',
    'StockSymbol',
    'NewsArticle',
    'VolumeMetrics',
    'PerformanceMetrics',
    'StocksApiError',
    'ProviderError',
    'ProviderRequestError',
    'UnsupportedOperationError',
    'EmptyResultError',
    'NotYetResolvedError',
    'NoProviderAvailableError',
    'AllProvidersFailedError',
    'DuplicateProviderError',
    'ConfigurationError',
]
