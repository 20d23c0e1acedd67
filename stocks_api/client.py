"""
Stocks API Client
Routes every market data request to the best available provider, falling back on failure
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from .analytics import calculate_performance_metrics, calculate_volume_metrics
from .batch import BatchResolver
from .capabilities import Capability, CapabilityMatrix, ProviderDescriptor
from .config import StocksApiConfig, get_enabled_providers, load_config, validate_config
from .errors import ConfigurationError, StocksApiError
from .fallback import FallbackExecutor
from .models import (
    INTRADAY_INTERVALS,
    CompanyProfile,
    Dividend,
    EarningsReport,
    FinancialMetrics,
    NewsArticle,
    StockQuote,
    StockSymbol,
    TimeInterval,
    TimeSeriesPoint,
)
from .providers import create_provider
from .registry import ProviderRegistry
from .results import BatchResult

logger = logging.getLogger(__name__)


class StocksAPI:
    """
    Market data client with provider fallback

    Single-symbol operations return the first non-empty answer from providers
    in priority order and raise AllProvidersFailedError when none has one.
    Batch operations never raise for partial failures; they return one
    KeyedResult per requested symbol.
    """

    def __init__(self, config: Optional[StocksApiConfig] = None, registry: Optional[ProviderRegistry] = None):
        self.config = validate_config(config if config is not None else load_config())
        self.registry = registry if registry is not None else self._build_registry()
        self.executor = FallbackExecutor(self.registry)
        self.resolver = BatchResolver(self.registry)

        if not len(self.registry):
            logger.warning("No market data providers are configured")

    def _build_registry(self) -> ProviderRegistry:
        registry = ProviderRegistry()
        for provider_config in get_enabled_providers(self.config):
            try:
                adapter = create_provider(provider_config, self.config)
            except ConfigurationError as e:
                logger.warning(f"Failed to initialize {provider_config.name}: {e}")
                continue

            capabilities = set(provider_config.features.categories()) | set(adapter.SUPPORTED_OPERATIONS)
            registry.register(
                ProviderDescriptor(
                    name=provider_config.name,
                    priority=provider_config.priority,
                    capabilities=CapabilityMatrix.of(capabilities),
                    rate_limit=provider_config.rate_limit,
                    is_premium=provider_config.is_premium,
                ),
                adapter,
            )
        return registry

    # Stock data

    async def get_quote(
        self,
        symbol: str,
        include_company_name: bool = True,
        include_historical: bool = False,
    ) -> StockQuote:
        quote: StockQuote = await self.executor.resolve(
            Capability.REALTIME,
            lambda adapter: adapter.get_quote(symbol),
            requires=(Capability.GET_QUOTE,),
            label=f"quote {symbol}",
        )

        updates: Dict[str, Any] = {}
        if include_company_name and not quote.company_name:
            try:
                profile = await self.get_company_profile(symbol)
                updates["company_name"] = profile.name
            except StocksApiError as e:
                logger.warning(f"Could not fetch company name for {symbol}: {e}")

        if include_historical:
            try:
                today = datetime.now(timezone.utc).date()
                history = await self.get_time_series(
                    symbol,
                    TimeInterval.DAILY,
                    period=365,
                    start_date=today - timedelta(days=365),
                    end_date=today,
                )
                updates["volume_metrics"] = calculate_volume_metrics(history)
                updates["performance"] = calculate_performance_metrics(history, quote.price, quote.timestamp)
            except StocksApiError as e:
                logger.warning(f"Could not fetch historical data for {symbol}: {e}")

        return quote.model_copy(update=updates) if updates else quote

    async def get_quotes(self, symbols: List[str]) -> BatchResult:
        return await self.resolver.resolve_batch(
            Capability.REALTIME,
            symbols,
            lambda adapter, keys: adapter.get_quotes(keys),
            requires=(Capability.GET_QUOTES,),
        )

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.get_company_profile(symbol),
            requires=(Capability.GET_COMPANY_PROFILE,),
            label=f"profile {symbol}",
        )

    async def get_company_profiles(self, symbols: List[str]) -> BatchResult:
        return await self.resolver.resolve_batch(
            Capability.FUNDAMENTALS,
            symbols,
            lambda adapter, keys: adapter.get_company_profiles(keys),
            requires=(Capability.GET_COMPANY_PROFILES,),
        )

    async def get_time_series(
        self,
        symbol: str,
        interval: TimeInterval = TimeInterval.DAILY,
        period: int = 100,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeSeriesPoint]:
        interval = TimeInterval(interval)
        category = Capability.REALTIME if interval in INTRADAY_INTERVALS else Capability.HISTORICAL
        return await self.executor.resolve(
            category,
            lambda adapter: adapter.get_time_series(symbol, interval, period, start_date, end_date),
            requires=(Capability.GET_TIME_SERIES,),
            label=f"{interval.value} time series {symbol}",
        )

    # Financial data

    async def get_financial_metrics(self, symbol: str) -> FinancialMetrics:
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.get_financial_metrics(symbol),
            requires=(Capability.GET_FINANCIAL_METRICS,),
            label=f"financial metrics {symbol}",
        )

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        """An empty list means the company paid no dividends in the range"""
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.get_dividends(symbol, start_date, end_date),
            requires=(Capability.GET_DIVIDENDS,),
            label=f"dividends {symbol}",
        )

    async def get_earnings(
        self,
        symbol: str,
        limit: Optional[int] = None,
        include_future_reports: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[EarningsReport]:
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.get_earnings(symbol, limit, include_future_reports, start_date, end_date),
            requires=(Capability.GET_EARNINGS,),
            label=f"earnings {symbol}",
        )

    async def get_upcoming_earnings(
        self,
        limit: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        symbols: Optional[List[str]] = None,
    ) -> List[EarningsReport]:
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.get_upcoming_earnings(symbols, start_date, end_date, limit),
            requires=(Capability.GET_UPCOMING_EARNINGS,),
            label="upcoming earnings",
        )

    # Market data

    async def search_symbols(self, query: str) -> List[StockSymbol]:
        return await self.executor.resolve(
            Capability.FUNDAMENTALS,
            lambda adapter: adapter.search_symbols(query),
            requires=(Capability.SEARCH_SYMBOLS,),
            label=f"symbol search {query!r}",
        )

    async def get_market_news(self, symbols: Optional[List[str]] = None, limit: int = 10) -> List[NewsArticle]:
        return await self.executor.resolve(
            Capability.NEWS,
            lambda adapter: adapter.get_market_news(symbols, limit),
            requires=(Capability.GET_MARKET_NEWS,),
            label="market news",
        )

    # Diagnostics

    def get_enabled_providers(self) -> List[str]:
        return [descriptor.name for descriptor in self.registry.descriptors()]

    def get_provider_status(self) -> Dict[str, Any]:
        status = self.registry.get_provider_status()
        for name, entry in status.items():
            adapter = self.registry.get_provider(name)
            rate_limit_info = getattr(adapter, "get_rate_limit_info", None)
            if callable(rate_limit_info):
                entry["rate_limit_info"] = rate_limit_info()
        return status
