"""
Base Stock API Client
Defines the contract every vendor adapter implements, plus shared HTTP and parsing helpers
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Optional
from datetime import date, datetime, timezone
import asyncio
import logging

import aiohttp

from ..batch import DEFAULT_CHUNK_PAUSE, DEFAULT_CHUNK_SIZE, resolve_in_chunks
from ..capabilities import Capability
from ..errors import ConfigurationError, ProviderError, ProviderRequestError, UnsupportedOperationError
from ..models import (
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
from ..policies import is_empty_profile, is_empty_quote
from ..results import BatchResult

logger = logging.getLogger(__name__)


def to_float(value: Any) -> Optional[float]:
    """Vendors send numbers as numbers, strings, "" or "None"; normalize to float or None"""
    if value is None or value == "" or value == "None":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)[:10]).date()
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO strings ("2024-01-02 15:30:00", "2024-01-02T15:30:00Z") as UTC"""
    if not value:
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        try:
            moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def from_unix(seconds: Any) -> Optional[datetime]:
    if not seconds:
        return None
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc)


def quarter_of(day: date) -> str:
    return f"Q{(day.month - 1) // 3 + 1}"


class BaseStockApiClient(ABC):
    """
    Abstract base class for vendor adapters

    Adapters raise ProviderError instead of returning None, so the fallback
    executor can tell "this vendor failed" apart from a legitimate answer.
    Operations outside SUPPORTED_OPERATIONS raise UnsupportedOperationError.
    """

    BASE_URL: str = ""
    API_KEY_PARAM: str = "apikey"
    SUPPORTED_OPERATIONS: FrozenSet[Capability] = frozenset()

    def __init__(
        self,
        name: str,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        request_timeout: float = 30.0,
        batch_chunk_size: int = DEFAULT_CHUNK_SIZE,
        batch_pause: float = DEFAULT_CHUNK_PAUSE,
        batch_concurrency: Optional[int] = None,
    ):
        if not api_key:
            raise ConfigurationError(f"API key is required for {name}")
        self.name = name
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.request_timeout = request_timeout
        self.batch_chunk_size = batch_chunk_size
        self.batch_pause = batch_pause
        self.batch_concurrency = batch_concurrency

    async def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``endpoint`` and return decoded JSON, raising ProviderRequestError on failure"""
        url = f"{self.base_url}{endpoint}"
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}
        query[self.API_KEY_PARAM] = self.api_key
        timeout = aiohttp.ClientTimeout(total=self.request_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url, params=query) as response:
                    if response.status != 200:
                        raise ProviderRequestError(
                            self.name,
                            f"HTTP {response.status} for {endpoint}",
                            status=response.status,
                        )
                    return await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise ProviderRequestError(
                self.name, f"Request to {endpoint} timed out after {self.request_timeout}s"
            ) from e
        except aiohttp.ClientError as e:
            raise ProviderRequestError(self.name, f"Request to {endpoint} failed: {e}") from e

    def _unsupported(self, operation: Capability) -> UnsupportedOperationError:
        return UnsupportedOperationError(self.name, operation.value)

    def _no_data(self, what: str, symbol: str) -> ProviderError:
        return ProviderError(self.name, f"No {what} data for {symbol}")

    def supports(self, operation: Capability) -> bool:
        return operation in self.SUPPORTED_OPERATIONS

    def normalize_symbol(self, symbol: str) -> str:
        # Default implementation - override in subclasses
        return symbol.upper().strip()

    @abstractmethod
    async def get_quote(self, symbol: str) -> StockQuote:
        """
        Get the latest quote for a symbol

        Raises:
            ProviderError: when the vendor has no data or the request fails
        """
        pass

    async def get_quotes(self, symbols: List[str]) -> BatchResult:
        """Quotes for many symbols, one chunked request per symbol unless the vendor batches natively"""
        return await resolve_in_chunks(
            symbols,
            self.get_quote,
            chunk_size=self.batch_chunk_size,
            pause=self.batch_pause,
            concurrency=self.batch_concurrency,
            is_empty=is_empty_quote,
            provider=self.name,
        )

    @abstractmethod
    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        pass

    async def get_company_profiles(self, symbols: List[str]) -> BatchResult:
        return await resolve_in_chunks(
            symbols,
            self.get_company_profile,
            chunk_size=self.batch_chunk_size,
            pause=self.batch_pause,
            concurrency=self.batch_concurrency,
            is_empty=is_empty_profile,
            provider=self.name,
        )

    @abstractmethod
    async def get_time_series(
        self,
        symbol: str,
        interval: TimeInterval = TimeInterval.DAILY,
        period: int = 100,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeSeriesPoint]:
        """
        Get OHLCV bars, oldest first

        Args:
            symbol: Stock symbol
            interval: Bar size
            period: Maximum number of bars to return
            start_date: Optional inclusive start of the range
            end_date: Optional inclusive end of the range
        """
        pass

    async def get_financial_metrics(self, symbol: str) -> FinancialMetrics:
        raise self._unsupported(Capability.GET_FINANCIAL_METRICS)

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        raise self._unsupported(Capability.GET_DIVIDENDS)

    async def get_earnings(
        self,
        symbol: str,
        limit: Optional[int] = None,
        include_future_reports: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[EarningsReport]:
        raise self._unsupported(Capability.GET_EARNINGS)

    async def get_upcoming_earnings(
        self,
        symbols: Optional[List[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[EarningsReport]:
        raise self._unsupported(Capability.GET_UPCOMING_EARNINGS)

    async def search_symbols(self, query: str) -> List[StockSymbol]:
        raise self._unsupported(Capability.SEARCH_SYMBOLS)

    async def get_market_news(self, symbols: Optional[List[str]] = None, limit: int = 10) -> List[NewsArticle]:
        raise self._unsupported(Capability.GET_MARKET_NEWS)

    @abstractmethod
    def get_rate_limit_info(self) -> Dict[str, Any]:
        """
        Get information about rate limits for this provider

        Returns:
            Dictionary with rate limit info (calls_per_minute, calls_per_day, etc.)
        """
        pass


def filter_by_range(
    items: List[Any],
    attribute: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[Any]:
    """Keep items whose date ``attribute`` falls within [start_date, end_date]"""
    kept = []
    for item in items:
        day = getattr(item, attribute)
        if start_date and day < start_date:
            continue
        if end_date and day > end_date:
            continue
        kept.append(item)
    return kept
