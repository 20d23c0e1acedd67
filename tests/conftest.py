"""
Pytest Configuration and Shared Fixtures
Provides scriptable provider adapters and sample market data for the stocks_api test suite
"""

import pytest
import pandas as pd
import numpy as np
from datetime import datetime, timedelta, timezone
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from stocks_api.batch import resolve_in_chunks
from stocks_api.capabilities import Capability, CapabilityMatrix, ProviderDescriptor
from stocks_api.errors import ProviderError
from stocks_api.models import CompanyProfile, StockQuote, TimeSeriesPoint
from stocks_api.registry import ProviderRegistry


# ============================================================================
# Fake Providers
# ============================================================================

class FakeAdapter:
    """
    In-memory adapter that records every call

    Each table maps a symbol to a value, or to an exception to raise.
    Symbols missing from a table raise ProviderError, like an unknown ticker.
    """

    def __init__(self, name, quotes=None, profiles=None, series=None,
                 dividends=None, earnings=None, news=None, batch_error=None):
        self.name = name
        self.quotes = quotes or {}
        self.profiles = profiles or {}
        self.series = series or {}
        self.dividends = dividends
        self.earnings = earnings
        self.news = news
        self.batch_error = batch_error
        self.calls = []

    def _lookup(self, table, key):
        value = table.get(key)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise ProviderError(self.name, f"Unknown symbol {key}")
        return value

    def call_count(self, method):
        return sum(1 for name, _ in self.calls if name == method)

    async def get_quote(self, symbol):
        self.calls.append(("get_quote", symbol))
        return self._lookup(self.quotes, symbol)

    async def get_quotes(self, symbols):
        self.calls.append(("get_quotes", tuple(symbols)))
        if self.batch_error is not None:
            raise self.batch_error
        return await resolve_in_chunks(symbols, self.get_quote, pause=0, provider=self.name)

    async def get_company_profile(self, symbol):
        self.calls.append(("get_company_profile", symbol))
        return self._lookup(self.profiles, symbol)

    async def get_company_profiles(self, symbols):
        self.calls.append(("get_company_profiles", tuple(symbols)))
        if self.batch_error is not None:
            raise self.batch_error
        return await resolve_in_chunks(symbols, self.get_company_profile, pause=0, provider=self.name)

    async def get_time_series(self, symbol, interval=None, period=100, start_date=None, end_date=None):
        self.calls.append(("get_time_series", (symbol, interval)))
        return self._lookup(self.series, symbol)

    async def get_dividends(self, symbol, start_date=None, end_date=None):
        self.calls.append(("get_dividends", symbol))
        if isinstance(self.dividends, Exception):
            raise self.dividends
        return self.dividends

    async def get_earnings(self, symbol, limit=None, include_future_reports=False, start_date=None, end_date=None):
        self.calls.append(("get_earnings", symbol))
        if isinstance(self.earnings, Exception):
            raise self.earnings
        return self.earnings

    async def get_upcoming_earnings(self, symbols=None, start_date=None, end_date=None, limit=None):
        self.calls.append(("get_upcoming_earnings", symbols))
        if isinstance(self.earnings, Exception):
            raise self.earnings
        return self.earnings

    async def get_market_news(self, symbols=None, limit=10):
        self.calls.append(("get_market_news", symbols))
        if isinstance(self.news, Exception):
            raise self.news
        return self.news


ALL_CAPABILITIES = CapabilityMatrix.full()


@pytest.fixture
def make_adapter():
    """Factory for FakeAdapter instances"""
    return FakeAdapter


@pytest.fixture
def registry():
    return ProviderRegistry()


@pytest.fixture
def register(registry):
    """Register an adapter with a priority and optional capability subset"""
    def _register(adapter, priority, capabilities=None, **kwargs):
        matrix = CapabilityMatrix.of(capabilities) if capabilities is not None else ALL_CAPABILITIES
        registry.register(
            ProviderDescriptor(name=adapter.name, priority=priority, capabilities=matrix, **kwargs),
            adapter,
        )
        return adapter
    return _register


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def make_quote():
    def _make_quote(symbol, price=100.0, **kwargs):
        return StockQuote(symbol=symbol, price=price, **kwargs)
    return _make_quote


@pytest.fixture
def make_profile():
    def _make_profile(symbol, name=None, **kwargs):
        return CompanyProfile(symbol=symbol, name=name or f"{symbol} Inc.", **kwargs)
    return _make_profile


@pytest.fixture
def sample_ohlcv_data():
    """Generate sample OHLCV data for testing"""
    dates = pd.date_range(start='2024-01-01', periods=100, freq='D', tz='UTC')
    np.random.seed(42)

    # Generate realistic price data
    base_price = 100.0
    prices = [base_price]
    for _ in range(99):
        change = np.random.normal(0, 2)
        prices.append(prices[-1] + change)

    data = pd.DataFrame({
        'Open': prices,
        'High': [p + np.random.uniform(0, 3) for p in prices],
        'Low': [p - np.random.uniform(0, 3) for p in prices],
        'Close': [p + np.random.uniform(-1, 1) for p in prices],
        'Volume': [int(np.random.uniform(1000000, 5000000)) for _ in prices]
    }, index=dates)

    # Ensure High > Open, Close and Low < Open, Close
    data['High'] = data[['Open', 'High', 'Close']].max(axis=1) + 0.1
    data['Low'] = data[['Open', 'Low', 'Close']].min(axis=1) - 0.1

    return data


@pytest.fixture
def sample_points(sample_ohlcv_data):
    """sample_ohlcv_data as TimeSeriesPoint records"""
    return [
        TimeSeriesPoint(
            timestamp=index.to_pydatetime(),
            open=row['Open'],
            high=row['High'],
            low=row['Low'],
            close=row['Close'],
            volume=row['Volume'],
        )
        for index, row in sample_ohlcv_data.iterrows()
    ]


@pytest.fixture
def linear_points():
    """400 daily bars from 2024-01-01 where close = 100 + day and volume = 1000 + day"""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return [
        TimeSeriesPoint(
            timestamp=start + timedelta(days=i),
            open=100.0 + i,
            high=101.0 + i,
            low=99.0 + i,
            close=100.0 + i,
            volume=1000 + i,
        )
        for i in range(400)
    ]


@pytest.fixture
def quote_capabilities():
    return [Capability.REALTIME, Capability.GET_QUOTE, Capability.GET_QUOTES]
