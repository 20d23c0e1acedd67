"""
Integration Tests for the StocksAPI client
Uses in-memory providers; no network access
"""

import pytest
from datetime import datetime, timezone

from stocks_api import StocksAPI
from stocks_api.capabilities import Capability
from stocks_api.config import StocksApiConfig, default_providers
from stocks_api.errors import AllProvidersFailedError, NoProviderAvailableError, ProviderError
from stocks_api.models import TimeInterval
from stocks_api.providers import FinnhubClient, TwelveDataClient


@pytest.fixture
def api(registry):
    return StocksAPI(config=StocksApiConfig(), registry=registry)


class TestQuotes:
    """Tests for quote routing"""

    @pytest.mark.asyncio
    async def test_quote_with_company_name(self, api, register, make_adapter, make_quote, make_profile):
        """Test the company name is filled in from the profile"""
        register(make_adapter(
            "only",
            quotes={"AAPL": make_quote("AAPL", 190.0)},
            profiles={"AAPL": make_profile("AAPL", "Apple Inc.")},
        ), 1)

        quote = await api.get_quote("AAPL")

        assert quote.price == 190.0
        assert quote.company_name == "Apple Inc."

    @pytest.mark.asyncio
    async def test_quote_keeps_name_when_profile_fails(self, api, register, make_adapter, make_quote):
        """Test a failed profile lookup still returns the quote"""
        register(make_adapter("only", quotes={"AAPL": make_quote("AAPL", 190.0)}), 1)

        quote = await api.get_quote("AAPL")

        assert quote.price == 190.0
        assert quote.company_name is None

    @pytest.mark.asyncio
    async def test_quote_without_company_name(self, api, register, make_adapter, make_quote):
        """Test profile lookup can be skipped"""
        adapter = register(make_adapter("only", quotes={"AAPL": make_quote("AAPL")}), 1)

        await api.get_quote("AAPL", include_company_name=False)

        assert adapter.call_count("get_company_profile") == 0

    @pytest.mark.asyncio
    async def test_quote_with_history(self, api, register, make_adapter, make_quote, linear_points):
        """Test volume and performance metrics are attached"""
        as_of = datetime(2025, 2, 3, tzinfo=timezone.utc)
        register(make_adapter(
            "only",
            quotes={"AAPL": make_quote("AAPL", 499.0, timestamp=as_of)},
            series={"AAPL": linear_points},
        ), 1)

        quote = await api.get_quote("AAPL", include_company_name=False, include_historical=True)

        assert quote.volume_metrics.current_volume == 1399
        assert quote.performance.one_week == pytest.approx(1.42, abs=0.01)

    @pytest.mark.asyncio
    async def test_quote_falls_back(self, api, register, make_adapter, make_quote):
        """Test the next provider answers when the first fails"""
        register(make_adapter("first", quotes={"AAPL": ProviderError("first", "HTTP 500")}), 1)
        register(make_adapter("second", quotes={"AAPL": make_quote("AAPL", 191.0)}), 2)

        quote = await api.get_quote("AAPL", include_company_name=False)

        assert quote.price == 191.0

    @pytest.mark.asyncio
    async def test_quote_all_failed(self, api, register, make_adapter):
        """Test the terminal error reaches the caller"""
        register(make_adapter("first"), 1)

        with pytest.raises(AllProvidersFailedError):
            await api.get_quote("ZZZZ")

    @pytest.mark.asyncio
    async def test_batch_quotes(self, api, register, make_adapter, make_quote):
        """Test batch quotes return one result per symbol"""
        register(make_adapter("first", quotes={"AAPL": make_quote("AAPL")}), 1)
        register(make_adapter("second", quotes={"MSFT": make_quote("MSFT")}), 2)

        results = await api.get_quotes(["AAPL", "MSFT", "ZZZZ"])

        assert results["AAPL"].success and results["MSFT"].success
        assert not results["ZZZZ"].success

    @pytest.mark.asyncio
    async def test_empty_batch(self, api, register, make_adapter):
        """Test empty symbol lists return an empty map"""
        adapter = register(make_adapter("only"), 1)

        assert await api.get_quotes([]) == {}
        assert await api.get_company_profiles([]) == {}
        assert adapter.calls == []

    @pytest.mark.asyncio
    async def test_batch_profiles(self, api, register, make_adapter, make_profile):
        """Test batch profiles"""
        register(make_adapter("only", profiles={"AAPL": make_profile("AAPL")}), 1)

        results = await api.get_company_profiles(["AAPL", "AAPL"])

        assert list(results) == ["AAPL"]
        assert results["AAPL"].value.name == "AAPL Inc."


class TestRouting:
    """Tests for capability-based routing"""

    @pytest.mark.asyncio
    async def test_intraday_series_uses_realtime_providers(self, api, register, make_adapter, linear_points):
        """Test intraday intervals route to realtime providers"""
        historical = register(make_adapter("historical", series={"AAPL": linear_points}), 1,
                              [Capability.HISTORICAL, Capability.GET_TIME_SERIES])
        realtime = register(make_adapter("realtime", series={"AAPL": linear_points}), 2,
                            [Capability.REALTIME, Capability.GET_TIME_SERIES])

        await api.get_time_series("AAPL", TimeInterval.FIVE_MINUTES)
        await api.get_time_series("AAPL", TimeInterval.DAILY)

        assert realtime.calls == [("get_time_series", ("AAPL", TimeInterval.FIVE_MINUTES))]
        assert historical.calls == [("get_time_series", ("AAPL", TimeInterval.DAILY))]

    @pytest.mark.asyncio
    async def test_empty_series_falls_through(self, api, register, make_adapter, linear_points):
        """Test an empty series tries the next provider"""
        register(make_adapter("empty", series={"AAPL": []}), 1)
        register(make_adapter("full", series={"AAPL": linear_points}), 2)

        points = await api.get_time_series("AAPL", "daily")

        assert len(points) == 400

    @pytest.mark.asyncio
    async def test_dividends_valid_empty(self, api, register, make_adapter):
        """Test no dividends is an answer, not a failure"""
        register(make_adapter("only", dividends=[]), 1)

        assert await api.get_dividends("TSLA") == []

    @pytest.mark.asyncio
    async def test_earnings_valid_empty(self, api, register, make_adapter):
        """Test empty earnings lists are returned without trying other providers"""
        register(make_adapter("first", earnings=[]), 1)
        second = register(make_adapter("second", earnings=["report"]), 2)

        assert await api.get_earnings("NEWCO") == []
        assert await api.get_upcoming_earnings(symbols=["NEWCO"]) == []
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_news_requires_news_provider(self, api, register, make_adapter):
        """Test news needs a provider with the news category"""
        register(make_adapter("quotes_only"), 1, [Capability.REALTIME, Capability.GET_QUOTE])

        with pytest.raises(NoProviderAvailableError):
            await api.get_market_news(["AAPL"])


class TestConfiguredClient:
    """Tests for building providers from configuration"""

    def test_registers_keyed_providers_only(self):
        """Test providers without keys are not registered"""
        providers = default_providers()
        providers["finnhub"].api_key = "finnhub-key"
        providers["twelve_data"].api_key = "twelve-key"

        api = StocksAPI(StocksApiConfig(providers=providers))

        assert api.get_enabled_providers() == ["twelve_data", "finnhub"]
        assert isinstance(api.registry.get_provider("finnhub"), FinnhubClient)
        assert isinstance(api.registry.get_provider("twelve_data"), TwelveDataClient)

    def test_capabilities_combine_features_and_operations(self):
        """Test descriptors merge config categories with adapter operations"""
        providers = default_providers()
        providers["finnhub"].api_key = "finnhub-key"
        providers["twelve_data"].api_key = "twelve-key"

        api = StocksAPI(StocksApiConfig(providers=providers))
        news = api.registry.providers_for(Capability.NEWS, Capability.GET_MARKET_NEWS)

        assert [adapter.name for adapter in news] == ["finnhub"]

    def test_batch_settings_reach_adapters(self):
        """Test chunk settings are passed to each adapter"""
        providers = default_providers()
        providers["fmp"].api_key = "fmp-key"

        api = StocksAPI(StocksApiConfig(providers=providers, batch_chunk_size=3, batch_pause=0.25))
        adapter = api.registry.get_provider("fmp")

        assert adapter.batch_chunk_size == 3
        assert adapter.batch_pause == 0.25

    def test_provider_status(self):
        """Test diagnostics include adapter rate limits"""
        providers = default_providers()
        providers["polygon"].api_key = "polygon-key"

        status = StocksAPI(StocksApiConfig(providers=providers)).get_provider_status()

        assert status["polygon"]["rate_limit_info"]["calls_per_minute"] == 5
        assert "get_dividends" in status["polygon"]["capabilities"]

    def test_no_providers(self):
        """Test a client with nothing configured still constructs"""
        api = StocksAPI(StocksApiConfig())

        assert api.get_enabled_providers() == []
