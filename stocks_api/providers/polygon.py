"""
Polygon.io Provider
End-of-day quotes, aggregates, reference data, dividends and news
Free tier: 5 API calls/minute, 2 years history
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import logging

from .base import BaseStockApiClient, parse_date, parse_datetime, to_float, to_int
from ..capabilities import Capability
from ..models import (
    CompanyProfile,
    Dividend,
    NewsArticle,
    StockQuote,
    TimeInterval,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

# interval -> (multiplier, timespan)
AGGREGATES = {
    TimeInterval.ONE_MINUTE: (1, "minute"),
    TimeInterval.FIVE_MINUTES: (5, "minute"),
    TimeInterval.FIFTEEN_MINUTES: (15, "minute"),
    TimeInterval.THIRTY_MINUTES: (30, "minute"),
    TimeInterval.SIXTY_MINUTES: (1, "hour"),
    TimeInterval.ONE_DAY: (1, "day"),
    TimeInterval.DAILY: (1, "day"),
    TimeInterval.WEEKLY: (1, "week"),
    TimeInterval.MONTHLY: (1, "month"),
}


def _from_millis(value: Any) -> datetime:
    return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)


class PolygonClient(BaseStockApiClient):
    """
    Polygon.io data provider
    Free tier: 5 calls/min, EOD data, 2 years historical
    Paid: Real-time data, unlimited calls
    """

    BASE_URL = "https://api.polygon.io"
    API_KEY_PARAM = "apiKey"
    SUPPORTED_OPERATIONS = frozenset({
        Capability.GET_QUOTE,
        Capability.GET_QUOTES,
        Capability.GET_COMPANY_PROFILE,
        Capability.GET_COMPANY_PROFILES,
        Capability.GET_TIME_SERIES,
        Capability.GET_DIVIDENDS,
        Capability.GET_MARKET_NEWS,
    })

    def __init__(self, api_key: Optional[str], **kwargs):
        super().__init__("polygon", api_key=api_key, **kwargs)

    async def get_quote(self, symbol: str) -> StockQuote:
        # Previous close is available on the free tier
        symbol = self.normalize_symbol(symbol)
        data = await self._request(f"/v2/aggs/ticker/{symbol}/prev", {"adjusted": "true"})
        results = (data or {}).get("results") or []
        if not results or not results[0].get("c"):
            raise self._no_data("quote", symbol)

        bar = results[0]
        close, open_ = bar["c"], bar.get("o")
        change = close - open_ if open_ else 0
        return StockQuote(
            symbol=symbol,
            price=close,
            change=change,
            change_percent=change / open_ * 100 if open_ else 0,
            timestamp=_from_millis(bar["t"]) if bar.get("t") else datetime.now(timezone.utc),
            volume=bar.get("v") or 0,
            open=open_,
            high=bar.get("h"),
            low=bar.get("l"),
            provider=self.name,
        )

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        symbol = self.normalize_symbol(symbol)
        data = await self._request(f"/v3/reference/tickers/{symbol}")
        details: Dict[str, Any] = (data or {}).get("results") or {}
        if not details.get("name"):
            raise self._no_data("profile", symbol)

        branding = details.get("branding") or {}
        return CompanyProfile(
            symbol=details.get("ticker") or symbol,
            name=details["name"],
            description=details.get("description") or "",
            exchange=details.get("primary_exchange") or "",
            currency=(details.get("currency_name") or "").upper(),
            industry=details.get("sic_description"),
            website=details.get("homepage_url"),
            logo=branding.get("logo_url"),
            market_cap=to_float(details.get("market_cap")),
            employees=to_int(details.get("total_employees")),
            ipo_date=parse_date(details.get("list_date")),
            shares_outstanding=to_float(details.get("share_class_shares_outstanding")),
            float_shares=to_float(details.get("weighted_shares_outstanding")),
            provider=self.name,
        )

    async def get_time_series(
        self,
        symbol: str,
        interval: TimeInterval = TimeInterval.DAILY,
        period: int = 100,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeSeriesPoint]:
        symbol = self.normalize_symbol(symbol)
        multiplier, timespan = AGGREGATES.get(TimeInterval(interval), (1, "day"))
        end_date = end_date or datetime.now(timezone.utc).date()
        start_date = start_date or end_date - timedelta(days=period)

        data = await self._request(
            f"/v2/aggs/ticker/{symbol}/range/{multiplier}/{timespan}"
            f"/{start_date.isoformat()}/{end_date.isoformat()}",
            {"adjusted": "true", "sort": "asc", "limit": 50000},
        )

        points = [
            TimeSeriesPoint(
                timestamp=_from_millis(bar["t"]),
                open=bar["o"],
                high=bar["h"],
                low=bar["l"],
                close=bar["c"],
                volume=bar.get("v") or 0,
            )
            for bar in (data or {}).get("results") or []
        ]
        return points[-period:]

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        symbol = self.normalize_symbol(symbol)
        data = await self._request("/v3/reference/dividends", {
            "ticker": symbol,
            "ex_dividend_date.gte": start_date.isoformat() if start_date else None,
            "ex_dividend_date.lte": end_date.isoformat() if end_date else None,
            "order": "desc",
            "limit": 1000,
        })

        dividends = []
        for row in (data or {}).get("results") or []:
            amount = to_float(row.get("cash_amount"))
            ex_date = parse_date(row.get("ex_dividend_date"))
            if not amount or not ex_date:
                continue
            dividends.append(Dividend(
                symbol=symbol,
                amount=amount,
                ex_date=ex_date,
                payment_date=parse_date(row.get("pay_date")),
                record_date=parse_date(row.get("record_date")),
                declaration_date=parse_date(row.get("declaration_date")),
                currency=row.get("currency") or "USD",
            ))
        return dividends

    async def get_market_news(self, symbols: Optional[List[str]] = None, limit: int = 10) -> List[NewsArticle]:
        params: Dict[str, Any] = {"limit": limit, "order": "desc", "sort": "published_utc"}
        # Polygon filters news by a single ticker
        if symbols:
            params["ticker"] = self.normalize_symbol(symbols[0])
        data = await self._request("/v2/reference/news", params)

        articles = []
        for row in (data or {}).get("results") or []:
            published = parse_datetime(row.get("published_utc"))
            if published is None:
                continue
            articles.append(NewsArticle(
                id=str(row.get("id")),
                source=(row.get("publisher") or {}).get("name") or "",
                title=row.get("title") or "",
                summary=row.get("description") or "",
                url=row.get("article_url") or "",
                published_at=published,
                image_url=row.get("image_url"),
                related_symbols=row.get("tickers") or [],
            ))
        return articles[:limit]

    def get_rate_limit_info(self):
        return {
            "provider": self.name,
            "calls_per_minute": 5,
            "calls_per_day": None,  # No daily limit, just per-minute
            "requires_api_key": True,
            "real_time": False,  # Free tier is EOD only
        }
