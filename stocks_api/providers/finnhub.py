"""
Finnhub Provider
Real-time quotes, fundamentals and news, generous free tier (60 calls/min)
API Docs: https://finnhub.io/docs/api
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import logging

from .base import (
    BaseStockApiClient,
    filter_by_range,
    from_unix,
    parse_date,
    to_float,
)
from ..capabilities import Capability
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

logger = logging.getLogger(__name__)

RESOLUTIONS = {
    TimeInterval.ONE_MINUTE: "1",
    TimeInterval.FIVE_MINUTES: "5",
    TimeInterval.FIFTEEN_MINUTES: "15",
    TimeInterval.THIRTY_MINUTES: "30",
    TimeInterval.SIXTY_MINUTES: "60",
    TimeInterval.ONE_DAY: "D",
    TimeInterval.DAILY: "D",
    TimeInterval.WEEKLY: "W",
    TimeInterval.MONTHLY: "M",
}


def _product(a: Any, b: Any) -> Optional[float]:
    a, b = to_float(a), to_float(b)
    if a is None or b is None:
        return None
    return a * b


def _quarter_end(year: int, quarter: int) -> date:
    month = quarter * 3
    if month == 12:
        return date(year, 12, 31)
    return date(year, month + 1, 1) - timedelta(days=1)


class FinnhubClient(BaseStockApiClient):
    """
    Finnhub adapter
    Pros: 60 calls/min free, broad fundamentals and news coverage
    Cons: quote endpoint has no volume, candles need a paid plan for some exchanges
    """

    BASE_URL = "https://finnhub.io/api/v1"
    API_KEY_PARAM = "token"
    SUPPORTED_OPERATIONS = frozenset({
        Capability.GET_QUOTE,
        Capability.GET_QUOTES,
        Capability.GET_COMPANY_PROFILE,
        Capability.GET_COMPANY_PROFILES,
        Capability.GET_TIME_SERIES,
        Capability.GET_FINANCIAL_METRICS,
        Capability.GET_DIVIDENDS,
        Capability.GET_EARNINGS,
        Capability.GET_UPCOMING_EARNINGS,
        Capability.SEARCH_SYMBOLS,
        Capability.GET_MARKET_NEWS,
    })

    def __init__(self, api_key: Optional[str], **kwargs):
        super().__init__("finnhub", api_key=api_key, **kwargs)

    async def get_quote(self, symbol: str) -> StockQuote:
        symbol = self.normalize_symbol(symbol)
        data = await self._request("/quote", {"symbol": symbol})

        # Current price of 0 means Finnhub has no data for the symbol
        if not data or not data.get("c"):
            raise self._no_data("quote", symbol)

        return StockQuote(
            symbol=symbol,
            price=data["c"],
            change=data.get("d") or 0,
            change_percent=data.get("dp") or 0,
            timestamp=from_unix(data.get("t")) or datetime.now(timezone.utc),
            volume=0,  # Finnhub quote doesn't include volume
            open=data.get("o"),
            high=data.get("h"),
            low=data.get("l"),
            previous_close=data.get("pc"),
            provider=self.name,
        )

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        symbol = self.normalize_symbol(symbol)
        data = await self._request("/stock/profile2", {"symbol": symbol})
        if not data or not data.get("name"):
            raise self._no_data("profile", symbol)

        return CompanyProfile(
            symbol=data.get("ticker") or symbol,
            name=data["name"],
            description=data["name"],  # Free tier has no description
            exchange=data.get("exchange") or "",
            currency=data.get("currency") or "",
            sector=data.get("finnhubIndustry"),  # Finnhub combines sector and industry
            industry=data.get("finnhubIndustry"),
            website=data.get("weburl"),
            logo=data.get("logo"),
            # Finnhub reports market cap and shares in millions
            market_cap=_product(data.get("marketCapitalization"), 1_000_000),
            ipo_date=parse_date(data.get("ipo")),
            shares_outstanding=_product(data.get("shareOutstanding"), 1_000_000),
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
        end = datetime.combine(end_date, datetime.max.time(), tzinfo=timezone.utc) if end_date \
            else datetime.now(timezone.utc)
        start = datetime.combine(start_date, datetime.min.time(), tzinfo=timezone.utc) if start_date \
            else end - timedelta(days=period)

        data = await self._request("/stock/candle", {
            "symbol": symbol,
            "resolution": RESOLUTIONS.get(TimeInterval(interval), "D"),
            "from": int(start.timestamp()),
            "to": int(end.timestamp()),
        })

        # "no_data" status is a valid empty answer, let the caller decide
        if data.get("s") != "ok" or not data.get("t"):
            return []

        volumes = data.get("v") or [0] * len(data["t"])
        points = [
            TimeSeriesPoint(
                timestamp=from_unix(t),
                open=o, high=h, low=l, close=c, volume=v,
            )
            for t, o, h, l, c, v in zip(data["t"], data["o"], data["h"], data["l"], data["c"], volumes)
        ]
        return points[-period:]

    async def get_financial_metrics(self, symbol: str) -> FinancialMetrics:
        symbol = self.normalize_symbol(symbol)
        data = await self._request("/stock/metric", {"symbol": symbol, "metric": "all"})
        metric: Dict[str, Any] = (data or {}).get("metric") or {}
        if not metric:
            raise self._no_data("metrics", symbol)

        shares = _product(metric.get("sharesOutstanding"), 1_000_000)
        return FinancialMetrics(
            symbol=symbol,
            market_cap=_product(metric.get("marketCapitalization"), 1_000_000),
            pe_ratio=to_float(metric.get("peNormalizedAnnual")),
            peg_ratio=to_float(metric.get("pegRatio")),
            eps=to_float(metric.get("epsTTM")),
            price_to_book_ratio=to_float(metric.get("pbAnnual")),
            ev_to_ebitda=to_float(metric.get("enterpriseValueEbitdaAnnual")),
            ev_to_revenue=to_float(metric.get("enterpriseValueRevenueAnnual")),
            revenue=_product(metric.get("revenuePerShareAnnual"), shares),
            gross_margin=to_float(metric.get("grossMarginAnnual")),
            operating_margin=to_float(metric.get("operatingMarginAnnual")),
            profit_margin=to_float(metric.get("netProfitMarginAnnual")),
            current_ratio=to_float(metric.get("currentRatioAnnual")),
            quick_ratio=to_float(metric.get("quickRatioAnnual")),
            debt_to_equity=to_float(metric.get("totalDebt/totalEquityAnnual")),
            return_on_equity=to_float(metric.get("roeTTM")),
            return_on_assets=to_float(metric.get("roaTTM")),
            dividend_yield=to_float(metric.get("dividendYieldIndicatedAnnual")),
            dividend_per_share=to_float(metric.get("dividendPerShareAnnual")),
            dividend_payout_ratio=to_float(metric.get("payoutRatioAnnual")),
            beta=to_float(metric.get("beta")),
            fifty_two_week_high=to_float(metric.get("52WeekHigh")),
            fifty_two_week_low=to_float(metric.get("52WeekLow")),
            shares_outstanding=shares,
            report_period="annual",
            provider=self.name,
        )

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        symbol = self.normalize_symbol(symbol)
        end_date = end_date or datetime.now(timezone.utc).date()
        start_date = start_date or end_date - timedelta(days=365 * 5)
        data = await self._request("/stock/dividend", {
            "symbol": symbol,
            "from": start_date.isoformat(),
            "to": end_date.isoformat(),
        })

        dividends = []
        for row in data or []:
            amount = to_float(row.get("amount"))
            ex_date = parse_date(row.get("date"))
            # Only include dividends with a payment date
            if not amount or not ex_date or not row.get("payDate"):
                continue
            dividends.append(Dividend(
                symbol=row.get("symbol") or symbol,
                amount=amount,
                ex_date=ex_date,
                payment_date=parse_date(row.get("payDate")),
                record_date=parse_date(row.get("recordDate")) or ex_date,
                declaration_date=parse_date(row.get("declarationDate")),
                currency=row.get("currency") or "USD",
            ))
        return dividends

    async def get_earnings(
        self,
        symbol: str,
        limit: Optional[int] = None,
        include_future_reports: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[EarningsReport]:
        symbol = self.normalize_symbol(symbol)
        limit = limit or 4
        data = await self._request("/stock/earnings", {"symbol": symbol, "limit": limit})

        today = datetime.now(timezone.utc).date()
        reports = []
        for row in data or []:
            year, quarter = row.get("year"), row.get("quarter")
            if not year or not quarter:
                continue
            fiscal_end = parse_date(row.get("period")) or _quarter_end(year, quarter)
            reports.append(EarningsReport(
                symbol=row.get("symbol") or symbol,
                fiscal_date_ending=fiscal_end,
                reported_date=fiscal_end,
                reported_eps=to_float(row.get("actual")),
                estimated_eps=to_float(row.get("estimate")),
                surprise=to_float(row.get("surprise")),
                surprise_percentage=to_float(row.get("surprisePercent")),
                period=f"Q{quarter}",
                year=year,
                is_future_report=fiscal_end > today,
            ))

        if not include_future_reports:
            reports = [r for r in reports if not r.is_future_report]
        return filter_by_range(reports, "fiscal_date_ending", start_date, end_date)[:limit]

    async def get_upcoming_earnings(
        self,
        symbols: Optional[List[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[EarningsReport]:
        start_date = start_date or datetime.now(timezone.utc).date()
        end_date = end_date or start_date + timedelta(days=90)
        wanted = {self.normalize_symbol(s) for s in symbols or []}
        # The calendar filters by one symbol at most
        data = await self._request("/calendar/earnings", {
            "from": start_date.isoformat(),
            "to": end_date.isoformat(),
            "symbol": next(iter(wanted)) if len(wanted) == 1 else None,
        })

        reports = []
        for row in (data or {}).get("earningsCalendar") or []:
            if wanted and row.get("symbol") not in wanted:
                continue
            report_date = parse_date(row.get("date"))
            year, quarter = row.get("year"), row.get("quarter")
            if not report_date or not year or not quarter:
                continue
            reports.append(EarningsReport(
                symbol=row["symbol"],
                fiscal_date_ending=_quarter_end(year, quarter),
                reported_date=report_date,
                reported_eps=to_float(row.get("epsActual")),
                estimated_eps=to_float(row.get("epsEstimate")),
                reported_revenue=to_float(row.get("revenueActual")),
                estimated_revenue=to_float(row.get("revenueEstimate")),
                time=row.get("hour") or None,
                period=f"Q{quarter}",
                year=year,
                is_future_report=True,
            ))
        reports.sort(key=lambda r: r.reported_date)
        return reports[:limit] if limit else reports

    async def search_symbols(self, query: str) -> List[StockSymbol]:
        data = await self._request("/search", {"q": query})
        return [
            StockSymbol(
                symbol=row["symbol"],
                name=row.get("description") or "",
                type=row.get("type"),
            )
            for row in (data or {}).get("result") or []
            if row.get("symbol")
        ]

    async def get_market_news(self, symbols: Optional[List[str]] = None, limit: int = 10) -> List[NewsArticle]:
        data = await self._request("/news", {"category": "general"})
        wanted = [s.lower() for s in symbols or []]

        articles = []
        for row in data or []:
            haystack = " ".join([
                row.get("headline") or "", row.get("summary") or "", row.get("related") or ""
            ]).lower()
            if wanted and not any(symbol in haystack for symbol in wanted):
                continue
            articles.append(NewsArticle(
                id=str(row.get("id")),
                source=row.get("source") or "",
                title=row.get("headline") or "",
                summary=row.get("summary") or "",
                url=row.get("url") or "",
                published_at=from_unix(row.get("datetime")) or datetime.now(timezone.utc),
                image_url=row.get("image") or None,
                related_symbols=[s for s in (row.get("related") or "").split(",") if s],
            ))
            if len(articles) >= limit:
                break
        return articles

    def get_rate_limit_info(self):
        return {
            "provider": self.name,
            "calls_per_minute": 60,
            "calls_per_day": None,  # No daily limit on free tier
            "requires_api_key": True,
            "real_time": True,
        }
