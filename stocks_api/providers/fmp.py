"""
Financial Modeling Prep (FMP) Provider
Strong for fundamentals and US stocks (250 requests/day free tier)
API Docs: https://site.financialmodelingprep.com/developer/docs
"""

from typing import Any, Callable, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import asyncio
import logging

from .base import (
    BaseStockApiClient,
    filter_by_range,
    parse_date,
    parse_datetime,
    quarter_of,
    to_float,
    to_int,
)
from ..capabilities import Capability
from ..errors import EmptyResultError, ProviderError
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
from ..policies import EmptinessPolicy, is_empty_profile, is_empty_quote
from ..results import BatchResult, KeyedResult

logger = logging.getLogger(__name__)

CHART_INTERVALS = {
    TimeInterval.ONE_MINUTE: "1min",
    TimeInterval.FIVE_MINUTES: "5min",
    TimeInterval.FIFTEEN_MINUTES: "15min",
    TimeInterval.THIRTY_MINUTES: "30min",
    TimeInterval.SIXTY_MINUTES: "1hour",
}


def _first(rows: Any) -> Dict[str, Any]:
    if isinstance(rows, list) and rows:
        return rows[0] or {}
    return {}


class FMPClient(BaseStockApiClient):
    """
    Financial Modeling Prep adapter
    Pros: excellent fundamentals, native multi-symbol quote and profile requests
    Cons: 250 requests/day on free tier, primarily US-focused
    """

    BASE_URL = "https://financialmodelingprep.com/api/v3"
    API_KEY_PARAM = "apikey"
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
        super().__init__("fmp", api_key=api_key, **kwargs)

    def _map_quote(self, row: Dict[str, Any]) -> StockQuote:
        return StockQuote(
            symbol=row["symbol"],
            company_name=row.get("name"),
            price=to_float(row.get("price")) or 0,
            change=to_float(row.get("change")) or 0,
            change_percent=to_float(row.get("changesPercentage")) or 0,
            timestamp=datetime.fromtimestamp(row["timestamp"], tz=timezone.utc)
            if row.get("timestamp") else datetime.now(timezone.utc),
            volume=to_float(row.get("volume")) or 0,
            open=to_float(row.get("open")),
            high=to_float(row.get("dayHigh")),
            low=to_float(row.get("dayLow")),
            previous_close=to_float(row.get("previousClose")),
            provider=self.name,
        )

    def _map_profile(self, row: Dict[str, Any]) -> CompanyProfile:
        return CompanyProfile(
            symbol=row["symbol"],
            name=row.get("companyName") or "",
            description=row.get("description") or "",
            exchange=row.get("exchangeShortName") or row.get("exchange") or "",
            currency=row.get("currency") or "",
            sector=row.get("sector"),
            industry=row.get("industry"),
            website=row.get("website"),
            logo=row.get("image"),
            market_cap=to_float(row.get("mktCap")),
            employees=to_int(row.get("fullTimeEmployees")),
            ipo_date=parse_date(row.get("ipoDate")),
            beta=to_float(row.get("beta")),
            dividend_per_share=to_float(row.get("lastDiv")),
            provider=self.name,
        )

    async def _fetch_many(
        self,
        endpoint: str,
        symbols: List[str],
        mapper: Callable[[Dict[str, Any]], Any],
        is_empty: EmptinessPolicy,
    ) -> BatchResult:
        """One comma-joined request; symbols missing from the reply or empty are marked failed"""
        normalized = {self.normalize_symbol(s): s for s in symbols}
        if not normalized:
            return {}
        data = await self._request(f"{endpoint}/{','.join(normalized)}")

        results: BatchResult = {}
        for row in data if isinstance(data, list) else []:
            requested = normalized.get(row.get("symbol", ""))
            if requested is None:
                continue
            try:
                value = mapper(row)
            except (KeyError, ValueError) as e:
                results[requested] = KeyedResult.failed(requested, ProviderError(self.name, str(e)))
                continue
            if is_empty(value):
                results[requested] = KeyedResult.failed(requested, EmptyResultError(self.name, requested))
            else:
                results[requested] = KeyedResult.ok(requested, value)

        for symbol in symbols:
            if symbol not in results:
                results[symbol] = KeyedResult.failed(symbol, ProviderError(self.name, "Symbol not found"))
        return results

    async def get_quote(self, symbol: str) -> StockQuote:
        symbol = self.normalize_symbol(symbol)
        row = _first(await self._request(f"/quote/{symbol}"))
        if not row.get("price"):
            raise self._no_data("quote", symbol)
        return self._map_quote(row)

    async def get_quotes(self, symbols: List[str]) -> BatchResult:
        return await self._fetch_many("/quote", symbols, self._map_quote, is_empty_quote)

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        symbol = self.normalize_symbol(symbol)
        row = _first(await self._request(f"/profile/{symbol}"))
        if not row.get("companyName"):
            raise self._no_data("profile", symbol)
        return self._map_profile(row)

    async def get_company_profiles(self, symbols: List[str]) -> BatchResult:
        return await self._fetch_many("/profile", symbols, self._map_profile, is_empty_profile)

    async def get_time_series(
        self,
        symbol: str,
        interval: TimeInterval = TimeInterval.DAILY,
        period: int = 100,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[TimeSeriesPoint]:
        symbol = self.normalize_symbol(symbol)
        interval = TimeInterval(interval)
        params = {
            "from": start_date.isoformat() if start_date else None,
            "to": end_date.isoformat() if end_date else None,
        }

        if interval in CHART_INTERVALS:
            rows = await self._request(f"/historical-chart/{CHART_INTERVALS[interval]}/{symbol}", params)
        else:
            if interval in (TimeInterval.WEEKLY, TimeInterval.MONTHLY):
                logger.debug(f"FMP has no {interval.value} bars, returning daily bars for {symbol}")
            data = await self._request(f"/historical-price-full/{symbol}", params)
            rows = (data or {}).get("historical") if isinstance(data, dict) else None

        if not isinstance(rows, list):
            raise ProviderError(self.name, f"Invalid time series data format for {symbol}")

        points = []
        for row in rows:
            timestamp = parse_datetime(row.get("date"))
            if timestamp is None:
                continue
            points.append(TimeSeriesPoint(
                timestamp=timestamp,
                open=row["open"],
                high=row["high"],
                low=row["low"],
                close=row["close"],
                volume=row.get("volume") or 0,
            ))
        points.sort(key=lambda p: p.timestamp)
        return points[-period:]

    async def get_financial_metrics(self, symbol: str) -> FinancialMetrics:
        symbol = self.normalize_symbol(symbol)
        params = {"limit": 1}
        key_metrics, income, balance, cash_flow = await asyncio.gather(
            self._request(f"/key-metrics/{symbol}", params),
            self._request(f"/income-statement/{symbol}", params),
            self._request(f"/balance-sheet-statement/{symbol}", params),
            self._request(f"/cash-flow-statement/{symbol}", params),
        )
        key_metrics, income = _first(key_metrics), _first(income)
        balance, cash_flow = _first(balance), _first(cash_flow)
        if not (key_metrics or income or balance or cash_flow):
            raise self._no_data("metrics", symbol)

        revenue = to_float(income.get("revenue"))
        return FinancialMetrics(
            symbol=symbol,
            as_of_date=parse_date(key_metrics.get("date")) or datetime.now(timezone.utc).date(),
            market_cap=to_float(key_metrics.get("marketCap")),
            enterprise_value=to_float(key_metrics.get("enterpriseValue")),
            pe_ratio=to_float(key_metrics.get("peRatio")),
            price_to_book_ratio=to_float(key_metrics.get("pbRatio")),
            ev_to_ebitda=to_float(key_metrics.get("enterpriseValueOverEBITDA")),
            ev_to_revenue=to_float(key_metrics.get("evToSales")),
            eps=to_float(income.get("eps")),
            revenue=revenue,
            gross_profit=to_float(income.get("grossProfit")),
            operating_income=to_float(income.get("operatingIncome")),
            net_income=to_float(income.get("netIncome")),
            ebitda=to_float(income.get("ebitda")),
            gross_margin=to_float(income.get("grossProfitRatio")),
            operating_margin=to_float(income.get("operatingIncomeRatio")),
            profit_margin=to_float(income.get("netIncomeRatio")),
            total_debt=to_float(balance.get("totalDebt")),
            total_equity=to_float(balance.get("totalStockholdersEquity")),
            current_ratio=to_float(key_metrics.get("currentRatio")),
            debt_to_equity=to_float(key_metrics.get("debtToEquity")),
            operating_cash_flow=to_float(cash_flow.get("operatingCashFlow")),
            free_cash_flow=to_float(cash_flow.get("freeCashFlow")),
            free_cash_flow_per_share=to_float(key_metrics.get("freeCashFlowPerShare")),
            return_on_equity=to_float(key_metrics.get("roe")),
            dividend_yield=to_float(key_metrics.get("dividendYield")),
            dividend_payout_ratio=to_float(key_metrics.get("payoutRatio")),
            report_period=key_metrics.get("period") or "annual",
            provider=self.name,
        )

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        symbol = self.normalize_symbol(symbol)
        data = await self._request(f"/historical-price-full/stock_dividend/{symbol}")
        rows = (data or {}).get("historical") if isinstance(data, dict) else None

        dividends = []
        for row in rows or []:
            amount = to_float(row.get("dividend"))
            ex_date = parse_date(row.get("date"))
            if not amount or not ex_date:
                continue
            dividends.append(Dividend(
                symbol=symbol,
                amount=amount,
                ex_date=ex_date,
                payment_date=parse_date(row.get("paymentDate")),
                record_date=parse_date(row.get("recordDate")),
                declaration_date=parse_date(row.get("declarationDate")),
            ))
        return filter_by_range(dividends, "ex_date", start_date, end_date)

    def _map_earnings(self, row: Dict[str, Any], symbol: Optional[str], today: date) -> Optional[EarningsReport]:
        report_date = parse_date(row.get("date"))
        if not report_date:
            return None
        fiscal_end = parse_date(row.get("fiscalDateEnding")) or report_date
        eps = to_float(row.get("eps"))
        estimated_eps = to_float(row.get("epsEstimated"))
        revenue = to_float(row.get("revenue"))
        estimated_revenue = to_float(row.get("revenueEstimated"))

        surprise = surprise_pct = revenue_surprise = revenue_surprise_pct = None
        if eps is not None and estimated_eps is not None:
            surprise = eps - estimated_eps
            surprise_pct = surprise / abs(estimated_eps) * 100 if estimated_eps else None
        if revenue is not None and estimated_revenue is not None:
            revenue_surprise = revenue - estimated_revenue
            revenue_surprise_pct = revenue_surprise / estimated_revenue * 100 if estimated_revenue else None

        return EarningsReport(
            symbol=symbol or row.get("symbol") or "",
            fiscal_date_ending=fiscal_end,
            reported_date=report_date,
            reported_eps=eps,
            estimated_eps=estimated_eps,
            surprise=surprise,
            surprise_percentage=surprise_pct,
            reported_revenue=revenue,
            estimated_revenue=estimated_revenue,
            revenue_surprise=revenue_surprise,
            revenue_surprise_percentage=revenue_surprise_pct,
            period=quarter_of(fiscal_end),
            year=fiscal_end.year,
            is_future_report=report_date > today and eps is None,
            time=row.get("time") or None,
        )

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
        rows = await self._request(f"/historical/earning_calendar/{symbol}", {"limit": limit * 2})
        today = datetime.now(timezone.utc).date()

        reports = []
        for row in rows if isinstance(rows, list) else []:
            report = self._map_earnings(row, symbol, today)
            if report is None or (report.is_future_report and not include_future_reports):
                continue
            reports.append(report)

        reports = filter_by_range(reports, "reported_date", start_date, end_date)
        reports.sort(key=lambda r: r.reported_date, reverse=True)
        return reports[:limit]

    async def get_upcoming_earnings(
        self,
        symbols: Optional[List[str]] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[EarningsReport]:
        start_date = start_date or datetime.now(timezone.utc).date()
        end_date = end_date or start_date + timedelta(days=90)
        rows = await self._request("/earning_calendar", {
            "from": start_date.isoformat(),
            "to": end_date.isoformat(),
        })
        wanted = {self.normalize_symbol(s) for s in symbols or []}

        reports = []
        for row in rows if isinstance(rows, list) else []:
            if wanted and row.get("symbol") not in wanted:
                continue
            report = self._map_earnings(row, None, start_date)
            if report is not None:
                reports.append(report.model_copy(update={"is_future_report": True}))

        reports = filter_by_range(reports, "reported_date", start_date, end_date)
        reports.sort(key=lambda r: r.reported_date)
        return reports[:limit] if limit else reports

    async def search_symbols(self, query: str) -> List[StockSymbol]:
        rows = await self._request("/search", {"query": query, "limit": 20})
        return [
            StockSymbol(
                symbol=row["symbol"],
                name=row.get("name") or "",
                currency=row.get("currency"),
                exchange=row.get("exchangeShortName"),
                type=row.get("type"),
            )
            for row in (rows if isinstance(rows, list) else [])
            if row.get("symbol")
        ]

    async def get_market_news(self, symbols: Optional[List[str]] = None, limit: int = 10) -> List[NewsArticle]:
        tickers = ",".join(self.normalize_symbol(s) for s in symbols) if symbols else None
        rows = await self._request("/stock_news", {"tickers": tickers, "limit": limit})

        articles = []
        for row in (rows if isinstance(rows, list) else [])[:limit]:
            published = parse_datetime(row.get("publishedDate"))
            if published is None:
                continue
            articles.append(NewsArticle(
                id=str(row.get("id") or row.get("url") or row.get("title")),
                source=row.get("site") or "",
                title=row.get("title") or "",
                summary=row.get("text") or "",
                url=row.get("url") or "",
                published_at=published,
                image_url=row.get("image"),
                related_symbols=[row["symbol"]] if row.get("symbol") else [],
            ))
        return articles

    def get_rate_limit_info(self):
        return {
            "provider": self.name,
            "calls_per_minute": 5,  # Conservative estimate
            "calls_per_day": 250,  # Free tier
            "requires_api_key": True,
            "real_time": True,
        }
