"""
Twelve Data Provider
Real-time and historical stock market data plus fundamentals
Free tier: 8 calls/min, 800 calls/day
"""

from typing import Any, Dict, List, Optional
from datetime import date, datetime, timedelta, timezone
import logging

from .base import (
    BaseStockApiClient,
    filter_by_range,
    from_unix,
    parse_date,
    parse_datetime,
    quarter_of,
    to_float,
    to_int,
)
from ..capabilities import Capability
from ..errors import ProviderError
from ..models import (
    CompanyProfile,
    Dividend,
    EarningsReport,
    FinancialMetrics,
    StockQuote,
    StockSymbol,
    TimeInterval,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

INTERVALS = {
    TimeInterval.ONE_MINUTE: "1min",
    TimeInterval.FIVE_MINUTES: "5min",
    TimeInterval.FIFTEEN_MINUTES: "15min",
    TimeInterval.THIRTY_MINUTES: "30min",
    TimeInterval.SIXTY_MINUTES: "1h",
    TimeInterval.ONE_DAY: "1day",
    TimeInterval.DAILY: "1day",
    TimeInterval.WEEKLY: "1week",
    TimeInterval.MONTHLY: "1month",
}


class TwelveDataClient(BaseStockApiClient):
    """
    Twelve Data adapter
    Free tier: 8 calls/min, 800/day, real-time data
    Paid: Starting $29/month for 55 calls/min
    """

    BASE_URL = "https://api.twelvedata.com"
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
    })

    def __init__(self, api_key: Optional[str], **kwargs):
        super().__init__("twelve_data", api_key=api_key, **kwargs)

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Twelve Data reports errors as HTTP 200 with a status/code payload"""
        data = await self._request(endpoint, params)
        if not isinstance(data, dict):
            raise ProviderError(self.name, f"Unexpected payload from {endpoint}")
        if data.get("status") == "error" or "code" in data:
            raise ProviderError(self.name, data.get("message", "Unknown error"))
        return data

    async def get_quote(self, symbol: str) -> StockQuote:
        symbol = self.normalize_symbol(symbol)
        data = await self._get("/quote", {"symbol": symbol})
        price = to_float(data.get("close"))
        if not price:
            raise self._no_data("quote", symbol)

        return StockQuote(
            symbol=data.get("symbol") or symbol,
            company_name=data.get("name"),
            price=price,
            change=to_float(data.get("change")) or 0,
            change_percent=to_float(data.get("percent_change")) or 0,
            timestamp=from_unix(data.get("timestamp")) or datetime.now(timezone.utc),
            volume=to_float(data.get("volume")) or 0,
            open=to_float(data.get("open")),
            high=to_float(data.get("high")),
            low=to_float(data.get("low")),
            previous_close=to_float(data.get("previous_close")),
            provider=self.name,
        )

    async def get_company_profile(self, symbol: str) -> CompanyProfile:
        symbol = self.normalize_symbol(symbol)
        data = await self._get("/profile", {"symbol": symbol})
        if not data.get("name"):
            raise self._no_data("profile", symbol)

        return CompanyProfile(
            symbol=data.get("symbol") or symbol,
            name=data["name"],
            description=data.get("description") or "",
            exchange=data.get("exchange") or "",
            currency=data.get("currency") or "USD",
            sector=data.get("sector"),
            industry=data.get("industry"),
            website=data.get("website"),
            employees=to_int(data.get("employees")),
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
        data = await self._request("/time_series", {
            "symbol": symbol,
            "interval": INTERVALS.get(TimeInterval(interval), "1day"),
            "outputsize": period,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
            "order": "ASC",
        })

        # code 400 with "No data is available" is an empty answer, not an outage
        if not isinstance(data, dict) or data.get("status") == "error":
            message = data.get("message", "") if isinstance(data, dict) else ""
            if "no data" in message.lower():
                return []
            raise ProviderError(self.name, message or f"Time series failed for {symbol}")

        points = []
        for row in data.get("values") or []:
            timestamp = parse_datetime(row.get("datetime"))
            close = to_float(row.get("close"))
            if timestamp is None or close is None:
                continue
            points.append(TimeSeriesPoint(
                timestamp=timestamp,
                open=to_float(row.get("open")) or close,
                high=to_float(row.get("high")) or close,
                low=to_float(row.get("low")) or close,
                close=close,
                volume=to_float(row.get("volume")) or 0,
            ))
        points.sort(key=lambda p: p.timestamp)
        return points[-period:]

    async def get_financial_metrics(self, symbol: str) -> FinancialMetrics:
        symbol = self.normalize_symbol(symbol)
        data = await self._get("/statistics", {"symbol": symbol})
        stats = data.get("statistics") or {}
        if not stats:
            raise self._no_data("metrics", symbol)

        valuations = stats.get("valuations_metrics") or {}
        financials = stats.get("financials") or {}
        income = financials.get("income_statement") or {}
        balance = financials.get("balance_sheet") or {}
        cash_flow = financials.get("cash_flow") or {}
        shares = stats.get("stock_statistics") or {}
        price_summary = stats.get("stock_price_summary") or {}
        dividends = stats.get("dividends_and_splits") or {}

        return FinancialMetrics(
            symbol=symbol,
            market_cap=to_float(valuations.get("market_capitalization")),
            enterprise_value=to_float(valuations.get("enterprise_value")),
            pe_ratio=to_float(valuations.get("trailing_pe")),
            forward_pe_ratio=to_float(valuations.get("forward_pe")),
            peg_ratio=to_float(valuations.get("peg_ratio")),
            price_to_book_ratio=to_float(valuations.get("price_to_book_mrq")),
            ev_to_ebitda=to_float(valuations.get("enterprise_to_ebitda")),
            ev_to_revenue=to_float(valuations.get("enterprise_to_revenue")),
            eps=to_float(income.get("diluted_eps_ttm")),
            revenue=to_float(income.get("revenue_ttm")),
            gross_profit=to_float(income.get("gross_profit_ttm")),
            ebitda=to_float(income.get("ebitda")),
            net_income=to_float(income.get("net_income_to_common_ttm")),
            operating_margin=to_float(financials.get("operating_margin")),
            profit_margin=to_float(financials.get("profit_margin")),
            return_on_assets=to_float(financials.get("return_on_assets_ttm")),
            return_on_equity=to_float(financials.get("return_on_equity_ttm")),
            total_debt=to_float(balance.get("total_debt_mrq")),
            current_ratio=to_float(balance.get("current_ratio_mrq")),
            debt_to_equity=to_float(balance.get("total_debt_to_equity_mrq")),
            operating_cash_flow=to_float(cash_flow.get("operating_cash_flow_ttm")),
            free_cash_flow=to_float(cash_flow.get("levered_free_cash_flow_ttm")),
            shares_outstanding=to_float(shares.get("shares_outstanding")),
            float_shares=to_float(shares.get("float_shares")),
            beta=to_float(price_summary.get("beta")),
            fifty_two_week_high=to_float(price_summary.get("fifty_two_week_high")),
            fifty_two_week_low=to_float(price_summary.get("fifty_two_week_low")),
            dividend_yield=to_float(dividends.get("forward_annual_dividend_yield")),
            dividend_per_share=to_float(dividends.get("forward_annual_dividend_rate")),
            dividend_payout_ratio=to_float(dividends.get("payout_ratio")),
            report_period="ttm",
            provider=self.name,
        )

    async def get_dividends(
        self,
        symbol: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Dividend]:
        symbol = self.normalize_symbol(symbol)
        data = await self._get("/dividends", {
            "symbol": symbol,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        })
        currency = (data.get("meta") or {}).get("currency") or "USD"

        dividends = []
        for row in data.get("dividends") or []:
            amount = to_float(row.get("amount"))
            ex_date = parse_date(row.get("ex_date"))
            if not amount or not ex_date:
                continue
            dividends.append(Dividend(symbol=symbol, amount=amount, ex_date=ex_date, currency=currency))
        return filter_by_range(dividends, "ex_date", start_date, end_date)

    async def get_earnings(
        self,
        symbol: str,
        limit: Optional[int] = None,
        include_future_reports: bool = False,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[EarningsReport]:
        symbol = self.normalize_symbol(symbol)
        data = await self._get("/earnings", {
            "symbol": symbol,
            "start_date": start_date.isoformat() if start_date else None,
            "end_date": end_date.isoformat() if end_date else None,
        })
        currency = (data.get("meta") or {}).get("currency") or "USD"
        today = datetime.now(timezone.utc).date()

        reports = []
        for row in data.get("earnings") or []:
            report = self._earnings_row(symbol, row, currency, today)
            if report is None:
                continue
            if report.is_future_report and not include_future_reports:
                continue
            reports.append(report)

        reports.sort(key=lambda r: r.fiscal_date_ending, reverse=True)
        return reports[:limit] if limit else reports

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
        data = await self._get("/earnings_calendar", {
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
        })

        reports = []
        # Calendar is keyed by report date
        for rows in (data.get("earnings") or {}).values():
            for row in rows:
                if wanted and row.get("symbol") not in wanted:
                    continue
                report = self._earnings_row(row.get("symbol"), row, row.get("currency") or "USD", None)
                if report is not None:
                    reports.append(report.model_copy(update={"is_future_report": True}))

        reports = filter_by_range(reports, "fiscal_date_ending", start_date, end_date)
        reports.sort(key=lambda r: r.fiscal_date_ending)
        return reports[:limit] if limit else reports

    def _earnings_row(
        self, symbol: str, row: Dict[str, Any], currency: str, today: Optional[date]
    ) -> Optional[EarningsReport]:
        report_date = parse_date(row.get("date"))
        if not report_date or not symbol:
            return None
        actual = to_float(row.get("eps_actual"))
        return EarningsReport(
            symbol=symbol,
            fiscal_date_ending=report_date,
            reported_date=report_date,
            reported_eps=actual,
            estimated_eps=to_float(row.get("eps_estimate")),
            surprise=to_float(row.get("difference")),
            surprise_percentage=to_float(row.get("surprise_prc")),
            period=quarter_of(report_date),
            year=report_date.year,
            is_future_report=bool(today and report_date > today and actual is None),
            time=row.get("time") or None,
            currency=currency,
        )

    async def search_symbols(self, query: str) -> List[StockSymbol]:
        data = await self._get("/symbol_search", {"symbol": query})
        return [
            StockSymbol(
                symbol=row["symbol"],
                name=row.get("instrument_name") or "",
                currency=row.get("currency"),
                exchange=row.get("exchange"),
                mic_code=row.get("mic_code"),
                country=row.get("country"),
                type=row.get("instrument_type"),
            )
            for row in data.get("data") or []
            if row.get("symbol")
        ]

    def get_rate_limit_info(self):
        return {
            "provider": self.name,
            "calls_per_minute": 8,
            "calls_per_day": 800,
            "requires_api_key": True,
            "real_time": True,
        }
