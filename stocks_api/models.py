"""
Normalized Market Data Records
Every vendor adapter maps its own JSON into these shapes
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import date, datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimeInterval(str, Enum):
    """Bar size for time series requests"""
    ONE_MINUTE = "1min"
    FIVE_MINUTES = "5min"
    FIFTEEN_MINUTES = "15min"
    THIRTY_MINUTES = "30min"
    SIXTY_MINUTES = "60min"
    ONE_DAY = "1d"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


INTRADAY_INTERVALS = frozenset({
    TimeInterval.ONE_MINUTE,
    TimeInterval.FIVE_MINUTES,
    TimeInterval.FIFTEEN_MINUTES,
    TimeInterval.THIRTY_MINUTES,
    TimeInterval.SIXTY_MINUTES,
})


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StockSymbol(_Record):
    """Symbol search hit"""
    symbol: str
    name: str = ""
    currency: Optional[str] = None
    exchange: Optional[str] = None
    mic_code: Optional[str] = None
    country: Optional[str] = None
    type: Optional[str] = None


class TimeSeriesPoint(_Record):
    """Single OHLCV bar"""
    timestamp: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float = 0


class VolumeMetrics(_Record):
    avg_daily_volume: float = 0
    avg_daily_volume_dollar: float = 0
    current_volume: float = 0
    avg_volume_30_day: Optional[float] = None
    avg_volume_90_day: Optional[float] = None
    avg_volume_1_year: Optional[float] = None


class PerformanceMetrics(_Record):
    """Percentage price change over trailing windows"""
    one_week: Optional[float] = None
    one_month: Optional[float] = None
    three_month: Optional[float] = None
    one_year: Optional[float] = None
    year_to_date: Optional[float] = None


class StockQuote(_Record):
    """Latest price snapshot for a symbol"""
    symbol: str
    company_name: Optional[str] = None
    price: float = 0
    change: float = 0
    change_percent: float = 0
    timestamp: datetime = Field(default_factory=_utcnow)
    volume: float = 0
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    previous_close: Optional[float] = None
    volume_metrics: Optional[VolumeMetrics] = None
    performance: Optional[PerformanceMetrics] = None
    provider: Optional[str] = Field(None, description="Name of the provider that served the quote")


class CompanyProfile(_Record):
    symbol: str
    name: str = ""
    description: str = ""
    exchange: str = ""
    currency: str = ""
    sector: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = None
    market_cap: Optional[float] = None
    employees: Optional[int] = None
    ipo_date: Optional[date] = None
    shares_outstanding: Optional[float] = None
    float_shares: Optional[float] = None
    last_updated: datetime = Field(default_factory=_utcnow)
    beta: Optional[float] = None
    dividend_per_share: Optional[float] = None
    dividend_yield: Optional[float] = None
    pe_ratio: Optional[float] = None
    eps: Optional[float] = None
    provider: Optional[str] = None


class FinancialMetrics(_Record):
    """Valuation, profitability and balance sheet figures"""
    symbol: str
    as_of_date: date = Field(default_factory=lambda: _utcnow().date())

    # Valuation
    market_cap: Optional[float] = None
    enterprise_value: Optional[float] = None
    pe_ratio: Optional[float] = None
    forward_pe_ratio: Optional[float] = None
    peg_ratio: Optional[float] = None
    eps: Optional[float] = None
    price_to_book_ratio: Optional[float] = None
    ev_to_ebitda: Optional[float] = None
    ev_to_revenue: Optional[float] = None

    # Profitability
    revenue: Optional[float] = None
    gross_profit: Optional[float] = None
    operating_income: Optional[float] = None
    net_income: Optional[float] = None
    ebitda: Optional[float] = None
    gross_margin: Optional[float] = None
    operating_margin: Optional[float] = None
    profit_margin: Optional[float] = None

    # Balance sheet
    total_debt: Optional[float] = None
    total_equity: Optional[float] = None
    current_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    debt_to_equity: Optional[float] = None

    # Cash flow
    operating_cash_flow: Optional[float] = None
    free_cash_flow: Optional[float] = None
    free_cash_flow_per_share: Optional[float] = None

    # Returns
    return_on_equity: Optional[float] = None
    return_on_assets: Optional[float] = None

    # Dividends and trading range
    dividend_yield: Optional[float] = None
    dividend_per_share: Optional[float] = None
    dividend_payout_ratio: Optional[float] = None
    beta: Optional[float] = None
    fifty_two_week_high: Optional[float] = None
    fifty_two_week_low: Optional[float] = None
    shares_outstanding: Optional[float] = None
    float_shares: Optional[float] = None

    report_period: Optional[str] = None
    fiscal_year_end: Optional[str] = None
    provider: Optional[str] = None


# Fields of FinancialMetrics that identify the record rather than describe the company
METRIC_IDENTITY_FIELDS = frozenset({
    "symbol", "as_of_date", "report_period", "fiscal_year_end", "provider"
})


class Dividend(_Record):
    symbol: str
    amount: float
    ex_date: date
    payment_date: Optional[date] = None
    record_date: Optional[date] = None
    declaration_date: Optional[date] = None
    currency: str = "USD"


class EarningsReport(_Record):
    """Reported or scheduled quarterly earnings"""
    symbol: str
    fiscal_date_ending: date
    reported_date: Optional[date] = None

    reported_eps: Optional[float] = None
    estimated_eps: Optional[float] = None
    surprise: Optional[float] = None
    surprise_percentage: Optional[float] = None

    reported_revenue: Optional[float] = None
    estimated_revenue: Optional[float] = None
    revenue_surprise: Optional[float] = None
    revenue_surprise_percentage: Optional[float] = None

    period: str = Field("Q4", description="Q1, Q2, Q3, Q4 or FY")
    year: int
    is_future_report: bool = False
    time: Optional[str] = Field(None, description="bmo (before market open) or amc (after market close)")
    currency: str = "USD"


class NewsArticle(_Record):
    id: str
    source: str = ""
    title: str
    summary: str = ""
    url: str = ""
    published_at: datetime
    image_url: Optional[str] = None
    related_symbols: List[str] = Field(default_factory=list)
