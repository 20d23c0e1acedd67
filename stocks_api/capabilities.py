"""
Provider Capabilities
Closed set of data categories and operation tags a provider can serve
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional


class Capability(str, Enum):
    # Coarse data categories
    REALTIME = "realtime"
    HISTORICAL = "historical"
    FUNDAMENTALS = "fundamentals"
    NEWS = "news"

    # Operation tags
    GET_QUOTE = "get_quote"
    GET_QUOTES = "get_quotes"
    GET_COMPANY_PROFILE = "get_company_profile"
    GET_COMPANY_PROFILES = "get_company_profiles"
    GET_TIME_SERIES = "get_time_series"
    GET_FINANCIAL_METRICS = "get_financial_metrics"
    GET_DIVIDENDS = "get_dividends"
    GET_EARNINGS = "get_earnings"
    GET_UPCOMING_EARNINGS = "get_upcoming_earnings"
    SEARCH_SYMBOLS = "search_symbols"
    GET_MARKET_NEWS = "get_market_news"


CATEGORIES = frozenset({
    Capability.REALTIME,
    Capability.HISTORICAL,
    Capability.FUNDAMENTALS,
    Capability.NEWS,
})

OPERATIONS = frozenset(set(Capability) - CATEGORIES)


@dataclass(frozen=True)
class CapabilityMatrix:
    """One boolean per Capability member, so every provider has the same shape"""
    realtime: bool = False
    historical: bool = False
    fundamentals: bool = False
    news: bool = False

    get_quote: bool = False
    get_quotes: bool = False
    get_company_profile: bool = False
    get_company_profiles: bool = False
    get_time_series: bool = False
    get_financial_metrics: bool = False
    get_dividends: bool = False
    get_earnings: bool = False
    get_upcoming_earnings: bool = False
    search_symbols: bool = False
    get_market_news: bool = False

    @classmethod
    def of(cls, capabilities: Iterable[Capability]) -> "CapabilityMatrix":
        return cls(**{Capability(c).value: True for c in capabilities})

    @classmethod
    def full(cls) -> "CapabilityMatrix":
        return cls.of(Capability)

    def supports(self, *capabilities: Capability) -> bool:
        """True only if every given capability is enabled"""
        return all(getattr(self, Capability(c).value) for c in capabilities)

    def enabled(self) -> List[Capability]:
        return [c for c in Capability if getattr(self, c.value)]

    def union(self, other: "CapabilityMatrix") -> "CapabilityMatrix":
        return CapabilityMatrix.of(set(self.enabled()) | set(other.enabled()))


@dataclass(frozen=True)
class ProviderDescriptor:
    """Static facts about a registered provider"""
    name: str
    priority: int = 0
    capabilities: CapabilityMatrix = field(default_factory=CapabilityMatrix)
    rate_limit: Optional[int] = None
    is_premium: bool = False

    def supports(self, *capabilities: Capability) -> bool:
        return self.capabilities.supports(*capabilities)
