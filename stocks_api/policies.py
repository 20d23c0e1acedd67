"""
Emptiness policies

A policy decides whether an adapter's answer counts as "no data" and should
make the fallback executor move on to the next provider. Each operation has
its own named predicate; a bare truthiness check is never used.
"""

from typing import Any, Callable, Iterable, Optional

from .capabilities import Capability
from .models import METRIC_IDENTITY_FIELDS

EmptinessPolicy = Callable[[Any], bool]


def never_empty(value: Any) -> bool:
    """Any non-None answer is valid, including an empty list"""
    return value is None


def is_empty_sequence(value: Any) -> bool:
    return value is None or len(value) == 0


QUOTE_VALUE_FIELDS = ("price", "volume", "open", "high", "low", "previous_close")


def is_empty_quote(quote: Any) -> bool:
    """A zero-valued quote is how several vendors say "unknown symbol" """
    if quote is None:
        return True
    return not any(getattr(quote, name, None) for name in QUOTE_VALUE_FIELDS)


def is_empty_profile(profile: Any) -> bool:
    if profile is None:
        return True
    return not getattr(profile, "name", None) and not getattr(profile, "description", None)


def is_empty_metrics(metrics: Any) -> bool:
    """Metrics are empty when no descriptive figure is populated"""
    if metrics is None:
        return True
    data = metrics.model_dump()
    return all(
        value is None
        for name, value in data.items()
        if name not in METRIC_IDENTITY_FIELDS
    )


POLICIES = {
    Capability.GET_QUOTE: is_empty_quote,
    Capability.GET_QUOTES: is_empty_quote,
    Capability.GET_COMPANY_PROFILE: is_empty_profile,
    Capability.GET_COMPANY_PROFILES: is_empty_profile,
    Capability.GET_TIME_SERIES: is_empty_sequence,
    Capability.GET_FINANCIAL_METRICS: is_empty_metrics,
    Capability.GET_DIVIDENDS: never_empty,
    Capability.GET_EARNINGS: never_empty,
    Capability.GET_UPCOMING_EARNINGS: never_empty,
    Capability.SEARCH_SYMBOLS: is_empty_sequence,
    Capability.GET_MARKET_NEWS: is_empty_sequence,
}


def policy_for(capabilities: Iterable[Capability], default: Optional[EmptinessPolicy] = None) -> EmptinessPolicy:
    """Pick the policy of the first operation tag among capabilities"""
    for capability in capabilities:
        policy = POLICIES.get(capability)
        if policy is not None:
            return policy
    return default or never_empty
