"""
Fallback Executor
Resolves one value for one key by walking providers in priority order
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Tuple, TypeVar

from .capabilities import Capability
from .errors import AllProvidersFailedError, EmptyResultError, NoProviderAvailableError
from .policies import EmptinessPolicy, policy_for
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")

AdapterOperation = Callable[[Any], Awaitable[T]]


class FallbackExecutor:
    """
    First non-empty result wins

    A provider that raises and a provider that answers with an empty payload
    are treated the same way: both move on to the next candidate. Only when
    every candidate is exhausted does the caller see AllProvidersFailedError.
    """

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def resolve(
        self,
        capability: Capability,
        operation: AdapterOperation,
        *,
        requires: Iterable[Capability] = (),
        is_empty: Optional[EmptinessPolicy] = None,
        label: Optional[str] = None,
    ) -> T:
        capabilities = (capability, *requires)
        candidates = self.registry.candidates_for(*capabilities)
        if not candidates:
            raise NoProviderAvailableError(capabilities)

        policy = is_empty or policy_for(capabilities)
        label = label or "+".join(c.value for c in capabilities)
        attempts: List[Tuple[str, BaseException]] = []

        for candidate in candidates:
            try:
                result = await operation(candidate.adapter)
            except Exception as e:
                logger.warning(f"{candidate.name} failed for {label}: {e}")
                attempts.append((candidate.name, e))
                continue

            if policy(result):
                logger.info(f"{candidate.name} returned no data for {label}, trying next provider")
                attempts.append((candidate.name, EmptyResultError(candidate.name, label)))
                continue

            logger.debug(f"Resolved {label} from {candidate.name}")
            return result

        logger.error(f"All {len(candidates)} providers failed for {label}")
        raise AllProvidersFailedError(capabilities, attempts)
