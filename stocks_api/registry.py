"""
Provider Registry
Holds the adapters a client can route to, ordered by priority
"""

import logging
from typing import Any, Dict, List, NamedTuple, Optional

from .capabilities import Capability, ProviderDescriptor
from .errors import DuplicateProviderError

logger = logging.getLogger(__name__)


class RegisteredProvider(NamedTuple):
    descriptor: ProviderDescriptor
    adapter: Any

    @property
    def name(self) -> str:
        return self.descriptor.name


class ProviderRegistry:
    """
    Explicit, per-client registry of provider adapters

    Lower priority numbers are tried first. Providers with equal priority keep
    their registration order.
    """

    def __init__(self):
        self._providers: List[RegisteredProvider] = []
        self._by_name: Dict[str, RegisteredProvider] = {}

    def register(self, descriptor: ProviderDescriptor, adapter: Any) -> None:
        if descriptor.name in self._by_name:
            raise DuplicateProviderError(descriptor.name)

        entry = RegisteredProvider(descriptor, adapter)
        self._providers.append(entry)
        self._by_name[descriptor.name] = entry
        enabled = ", ".join(c.value for c in descriptor.capabilities.enabled())
        logger.info(f"Registered provider {descriptor.name} (priority {descriptor.priority}): {enabled}")

    def get_provider(self, name: str) -> Optional[Any]:
        entry = self._by_name.get(name)
        return entry.adapter if entry else None

    def candidates_for(self, *capabilities: Capability) -> List[RegisteredProvider]:
        """Registered providers supporting every given capability, best first"""
        matching = [p for p in self._providers if p.descriptor.supports(*capabilities)]
        # sorted() is stable, so ties keep registration order
        return sorted(matching, key=lambda p: p.descriptor.priority)

    def providers_for(self, *capabilities: Capability) -> List[Any]:
        return [p.adapter for p in self.candidates_for(*capabilities)]

    def descriptors(self) -> List[ProviderDescriptor]:
        return [p.descriptor for p in sorted(self._providers, key=lambda p: p.descriptor.priority)]

    def get_provider_status(self) -> Dict[str, Any]:
        status = {}
        for descriptor in self.descriptors():
            status[descriptor.name] = {
                "priority": descriptor.priority,
                "rate_limit": descriptor.rate_limit,
                "is_premium": descriptor.is_premium,
                "capabilities": [c.value for c in descriptor.capabilities.enabled()],
            }
        return status

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name
