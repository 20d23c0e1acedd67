"""
Exception taxonomy for provider resolution

Adapter-level faults (ProviderError and subclasses) are recovered by the
fallback executor and batch resolver. Terminal errors (NoProviderAvailableError,
AllProvidersFailedError) only reach callers of single-key operations.
"""

from typing import Iterable, List, Optional, Sequence, Tuple


class StocksApiError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(StocksApiError):
    """Invalid provider or client configuration"""


class DuplicateProviderError(StocksApiError):
    """A provider with the same name is already registered"""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Provider '{name}' is already registered")


class ProviderError(StocksApiError):
    """A single adapter call failed"""

    def __init__(self, provider: Optional[str], message: str):
        self.provider = provider
        self.message = message
        prefix = f"{provider}: " if provider else ""
        super().__init__(f"{prefix}{message}")


class ProviderRequestError(ProviderError):
    """HTTP or transport failure while talking to a vendor"""

    def __init__(self, provider: Optional[str], message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(provider, message)


class UnsupportedOperationError(ProviderError):
    """The adapter does not implement the requested operation"""

    def __init__(self, provider: Optional[str], operation: str):
        self.operation = operation
        super().__init__(provider, f"{operation} is not supported")


class EmptyResultError(ProviderError):
    """The adapter answered but the payload carried no usable data"""

    def __init__(self, provider: Optional[str] = None, key: Optional[str] = None):
        self.key = key
        detail = f" for {key}" if key else ""
        super().__init__(provider, f"empty result{detail}")


class NotYetResolvedError(StocksApiError):
    """Initial marker for a batch key no provider has answered yet"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No provider could fetch {key}")


def _describe(capabilities: Iterable) -> str:
    return "+".join(getattr(c, "value", str(c)) for c in capabilities)


class NoProviderAvailableError(StocksApiError):
    """Nothing is registered for the requested capabilities"""

    def __init__(self, capabilities: Sequence):
        self.capabilities = tuple(capabilities)
        super().__init__(f"No provider available for {_describe(self.capabilities)}")


class AllProvidersFailedError(StocksApiError):
    """Every candidate provider raised or returned an empty result"""

    def __init__(self, capabilities: Sequence, attempts: List[Tuple[str, BaseException]]):
        self.capabilities = tuple(capabilities)
        self.attempts = list(attempts)
        summary = "; ".join(f"{name}: {error}" for name, error in self.attempts)
        super().__init__(
            f"All providers failed for {_describe(self.capabilities)} "
            f"({len(self.attempts)} attempts): {summary}"
        )

    @property
    def errors(self) -> List[BaseException]:
        return [error for _, error in self.attempts]
