"""
Per-key result containers for batch operations
"""

from dataclasses import dataclass
from typing import Dict, Generic, Optional, TypeVar

from .errors import NotYetResolvedError

T = TypeVar("T")


@dataclass
class KeyedResult(Generic[T]):
    """Outcome of resolving one key: either a value or an error, never both"""
    key: str
    success: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    def __post_init__(self):
        if self.success:
            if self.value is None:
                raise ValueError(f"Successful result for {self.key} needs a value")
            if self.error is not None:
                raise ValueError(f"Successful result for {self.key} cannot carry an error")
        elif self.error is None:
            raise ValueError(f"Failed result for {self.key} needs an error")

    @classmethod
    def ok(cls, key: str, value: T) -> "KeyedResult[T]":
        return cls(key=key, success=True, value=value)

    @classmethod
    def failed(cls, key: str, error: BaseException) -> "KeyedResult[T]":
        return cls(key=key, success=False, error=error)

    @classmethod
    def pending(cls, key: str) -> "KeyedResult[T]":
        return cls.failed(key, NotYetResolvedError(key))


BatchResult = Dict[str, KeyedResult]


def is_complete(batch: BatchResult) -> bool:
    """True when every key in the batch resolved successfully"""
    return all(result.success for result in batch.values())
