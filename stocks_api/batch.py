"""
Batch Resolution
Fills a per-key result map across providers, and chunks per-key work inside one provider
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from .capabilities import Capability
from .errors import EmptyResultError, NoProviderAvailableError
from .policies import EmptinessPolicy, policy_for
from .registry import ProviderRegistry
from .results import BatchResult, KeyedResult, is_complete

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5
DEFAULT_CHUNK_PAUSE = 1.0  # seconds between chunks

BatchOperation = Callable[[Any, List[str]], Awaitable[BatchResult]]
KeyOperation = Callable[[str], Awaitable[Any]]


def unique_keys(keys: Iterable[str]) -> List[str]:
    """Drop duplicate keys, keeping first-seen order"""
    return list(dict.fromkeys(keys))


async def resolve_in_chunks(
    keys: Iterable[str],
    operation: KeyOperation,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    pause: float = DEFAULT_CHUNK_PAUSE,
    concurrency: Optional[int] = None,
    is_empty: Optional[EmptinessPolicy] = None,
    provider: Optional[str] = None,
) -> BatchResult:
    """
    Run a single-key operation over many keys, one chunk at a time

    Keys inside a chunk run concurrently (bounded by ``concurrency``, which
    defaults to the chunk size). The next chunk starts only after every key
    in the current one has settled, with a fixed pause in between. There is
    no cross-provider fallback here; a failed key is simply recorded.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")

    keys = unique_keys(keys)
    semaphore = asyncio.Semaphore(concurrency or chunk_size)
    results: BatchResult = {}

    async def attempt(key: str) -> KeyedResult:
        async with semaphore:
            try:
                value = await operation(key)
            except Exception as e:
                logger.debug(f"{provider or 'provider'} failed for {key}: {e}")
                return KeyedResult.failed(key, e)

        if value is None or (is_empty is not None and is_empty(value)):
            return KeyedResult.failed(key, EmptyResultError(provider, key))
        return KeyedResult.ok(key, value)

    for start in range(0, len(keys), chunk_size):
        chunk = keys[start:start + chunk_size]
        settled = await asyncio.gather(*(attempt(key) for key in chunk))
        for result in settled:
            results[result.key] = result

        if start + chunk_size < len(keys) and pause > 0:
            await asyncio.sleep(pause)

    return results


class BatchResolver:
    """
    Resolve as many keys as possible, preferring higher-priority providers

    A key that one provider resolved is never overwritten by a later one,
    and every requested key appears exactly once in the returned map.
    """

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    async def resolve_batch(
        self,
        capability: Capability,
        keys: Iterable[str],
        operation: BatchOperation,
        *,
        requires: Iterable[Capability] = (),
        is_empty: Optional[EmptinessPolicy] = None,
    ) -> BatchResult:
        keys = unique_keys(keys)
        results: BatchResult = {key: KeyedResult.pending(key) for key in keys}
        if not keys:
            return results

        capabilities = (capability, *requires)
        policy = is_empty or policy_for(capabilities)
        candidates = self.registry.candidates_for(*capabilities)
        if not candidates:
            logger.warning(f"No provider available for {len(keys)} keys")
            error = NoProviderAvailableError(capabilities)
            return {key: KeyedResult.failed(key, error) for key in keys}

        for candidate in candidates:
            unresolved = [key for key in keys if not results[key].success]

            try:
                provider_results = await operation(candidate.adapter, unresolved)
            except Exception as e:
                logger.warning(f"{candidate.name} batch call failed for {len(unresolved)} keys: {e}")
                continue

            resolved = 0
            for key, outcome in (provider_results or {}).items():
                current = results.get(key)
                # Ignore keys nobody asked for, and never regress a resolved key
                if current is None or current.success:
                    continue
                if outcome.success and policy(outcome.value):
                    results[key] = KeyedResult.failed(key, EmptyResultError(candidate.name, key))
                elif outcome.success:
                    results[key] = KeyedResult.ok(key, outcome.value)
                    resolved += 1
                elif outcome.error is not None:
                    results[key] = KeyedResult.failed(key, outcome.error)

            logger.info(f"{candidate.name} resolved {resolved}/{len(unresolved)} keys")

            if is_complete(results):
                break

        failed = [key for key, result in results.items() if not result.success]
        if failed:
            logger.warning(f"Could not resolve {len(failed)}/{len(keys)} keys: {', '.join(failed)}")
        return results
