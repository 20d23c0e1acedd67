"""
Unit Tests for Batch Resolution
Tests for BatchResolver and per-provider chunking
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from stocks_api.batch import BatchResolver, resolve_in_chunks, unique_keys
from stocks_api.capabilities import Capability
from stocks_api.errors import (
    EmptyResultError,
    NoProviderAvailableError,
    NotYetResolvedError,
    ProviderError,
)
from stocks_api.policies import is_empty_quote
from stocks_api.results import KeyedResult, is_complete


def batch_quotes(adapter, keys):
    return adapter.get_quotes(keys)


class TestBatchResolver:
    """Tests for multi-key resolution across providers"""

    @pytest.mark.asyncio
    async def test_fills_gaps_and_stops_early(self, registry, register, make_adapter, make_quote,
                                              quote_capabilities):
        """Test lower-priority providers fill keys the first one missed, and the third is never asked"""
        first = register(make_adapter("first", quotes={
            "AAPL": make_quote("AAPL", 190.0),
            "MSFT": make_quote("MSFT", 410.0),
            "ZZZZ": ProviderError("first", "Unknown symbol"),
        }), 1, quote_capabilities)
        second = register(make_adapter("second", quotes={
            "ZZZZ": make_quote("ZZZZ", 1.5),
        }), 2, quote_capabilities)
        third = register(make_adapter("third"), 3, quote_capabilities)

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL", "ZZZZ", "MSFT"], batch_quotes, requires=(Capability.GET_QUOTES,)
        )

        assert list(results) == ["AAPL", "ZZZZ", "MSFT"]
        assert is_complete(results)
        assert results["ZZZZ"].value.price == 1.5
        assert first.call_count("get_quotes") == 1
        assert second.calls[0] == ("get_quotes", ("ZZZZ",))
        assert third.calls == []

    @pytest.mark.asyncio
    async def test_complete_first_provider_skips_others(self, registry, register, make_adapter, make_quote):
        """Test no further provider is invoked once every key resolved"""
        register(make_adapter("first", quotes={
            "AAPL": make_quote("AAPL"), "MSFT": make_quote("MSFT"),
        }), 1)
        second = register(make_adapter("second"), 2)

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL", "MSFT"], batch_quotes
        )

        assert is_complete(results)
        assert second.calls == []

    @pytest.mark.asyncio
    async def test_successful_key_never_regressed(self, registry, register, make_adapter, make_quote):
        """Test a later provider's answer cannot overwrite an earlier success"""
        register(make_adapter("first"), 1)
        register(make_adapter("second"), 2)
        first_quote = make_quote("AAPL", 190.0)

        async def operation(adapter, keys):
            if adapter.name == "first":
                return {
                    "AAPL": KeyedResult.ok("AAPL", first_quote),
                    "MSFT": KeyedResult.failed("MSFT", ProviderError("first", "down")),
                }
            # Report every key, including the one already resolved
            return {
                "AAPL": KeyedResult.failed("AAPL", ProviderError("second", "down")),
                "MSFT": KeyedResult.ok("MSFT", make_quote("MSFT", 410.0)),
            }

        results = await BatchResolver(registry).resolve_batch(Capability.REALTIME, ["AAPL", "MSFT"], operation)

        assert results["AAPL"].value is first_quote
        assert results["MSFT"].value.price == 410.0

    @pytest.mark.asyncio
    async def test_empty_success_falls_through(self, registry, register, make_adapter, make_quote):
        """Test a zero-valued quote reported as success does not resolve the key"""
        register(make_adapter("first"), 1)
        second = register(make_adapter("second", quotes={"AAPL": make_quote("AAPL", 190.0)}), 2)

        async def operation(adapter, keys):
            if adapter.name == "first":
                return {"AAPL": KeyedResult.ok("AAPL", make_quote("AAPL", price=0))}
            return await adapter.get_quotes(keys)

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL"], operation, requires=(Capability.GET_QUOTES,)
        )

        assert results["AAPL"].value.price == 190.0
        assert second.call_count("get_quotes") == 1

    @pytest.mark.asyncio
    async def test_empty_success_recorded_as_empty_result(self, registry, register, make_adapter, make_quote):
        """Test an empty value left unresolved carries EmptyResultError"""
        register(make_adapter("only"), 1)

        async def operation(adapter, keys):
            return {"AAPL": KeyedResult.ok("AAPL", make_quote("AAPL", price=0))}

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL"], operation, is_empty=is_empty_quote
        )

        assert not results["AAPL"].success
        assert isinstance(results["AAPL"].error, EmptyResultError)

    @pytest.mark.asyncio
    async def test_adapter_level_failure_leaves_map_unchanged(self, registry, register, make_adapter,
                                                              make_quote):
        """Test a provider whose whole batch call raises is skipped"""
        register(make_adapter("down", batch_error=ProviderError("down", "HTTP 503")), 1)
        register(make_adapter("up", quotes={"AAPL": make_quote("AAPL")}), 2)

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL", "NOPE"], batch_quotes
        )

        assert results["AAPL"].success
        assert not results["NOPE"].success
        assert isinstance(results["NOPE"].error, ProviderError)

    @pytest.mark.asyncio
    async def test_unresolved_keys_keep_pending_marker_when_every_provider_raises(
            self, registry, register, make_adapter):
        """Test completeness when every batch call fails"""
        register(make_adapter("down", batch_error=RuntimeError("boom")), 1)

        results = await BatchResolver(registry).resolve_batch(
            Capability.REALTIME, ["AAPL", "MSFT"], batch_quotes
        )

        assert list(results) == ["AAPL", "MSFT"]
        assert all(isinstance(r.error, NotYetResolvedError) for r in results.values())

    @pytest.mark.asyncio
    async def test_records_most_recent_error(self, registry, register, make_adapter):
        """Test failed keys carry the last provider's error"""
        register(make_adapter("first", quotes={"ZZZZ": ProviderError("first", "first error")}), 1)
        register(make_adapter("second", quotes={"ZZZZ": ProviderError("second", "second error")}), 2)

        results = await BatchResolver(registry).resolve_batch(Capability.REALTIME, ["ZZZZ"], batch_quotes)

        assert results["ZZZZ"].error.provider == "second"

    @pytest.mark.asyncio
    async def test_extra_keys_are_ignored(self, registry, register, make_adapter, make_quote):
        """Test the result holds only requested keys"""
        register(make_adapter("chatty"), 1)

        async def operation(adapter, keys):
            return {
                "AAPL": KeyedResult.ok("AAPL", make_quote("AAPL")),
                "EXTRA": KeyedResult.ok("EXTRA", make_quote("EXTRA")),
            }

        results = await BatchResolver(registry).resolve_batch(Capability.REALTIME, ["AAPL"], operation)

        assert list(results) == ["AAPL"]

    @pytest.mark.asyncio
    async def test_empty_and_duplicate_keys(self, registry, register, make_adapter, make_quote):
        """Test empty batches touch no provider and duplicates collapse"""
        adapter = register(make_adapter("only", quotes={"AAPL": make_quote("AAPL")}), 1)
        resolver = BatchResolver(registry)

        assert await resolver.resolve_batch(Capability.REALTIME, [], batch_quotes) == {}
        assert adapter.calls == []

        results = await resolver.resolve_batch(Capability.REALTIME, ["AAPL", "AAPL"], batch_quotes)
        assert list(results) == ["AAPL"]

    @pytest.mark.asyncio
    async def test_no_provider_marks_every_key(self, registry):
        """Test every key fails when nothing supports the capability"""
        results = await BatchResolver(registry).resolve_batch(Capability.NEWS, ["AAPL", "MSFT"], batch_quotes)

        assert set(results) == {"AAPL", "MSFT"}
        assert all(isinstance(r.error, NoProviderAvailableError) for r in results.values())


class TestResolveInChunks:
    """Tests for chunked per-key fan-out inside one provider"""

    def test_unique_keys_preserves_order(self):
        """Test duplicate removal keeps first-seen order"""
        assert unique_keys(["B", "A", "B", "C", "A"]) == ["B", "A", "C"]

    @pytest.mark.asyncio
    async def test_captures_per_key_outcomes(self, make_quote):
        """Test successes, errors and empty results are recorded per key"""
        async def operation(key):
            if key == "BAD":
                raise ProviderError("p", "HTTP 404")
            if key == "ZERO":
                return make_quote(key, price=0)
            return make_quote(key)

        results = await resolve_in_chunks(
            ["AAPL", "BAD", "ZERO"], operation, pause=0, is_empty=is_empty_quote, provider="p"
        )

        assert results["AAPL"].success
        assert isinstance(results["BAD"].error, ProviderError)
        assert isinstance(results["ZERO"].error, EmptyResultError)

    @pytest.mark.asyncio
    async def test_chunks_run_sequentially(self):
        """Test a chunk only starts after the previous chunk settled"""
        events = []

        async def operation(key):
            events.append(("start", key))
            await asyncio.sleep(0.01)
            events.append(("end", key))
            return key

        await resolve_in_chunks(["A", "B", "C", "D", "E"], operation, chunk_size=2, pause=0)

        def position(kind, key):
            return events.index((kind, key))

        assert max(position("end", k) for k in "AB") < min(position("start", k) for k in "CD")
        assert max(position("end", k) for k in "CD") < position("start", "E")

    @pytest.mark.asyncio
    async def test_keys_within_chunk_run_concurrently(self):
        """Test fan-out inside a chunk"""
        in_flight = 0
        peak = 0

        async def operation(key):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return key

        await resolve_in_chunks(list("ABCDEF"), operation, chunk_size=3, pause=0)

        assert peak == 3

    @pytest.mark.asyncio
    async def test_concurrency_bound(self):
        """Test the semaphore caps in-flight requests below the chunk size"""
        in_flight = 0
        peak = 0

        async def operation(key):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return key

        results = await resolve_in_chunks(list("ABCDE"), operation, chunk_size=5, concurrency=2, pause=0)

        assert peak == 2
        assert is_complete(results)

    @pytest.mark.asyncio
    async def test_pause_between_chunks_only(self):
        """Test one pause per chunk boundary and none after the last chunk"""
        async def operation(key):
            return key

        with patch("stocks_api.batch.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await resolve_in_chunks(list("ABCDEFGHIJK"), operation, chunk_size=5, pause=1.0)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(1.0)

    @pytest.mark.asyncio
    async def test_invalid_chunk_size(self):
        """Test chunk size must be positive"""
        async def operation(key):
            return key

        with pytest.raises(ValueError):
            await resolve_in_chunks(["A"], operation, chunk_size=0)
