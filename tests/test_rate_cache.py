"""Tests for the exchange rate cache.

**Feature: currency-display**
"""

import asyncio
import threading
from datetime import timedelta
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from tradelytics.currency.cache import FALLBACK_RATES, RateCache
from tradelytics.exceptions import RateProviderError, RateUnavailable
from tradelytics.models import ExchangeRateSet, RateCacheEntry
from tradelytics.stores.base import RateCacheStore

HOUR = 3600.0


class FakeClock:
    """Manually advanced clock in epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryRateStore(RateCacheStore):
    """In-memory single-entry store."""

    def __init__(self, entry: Optional[RateCacheEntry] = None):
        self.entry = entry
        self.saves = 0
        self.threads: set[int] = set()

    def load_rate_entry(self) -> Optional[RateCacheEntry]:
        self.threads.add(threading.get_ident())
        return self.entry

    def save_rate_entry(self, entry: RateCacheEntry) -> None:
        self.threads.add(threading.get_ident())
        self.entry = entry
        self.saves += 1


def live_rates(**rates: float) -> ExchangeRateSet:
    return ExchangeRateSet(base="USD", rates=rates or {"EUR": 0.9}, timestamp=1)


@pytest.fixture
def clock():
    return FakeClock()


class TestFreshness:
    """A fresh set is served without calling the provider."""

    @pytest.mark.asyncio
    async def test_fresh_hit_skips_refresh(self, clock):
        refresh = AsyncMock(return_value=live_rates())
        cache = RateCache(refresh, clock=clock)

        first = await cache.get_rates()
        clock.advance(HOUR)
        second = await cache.get_rates()

        assert refresh.await_count == 1
        assert second is first
        assert first.rates["EUR"] == 0.9
        # Stamped with the cache clock
        assert first.timestamp == int(clock.now * 1000) - int(HOUR * 1000)

    @pytest.mark.asyncio
    async def test_stale_set_is_revalidated(self, clock):
        refresh = AsyncMock(side_effect=[live_rates(EUR=0.9), live_rates(EUR=0.95)])
        cache = RateCache(refresh, clock=clock)

        await cache.get_rates()
        clock.advance(25 * HOUR)
        rates = await cache.get_rates()

        assert refresh.await_count == 2
        assert rates.rates["EUR"] == 0.95

    @pytest.mark.asyncio
    async def test_custom_freshness(self, clock):
        refresh = AsyncMock(return_value=live_rates())
        cache = RateCache(refresh, clock=clock, freshness=timedelta(minutes=5))

        await cache.get_rates()
        clock.advance(301)
        await cache.get_rates()

        assert refresh.await_count == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self, clock):
        refresh = AsyncMock(return_value=live_rates())
        cache = RateCache(refresh, clock=clock)

        await cache.get_rates()
        cache.invalidate()
        await cache.get_rates()
        await cache.get_rates()

        assert refresh.await_count == 2


class TestRefreshFailure:
    """Failures degrade to stale data, then to the static table."""

    @pytest.mark.asyncio
    async def test_stale_served_on_failure(self, clock):
        refresh = AsyncMock(side_effect=[live_rates(EUR=0.9), RateProviderError("HTTP 500")])
        cache = RateCache(refresh, clock=clock)

        first = await cache.get_rates()
        clock.advance(48 * HOUR)
        rates = await cache.get_rates()

        assert rates is first
        assert not rates.fallback
        assert rates.rates["EUR"] == 0.9

    @pytest.mark.asyncio
    async def test_fallback_without_cache(self, clock):
        refresh = AsyncMock(side_effect=RateProviderError("offline"))
        cache = RateCache(refresh, clock=clock)

        rates = await cache.get_rates()

        assert rates.fallback
        assert rates.timestamp == 0
        assert rates.rates == FALLBACK_RATES
        assert cache.current is None

    @pytest.mark.asyncio
    async def test_fallback_is_not_cached(self, clock):
        refresh = AsyncMock(side_effect=[RateProviderError("offline"), live_rates(EUR=0.91)])
        cache = RateCache(refresh, clock=clock)

        assert (await cache.get_rates()).fallback
        rates = await cache.get_rates()

        assert refresh.await_count == 2
        assert not rates.fallback
        assert rates.rates["EUR"] == 0.91


class TestSingleFlight:
    """Concurrent callers share one refresh."""

    @pytest.mark.asyncio
    async def test_concurrent_calls_refresh_once(self, clock):
        release = asyncio.Event()
        calls = 0

        async def refresh(base: str) -> ExchangeRateSet:
            nonlocal calls
            calls += 1
            await release.wait()
            return live_rates(EUR=0.9)

        cache = RateCache(refresh, clock=clock)
        tasks = [asyncio.create_task(cache.get_rates()) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.refreshing

        release.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert all(result is results[0] for result in results)
        assert not cache.refreshing

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_refresh(self, clock):
        release = asyncio.Event()
        refresh_calls = 0

        async def refresh(base: str) -> ExchangeRateSet:
            nonlocal refresh_calls
            refresh_calls += 1
            await release.wait()
            return live_rates(EUR=0.9)

        cache = RateCache(refresh, clock=clock)
        first = asyncio.create_task(cache.get_rates())
        await asyncio.sleep(0)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        second = asyncio.create_task(cache.get_rates())
        await asyncio.sleep(0)
        release.set()
        rates = await second

        assert refresh_calls == 1
        assert rates.rates["EUR"] == 0.9


class TestPersistence:
    """The cache entry survives across cache instances."""

    @pytest.mark.asyncio
    async def test_refresh_is_persisted(self, clock):
        store = MemoryRateStore()
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), store=store, clock=clock)

        await cache.get_rates()

        assert store.saves == 1
        assert store.entry.rates == {"EUR": 0.9}
        assert store.entry.timestamp == int(clock.now * 1000)

    @pytest.mark.asyncio
    async def test_persisted_fresh_entry_is_used(self, clock):
        store = MemoryRateStore(
            RateCacheEntry(rates={"EUR": 0.88}, timestamp=int(clock.now * 1000))
        )
        refresh = AsyncMock(return_value=live_rates(EUR=0.9))
        cache = RateCache(refresh, store=store, clock=clock)

        rates = await cache.get_rates()

        refresh.assert_not_awaited()
        assert rates.rates["EUR"] == 0.88

    @pytest.mark.asyncio
    async def test_persisted_stale_entry_survives_failure(self, clock):
        store = MemoryRateStore(RateCacheEntry(rates={"EUR": 0.88}, timestamp=0))
        cache = RateCache(AsyncMock(side_effect=RateProviderError("down")), store=store, clock=clock)

        rates = await cache.get_rates()

        assert not rates.fallback
        assert rates.rates["EUR"] == 0.88

    @pytest.mark.asyncio
    async def test_fallback_is_not_persisted(self, clock):
        store = MemoryRateStore()
        cache = RateCache(AsyncMock(side_effect=RateProviderError("down")), store=store, clock=clock)

        await cache.get_rates()

        assert store.saves == 0

    @pytest.mark.asyncio
    async def test_store_io_runs_off_the_event_loop(self, clock):
        store = MemoryRateStore(RateCacheEntry(rates={"EUR": 0.88}, timestamp=0))
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), store=store, clock=clock)

        await cache.get_rates()

        assert store.saves == 1
        assert store.threads
        assert threading.get_ident() not in store.threads


class TestGetRate:
    """Single-currency lookups."""

    @pytest.mark.asyncio
    async def test_known_rate(self, clock):
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), clock=clock)
        assert await cache.get_rate("eur") == 0.9

    @pytest.mark.asyncio
    async def test_base_currency_is_one(self, clock):
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), clock=clock)
        assert await cache.get_rate("USD") == 1.0

    @pytest.mark.asyncio
    async def test_missing_code_uses_fallback_table(self, clock):
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), clock=clock)
        assert await cache.get_rate("JPY") == FALLBACK_RATES["JPY"]

    @pytest.mark.asyncio
    async def test_unknown_code_raises(self, clock):
        cache = RateCache(AsyncMock(return_value=live_rates(EUR=0.9)), clock=clock)
        with pytest.raises(RateUnavailable) as exc_info:
            await cache.get_rate("XYZ")
        assert exc_info.value.currency == "XYZ"
