"""Exchange rate cache with stale-while-revalidate semantics.

The cache holds one ExchangeRateSet. A fresh set is served as-is. A stale
or missing set triggers a single refresh shared by every concurrent caller:
callers that arrive while a refresh is running await that same refresh
instead of starting their own. When the refresh fails the last known set is
served, however old; only a cache that never held a set falls back to the
static table.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Mapping
from datetime import timedelta
from typing import Callable, Optional

from tradelytics.exceptions import RateUnavailable
from tradelytics.models import BASE_CURRENCY, ExchangeRateSet, RateCacheEntry
from tradelytics.stores.base import RateCacheStore

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS = timedelta(hours=24)

# Base: USD
FALLBACK_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "JPY": 150.5,
    "INR": 83.5,
    "AUD": 1.52,
    "CAD": 1.36,
    "CNY": 7.23,
}

RefreshFn = Callable[[str], Awaitable[ExchangeRateSet]]


class RateCache:
    """Time-boxed cache of exchange rates with a static fallback."""

    def __init__(
        self,
        refresh: RefreshFn,
        *,
        store: Optional[RateCacheStore] = None,
        clock: Callable[[], float] = time.time,
        freshness: timedelta = DEFAULT_FRESHNESS,
        base_currency: str = BASE_CURRENCY,
        fallback_rates: Optional[Mapping[str, float]] = None,
    ):
        """Initialize the cache.

        Args:
            refresh: Coroutine function fetching the latest set for a base currency,
                e.g. ``RateProvider.fetch_latest``.
            store: Optional persistence for the single cache entry.
            clock: Returns the current time in epoch seconds.
            freshness: Age below which a cached set is served without refresh.
            base_currency: Base currency code.
            fallback_rates: Static table used when no set was ever cached.
        """
        self._refresh = refresh
        self._store = store
        self._clock = clock
        self._freshness_ms = int(freshness.total_seconds() * 1000)
        self._base = base_currency.upper()
        self._fallback_rates = dict(FALLBACK_RATES if fallback_rates is None else fallback_rates)
        self._fallback_rates.setdefault(self._base, 1.0)

        self._current: Optional[ExchangeRateSet] = None
        self._loaded = store is None
        self._force_stale = False
        self._inflight: Optional[asyncio.Task] = None
        self._load_lock = asyncio.Lock()

    @property
    def current(self) -> Optional[ExchangeRateSet]:
        """The cached set, fresh or stale, without triggering a refresh."""
        self._load_persisted()
        return self._current

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _is_fresh(self, rates: ExchangeRateSet) -> bool:
        return not self._force_stale and rates.age_ms(self._now_ms()) < self._freshness_ms

    def _fallback_set(self) -> ExchangeRateSet:
        return ExchangeRateSet(
            base=self._base,
            rates=self._fallback_rates,
            timestamp=0,
            fallback=True,
        )

    def _read_persisted(self) -> Optional[RateCacheEntry]:
        try:
            return self._store.load_rate_entry()
        except Exception:
            logger.warning("Ignoring unreadable persisted rate cache", exc_info=True)
            return None

    def _adopt(self, entry: Optional[RateCacheEntry]) -> None:
        self._loaded = True
        if entry is not None and self._current is None:
            self._current = ExchangeRateSet.from_entry(entry, self._base)

    def _load_persisted(self) -> None:
        if not self._loaded:
            self._adopt(self._read_persisted())

    async def _ensure_loaded(self) -> None:
        """Read the persisted entry once, off the event loop."""
        if self._loaded:
            return
        async with self._load_lock:
            if not self._loaded:
                self._adopt(await asyncio.to_thread(self._read_persisted))

    def _persist(self, rates: ExchangeRateSet) -> None:
        if self._store is None:
            return
        try:
            self._store.save_rate_entry(rates.to_entry())
        except Exception:
            logger.warning("Failed to persist refreshed rates", exc_info=True)

    def invalidate(self) -> None:
        """Treat the current set as stale so the next read revalidates."""
        self._force_stale = True

    async def get_rates(self) -> ExchangeRateSet:
        """Return the best available rate set.

        Returns:
            The fresh cached set, a newly refreshed set, the stale cached set
            if refresh failed, or the static fallback table.
        """
        await self._ensure_loaded()
        current = self._current
        if current is not None and self._is_fresh(current):
            logger.debug("Rate cache hit (age %d ms)", current.age_ms(self._now_ms()))
            return current

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._revalidate())
            self._inflight.add_done_callback(self._clear_inflight)
        # Shielded so one caller's cancellation does not abort the shared refresh.
        return await asyncio.shield(self._inflight)

    async def get_rate(self, currency: str) -> float:
        """Return the rate of one currency.

        Raises:
            RateUnavailable: If neither the current set nor the fallback table
                knows the currency.
        """
        currency = currency.strip().upper()
        rates = await self.get_rates()
        rate = rates.rate_for(currency)
        if rate is None:
            rate = self._fallback_rates.get(currency)
        if rate is None:
            raise RateUnavailable(currency)
        return rate

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _revalidate(self) -> ExchangeRateSet:
        try:
            fresh = await self._refresh(self._base)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._current is not None:
                logger.warning("Rate refresh failed, serving cached rates: %s", e)
                return self._current
            logger.warning("Rate refresh failed with no cache, using fallback rates: %s", e)
            return self._fallback_set()

        # Stamp with the cache clock so freshness is measured on one timeline.
        fresh = fresh.model_copy(update={"timestamp": self._now_ms(), "fallback": False})
        self._current = fresh
        self._force_stale = False
        await asyncio.to_thread(self._persist, fresh)
        logger.info("Refreshed %d exchange rates", len(fresh.rates))
        return fresh
