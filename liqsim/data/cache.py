"""TTL cache wrapper around any ``WaterfallQueries`` provider."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from liqsim.data.interfaces import QueueFill, SaleSimulation, SellOrder, WaterfallQueries
from liqsim.position.cdp_position import PositionSnapshot

_MISSING = object()


class _TTLCache:
    """Simple dict-based cache with per-entry TTL expiry.

    Expired entries are dropped on read and purged on every write, so keys
    that are never read again do not accumulate. Safe to share between the
    fan-out worker threads.
    """

    def __init__(self, ttl: float) -> None:
        self._ttl = ttl
        self._store: dict[Any, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Any) -> Any:
        """Cached value, or ``_MISSING`` (None is a valid cached value)."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return _MISSING
            ts, value = entry
            if time.monotonic() - ts >= self._ttl:
                self._store.pop(key, None)
                return _MISSING
            return value

    def set(self, key: Any, value: Any) -> None:
        now = time.monotonic()
        with self._lock:
            self._purge(now)
            self._store[key] = (now, value)

    def _purge(self, now: float) -> None:
        expired = [key for key, (ts, _) in self._store.items() if now - ts >= self._ttl]
        for key in expired:
            del self._store[key]

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class CachedQueries(WaterfallQueries):
    """Explicit caching layer; the waterfall itself never caches.

    Exceptions are never cached, so a failed sub-query is retried on the
    next simulation run.

    Parameters
    ----------
    inner : WaterfallQueries
        Provider to wrap.
    recall_ttl : float
        TTL for venue retrievable amounts (default 30 s).
    simulation_ttl : float
        TTL for prices, positions, queue and route simulations (default 120 s).
    """

    def __init__(
        self,
        inner: WaterfallQueries,
        recall_ttl: float = 30.0,
        simulation_ttl: float = 120.0,
    ) -> None:
        self._inner = inner
        self._recall_cache = _TTLCache(recall_ttl)
        self._cache = _TTLCache(simulation_ttl)

    def _cached(self, cache: _TTLCache, key: tuple, fetcher: Callable[[], Any]) -> Any:
        value = cache.get(key)
        if value is not _MISSING:
            return value
        value = fetcher()
        cache.set(key, value)
        return value

    def get_price(self, denom: str) -> float | None:
        return self._cached(self._cache, ("price", denom), lambda: self._inner.get_price(denom))

    def read_position(self, user: str, position_id: str | None = None) -> PositionSnapshot | None:
        return self._cached(
            self._cache,
            ("position", user, position_id),
            lambda: self._inner.read_position(user, position_id),
        )

    def get_retrievable_amount(self, venue_address: str, user: str) -> float:
        return self._cached(
            self._recall_cache,
            ("retrievable", venue_address, user),
            lambda: self._inner.get_retrievable_amount(venue_address, user),
        )

    def check_liquidatible(
        self,
        asset_denom: str,
        collateral_amount: int,
        asset_price: float,
        credit_denom: str,
        credit_price: float,
    ) -> QueueFill:
        key = ("queue", asset_denom, collateral_amount, asset_price, credit_denom, credit_price)
        return self._cached(
            self._cache,
            key,
            lambda: self._inner.check_liquidatible(
                asset_denom, collateral_amount, asset_price, credit_denom, credit_price
            ),
        )

    def simulate_market_sale(
        self, sell_list: list[SellOrder], target_denom: str
    ) -> SaleSimulation | None:
        key = ("sale", tuple(sell_list), target_denom)
        return self._cached(
            self._cache, key, lambda: self._inner.simulate_market_sale(sell_list, target_denom)
        )

    def refresh(self) -> None:
        """Invalidate all cached values."""
        self._recall_cache.clear()
        self._cache.clear()
