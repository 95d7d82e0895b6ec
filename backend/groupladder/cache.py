from __future__ import annotations

from asyncio import Lock
from collections.abc import Awaitable, Callable, Iterable
import time
from typing import Any, TypeVar

from .config import STATS_CACHE_MAX_ENTRIES, STATS_CACHE_TTL_SECONDS

T = TypeVar("T")


class TTLCache:
    """In-memory memo for values derived from a group's match ledger.

    Keys are tuples whose first element is the owning group id. Callers put
    the ledger version in the key, so an append never serves a stale value
    even before ``invalidate_groups`` runs. Nothing stored here is a source
    of truth.

    Writes drop expired entries and then the oldest ones until at most
    ``max_entries`` remain.
    """

    def __init__(self, ttl_seconds: float = 300.0, max_entries: int = 512) -> None:
        self._ttl = ttl_seconds
        self._max_entries = max(1, max_entries)
        self._lock = Lock()
        self._store: dict[Any, tuple[Any, float]] = {}

    async def get(self, key: Any) -> Any | None:
        now = time.monotonic()
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at <= now:
                del self._store[key]
                return None
            return value

    async def set(self, key: Any, value: Any, ttl_seconds: float | None = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        now = time.monotonic()
        async with self._lock:
            self._store.pop(key, None)
            if ttl <= 0:
                return
            self._sweep(now)
            while len(self._store) >= self._max_entries:
                # dicts keep insertion order, so the first key is the oldest
                del self._store[next(iter(self._store))]
            self._store[key] = (value, now + ttl)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]

    async def get_or_compute(
        self, key: Any, compute: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for ``key`` or store what ``compute`` yields.

        ``compute`` runs outside the lock; two concurrent misses both compute
        and the later write wins, which is harmless for deterministic folds.
        """

        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await compute()
        await self.set(key, value)
        return value

    async def invalidate_groups(self, group_ids: Iterable[str]) -> None:
        ids = {gid for gid in group_ids if gid}
        if not ids:
            return
        async with self._lock:
            stale = [
                key
                for key in self._store
                if isinstance(key, tuple) and key and key[0] in ids
            ]
            for key in stale:
                del self._store[key]

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


stats_cache = TTLCache(
    ttl_seconds=STATS_CACHE_TTL_SECONDS, max_entries=STATS_CACHE_MAX_ENTRIES
)
