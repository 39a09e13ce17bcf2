"""Process-wide TTL caches for the knowledge cascade.

Shared by every call handled in the process, so each cache is split
into shards with one lock per shard. Stale reads within the TTL are
acceptable; entries are dropped on expiry or explicit invalidation.
"""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

from frontdesk.observability.logging import get_logger
from frontdesk.observability.metrics import CACHE_HITS, CACHE_MISSES

logger = get_logger(__name__)

V = TypeVar("V")


@dataclass
class _Entry(Generic[V]):
    value: V
    expires_at: float


class _Shard(Generic[V]):
    def __init__(self, max_entries: int) -> None:
        self.lock = threading.Lock()
        self.entries: OrderedDict[Hashable, _Entry[V]] = OrderedDict()
        self.max_entries = max_entries


class TTLCache(Generic[V]):
    """Sharded, lock-guarded mapping with per-entry expiry.

    Args:
        name: Cache name used as the metrics label
        ttl_seconds: Default time-to-live for new entries
        max_entries: Upper bound across all shards; the oldest entry of
            a full shard is evicted on insert
        shards: Number of lock shards
        clock: Monotonic time source, injectable for tests
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float,
        max_entries: int = 10000,
        shards: int = 16,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        shards = max(1, shards)
        per_shard = max(1, -(-max_entries // shards))
        self.name = name
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._shards: list[_Shard[V]] = [_Shard(per_shard) for _ in range(shards)]

    def _shard(self, key: Hashable) -> _Shard[V]:
        return self._shards[hash(key) % len(self._shards)]

    def get(self, key: Hashable) -> V | None:
        """Return the cached value, or None when missing or expired."""
        shard = self._shard(key)
        now = self._clock()
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is not None and entry.expires_at <= now:
                del shard.entries[key]
                entry = None

        if entry is None:
            CACHE_MISSES.labels(cache=self.name).inc()
            return None
        CACHE_HITS.labels(cache=self.name).inc()
        return entry.value

    def set(self, key: Hashable, value: V, ttl_seconds: float | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._ttl_seconds
        shard = self._shard(key)
        with shard.lock:
            shard.entries.pop(key, None)
            while len(shard.entries) >= shard.max_entries:
                shard.entries.popitem(last=False)
            shard.entries[key] = _Entry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: Hashable) -> bool:
        shard = self._shard(key)
        with shard.lock:
            return shard.entries.pop(key, None) is not None

    def delete_where(self, predicate: Callable[[Hashable], bool]) -> int:
        """Drop every key matching ``predicate``; returns how many."""
        removed = 0
        for shard in self._shards:
            with shard.lock:
                doomed = [key for key in shard.entries if predicate(key)]
                for key in doomed:
                    del shard.entries[key]
                removed += len(doomed)
        if removed:
            logger.debug("cache_entries_invalidated", cache=self.name, count=removed)
        return removed

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total


def key_belongs_to(tenant_id: str, source_id: str | None = None) -> Callable[[Hashable], bool]:
    """Predicate over ``(tenant_id, source_id, ...)`` tuple keys."""

    def predicate(key: Hashable) -> bool:
        if not isinstance(key, tuple) or not key or key[0] != tenant_id:
            return False
        return source_id is None or (len(key) > 1 and key[1] == source_id)

    return predicate
