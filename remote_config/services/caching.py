"""
In-memory cache for parsed configuration documents.

Every entry has its own time-to-live, and the cache as a whole enforces an
absolute ceiling measured from the first time a key was inserted. Refreshing
a key with set() restarts its ttl but never its ceiling, even when the old
entry already expired; only once the ceiling has passed does the key start a
new lifetime. Expired entries are dropped lazily, on the next read of the key
or the next set() after their ceiling; there is no background sweep.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict

from remote_config.domain.models import ErrorKind, Result

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class _CacheEntry:
    value: Any
    inserted_at: float
    expires_at: float
    evict_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at and now < self.evict_at


class BoundedCache:
    """
    Thread-safe key/value store with per-entry ttl and a global max lifetime.

    The clock is any callable returning seconds as a float (time.monotonic by
    default); tests pass a fake one to move time deterministically.
    """

    def __init__(self, max_lifetime: timedelta, clock: Clock = time.monotonic):
        self.max_lifetime = max_lifetime
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}
        # Ceiling per key, kept across ttl expiry until the ceiling itself passes.
        self._evict_at: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        # Keys past their ceiling, read or not.
        for key, evict_at in list(self._evict_at.items()):
            if now >= evict_at:
                del self._evict_at[key]
                self._entries.pop(key, None)

    def _lifetime_end(self, key: str, now: float) -> float:
        evict_at = self._evict_at.get(key)
        if evict_at is None or now >= evict_at:
            evict_at = now + self.max_lifetime.total_seconds()
            self._evict_at[key] = evict_at
        return evict_at

    def set(self, key: str, value: Any, ttl: timedelta) -> None:
        """
        Insert or replace the entry for key (last writer wins).

        A negative ttl stores an entry that is already expired. Keys whose
        ceiling has passed are dropped on the way.
        """
        now = self._clock()
        with self._lock:
            self._prune(now)
            self._entries[key] = _CacheEntry(
                value=value,
                inserted_at=now,
                expires_at=now + ttl.total_seconds(),
                evict_at=self._lifetime_end(key, now),
            )

    def try_get(self, key: str) -> Result[Any]:
        """Return the live value for key, or a NOT_FOUND result."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return Result.err(ErrorKind.NOT_FOUND, f"no cache entry for key: {key}")
            if not entry.is_live(now):
                del self._entries[key]
                if now >= entry.evict_at:
                    self._evict_at.pop(key, None)
                logger.debug(f"Cache entry expired: {key}")
                return Result.err(ErrorKind.NOT_FOUND, f"cache entry expired for key: {key}")
            return Result.ok(entry.value)

    def clear(self) -> None:
        """Drop every entry and every key lifetime."""
        with self._lock:
            self._entries.clear()
            self._evict_at.clear()

    def dispose(self) -> None:
        """Release all held values. The cache must not be used afterwards."""
        self.clear()

    def __contains__(self, key: str) -> bool:
        return self.try_get(key).is_ok

    def __len__(self) -> int:
        now = self._clock()
        with self._lock:
            return sum(1 for entry in self._entries.values() if entry.is_live(now))
