"""Tests for BoundedCache."""

from __future__ import annotations

import threading
from datetime import timedelta

from remote_config.domain.models import ErrorKind
from remote_config.services.caching import BoundedCache

TTL = timedelta(minutes=30)
MAX_LIFETIME = timedelta(hours=1)


class TestBoundedCacheBasics:
    """Insert, lookup and release."""

    def test_get_miss(self, clock) -> None:
        """Absent keys report NOT_FOUND, not an exception."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        result = cache.try_get("missing")
        assert result.is_err
        assert result.kind == ErrorKind.NOT_FOUND

    def test_set_and_get(self, clock) -> None:
        """Stored values come back unchanged."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        document = {"a": {"b": 1}}
        cache.set("/bundle/app.yaml", document, TTL)
        assert cache.try_get("/bundle/app.yaml").unwrap() is document

    def test_last_writer_wins(self, clock) -> None:
        """A second set replaces the first value."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "first", TTL)
        cache.set("key", "second", TTL)
        assert cache.try_get("key").unwrap() == "second"

    def test_contains_and_len(self, clock) -> None:
        """Membership and size only count live entries."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        assert "key" not in cache
        cache.set("key", 1, TTL)
        cache.set("short", 2, timedelta(minutes=1))
        assert "key" in cache
        assert len(cache) == 2

        clock.advance(minutes=2)
        assert len(cache) == 1
        assert "short" not in cache

    def test_clear_and_dispose(self, clock) -> None:
        """clear() and dispose() drop every entry."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("one", 1, TTL)
        cache.set("two", 2, TTL)
        cache.clear()
        assert len(cache) == 0

        cache.set("three", 3, TTL)
        cache.dispose()
        assert cache.try_get("three").is_err


class TestBoundedCacheExpiry:
    """Per-entry ttl and the global lifetime ceiling."""

    def test_entry_visible_until_ttl(self, clock) -> None:
        """Entries are live strictly before inserted_at + ttl."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "value", TTL)

        clock.advance(minutes=29, seconds=59)
        assert cache.try_get("key").is_ok

        clock.advance(seconds=1)
        result = cache.try_get("key")
        assert result.kind == ErrorKind.NOT_FOUND

    def test_negative_ttl_is_already_expired(self, clock) -> None:
        """A negative ttl stores an entry nobody can read."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "value", timedelta(seconds=-1))
        assert cache.try_get("key").is_err

    def test_ttl_longer_than_ceiling_is_capped(self, clock) -> None:
        """The max lifetime applies even when the ttl is longer."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "value", timedelta(hours=5))

        clock.advance(minutes=59)
        assert cache.try_get("key").is_ok
        clock.advance(minutes=1)
        assert cache.try_get("key").is_err

    def test_ceiling_dominates_refreshed_entries(self, clock) -> None:
        """Re-setting with a fresh ttl does not extend past first insertion + max lifetime."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "v1", TTL)

        clock.advance(minutes=50)
        cache.set("key", "v2", TTL)

        clock.advance(minutes=9)
        assert cache.try_get("key").unwrap() == "v2"

        clock.advance(minutes=2)  # 61 minutes after first insertion, 11 after refresh
        assert cache.try_get("key").is_err

    def test_ceiling_survives_ttl_expiry(self, clock) -> None:
        """Re-setting a key whose ttl ran out still counts from its first insertion."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "v1", TTL)

        clock.advance(minutes=31)
        assert cache.try_get("key").is_err
        cache.set("key", "v2", TTL)

        clock.advance(minutes=28)  # 59 minutes after first insertion
        assert cache.try_get("key").unwrap() == "v2"
        clock.advance(minutes=1)
        assert cache.try_get("key").is_err

    def test_set_after_eviction_starts_fresh_lifetime(self, clock) -> None:
        """Once the ceiling has passed, the next set begins a new lifetime."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "old", TTL)

        clock.advance(minutes=70)
        assert cache.try_get("key").is_err

        cache.set("key", "new", TTL)
        clock.advance(minutes=29)
        assert cache.try_get("key").unwrap() == "new"

    def test_set_after_ceiling_without_read(self, clock) -> None:
        """A stale entry that was never read does not shorten the next lifetime."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("key", "old", TTL)

        clock.advance(minutes=65)
        cache.set("key", "new", TTL)
        clock.advance(minutes=20)
        assert cache.try_get("key").unwrap() == "new"

    def test_unread_keys_dropped_after_ceiling(self, clock) -> None:
        """Keys that are never read again do not outlive their ceiling."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        for i in range(5):
            cache.set(f"stale-{i}", i, TTL)

        clock.advance(minutes=61)
        cache.set("fresh", "value", TTL)

        assert set(cache._entries) == {"fresh"}
        assert set(cache._evict_at) == {"fresh"}

    def test_prune_keeps_keys_within_ceiling(self, clock) -> None:
        """A ttl-expired key keeps its ceiling until the ceiling passes."""
        cache = BoundedCache(MAX_LIFETIME, clock=clock)
        cache.set("early", 1, TTL)
        clock.advance(minutes=40)
        cache.set("later", 2, TTL)

        assert "early" in cache._evict_at
        cache.set("early", 3, TTL)
        clock.advance(minutes=20)
        assert cache.try_get("early").is_err


class TestBoundedCacheConcurrency:
    """Concurrent readers and writers."""

    def test_parallel_set_and_get(self) -> None:
        """Readers only ever see complete values written by some writer."""
        cache = BoundedCache(MAX_LIFETIME)
        written = {f"value-{i}" for i in range(8)}
        seen: list[object] = []
        errors: list[BaseException] = []

        def writer(value: str) -> None:
            for _ in range(200):
                cache.set("shared", value, TTL)

        def reader() -> None:
            try:
                for _ in range(200):
                    result = cache.try_get("shared")
                    if result.is_ok:
                        seen.append(result.unwrap())
            except BaseException as e:  # pragma: no cover - surfaced by the assert below
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(v,)) for v in written]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert set(seen) <= written
        assert cache.try_get("shared").unwrap() in written
