# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Query cache tests (TTL, LRU budgets, thread safety).
"""

from __future__ import annotations

import threading

import pytest

from arch_review.core.cache import QueryCache, make_cache_key, normalize_query


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheKeys:
    def test_whitespace_is_normalized(self):
        a = make_cache_key("Resources  |\n where type =~ 'x'", "sub-a")
        b = make_cache_key("Resources | where type =~ 'x'", "sub-a")
        assert a == b

    def test_subscription_is_part_of_key(self):
        assert make_cache_key("Resources", "sub-a") != make_cache_key("Resources", "sub-b")

    def test_normalize_query(self):
        assert normalize_query("  a \t b\n") == "a b"


class TestQueryCacheTTL:
    def test_get_within_ttl(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("k", [1, 2])
        clock.now += 59
        assert cache.get("k") == ([1, 2], True)

    def test_get_after_ttl_misses_and_evicts(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("k", "v")
        clock.now += 61
        assert cache.get("k") == (None, False)
        assert len(cache) == 0
        assert cache.stats()["expirations"] == 1

    def test_per_entry_ttl_overrides_default(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("short", 1, ttl=5)
        clock.now += 10
        assert cache.get("short")[1] is False

    def test_set_overwrites_and_resets_age(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("k", "old")
        clock.now += 50
        cache.set("k", "new")
        clock.now += 50
        assert cache.get("k") == ("new", True)

    def test_absent_key(self):
        assert QueryCache().get("missing") == (None, False)

    def test_invalid_ttl(self):
        with pytest.raises(ValueError):
            QueryCache(default_ttl=0)

    def test_invalidate_all(self):
        cache = QueryCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate_all()
        assert len(cache) == 0
        assert cache.get("a")[1] is False


class TestQueryCacheBudget:
    def test_entry_budget_evicts_least_recently_used(self):
        cache = QueryCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b")[1] is False
        assert cache.get("a") == (1, True)
        assert cache.get("c") == (3, True)
        assert cache.stats()["evictions"] == 1

    def test_byte_budget(self):
        cache = QueryCache(max_bytes=40)
        cache.set("a", "x" * 20)
        cache.set("b", "y" * 20)
        assert len(cache) == 1
        assert cache.get("b")[1] is True
        assert cache.stats()["bytes"] <= 40


class TestQueryCacheLoad:
    def test_get_or_load_calls_loader_once(self):
        cache = QueryCache()
        calls = []

        def loader():
            calls.append(1)
            return ["row"]

        assert cache.get_or_load("k", loader) == ["row"]
        assert cache.get_or_load("k", loader) == ["row"]
        assert len(calls) == 1
        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    def test_loader_errors_are_not_cached(self):
        cache = QueryCache()

        def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_load("k", failing)
        assert len(cache) == 0

    def test_concurrent_access(self):
        cache = QueryCache(max_entries=50)
        errors = []

        def worker(n: int):
            try:
                for i in range(200):
                    key = f"k{(n * 7 + i) % 80}"
                    cache.set(key, i)
                    cache.get(key)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert len(cache) <= 50
