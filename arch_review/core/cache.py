# Copyright 2026 Cisco Systems, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# SPDX-License-Identifier: Apache-2.0

"""
Thread-safe, time-bounded cache for inventory query results.

This is the one piece of shared mutable state in a scan: every worker reads
and writes it concurrently, so every operation takes the internal lock.
Entries expire lazily on the next access after their TTL. An optional LRU
bound (entry count and/or estimated bytes) evicts the least recently used
entries first.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from ..config.constants import ArchReviewConstants
from .models import CacheEntry

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(query_text: str) -> str:
    """Collapse whitespace so formatting differences share one cache entry."""
    return _WHITESPACE_RE.sub(" ", query_text).strip()


def make_cache_key(query_text: str, subscription_id: str) -> str:
    """Hash of the normalized query text plus the subscription id."""
    canonical = f"{subscription_id}\n{normalize_query(query_text)}"
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _estimate_size(value: Any) -> int:
    try:
        return len(json.dumps(value, default=str, separators=(",", ":")).encode("utf-8"))
    except (TypeError, ValueError):
        return len(repr(value).encode("utf-8"))


class QueryCache:
    """Concurrency-safe TTL cache with an optional LRU budget."""

    def __init__(
        self,
        default_ttl: float = ArchReviewConstants.DEFAULT_CACHE_TTL_SECONDS,
        max_entries: int | None = None,
        max_bytes: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize cache.

        Args:
            default_ttl: Seconds an entry stays fresh when ``set`` gets no ttl
            max_entries: Optional entry budget (LRU eviction beyond it)
            max_bytes: Optional byte budget, estimated from the JSON encoding
            clock: Monotonic time source (injectable for tests)
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.max_bytes = max_bytes
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._bytes = 0
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._expirations = 0
        self._evictions = 0

    def get(self, key: str) -> tuple[Any, bool]:
        """Return ``(value, True)`` for a fresh entry, else ``(None, False)``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None, False
            if entry.is_expired(self._clock()):
                self._remove(key)
                self._expirations += 1
                self._misses += 1
                return None, False
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value, True

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store *value*, replacing any existing entry for *key*."""
        size = _estimate_size(value) if self.max_bytes is not None else 0
        with self._lock:
            if key in self._entries:
                self._remove(key)
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=self._clock(),
                ttl=self.default_ttl if ttl is None else ttl,
                size=size,
            )
            self._bytes += size
            self._enforce_budget()

    def get_or_load(self, key: str, loader: Callable[[], Any], ttl: float | None = None) -> Any:
        """Return the cached value or call *loader* and cache what it returns.

        The loader runs outside the lock, so two workers missing the same key
        at once may both load it; the later ``set`` wins. Loader exceptions
        propagate and nothing is cached.
        """
        value, found = self.get(key)
        if found:
            return value
        value = loader()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        with self._lock:
            if key in self._entries:
                self._remove(key)

    def invalidate_all(self) -> None:
        """Drop every entry (e.g. between independent scan runs)."""
        with self._lock:
            self._entries.clear()
            self._bytes = 0

    def stats(self) -> dict[str, int]:
        """Counters for diagnostics and scan metadata."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "bytes": self._bytes,
                "hits": self._hits,
                "misses": self._misses,
                "expirations": self._expirations,
                "evictions": self._evictions,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -- Internals (caller holds the lock) -----------------------------------

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._bytes -= entry.size

    def _enforce_budget(self) -> None:
        while self._entries and self._over_budget():
            oldest_key = next(iter(self._entries))
            self._remove(oldest_key)
            self._evictions += 1
            logger.debug("Evicted cache entry %s (LRU budget)", oldest_key[:12])

    def _over_budget(self) -> bool:
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            return True
        return self.max_bytes is not None and self._bytes > self.max_bytes
