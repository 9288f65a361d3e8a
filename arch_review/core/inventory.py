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
Inventory access for evaluators.

Authentication and live cloud queries belong to the caller: they supply an
:class:`InventoryClient`. Each evaluator invocation receives an
:class:`InventoryCapability` that routes its queries through the shared
:class:`~arch_review.core.cache.QueryCache`.

:class:`SnapshotInventoryClient` answers queries from a saved resource
snapshot, which is what the CLI and the test-suite run against.
"""

from __future__ import annotations

import copy
import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from .cache import QueryCache, make_cache_key
from .exceptions import MalformedQueryError, PermissionDeniedError, ScanCancelledError

if TYPE_CHECKING:
    from .executor import CancellationToken

logger = logging.getLogger(__name__)


class InventoryClient(ABC):
    """Source of inventory/posture rows for a subscription."""

    @abstractmethod
    def query(self, query_text: str, subscription_id: str) -> list[dict[str, Any]]:
        """
        Run *query_text* against *subscription_id*.

        Raises:
            TransientError: On throttling or server-side failures
            PermissionDeniedError: When the caller identity lacks access
            MalformedQueryError: When the query is rejected
        """
        pass


class InventoryCapability:
    """Per-invocation handle given to an evaluator.

    Not shared between threads; the cache it wraps is.
    """

    def __init__(
        self,
        subscription_id: str,
        client: InventoryClient,
        cache: QueryCache,
        cancel_token: CancellationToken | None = None,
        ttl: float | None = None,
    ):
        self.subscription_id = subscription_id
        self._client = client
        self._cache = cache
        self._cancel_token = cancel_token
        self._ttl = ttl
        self.queries = 0
        self.cache_hits = 0

    def query_inventory(self, query_text: str, subscription_id: str | None = None) -> list[dict[str, Any]]:
        """Run a query (cached), defaulting to this invocation's subscription.

        Raises:
            ScanCancelledError: If the scan was cancelled before an uncached call.
        """
        target = subscription_id or self.subscription_id
        key = make_cache_key(query_text, target)
        self.queries += 1

        rows, found = self._cache.get(key)
        if found:
            self.cache_hits += 1
            return copy.deepcopy(rows)

        if self._cancel_token is not None and self._cancel_token.is_cancelled:
            raise ScanCancelledError("Scan cancelled before inventory query")

        rows = list(self._client.query(query_text, target))
        self._cache.set(key, rows, self._ttl)
        # Callers get private copies; the cached rows are shared across workers
        return copy.deepcopy(rows)


# Matches "type =~ 'microsoft.storage/storageaccounts'" (or ==)
_TYPE_CLAUSE_RE = re.compile(r"\btype\s*(?:=~|==)\s*['\"]([^'\"]+)['\"]", re.IGNORECASE)
_TABLE_RE = re.compile(r"^\s*(resources|resourcecontainers|securityresources)\b", re.IGNORECASE)


class SnapshotInventoryClient(InventoryClient):
    """Serve queries from a saved inventory snapshot.

    Snapshot layout (YAML or JSON)::

        subscriptions:
          <subscription-id>:
            permission_denied: false     # optional
            resources:
              - id: /subscriptions/.../storageAccounts/sa1
                name: sa1
                type: microsoft.storage/storageaccounts
                properties: {...}

    Supported query form: ``<Table> | where type =~ '<resource type>'``.
    The type clause is optional; without it every resource is returned.
    """

    def __init__(self, snapshot: dict[str, Any]):
        self._subscriptions: dict[str, Any] = dict(snapshot.get("subscriptions") or {})
        self._lock = threading.Lock()
        self.query_count = 0

    @classmethod
    def from_file(cls, path: str | Path) -> SnapshotInventoryClient:
        """Load a snapshot from ``.json``, ``.yaml`` or ``.yml``."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Inventory snapshot not found: {path}")
        with open(path, encoding="utf-8") as fh:
            if path.suffix.lower() == ".json":
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh) or {}
        return cls(data)

    def subscription_ids(self) -> list[str]:
        return list(self._subscriptions)

    def query(self, query_text: str, subscription_id: str) -> list[dict[str, Any]]:
        with self._lock:
            self.query_count += 1

        if not _TABLE_RE.match(query_text):
            raise MalformedQueryError(f"Unsupported query: {query_text[:80]!r}")

        subscription = self._subscriptions.get(subscription_id)
        if subscription is None or subscription.get("permission_denied"):
            raise PermissionDeniedError(f"No read access to subscription '{subscription_id}'")

        resources = subscription.get("resources") or []
        match = _TYPE_CLAUSE_RE.search(query_text)
        if not match:
            return [dict(r) for r in resources]
        wanted = match.group(1).lower()
        return [dict(r) for r in resources if str(r.get("type", "")).lower() == wanted]
