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
Scan orchestration facade.

Wires the registry, query cache, inventory client, executor, aggregator and
baseline comparator together under one :class:`ScanPolicy`.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Iterable
from datetime import datetime, timezone

from .._version import __version__
from ..config.config import Config
from .aggregator import summarize
from .baseline import compare
from .cache import QueryCache
from .executor import CancellationToken, ResultCallback, ScanExecutor
from .inventory import InventoryCapability, InventoryClient
from .models import CheckDefinition, CheckResult, ScanReport
from .registry import CheckFilter, CheckRegistry
from .scan_policy import ScanPolicy

logger = logging.getLogger(__name__)


class ArchitectureScanner:
    """Main scanner that evaluates subscriptions against the check registry."""

    def __init__(
        self,
        registry: CheckRegistry,
        inventory_client: InventoryClient,
        config: Config | None = None,
        policy: ScanPolicy | None = None,
        cache: QueryCache | None = None,
    ):
        """
        Initialize scanner.

        Args:
            registry: Populated check registry (sealed on first scan)
            inventory_client: Source of inventory rows; authentication is its concern
            config: Runtime settings. If None, read from the environment.
            policy: Scan policy. If None, loads the built-in default.
            cache: Shared query cache. If None, one is built from ``config``
                and reused across scans of this scanner.
        """
        self.registry = registry
        self.inventory_client = inventory_client
        self.config = config or Config()
        self.policy = policy or ScanPolicy.default()
        self.cache = cache or QueryCache(
            default_ttl=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
            max_bytes=self.config.cache_max_bytes,
        )
        self.executor = ScanExecutor(self._make_capability, self.config)

    def _make_capability(self, subscription_id: str, cancel_token: CancellationToken) -> InventoryCapability:
        return InventoryCapability(
            subscription_id,
            self.inventory_client,
            self.cache,
            cancel_token=cancel_token,
            ttl=self.config.cache_ttl_seconds,
        )

    def select_checks(self, check_filter: CheckFilter | None = None) -> list[CheckDefinition]:
        """Checks a scan would run: policy selection, then *check_filter*, minus disabled checks."""
        effective = self.policy.check_filter().combine(check_filter)
        checks = []
        for definition in self.registry.list(effective):
            override = self.policy.get_severity_override(definition.id)
            if override is not None and override != definition.severity:
                definition = dataclasses.replace(definition, severity=override)
            checks.append(definition)
        return checks

    def scan(
        self,
        subscriptions: Iterable[str],
        check_filter: CheckFilter | None = None,
        cancel_token: CancellationToken | None = None,
        baseline: Iterable[CheckResult] | None = None,
        on_result: ResultCallback | None = None,
    ) -> ScanReport:
        """
        Scan subscriptions and build a report.

        Args:
            subscriptions: Subscription ids (duplicates are ignored)
            check_filter: Caller selection layered over the policy selection
            cancel_token: Signal to abort the scan; unfinished units end as Cancelled
            baseline: Earlier results to diff against
            on_result: Streaming hook called as each result completes

        Returns:
            ScanReport with results, summary and optional baseline diff

        Raises:
            ValueError: If no subscription is given
        """
        subscriptions = list(dict.fromkeys(subscriptions))
        if not subscriptions:
            raise ValueError("At least one subscription id is required")

        token = cancel_token or CancellationToken()
        checks = self.select_checks(check_filter)
        started_at = datetime.now(timezone.utc)
        start = time.monotonic()
        logger.info("Scanning %d subscription(s) with %d check(s)", len(subscriptions), len(checks))

        results = self.executor.run(subscriptions, checks, cancel_token=token, on_result=on_result)

        policy_meta = self.policy.fingerprint_metadata()
        if self.policy.output.attach_policy_fingerprint:
            results = [self._annotate_with_policy(r, policy_meta) for r in results]

        duration = time.monotonic() - start
        summary = summarize(results, duration=duration, weights=self.policy.scoring)

        baseline_diff = None
        if baseline is not None:
            baseline_diff = compare(results, baseline)
            if baseline_diff.has_regressions:
                logger.warning("%d new failure(s) against baseline", len(baseline_diff.new_failures))

        logger.info(
            "Scan finished in %.2fs: %d passed, %d failed, %d warnings, %d errors, score %s",
            duration,
            summary.passed,
            summary.failed,
            summary.warnings,
            summary.errors,
            summary.compliance_score,
        )

        return ScanReport(
            results=results,
            summary=summary,
            subscriptions=subscriptions,
            check_ids=[c.id for c in checks],
            started_at=started_at,
            scan_metadata={
                **policy_meta,
                "scannerVersion": __version__,
                "cancelled": token.is_cancelled,
                "cache": self.cache.stats(),
            },
            baseline_diff=baseline_diff,
        )

    @staticmethod
    def _annotate_with_policy(result: CheckResult, policy_meta: dict[str, str]) -> CheckResult:
        metadata = dict(result.metadata)
        metadata.setdefault("scanPolicyName", policy_meta["policyName"])
        metadata.setdefault("scanPolicyFingerprintSha256", policy_meta["policyFingerprintSha256"])
        return dataclasses.replace(result, metadata=metadata)


def scan_subscriptions(
    subscriptions: Iterable[str],
    inventory_client: InventoryClient,
    registry: CheckRegistry | None = None,
    check_filter: CheckFilter | None = None,
    config: Config | None = None,
    policy: ScanPolicy | None = None,
    baseline: Iterable[CheckResult] | None = None,
) -> ScanReport:
    """
    Convenience function to scan subscriptions with the built-in check pack.

    Args:
        subscriptions: Subscription ids to scan
        inventory_client: Source of inventory rows
        registry: Check registry. If None, the built-in packs are loaded.
        check_filter: Optional caller selection
        config: Optional runtime settings
        policy: Optional scan policy
        baseline: Optional earlier results to diff against

    Returns:
        ScanReport
    """
    if registry is None:
        from .registry import CatalogLoader

        registry = CatalogLoader().build_registry()
    scanner = ArchitectureScanner(registry, inventory_client, config=config, policy=policy)
    return scanner.scan(subscriptions, check_filter=check_filter, baseline=baseline)
