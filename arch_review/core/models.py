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
Data models for check definitions, check results, and scan rollups.

Serialized shapes use camelCase keys; they are the stable contract consumed
by exporters and by baseline comparison of previously saved runs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from .evaluators.base import BaseEvaluator
    from .inventory import InventoryCapability

CHECK_ID_PATTERN = re.compile(r"[A-Z]{2}\d{2}")


class Pillar(str, Enum):
    """Top-level best-practice categories. Declaration order is display order."""

    RELIABILITY = "reliability"
    SECURITY = "security"
    COST = "cost"
    OPERATIONS = "operations"
    PERFORMANCE = "performance"

# Report label for results that carry no pillar.
UNASSIGNED_PILLAR = "unassigned"


class Severity(str, Enum):
    """Impact of a failing check."""

    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RemediationEffort(str, Enum):
    """Rough effort needed to fix a failing check."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class CheckStatus(str, Enum):
    """Verdict of one (subscription, check) evaluation."""

    PASS = "Pass"
    FAIL = "Fail"
    WARNING = "Warning"
    NOT_APPLICABLE = "NotApplicable"
    ERROR = "Error"
    TIMEOUT = "Timeout"
    CANCELLED = "Cancelled"

    @property
    def is_scored(self) -> bool:
        """Whether this status contributes to compliance scoring."""
        return self in (CheckStatus.PASS, CheckStatus.WARNING, CheckStatus.FAIL)

    @property
    def is_error(self) -> bool:
        return self in (CheckStatus.ERROR, CheckStatus.TIMEOUT, CheckStatus.CANCELLED)


# Worst first. Used when folding several verdicts into one.
STATUS_PRECEDENCE: tuple[CheckStatus, ...] = (
    CheckStatus.CANCELLED,
    CheckStatus.TIMEOUT,
    CheckStatus.ERROR,
    CheckStatus.FAIL,
    CheckStatus.WARNING,
    CheckStatus.PASS,
    CheckStatus.NOT_APPLICABLE,
)


def status_rank(status: CheckStatus) -> int:
    """Lower is worse."""
    return STATUS_PRECEDENCE.index(status)


EvaluatorFn = Callable[[str, "InventoryCapability"], Any]
Evaluator = Union["BaseEvaluator", EvaluatorFn]


@dataclass(frozen=True)
class CheckDefinition:
    """Static description of one best-practice rule.

    Definitions are registered once at startup and never mutated; results
    copy ``severity`` and ``pillar`` at evaluation time.
    """

    id: str
    """Unique check identifier, e.g. ``SE05``."""

    pillar: Pillar
    title: str
    evaluator: Evaluator | None = None
    """Callable ``(subscription_id, capability)`` or a :class:`BaseEvaluator`."""

    description: str = ""
    severity: Severity = Severity.MEDIUM
    remediation_effort: RemediationEffort = RemediationEffort.MEDIUM
    tags: frozenset[str] = field(default_factory=frozenset)
    documentation_url: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Metadata view (the evaluator is not serializable)."""
        return {
            "id": self.id,
            "pillar": self.pillar.value,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "remediationEffort": self.remediation_effort.value,
            "tags": sorted(self.tags),
            "documentationUrl": self.documentation_url,
        }


@dataclass(frozen=True)
class CheckResult:
    """Outcome of evaluating one check against one subscription. Immutable."""

    check_id: str
    subscription_id: str
    status: CheckStatus
    message: str = ""
    severity: Severity = Severity.MEDIUM
    affected_resources: tuple[str, ...] = ()
    recommendation: str = ""
    remediation_script: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    pillar: Pillar | None = None

    def __post_init__(self):
        """Normalize containers so callers cannot mutate a result after the fact."""
        object.__setattr__(self, "status", CheckStatus(self.status))
        object.__setattr__(self, "severity", Severity(self.severity))
        if self.pillar is not None:
            object.__setattr__(self, "pillar", Pillar(self.pillar))
        object.__setattr__(self, "affected_resources", tuple(self.affected_resources))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @property
    def key(self) -> tuple[str, str]:
        """Matching key used by baseline comparison."""
        return (self.subscription_id, self.check_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to its persisted JSON shape."""
        return {
            "checkId": self.check_id,
            "subscriptionId": self.subscription_id,
            "pillar": self.pillar.value if self.pillar else None,
            "status": self.status.value,
            "severity": self.severity.value,
            "message": self.message,
            "affectedResources": list(self.affected_resources),
            "recommendation": self.recommendation,
            "remediationScript": self.remediation_script,
            "metadata": dict(self.metadata),
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CheckResult:
        """Rebuild a result from :meth:`to_dict` output (e.g. a saved baseline)."""
        timestamp = data.get("timestamp")
        pillar = data.get("pillar")
        return cls(
            check_id=data["checkId"],
            subscription_id=data["subscriptionId"],
            status=CheckStatus(data["status"]),
            message=data.get("message", ""),
            severity=Severity(data.get("severity", Severity.MEDIUM.value)),
            affected_resources=tuple(data.get("affectedResources") or ()),
            recommendation=data.get("recommendation", ""),
            remediation_script=data.get("remediationScript", ""),
            metadata=data.get("metadata") or {},
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(timezone.utc),
            pillar=Pillar(pillar) if pillar else None,
        )


@dataclass
class CacheEntry:
    """A single cached query payload."""

    key: str
    value: Any
    created_at: float
    ttl: float
    size: int = 0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


@dataclass(frozen=True)
class PillarSummary:
    """Rollup for one pillar. ``pillar`` is None for results carrying no pillar."""

    pillar: Pillar | None
    passed: int = 0
    failed: int = 0
    warnings: int = 0
    not_applicable: int = 0
    errors: int = 0
    compliance_score: float | None = None

    @property
    def pillar_name(self) -> str:
        return self.pillar.value if self.pillar is not None else UNASSIGNED_PILLAR

    @property
    def total(self) -> int:
        return self.passed + self.failed + self.warnings + self.not_applicable + self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "pillar": self.pillar_name,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "notApplicable": self.not_applicable,
            "errors": self.errors,
            "total": self.total,
            "complianceScore": self.compliance_score,
        }


@dataclass(frozen=True)
class ScanSummary:
    """Derived rollup of a result list. Recomputing it yields an equal object."""

    total_checks: int = 0
    passed: int = 0
    failed: int = 0
    warnings: int = 0
    not_applicable: int = 0
    errors: int = 0
    compliance_score: float | None = None
    by_pillar: tuple[PillarSummary, ...] = ()
    status_counts: Mapping[str, int] = field(default_factory=dict)
    failed_by_severity: Mapping[str, int] = field(default_factory=dict)
    duration: float = 0.0

    def pillar(self, pillar: Pillar | None) -> PillarSummary | None:
        for entry in self.by_pillar:
            if entry.pillar == pillar:
                return entry
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalChecks": self.total_checks,
            "passed": self.passed,
            "failed": self.failed,
            "warnings": self.warnings,
            "notApplicable": self.not_applicable,
            "errors": self.errors,
            "complianceScore": self.compliance_score,
            "byPillar": [p.to_dict() for p in self.by_pillar],
            "statusCounts": dict(self.status_counts),
            "failedBySeverity": dict(self.failed_by_severity),
            "duration": self.duration,
        }


@dataclass(frozen=True)
class DiffEntry:
    """One key's classification in a baseline comparison."""

    subscription_id: str
    check_id: str
    baseline_status: CheckStatus | None = None
    current_status: CheckStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subscriptionId": self.subscription_id,
            "checkId": self.check_id,
            "baselineStatus": self.baseline_status.value if self.baseline_status else None,
            "currentStatus": self.current_status.value if self.current_status else None,
        }


@dataclass(frozen=True)
class BaselineDiff:
    """Regression/improvement classification of two result sets.

    ``added`` and ``removed`` are reported but never counted as regressions
    or improvements.
    """

    new_failures: tuple[DiffEntry, ...] = ()
    improvements: tuple[DiffEntry, ...] = ()
    unchanged: tuple[DiffEntry, ...] = ()
    added: tuple[DiffEntry, ...] = ()
    removed: tuple[DiffEntry, ...] = ()

    @property
    def has_regressions(self) -> bool:
        return bool(self.new_failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": {
                "newFailures": len(self.new_failures),
                "improvements": len(self.improvements),
                "unchanged": len(self.unchanged),
                "added": len(self.added),
                "removed": len(self.removed),
            },
            "newFailures": [e.to_dict() for e in self.new_failures],
            "improvements": [e.to_dict() for e in self.improvements],
            "unchanged": [e.to_dict() for e in self.unchanged],
            "added": [e.to_dict() for e in self.added],
            "removed": [e.to_dict() for e in self.removed],
        }


@dataclass
class ScanReport:
    """Everything one scan produced, ready for an exporter."""

    results: list[CheckResult] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)
    subscriptions: list[str] = field(default_factory=list)
    check_ids: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    scan_metadata: dict[str, Any] = field(default_factory=dict)
    baseline_diff: BaselineDiff | None = None

    def get_results_by_status(self, status: CheckStatus) -> list[CheckResult]:
        return [r for r in self.results if r.status == status]

    def get_results_by_pillar(self, pillar: Pillar) -> list[CheckResult]:
        return [r for r in self.results if r.pillar == pillar]

    @property
    def has_failures(self) -> bool:
        return any(r.status == CheckStatus.FAIL for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        """Convert the report to the persisted document shape."""
        data: dict[str, Any] = {
            "startedAt": self.started_at.isoformat(),
            "subscriptions": list(self.subscriptions),
            "checks": list(self.check_ids),
            "summary": self.summary.to_dict(),
            "results": [r.to_dict() for r in self.results],
            "scanMetadata": dict(self.scan_metadata),
        }
        if self.baseline_diff is not None:
            data["baselineDiff"] = self.baseline_diff.to_dict()
        return data


def is_valid_check_id(check_id: object) -> bool:
    return isinstance(check_id, str) and CHECK_ID_PATTERN.fullmatch(check_id) is not None


def coerce_results(value: Any) -> list[CheckResult]:
    """Normalize an evaluator's return value to a list of results."""
    if value is None:
        return []
    if isinstance(value, CheckResult):
        return [value]
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        items = list(value)
        for item in items:
            if not isinstance(item, CheckResult):
                raise TypeError(f"Evaluator returned {type(item).__name__}, expected CheckResult")
        return items
    raise TypeError(f"Evaluator returned {type(value).__name__}, expected CheckResult or a sequence of them")
