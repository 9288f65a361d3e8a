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
Result aggregation and compliance scoring.

Pass, Warning and Fail verdicts carry weights (100/60/0 by default).
NotApplicable, Error, Timeout and Cancelled results are counted but never
enter a score's denominator. A pillar's score is the mean weight of its
scored results; the overall score is the mean of the pillar scores that have
at least one scored result.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ..config.constants import ArchReviewConstants
from .models import CheckResult, CheckStatus, Pillar, PillarSummary, ScanSummary, Severity


@dataclass(frozen=True)
class ScoringWeights:
    """Score contributed by each scored status."""

    passed: float = ArchReviewConstants.DEFAULT_PASS_WEIGHT
    warning: float = ArchReviewConstants.DEFAULT_WARNING_WEIGHT
    failed: float = ArchReviewConstants.DEFAULT_FAIL_WEIGHT

    def __post_init__(self):
        for name in ("passed", "warning", "failed"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"Scoring weight '{name}' must be between 0 and 100, got {value}")

    def weight_for(self, status: CheckStatus) -> float | None:
        """Weight of *status*, or None when it is not scored."""
        if not status.is_scored:
            return None
        if status == CheckStatus.PASS:
            return float(self.passed)
        if status == CheckStatus.WARNING:
            return float(self.warning)
        return float(self.failed)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> ScoringWeights:
        data = data or {}
        return cls(
            passed=float(data.get("pass", ArchReviewConstants.DEFAULT_PASS_WEIGHT)),
            warning=float(data.get("warning", ArchReviewConstants.DEFAULT_WARNING_WEIGHT)),
            failed=float(data.get("fail", ArchReviewConstants.DEFAULT_FAIL_WEIGHT)),
        )

    def to_dict(self) -> dict[str, float]:
        return {"pass": self.passed, "warning": self.warning, "fail": self.failed}


DEFAULT_WEIGHTS = ScoringWeights()


def _mean(values: list[float]) -> float | None:
    # fsum over sorted input keeps the result independent of arrival order
    if not values:
        return None
    return math.fsum(sorted(values)) / len(values)


def _round(score: float | None) -> float | None:
    return None if score is None else round(score, 2)


def summarize(
    results: Iterable[CheckResult],
    duration: float = 0.0,
    weights: ScoringWeights | None = None,
) -> ScanSummary:
    """
    Roll results up into a :class:`ScanSummary`.

    Pure function of its inputs: the same multiset of results always yields
    the same summary, whatever order it arrives in.

    Args:
        results: Check results from one scan
        duration: Wall-clock scan duration in seconds, reported as-is
        weights: Status weights; defaults to Pass=100, Warning=60, Fail=0

    Returns:
        Scan summary with per-pillar breakdown
    """
    weights = weights or DEFAULT_WEIGHTS
    results = list(results)

    status_counts = Counter(r.status for r in results)
    failed_by_severity = Counter(r.severity for r in results if r.status == CheckStatus.FAIL)

    by_pillar: list[PillarSummary] = []
    pillar_scores: list[float] = []
    # Pillar-less results (loaded from files without one) form their own group
    for pillar in (*Pillar, None):
        pillar_results = [r for r in results if r.pillar == pillar]
        if not pillar_results:
            continue
        counts = Counter(r.status for r in pillar_results)
        scored = [w for r in pillar_results if (w := weights.weight_for(r.status)) is not None]
        score = _mean(scored)
        if score is not None:
            pillar_scores.append(score)
        by_pillar.append(
            PillarSummary(
                pillar=pillar,
                passed=counts[CheckStatus.PASS],
                failed=counts[CheckStatus.FAIL],
                warnings=counts[CheckStatus.WARNING],
                not_applicable=counts[CheckStatus.NOT_APPLICABLE],
                errors=sum(counts[s] for s in CheckStatus if s.is_error),
                compliance_score=_round(score),
            )
        )

    return ScanSummary(
        total_checks=len(results),
        passed=status_counts[CheckStatus.PASS],
        failed=status_counts[CheckStatus.FAIL],
        warnings=status_counts[CheckStatus.WARNING],
        not_applicable=status_counts[CheckStatus.NOT_APPLICABLE],
        errors=sum(status_counts[s] for s in CheckStatus if s.is_error),
        compliance_score=_round(_mean(pillar_scores)),
        by_pillar=tuple(by_pillar),
        status_counts={s.value: status_counts[s] for s in CheckStatus},
        failed_by_severity={s.value: failed_by_severity[s] for s in Severity},
        duration=duration,
    )
