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
Baseline comparison between two materialized result sets.

Results are matched on ``(subscription_id, check_id)``. Keys that appear on
only one side are reported as ``added`` or ``removed`` and never count as a
regression or an improvement.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .models import BaselineDiff, CheckResult, CheckStatus, DiffEntry, status_rank

logger = logging.getLogger(__name__)

_HEALTHY = (CheckStatus.PASS, CheckStatus.NOT_APPLICABLE)


def _index(results: Iterable[CheckResult], side: str) -> dict[tuple[str, str], CheckStatus]:
    """Map key -> status, keeping the worst status when a key repeats."""
    index: dict[tuple[str, str], CheckStatus] = {}
    for result in results:
        previous = index.get(result.key)
        if previous is None:
            index[result.key] = result.status
            continue
        logger.debug("Duplicate %s result for %s/%s", side, *result.key)
        if status_rank(result.status) < status_rank(previous):
            index[result.key] = result.status
    return index


def compare(current: Iterable[CheckResult], baseline: Iterable[CheckResult]) -> BaselineDiff:
    """
    Classify every key of *current* and *baseline*.

    * healthy (Pass/NotApplicable) in baseline, Fail now: ``new_failures``
    * Fail in baseline, Pass now: ``improvements``
    * any other pairing: ``unchanged``
    * only in current: ``added``; only in baseline: ``removed``

    Each bucket is sorted by ``(subscription_id, check_id)``.
    """
    now = _index(current, "current")
    before = _index(baseline, "baseline")

    buckets: dict[str, list[DiffEntry]] = {
        "new_failures": [],
        "improvements": [],
        "unchanged": [],
        "added": [],
        "removed": [],
    }

    for key in sorted(now.keys() | before.keys()):
        current_status = now.get(key)
        baseline_status = before.get(key)
        entry = DiffEntry(
            subscription_id=key[0],
            check_id=key[1],
            baseline_status=baseline_status,
            current_status=current_status,
        )
        if baseline_status is None:
            buckets["added"].append(entry)
        elif current_status is None:
            buckets["removed"].append(entry)
        elif baseline_status in _HEALTHY and current_status == CheckStatus.FAIL:
            buckets["new_failures"].append(entry)
        elif baseline_status == CheckStatus.FAIL and current_status == CheckStatus.PASS:
            buckets["improvements"].append(entry)
        else:
            buckets["unchanged"].append(entry)

    return BaselineDiff(**{name: tuple(entries) for name, entries in buckets.items()})


def load_results(path: str | Path) -> list[CheckResult]:
    """
    Load results saved as a JSON list, or as a report with a ``results`` key.

    Raises:
        FileNotFoundError: If *path* does not exist
        ValueError: If the document is not a recognised result file
    """
    path = Path(path)
    with open(path, encoding="utf-8") as fh:
        try:
            data: Any = json.load(fh)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in result file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("results")
    if not isinstance(data, list):
        raise ValueError(f"Result file {path} must hold a list of results or a report with 'results'")

    try:
        return [CheckResult.from_dict(item) for item in data]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Malformed result entry in {path}: {e}") from e


def dump_results(results: Iterable[CheckResult], path: str | Path) -> None:
    """Write results as a JSON list that :func:`load_results` reads back."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump([r.to_dict() for r in results], fh, indent=2)
        fh.write("\n")
