# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Operational excellence checks.

Checks: OP01 (required resource tags).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arch_review.core.evaluators import BaseEvaluator
from arch_review.core.models import CheckResult, CheckStatus

from ._helpers import all_resources, not_applicable, verdict

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability


class RequiredTagsEvaluator(BaseEvaluator):
    """Every resource must carry the configured tags (names compared case-insensitively)."""

    def __init__(self, required_tags: list[str] | None = None):
        super().__init__(name="required_tags")
        self.required_tags = [t.lower() for t in (required_tags or ["owner", "environment"])]

    def evaluate(self, subscription_id: str, capability: InventoryCapability) -> CheckResult:
        resources = all_resources(capability)
        if not resources:
            return not_applicable("OP01", subscription_id, "resources")

        offenders = []
        for resource in resources:
            present = {str(k).lower() for k in (resource.get("tags") or {})}
            if any(tag not in present for tag in self.required_tags):
                offenders.append(resource)

        return verdict(
            "OP01",
            subscription_id,
            offenders,
            total=len(resources),
            what="resources",
            failure_status=CheckStatus.WARNING,
            recommendation=f"Tag resources with: {', '.join(self.required_tags)}.",
        )
