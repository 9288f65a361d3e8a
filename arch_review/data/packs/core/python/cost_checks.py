# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Cost pillar checks.

Checks: CO01 (unattached managed disks).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arch_review.core.evaluators import BaseEvaluator
from arch_review.core.models import CheckResult, CheckStatus

from ._helpers import not_applicable, prop, resources_of_type, verdict

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability


class UnattachedDiskEvaluator(BaseEvaluator):
    """Flag managed disks that are not attached to any VM.

    Disks carrying ``keep_tag`` (any value) are treated as intentionally
    retained and skipped.
    """

    def __init__(self, keep_tag: str = "retain", min_size_gb: int = 0):
        super().__init__(name="unattached_disks")
        self.keep_tag = keep_tag
        self.min_size_gb = min_size_gb

    def evaluate(self, subscription_id: str, capability: InventoryCapability) -> CheckResult:
        disks = resources_of_type(capability, "microsoft.compute/disks")
        if not disks:
            return not_applicable("CO01", subscription_id, "managed disks")

        offenders = [
            d
            for d in disks
            if prop(d, "properties.diskState") == "Unattached"
            and self.keep_tag not in (d.get("tags") or {})
            and (prop(d, "properties.diskSizeGB", 0) or 0) >= self.min_size_gb
        ]
        return verdict(
            "CO01",
            subscription_id,
            offenders,
            total=len(disks),
            what="managed disks",
            failure_status=CheckStatus.WARNING,
            recommendation=f"Delete or snapshot unattached disks, or tag them '{self.keep_tag}' if they must stay.",
            remediation_script="az disk delete --ids <disk-id> --yes",
        )
