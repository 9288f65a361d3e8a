# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Performance efficiency checks.

Checks: PE01 (App Service plan tier).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arch_review.core.models import CheckResult

from ._helpers import not_applicable, prop, resources_of_type, verdict

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability

# Shared-compute tiers without SLA or scale-out
_SHARED_TIERS = frozenset({"free", "shared"})


def check_app_service_tier(subscription_id: str, capability: InventoryCapability) -> CheckResult:
    plans = resources_of_type(capability, "microsoft.web/serverfarms")
    if not plans:
        return not_applicable("PE01", subscription_id, "App Service plans")

    offenders = [p for p in plans if str(prop(p, "sku.tier", "")).lower() in _SHARED_TIERS]
    return verdict(
        "PE01",
        subscription_id,
        offenders,
        total=len(plans),
        what="App Service plans",
        recommendation="Move production apps to a Basic, Standard or Premium plan.",
        remediation_script="az appservice plan update --ids <plan-id> --sku P1V3",
    )
