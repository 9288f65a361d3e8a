# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Reliability pillar checks.

Checks: RE01 (storage redundancy), RE02 (availability zones for VMs).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arch_review.core.models import CheckResult, CheckStatus

from ._helpers import not_applicable, prop, resources_of_type, verdict

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability

_REDUNDANT_SKUS = frozenset({"Standard_ZRS", "Standard_GRS", "Standard_RAGRS", "Standard_GZRS", "Standard_RAGZRS", "Premium_ZRS"})


def check_storage_redundancy(subscription_id: str, capability: InventoryCapability) -> CheckResult:
    """Storage accounts should replicate beyond a single datacenter."""
    accounts = resources_of_type(capability, "microsoft.storage/storageaccounts")
    if not accounts:
        return not_applicable("RE01", subscription_id, "storage accounts")

    offenders = [a for a in accounts if prop(a, "sku.name") not in _REDUNDANT_SKUS]
    return verdict(
        "RE01",
        subscription_id,
        offenders,
        total=len(accounts),
        what="storage accounts",
        recommendation="Switch locally-redundant (LRS) accounts to ZRS or GZRS.",
        remediation_script="az storage account update --name <account> --resource-group <rg> --sku Standard_ZRS",
    )


def check_vm_availability_zones(subscription_id: str, capability: InventoryCapability) -> CheckResult:
    """Virtual machines outside any availability zone produce a Warning."""
    vms = resources_of_type(capability, "microsoft.compute/virtualmachines")
    if not vms:
        return not_applicable("RE02", subscription_id, "virtual machines")

    offenders = [vm for vm in vms if not vm.get("zones")]
    return verdict(
        "RE02",
        subscription_id,
        offenders,
        total=len(vms),
        what="virtual machines",
        failure_status=CheckStatus.WARNING,
        recommendation="Deploy production VMs across availability zones or in a zone-redundant scale set.",
    )
