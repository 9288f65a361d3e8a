# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Shared helper utilities for core-pack evaluators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from arch_review.core.models import CheckResult, CheckStatus

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability


def resources_of_type(capability: InventoryCapability, resource_type: str) -> list[dict[str, Any]]:
    """Fetch every resource of *resource_type* in the capability's subscription."""
    return capability.query_inventory(f"Resources | where type =~ '{resource_type.lower()}'")


def all_resources(capability: InventoryCapability) -> list[dict[str, Any]]:
    return capability.query_inventory("Resources")


def prop(row: dict[str, Any], path: str, default: Any = None) -> Any:
    """Read a dotted path such as ``"properties.minimumTlsVersion"``."""
    current: Any = row
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def resource_ref(row: dict[str, Any]) -> str:
    return str(row.get("id") or row.get("name") or "<unnamed>")


def not_applicable(check_id: str, subscription_id: str, what: str) -> CheckResult:
    return CheckResult(
        check_id=check_id,
        subscription_id=subscription_id,
        status=CheckStatus.NOT_APPLICABLE,
        message=f"No {what} found",
    )


def verdict(
    check_id: str,
    subscription_id: str,
    offenders: list[dict[str, Any]],
    *,
    total: int,
    what: str,
    failure_status: CheckStatus = CheckStatus.FAIL,
    recommendation: str = "",
    remediation_script: str = "",
) -> CheckResult:
    """Pass when nothing offends, otherwise *failure_status* listing the offenders."""
    if not offenders:
        return CheckResult(
            check_id=check_id,
            subscription_id=subscription_id,
            status=CheckStatus.PASS,
            message=f"All {total} {what} compliant",
        )
    return CheckResult(
        check_id=check_id,
        subscription_id=subscription_id,
        status=failure_status,
        message=f"{len(offenders)} of {total} {what} non-compliant",
        affected_resources=tuple(resource_ref(r) for r in offenders),
        recommendation=recommendation,
        remediation_script=remediation_script,
        metadata={"evaluated": total, "nonCompliant": len(offenders)},
    )
