# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""Security pillar checks.

Checks: SE01 (storage transport security), SE05 (Key Vault recoverability).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from arch_review.core.models import CheckResult, CheckStatus

from ._helpers import not_applicable, prop, resource_ref, resources_of_type, verdict

if TYPE_CHECKING:
    from arch_review.core.inventory import InventoryCapability

_TLS_ORDER = {"TLS1_0": 0, "TLS1_1": 1, "TLS1_2": 2, "TLS1_3": 3}


def check_storage_secure_transfer(subscription_id: str, capability: InventoryCapability) -> list[CheckResult]:
    """One verdict per storage account.

    HTTP allowed is a failure; HTTPS-only with a TLS floor below 1.2 is a
    warning.
    """
    accounts = resources_of_type(capability, "microsoft.storage/storageaccounts")
    results: list[CheckResult] = []
    for account in accounts:
        ref = resource_ref(account)
        https_only = prop(account, "properties.supportsHttpsTrafficOnly", False)
        tls = prop(account, "properties.minimumTlsVersion", "TLS1_0")

        if not https_only:
            results.append(
                CheckResult(
                    check_id="SE01",
                    subscription_id=subscription_id,
                    status=CheckStatus.FAIL,
                    message=f"{account.get('name', ref)} accepts unencrypted HTTP",
                    affected_resources=(ref,),
                    recommendation="Enable 'Secure transfer required' on the storage account.",
                    remediation_script=f"az storage account update --ids {ref} --https-only true",
                )
            )
        elif _TLS_ORDER.get(tls, 0) < _TLS_ORDER["TLS1_2"]:
            results.append(
                CheckResult(
                    check_id="SE01",
                    subscription_id=subscription_id,
                    status=CheckStatus.WARNING,
                    message=f"{account.get('name', ref)} allows {tls}",
                    affected_resources=(ref,),
                    recommendation="Raise the minimum TLS version to TLS1_2.",
                    remediation_script=f"az storage account update --ids {ref} --min-tls-version TLS1_2",
                )
            )
        else:
            results.append(
                CheckResult(
                    check_id="SE01",
                    subscription_id=subscription_id,
                    status=CheckStatus.PASS,
                    message=f"{account.get('name', ref)} enforces HTTPS with {tls}",
                )
            )
    return results


def check_key_vault_recovery(subscription_id: str, capability: InventoryCapability) -> CheckResult:
    vaults = resources_of_type(capability, "microsoft.keyvault/vaults")
    if not vaults:
        return not_applicable("SE05", subscription_id, "key vaults")

    offenders = [
        v
        for v in vaults
        if not prop(v, "properties.enableSoftDelete", True) or not prop(v, "properties.enablePurgeProtection", False)
    ]
    return verdict(
        "SE05",
        subscription_id,
        offenders,
        total=len(vaults),
        what="key vaults",
        recommendation="Enable soft delete and purge protection on every Key Vault.",
        remediation_script="az keyvault update --name <vault> --enable-purge-protection true",
    )
