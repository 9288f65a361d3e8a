# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Evaluator modules for the core check pack.

Each module groups the checks of one pillar. Evaluators are plain functions
or :class:`~arch_review.core.evaluators.BaseEvaluator` subclasses with the
signature::

    def check_<aspect>(subscription_id: str, capability: InventoryCapability) -> CheckResult | list[CheckResult]:
        ...

and are wired to check ids in ``pack.yaml``. The executor stamps the check
id, pillar and severity onto whatever they return.
"""
