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
Base evaluator interface for best-practice checks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..inventory import InventoryCapability
    from ..models import CheckResult


class BaseEvaluator(ABC):
    """Abstract base class for class-based check evaluators.

    Plain functions with the same signature as :meth:`evaluate` are accepted
    by the registry as well; subclass this when an evaluator needs state
    (e.g. thresholds read from a pack manifest).
    """

    def __init__(self, name: str | None = None):
        """
        Initialize evaluator.

        Args:
            name: Name used in logs. Defaults to the class name.
        """
        self.name = name or type(self).__name__

    @abstractmethod
    def evaluate(self, subscription_id: str, capability: InventoryCapability) -> CheckResult | list[CheckResult]:
        """
        Evaluate one subscription.

        Args:
            subscription_id: Subscription being assessed
            capability: Cache-aware inventory access for this invocation

        Returns:
            One result, or several to be folded into a single verdict

        Raises:
            TransientError: On throttling or server-side failures (retried)
            PermissionDeniedError: When the caller identity lacks access
        """
        pass

    def __call__(self, subscription_id: str, capability: InventoryCapability) -> CheckResult | list[CheckResult]:
        return self.evaluate(subscription_id, capability)

    def get_name(self) -> str:
        """Get the evaluator name."""
        return self.name
