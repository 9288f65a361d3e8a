# Copyright 2026 Cisco Systems, Inc. and its affiliates
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
Pytest configuration and shared fixtures.

This file is automatically loaded by pytest before running tests.
All fixtures defined here are available to every test module without
explicit imports.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from dotenv import load_dotenv

from arch_review.config.config import Config
from arch_review.core.executor import ExecutorConfig
from arch_review.core.inventory import SnapshotInventoryClient
from arch_review.core.models import CheckDefinition, CheckResult, CheckStatus, Pillar, Severity
from arch_review.core.registry import CheckRegistry

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

project_root = Path(__file__).parent.parent
env_file = project_root / ".env"

if env_file.exists():
    load_dotenv(env_file)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def clean_env():
    """Run a test with every ARCH_REVIEW_* variable removed."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("ARCH_REVIEW_")}
    with patch.dict("os.environ", env, clear=True):
        yield


# ---------------------------------------------------------------------------
# Inventory fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def snapshot_path() -> Path:
    """Path to the shared inventory snapshot (sub-prod, sub-dev, sub-locked)."""
    return FIXTURES_DIR / "inventory.yaml"


@pytest.fixture
def snapshot_client(snapshot_path: Path) -> SnapshotInventoryClient:
    return SnapshotInventoryClient.from_file(snapshot_path)


@pytest.fixture
def fast_config(clean_env) -> Config:
    """Config with no retry delay, so retry tests run instantly."""
    return Config(base_delay_seconds=0.0, max_delay_seconds=0.0, timeout_seconds=10.0)


@pytest.fixture
def fast_executor_config() -> ExecutorConfig:
    return ExecutorConfig(max_parallelism=4, timeout_seconds=5.0, base_delay_seconds=0.0, max_delay_seconds=0.0)


# ---------------------------------------------------------------------------
# Factory fixtures
# ---------------------------------------------------------------------------


def _always_pass(subscription_id, capability):
    return CheckResult(check_id="", subscription_id=subscription_id, status=CheckStatus.PASS, message="ok")


@pytest.fixture
def make_definition():
    """Factory fixture for :class:`CheckDefinition` objects.

    Usage::

        definition = make_definition("SE05", pillar=Pillar.SECURITY, evaluator=my_fn)
    """

    def _make(
        check_id: str = "RE01",
        pillar: Pillar = Pillar.RELIABILITY,
        evaluator=None,
        title: str | None = None,
        severity: Severity = Severity.MEDIUM,
        **kwargs,
    ) -> CheckDefinition:
        return CheckDefinition(
            id=check_id,
            pillar=pillar,
            title=title if title is not None else f"Test check {check_id}",
            evaluator=evaluator or _always_pass,
            severity=severity,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_result():
    """Factory fixture for :class:`CheckResult` objects.

    Usage::

        result = make_result("SE05", CheckStatus.FAIL, subscription_id="sub-a")
    """

    def _make(
        check_id: str = "RE01",
        status: CheckStatus = CheckStatus.PASS,
        subscription_id: str = "sub-a",
        pillar: Pillar | None = Pillar.RELIABILITY,
        severity: Severity = Severity.MEDIUM,
        **kwargs,
    ) -> CheckResult:
        return CheckResult(
            check_id=check_id,
            subscription_id=subscription_id,
            status=status,
            pillar=pillar,
            severity=severity,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_registry(make_definition):
    """Factory fixture for a sealed :class:`CheckRegistry`.

    Accepts definitions or ``(check_id, pillar)`` tuples.
    """

    def _make(*items) -> CheckRegistry:
        definitions = []
        for item in items:
            if isinstance(item, CheckDefinition):
                definitions.append(item)
            else:
                check_id, pillar = item
                definitions.append(make_definition(check_id, pillar=pillar))
        return CheckRegistry.from_definitions(definitions)

    return _make
