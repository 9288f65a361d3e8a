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
Architecture Review Scanner - scored best-practice assessment of cloud subscriptions.
"""

from ._version import __version__

__author__ = "Cisco Systems, Inc."


def __getattr__(name: str):
    """Lazy-load public API symbols on first access.

    Keeps ``python -m arch_review.cli.cli`` from importing the whole engine
    (and the built-in check pack) before argument parsing.
    """
    _lazy_map = {
        "Config": (".config.config", "Config"),
        "ArchReviewConstants": (".config.constants", "ArchReviewConstants"),
        "CheckDefinition": (".core.models", "CheckDefinition"),
        "CheckResult": (".core.models", "CheckResult"),
        "CheckStatus": (".core.models", "CheckStatus"),
        "Pillar": (".core.models", "Pillar"),
        "Severity": (".core.models", "Severity"),
        "ScanSummary": (".core.models", "ScanSummary"),
        "ScanReport": (".core.models", "ScanReport"),
        "BaselineDiff": (".core.models", "BaselineDiff"),
        "CheckRegistry": (".core.registry", "CheckRegistry"),
        "CheckFilter": (".core.registry", "CheckFilter"),
        "CatalogLoader": (".core.registry", "CatalogLoader"),
        "QueryCache": (".core.cache", "QueryCache"),
        "InventoryClient": (".core.inventory", "InventoryClient"),
        "SnapshotInventoryClient": (".core.inventory", "SnapshotInventoryClient"),
        "ScanExecutor": (".core.executor", "ScanExecutor"),
        "CancellationToken": (".core.executor", "CancellationToken"),
        "summarize": (".core.aggregator", "summarize"),
        "compare": (".core.baseline", "compare"),
        "ScanPolicy": (".core.scan_policy", "ScanPolicy"),
        "ArchitectureScanner": (".core.scanner", "ArchitectureScanner"),
        "scan_subscriptions": (".core.scanner", "scan_subscriptions"),
    }
    if name in _lazy_map:
        module_path, attr = _lazy_map[name]
        import importlib

        mod = importlib.import_module(module_path, __package__)
        val = getattr(mod, attr)
        # Cache on the module so __getattr__ is only called once per symbol
        globals()[name] = val
        return val
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ArchitectureScanner",
    "scan_subscriptions",
    "CheckDefinition",
    "CheckResult",
    "CheckStatus",
    "Pillar",
    "Severity",
    "ScanSummary",
    "ScanReport",
    "BaselineDiff",
    "CheckRegistry",
    "CheckFilter",
    "CatalogLoader",
    "QueryCache",
    "InventoryClient",
    "SnapshotInventoryClient",
    "ScanExecutor",
    "CancellationToken",
    "summarize",
    "compare",
    "ScanPolicy",
    "Config",
    "ArchReviewConstants",
]
