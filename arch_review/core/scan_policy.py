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
Scan policy: organisation-level knobs for what a scan runs and how it scores.

A policy is a YAML file. User policies are deep-merged over the built-in
default (``data/default_policy.yaml``) so they only need the sections they
change. Three presets ship with the package:

* ``strict``: binary scoring (a Warning scores like a Fail)
* ``balanced``: the default, Pass=100 / Warning=60 / Fail=0
* ``permissive``: lenient on warnings, tagging checks disabled

Example::

    policy_name: acme-prod
    preset_base: balanced
    selection:
      exclude_pillars: [cost]
    scoring:
      warning: 50
    severity_overrides:
      - check_id: RE02
        severity: High
        reason: zone redundancy is mandatory for production
    disabled_checks: [PE01]
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..data import DATA_DIR, DEFAULT_POLICY_PATH
from .aggregator import ScoringWeights
from .models import Severity
from .registry import CheckFilter

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Where the built-in policies live (ship with the package)
# ---------------------------------------------------------------------------

_PRESET_POLICIES: dict[str, Path] = {
    "strict": DATA_DIR / "strict_policy.yaml",
    "balanced": DEFAULT_POLICY_PATH,
    "permissive": DATA_DIR / "permissive_policy.yaml",
}


@dataclass
class SelectionPolicy:
    """Which checks a scan runs, before any command-line filter."""

    include_pillars: list[str] = field(default_factory=list)
    exclude_pillars: list[str] = field(default_factory=list)
    include_checks: list[str] = field(default_factory=list)
    exclude_checks: list[str] = field(default_factory=list)

    def to_filter(self) -> CheckFilter:
        return CheckFilter.from_strings(
            include_pillars=self.include_pillars,
            include_ids=self.include_checks,
            exclude_pillars=self.exclude_pillars,
            exclude_ids=self.exclude_checks,
        )


@dataclass
class OutputPolicy:
    # Stamp policy name/version/fingerprint into every result's metadata
    attach_policy_fingerprint: bool = True


@dataclass
class SeverityOverride:
    """A per-check severity override."""

    check_id: str
    severity: Severity
    reason: str = ""


@dataclass
class ScanPolicy:
    """Organisational scan policy."""

    policy_name: str = "default"
    policy_version: str = "1.0"
    # Preset this policy derives from; kept apart from policy_name so a
    # renamed policy still reports its lineage.
    preset_base: str = "balanced"

    selection: SelectionPolicy = field(default_factory=SelectionPolicy)
    scoring: ScoringWeights = field(default_factory=ScoringWeights)
    output: OutputPolicy = field(default_factory=OutputPolicy)
    severity_overrides: list[SeverityOverride] = field(default_factory=list)
    disabled_checks: set[str] = field(default_factory=set)

    def get_severity_override(self, check_id: str) -> Severity | None:
        """Return the overridden severity for *check_id*, or ``None``."""
        for ovr in self.severity_overrides:
            if ovr.check_id == check_id:
                return ovr.severity
        return None

    def check_filter(self) -> CheckFilter:
        """Selection as a filter, with disabled checks excluded."""
        selection = self.selection.to_filter()
        return CheckFilter(
            include_pillars=selection.include_pillars,
            include_ids=selection.include_ids,
            exclude_pillars=selection.exclude_pillars,
            exclude_ids=selection.exclude_ids | frozenset(self.disabled_checks),
        )

    # -----------------------------------------------------------------------
    # Construction helpers
    # -----------------------------------------------------------------------

    @classmethod
    def default(cls) -> ScanPolicy:
        """Load the built-in default policy that ships with the package."""
        return cls.from_yaml(DEFAULT_POLICY_PATH)

    @classmethod
    def from_preset(cls, name: str) -> ScanPolicy:
        """Load a named preset policy: ``strict``, ``balanced``, or ``permissive``."""
        name_lower = name.lower()
        if name_lower not in _PRESET_POLICIES:
            raise ValueError(f"Unknown preset '{name}'. Available: {', '.join(sorted(_PRESET_POLICIES))}")
        return cls.from_yaml(_PRESET_POLICIES[name_lower])

    @classmethod
    def preset_names(cls) -> list[str]:
        return sorted(_PRESET_POLICIES.keys())

    @classmethod
    def load(cls, preset_or_path: str | Path) -> ScanPolicy:
        """Resolve a preset name or a path to a policy file."""
        if str(preset_or_path).lower() in _PRESET_POLICIES:
            return cls.from_preset(str(preset_or_path))
        return cls.from_yaml(preset_or_path)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ScanPolicy:
        """
        Load a policy from a YAML file.

        The YAML is merged on top of the built-in defaults so that users
        only need to specify the sections they want to override.

        Raises:
            FileNotFoundError: If *path* does not exist
            ValueError: On malformed YAML or invalid values
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")

        with open(path, encoding="utf-8") as fh:
            try:
                raw: dict[str, Any] = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Malformed policy file {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Policy file {path} must contain a mapping")

        if path.resolve() == DEFAULT_POLICY_PATH.resolve():
            return cls._from_dict(raw)
        merged = cls._deep_merge(cls._load_default_raw(), raw)
        policy = cls._from_dict(merged)
        logger.debug("Loaded scan policy '%s' from %s", policy.policy_name, path)
        return policy

    def to_yaml(self, path: str | Path) -> None:
        """Dump the full policy to a YAML file for editing."""
        data = self._to_dict()
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("# Architecture Review Scanner - Scan Policy\n")
            fh.write("# Only include sections you want to override; omitted sections\n")
            fh.write("# will use the built-in defaults.\n\n")
            yaml.dump(data, fh, default_flow_style=False, sort_keys=False, width=120)

    def fingerprint(self) -> str:
        """SHA-256 of the policy's canonical JSON form."""
        canonical = json.dumps(self._to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def fingerprint_metadata(self) -> dict[str, str]:
        return {
            "policyName": self.policy_name,
            "policyVersion": self.policy_version,
            "policyPresetBase": self.preset_base,
            "policyFingerprintSha256": self.fingerprint(),
        }

    # -----------------------------------------------------------------------
    # Internal parsing
    # -----------------------------------------------------------------------

    @classmethod
    def _load_default_raw(cls) -> dict[str, Any]:
        if DEFAULT_POLICY_PATH.exists():
            with open(DEFAULT_POLICY_PATH, encoding="utf-8") as fh:
                return yaml.safe_load(fh) or {}
        return {}

    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Recursively merge *override* into *base*; lists are replaced, not joined."""
        result = dict(base)
        for key, val in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(val, dict):
                result[key] = ScanPolicy._deep_merge(result[key], val)
            else:
                result[key] = val
        return result

    @classmethod
    def _from_dict(cls, d: dict[str, Any]) -> ScanPolicy:
        sel = d.get("selection") or {}
        out = d.get("output") or {}

        severity_overrides = []
        for item in d.get("severity_overrides") or []:
            try:
                severity_overrides.append(
                    SeverityOverride(
                        check_id=str(item["check_id"]).upper(),
                        severity=Severity(item["severity"]),
                        reason=item.get("reason", ""),
                    )
                )
            except (KeyError, ValueError, TypeError) as e:
                raise ValueError(f"Invalid severity override {item!r}: {e}") from e

        selection = SelectionPolicy(
            include_pillars=list(sel.get("include_pillars") or []),
            exclude_pillars=list(sel.get("exclude_pillars") or []),
            include_checks=[str(c).upper() for c in sel.get("include_checks") or []],
            exclude_checks=[str(c).upper() for c in sel.get("exclude_checks") or []],
        )
        # Surface bad pillar names at load time rather than at scan time
        selection.to_filter()

        return cls(
            policy_name=str(d.get("policy_name", "default")),
            policy_version=str(d.get("policy_version", "1.0")),
            preset_base=str(d.get("preset_base", "balanced")),
            selection=selection,
            scoring=ScoringWeights.from_dict(d.get("scoring")),
            output=OutputPolicy(attach_policy_fingerprint=bool(out.get("attach_policy_fingerprint", True))),
            severity_overrides=severity_overrides,
            disabled_checks={str(c).upper() for c in d.get("disabled_checks") or []},
        )

    def _to_dict(self) -> dict[str, Any]:
        return {
            "policy_name": self.policy_name,
            "policy_version": self.policy_version,
            "preset_base": self.preset_base,
            "selection": {
                "include_pillars": list(self.selection.include_pillars),
                "exclude_pillars": list(self.selection.exclude_pillars),
                "include_checks": list(self.selection.include_checks),
                "exclude_checks": list(self.selection.exclude_checks),
            },
            "scoring": self.scoring.to_dict(),
            "output": {"attach_policy_fingerprint": self.output.attach_policy_fingerprint},
            "severity_overrides": [
                {"check_id": o.check_id, "severity": o.severity.value, "reason": o.reason}
                for o in self.severity_overrides
            ],
            "disabled_checks": sorted(self.disabled_checks),
        }
