# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Scan policy loading, presets and fingerprinting.
"""

from __future__ import annotations

import textwrap

import pytest
import yaml

from arch_review.core.aggregator import ScoringWeights
from arch_review.core.models import Pillar, Severity
from arch_review.core.scan_policy import ScanPolicy


@pytest.fixture
def write_policy(tmp_path):
    _counter = [0]

    def _write(yaml_str: str):
        _counter[0] += 1
        path = tmp_path / f"policy-{_counter[0]}.yaml"
        path.write_text(textwrap.dedent(yaml_str))
        return path

    return _write


class TestPresets:
    def test_preset_names(self):
        assert ScanPolicy.preset_names() == ["balanced", "permissive", "strict"]

    def test_default_is_balanced(self):
        policy = ScanPolicy.default()
        assert policy.policy_name == "balanced"
        assert policy.scoring == ScoringWeights(passed=100, warning=60, failed=0)
        assert not policy.disabled_checks

    def test_strict_uses_binary_scoring(self):
        policy = ScanPolicy.from_preset("STRICT")
        assert policy.preset_base == "strict"
        assert policy.scoring.warning == 0
        assert policy.get_severity_override("RE02") == Severity.HIGH

    def test_permissive_disables_tagging(self):
        policy = ScanPolicy.from_preset("permissive")
        assert "OP01" in policy.disabled_checks
        assert "OP01" in policy.check_filter().exclude_ids
        assert policy.scoring.warning == 80

    def test_unknown_preset(self):
        with pytest.raises(ValueError, match="Unknown preset"):
            ScanPolicy.from_preset("paranoid")


class TestFromYaml:
    def test_partial_policy_merges_over_defaults(self, write_policy):
        path = write_policy(
            """
            policy_name: acme
            scoring:
              warning: 50
            selection:
              exclude_pillars: [cost]
            """
        )
        policy = ScanPolicy.from_yaml(path)
        assert policy.policy_name == "acme"
        assert policy.scoring.warning == 50
        assert policy.scoring.passed == 100
        assert policy.check_filter().exclude_pillars == frozenset({Pillar.COST})

    def test_severity_overrides_and_disabled(self, write_policy):
        path = write_policy(
            """
            severity_overrides:
              - check_id: se05
                severity: Low
                reason: accepted risk
            disabled_checks: [pe01]
            """
        )
        policy = ScanPolicy.from_yaml(path)
        assert policy.get_severity_override("SE05") == Severity.LOW
        assert policy.get_severity_override("RE01") is None
        assert policy.disabled_checks == {"PE01"}

    def test_invalid_severity(self, write_policy):
        path = write_policy("severity_overrides:\n  - check_id: SE05\n    severity: Catastrophic\n")
        with pytest.raises(ValueError, match="severity override"):
            ScanPolicy.from_yaml(path)

    def test_invalid_pillar(self, write_policy):
        path = write_policy("selection:\n  include_pillars: [availability]\n")
        with pytest.raises(ValueError, match="Unknown pillar"):
            ScanPolicy.from_yaml(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ScanPolicy.from_yaml(tmp_path / "nope.yaml")

    def test_load_accepts_preset_or_path(self, write_policy):
        assert ScanPolicy.load("strict").policy_name == "strict"
        assert ScanPolicy.load(write_policy("policy_name: custom\n")).policy_name == "custom"


class TestSerialization:
    def test_to_yaml_round_trip(self, tmp_path):
        original = ScanPolicy.from_preset("strict")
        path = tmp_path / "out.yaml"
        original.to_yaml(path)

        raw = yaml.safe_load(path.read_text())
        assert raw["scoring"] == {"pass": 100, "warning": 0, "fail": 0}

        reloaded = ScanPolicy.from_yaml(path)
        assert reloaded.fingerprint() == original.fingerprint()

    def test_fingerprint_tracks_content(self):
        balanced = ScanPolicy.default()
        assert balanced.fingerprint() == ScanPolicy.default().fingerprint()
        assert balanced.fingerprint() != ScanPolicy.from_preset("strict").fingerprint()
        assert len(balanced.fingerprint()) == 64

    def test_fingerprint_metadata(self):
        meta = ScanPolicy.default().fingerprint_metadata()
        assert meta["policyName"] == "balanced"
        assert meta["policyFingerprintSha256"] == ScanPolicy.default().fingerprint()
