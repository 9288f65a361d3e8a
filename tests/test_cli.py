# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface tests.
"""

from __future__ import annotations

import json

import pytest
import yaml

from arch_review.cli.cli import main
from arch_review.core.baseline import dump_results
from arch_review.core.models import CheckResult, CheckStatus


@pytest.fixture(autouse=True)
def _fast_env(clean_env, monkeypatch):
    monkeypatch.setenv("ARCH_REVIEW_BASE_DELAY_SECONDS", "0")
    monkeypatch.setenv("ARCH_REVIEW_MAX_DELAY_SECONDS", "0")


class TestScanCommand:
    def test_summary_output(self, snapshot_path, capsys):
        assert main(["scan", "sub-prod", "--inventory", str(snapshot_path)]) == 0
        out = capsys.readouterr().out
        assert "Compliance Score: 70.00" in out
        assert "[FAIL] RE01 sub-prod" in out

    def test_json_output_to_file(self, snapshot_path, tmp_path):
        output = tmp_path / "report.json"
        code = main(
            ["scan", "sub-prod", "sub-dev", "--inventory", str(snapshot_path), "--format", "json", "-o", str(output)]
        )
        assert code == 0
        data = json.loads(output.read_text())
        assert data["subscriptions"] == ["sub-prod", "sub-dev"]
        assert len(data["results"]) == 14

    def test_fail_on_findings(self, snapshot_path):
        assert main(["scan", "sub-prod", "--inventory", str(snapshot_path), "--fail-on-findings"]) == 1
        assert (
            main(
                [
                    "scan",
                    "sub-prod",
                    "--inventory",
                    str(snapshot_path),
                    "--include-check",
                    "se05",
                    "--fail-on-findings",
                ]
            )
            == 0
        )

    def test_pillar_filter_and_policy(self, snapshot_path, capsys):
        code = main(
            [
                "scan",
                "sub-prod",
                "--inventory",
                str(snapshot_path),
                "--include-pillar",
                "security",
                "--policy",
                "strict",
                "--format",
                "json",
            ]
        )
        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["checks"] == ["SE01", "SE05"]
        assert data["scanMetadata"]["policyName"] == "strict"

    def test_baseline_flag(self, snapshot_path, tmp_path, capsys):
        baseline = tmp_path / "baseline.json"
        dump_results([CheckResult("RE01", "sub-prod", CheckStatus.PASS)], baseline)
        assert main(["scan", "sub-prod", "--inventory", str(snapshot_path), "--baseline", str(baseline)]) == 0
        out = capsys.readouterr().out
        assert "New failures: 1" in out
        assert "[REGRESSION] RE01 sub-prod" in out

    def test_missing_inventory(self, tmp_path, capsys):
        assert main(["scan", "sub-prod", "--inventory", str(tmp_path / "nope.yaml")]) == 1
        assert "does not exist" in capsys.readouterr().err

    def test_invalid_parallelism(self, snapshot_path, capsys):
        assert main(["scan", "sub-prod", "--inventory", str(snapshot_path), "--max-parallelism", "0"]) == 1
        assert "max_parallelism" in capsys.readouterr().err


class TestCompareCommand:
    def _write(self, path, status):
        dump_results([CheckResult("SE05", "sub-a", status)], path)
        return str(path)

    def test_regression_exit_code(self, tmp_path, capsys):
        current = self._write(tmp_path / "current.json", CheckStatus.FAIL)
        baseline = self._write(tmp_path / "baseline.json", CheckStatus.PASS)
        assert main(["compare", current, baseline]) == 0
        assert main(["compare", current, baseline, "--fail-on-regressions"]) == 1
        assert "[REGRESSION] SE05 sub-a" in capsys.readouterr().out

    def test_json_format(self, tmp_path, capsys):
        current = self._write(tmp_path / "current.json", CheckStatus.PASS)
        baseline = self._write(tmp_path / "baseline.json", CheckStatus.FAIL)
        assert main(["compare", current, baseline, "--format", "json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["summary"]["improvements"] == 1

    def test_unreadable_input(self, tmp_path, capsys):
        bad = tmp_path / "bad.json"
        bad.write_text("[1, 2]")
        assert main(["compare", str(bad), str(bad)]) == 1
        assert "Error loading results" in capsys.readouterr().err


class TestOtherCommands:
    def test_list_checks(self, capsys):
        assert main(["list-checks"]) == 0
        out = capsys.readouterr().out
        assert "SE05" in out
        assert "7 check(s)" in out

    def test_list_checks_by_pillar(self, capsys):
        assert main(["list-checks", "--pillar", "reliability"]) == 0
        out = capsys.readouterr().out
        assert "RE01" in out
        assert "SE05" not in out

    def test_generate_policy(self, tmp_path):
        output = tmp_path / "policy.yaml"
        assert main(["generate-policy", "-o", str(output), "--preset", "strict"]) == 0
        data = yaml.safe_load(output.read_text())
        assert data["preset_base"] == "strict"
        assert data["scoring"]["warning"] == 0

    def test_no_command(self, capsys):
        assert main([]) == 1
