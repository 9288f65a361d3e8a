# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Baseline comparison tests.
"""

from __future__ import annotations

import json

import pytest

from arch_review.core.baseline import compare, dump_results, load_results
from arch_review.core.models import CheckStatus, Pillar


def _ids(entries):
    return [(e.subscription_id, e.check_id) for e in entries]


class TestCompare:
    def test_pass_to_fail_is_new_failure(self, make_result):
        diff = compare(
            current=[make_result("SE05", CheckStatus.FAIL, pillar=Pillar.SECURITY)],
            baseline=[make_result("SE05", CheckStatus.PASS, pillar=Pillar.SECURITY)],
        )
        assert _ids(diff.new_failures) == [("sub-a", "SE05")]
        assert diff.has_regressions
        assert not diff.improvements

    def test_fail_to_pass_is_improvement(self, make_result):
        diff = compare(
            current=[make_result("SE05", CheckStatus.PASS)],
            baseline=[make_result("SE05", CheckStatus.FAIL)],
        )
        assert _ids(diff.improvements) == [("sub-a", "SE05")]
        assert not diff.has_regressions

    @pytest.mark.parametrize("status", list(CheckStatus))
    def test_identical_status_is_unchanged(self, make_result, status):
        diff = compare([make_result("SE05", status)], [make_result("SE05", status)])
        assert _ids(diff.unchanged) == [("sub-a", "SE05")]

    def test_not_applicable_to_fail_is_new_failure(self, make_result):
        diff = compare([make_result("SE05", CheckStatus.FAIL)], [make_result("SE05", CheckStatus.NOT_APPLICABLE)])
        assert len(diff.new_failures) == 1

    def test_warning_to_fail_is_unchanged(self, make_result):
        diff = compare([make_result("SE05", CheckStatus.FAIL)], [make_result("SE05", CheckStatus.WARNING)])
        assert len(diff.unchanged) == 1
        assert not diff.new_failures

    def test_fail_to_error_is_not_an_improvement(self, make_result):
        diff = compare([make_result("SE05", CheckStatus.ERROR)], [make_result("SE05", CheckStatus.FAIL)])
        assert len(diff.unchanged) == 1

    def test_added_and_removed_do_not_count_as_trend(self, make_result):
        diff = compare(
            current=[make_result("RE01", CheckStatus.FAIL), make_result("SE05", CheckStatus.PASS)],
            baseline=[make_result("SE05", CheckStatus.PASS), make_result("CO01", CheckStatus.PASS)],
        )
        assert _ids(diff.added) == [("sub-a", "RE01")]
        assert _ids(diff.removed) == [("sub-a", "CO01")]
        assert not diff.new_failures
        assert not diff.improvements
        assert diff.to_dict()["summary"]["added"] == 1

    def test_keys_include_subscription(self, make_result):
        diff = compare(
            current=[make_result("SE05", CheckStatus.FAIL, subscription_id="sub-b")],
            baseline=[make_result("SE05", CheckStatus.PASS, subscription_id="sub-a")],
        )
        assert _ids(diff.added) == [("sub-b", "SE05")]
        assert _ids(diff.removed) == [("sub-a", "SE05")]

    def test_duplicates_resolve_to_worst_status(self, make_result):
        current = [make_result("SE05", CheckStatus.PASS), make_result("SE05", CheckStatus.FAIL)]
        diff = compare(current, [make_result("SE05", CheckStatus.PASS)])
        assert diff.new_failures[0].current_status == CheckStatus.FAIL
        assert compare(list(reversed(current)), [make_result("SE05", CheckStatus.PASS)]) == diff

    def test_entries_sorted_by_key(self, make_result):
        current = [make_result(c, CheckStatus.PASS, subscription_id=s) for s, c in [("b", "SE01"), ("a", "RE02"), ("a", "RE01")]]
        diff = compare(current, current)
        assert _ids(diff.unchanged) == [("a", "RE01"), ("a", "RE02"), ("b", "SE01")]


class TestResultFiles:
    def test_dump_and_load(self, tmp_path, make_result):
        results = [
            make_result("SE05", CheckStatus.FAIL, affected_resources=("kv-1",), metadata={"attempts": 2}),
            make_result("RE01", CheckStatus.PASS, pillar=None),
        ]
        path = tmp_path / "out" / "results.json"
        dump_results(results, path)
        loaded = load_results(path)
        assert [(r.check_id, r.status, r.pillar) for r in loaded] == [
            ("SE05", CheckStatus.FAIL, Pillar.RELIABILITY),
            ("RE01", CheckStatus.PASS, None),
        ]
        assert loaded[0].affected_resources == ("kv-1",)
        assert loaded[0].metadata["attempts"] == 2

    def test_load_report_document(self, tmp_path, make_result):
        path = tmp_path / "report.json"
        path.write_text(json.dumps({"summary": {}, "results": [make_result("SE05").to_dict()]}))
        assert [r.check_id for r in load_results(path)] == ["SE05"]

    def test_load_rejects_other_documents(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"something": 1}))
        with pytest.raises(ValueError):
            load_results(path)

    def test_load_rejects_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid JSON"):
            load_results(path)

    def test_load_rejects_malformed_entry(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"checkId": "SE05"}]))
        with pytest.raises(ValueError, match="Malformed"):
            load_results(path)
