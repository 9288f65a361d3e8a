# Copyright 2026 Cisco Systems, Inc. and its affiliates
# SPDX-License-Identifier: Apache-2.0

"""
Check registry, filter and catalog loader tests.
"""

from __future__ import annotations

import textwrap
import pytest

from arch_review.core.evaluators import BaseEvaluator
from arch_review.core.exceptions import (
    DuplicateCheckError,
    InvalidDefinitionError,
    RegistryError,
    RegistryFrozenError,
)
from arch_review.core.models import CheckDefinition, Pillar, Severity
from arch_review.core.registry import CatalogLoader, CheckFilter, CheckRegistry, parse_pillar
from arch_review.data import CORE_PACK_DIR


class TestCheckRegistry:
    def test_register_and_retrieve(self, make_definition):
        reg = CheckRegistry()
        definition = make_definition("SE05", pillar=Pillar.SECURITY)
        reg.register(definition)
        assert "SE05" in reg
        assert len(reg) == 1
        assert reg.get("SE05") is definition

    def test_duplicate_registration_keeps_first(self, make_definition):
        reg = CheckRegistry()
        first = make_definition("SE05", pillar=Pillar.SECURITY, title="first")
        reg.register(first)
        with pytest.raises(DuplicateCheckError) as exc_info:
            reg.register(make_definition("SE05", pillar=Pillar.SECURITY, title="second"))

        assert exc_info.value.check_id == "SE05"
        assert len(reg) == 1
        assert reg.get("SE05").title == "first"

    @pytest.mark.parametrize("bad_id", ["", "se05", "SEC5", "S005", "SE005"])
    def test_malformed_id_rejected(self, make_definition, bad_id):
        with pytest.raises(InvalidDefinitionError):
            CheckRegistry().register(make_definition(bad_id))

    def test_missing_title_rejected(self, make_definition):
        with pytest.raises(InvalidDefinitionError, match="title"):
            CheckRegistry().register(make_definition("RE01", title="  "))

    def test_missing_evaluator_rejected(self):
        definition = CheckDefinition(id="RE01", pillar=Pillar.RELIABILITY, title="No evaluator")
        with pytest.raises(InvalidDefinitionError, match="evaluator"):
            CheckRegistry().register(definition)

    def test_non_callable_evaluator_rejected(self):
        definition = CheckDefinition(id="RE01", pillar=Pillar.RELIABILITY, title="Bad", evaluator="not callable")
        with pytest.raises(InvalidDefinitionError):
            CheckRegistry().register(definition)

    def test_registration_after_lookup_is_frozen(self, make_definition):
        reg = CheckRegistry()
        reg.register(make_definition("RE01"))
        reg.list()
        assert reg.is_frozen
        with pytest.raises(RegistryFrozenError):
            reg.register(make_definition("RE02"))

    def test_frozen_error_is_registry_error(self):
        assert issubclass(RegistryFrozenError, RegistryError)
        assert issubclass(DuplicateCheckError, RegistryError)

    def test_list_preserves_insertion_order(self, make_registry):
        reg = make_registry(("SE05", Pillar.SECURITY), ("RE01", Pillar.RELIABILITY), ("CO01", Pillar.COST))
        assert [d.id for d in reg.list()] == ["SE05", "RE01", "CO01"]


class TestCheckFilter:
    @pytest.fixture
    def registry(self, make_registry):
        return make_registry(
            ("RE01", Pillar.RELIABILITY),
            ("RE02", Pillar.RELIABILITY),
            ("SE01", Pillar.SECURITY),
            ("SE05", Pillar.SECURITY),
            ("CO01", Pillar.COST),
        )

    def test_no_filter_returns_all(self, registry):
        assert len(registry.list()) == 5
        assert len(registry.list(CheckFilter())) == 5

    def test_include_by_pillar(self, registry):
        selected = registry.list(CheckFilter(include_pillars=frozenset({Pillar.SECURITY})))
        assert [d.id for d in selected] == ["SE01", "SE05"]

    def test_inclusions_are_a_union(self, registry):
        f = CheckFilter(include_pillars=frozenset({Pillar.COST}), include_ids=frozenset({"RE02"}))
        assert [d.id for d in registry.list(f)] == ["RE02", "CO01"]

    def test_exclusion_beats_inclusion(self, registry):
        f = CheckFilter(include_pillars=frozenset({Pillar.SECURITY}), exclude_ids=frozenset({"SE05"}))
        assert [d.id for d in registry.list(f)] == ["SE01"]

    def test_exclude_pillar(self, registry):
        f = CheckFilter(exclude_pillars=frozenset({Pillar.RELIABILITY}))
        assert [d.id for d in registry.list(f)] == ["SE01", "SE05", "CO01"]

    def test_from_strings_normalizes_input(self):
        f = CheckFilter.from_strings(include_pillars=["Security"], exclude_ids=["se05 "])
        assert f.include_pillars == frozenset({Pillar.SECURITY})
        assert f.exclude_ids == frozenset({"SE05"})

    def test_from_strings_unknown_pillar(self):
        with pytest.raises(ValueError, match="Unknown pillar"):
            CheckFilter.from_strings(include_pillars=["availability"])

    def test_combine_accumulates_exclusions_and_replaces_inclusions(self):
        policy = CheckFilter(include_pillars=frozenset({Pillar.COST}), exclude_ids=frozenset({"RE01"}))
        caller = CheckFilter(include_ids=frozenset({"SE01"}), exclude_ids=frozenset({"SE05"}))
        combined = policy.combine(caller)
        assert combined.include_pillars == frozenset()
        assert combined.include_ids == frozenset({"SE01"})
        assert combined.exclude_ids == frozenset({"RE01", "SE05"})

    def test_combine_keeps_own_inclusions_when_other_has_none(self):
        policy = CheckFilter(include_pillars=frozenset({Pillar.COST}))
        combined = policy.combine(CheckFilter(exclude_pillars=frozenset({Pillar.SECURITY})))
        assert combined.include_pillars == frozenset({Pillar.COST})
        assert combined.exclude_pillars == frozenset({Pillar.SECURITY})
        assert policy.combine(None) is policy

    def test_parse_pillar(self):
        assert parse_pillar(" RELIABILITY ") is Pillar.RELIABILITY
        assert parse_pillar(Pillar.COST) is Pillar.COST


class TestCatalogLoader:
    def test_core_pack_loads(self):
        pack = CatalogLoader().load_pack(CORE_PACK_DIR)
        assert pack.name == "core"
        assert {"RE01", "RE02", "SE01", "SE05", "CO01", "OP01", "PE01"} <= set(pack.checks)
        assert pack.checks["SE05"].severity == Severity.CRITICAL
        assert pack.checks["SE05"].pillar == Pillar.SECURITY

    def test_every_pillar_has_a_check(self):
        registry = CatalogLoader().build_registry()
        assert {d.pillar for d in registry.list()} == set(Pillar)

    def test_class_evaluators_receive_options(self):
        pack = CatalogLoader().load_pack(CORE_PACK_DIR)
        evaluator = pack.checks["OP01"].evaluator
        assert isinstance(evaluator, BaseEvaluator)
        assert evaluator.required_tags == ["owner", "environment"]

    def test_missing_pack_yaml_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            CatalogLoader().load_pack(tmp_path)

    def test_extra_pack_with_file_evaluator(self, tmp_path):
        pack_dir = tmp_path / "custom"
        pack_dir.mkdir()
        (pack_dir / "checks.py").write_text(
            textwrap.dedent(
                """
                from arch_review.core.models import CheckResult, CheckStatus

                def check_nothing(subscription_id, capability):
                    return CheckResult(check_id="XX01", subscription_id=subscription_id, status=CheckStatus.PASS)
                """
            )
        )
        (pack_dir / "pack.yaml").write_text(
            textwrap.dedent(
                """
                name: custom
                version: "0.1"
                checks:
                  XX01:
                    pillar: operations
                    title: Custom check
                    evaluator: checks.py:check_nothing
                """
            )
        )
        registry = CatalogLoader().build_registry(extra_dirs=[tmp_path])
        assert "XX01" in registry
        assert "RE01" in registry
        assert "custom" in registry.all_packs()

    def test_unimportable_evaluator_fails_fast(self, tmp_path):
        (tmp_path / "pack.yaml").write_text(
            "name: broken\nchecks:\n  XX01:\n    pillar: cost\n    title: t\n    evaluator: no.such.module:fn\n"
        )
        with pytest.raises(InvalidDefinitionError, match="Cannot import"):
            CatalogLoader().load_pack(tmp_path)

    def test_bad_pillar_fails_fast(self, tmp_path):
        (tmp_path / "pack.yaml").write_text(
            "name: broken\nchecks:\n  XX01:\n    pillar: availability\n    title: t\n    evaluator: os:getcwd\n"
        )
        with pytest.raises(InvalidDefinitionError):
            CatalogLoader().load_pack(tmp_path)

    def test_duplicate_across_packs_raises(self, tmp_path):
        (tmp_path / "pack.yaml").write_text(
            "name: dup\nchecks:\n  RE01:\n    pillar: reliability\n    title: t\n    evaluator: os:getcwd\n"
        )
        with pytest.raises(DuplicateCheckError):
            CatalogLoader().build_registry(extra_dirs=[tmp_path])
