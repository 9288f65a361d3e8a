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
Check registry and catalog packs.

Architecture
~~~~~~~~~~~~

Checks are declared in **packs**. Each pack is a directory containing a
``pack.yaml`` manifest and the Python modules that implement its evaluators:

.. code-block:: text

    my-checks/
        pack.yaml           # Manifest - declares every check + its evaluator
        python/*.py         # (optional) evaluator modules referenced by path

At startup the :class:`CatalogLoader` discovers the built-in pack and any
extra packs, and the :class:`CheckRegistry` collects every
:class:`~arch_review.core.models.CheckDefinition`. The registry is sealed by
the first lookup; after that it is read-only and shared by every worker
without locking.
"""

from __future__ import annotations

import importlib
import importlib.util
import inspect
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..data import PACKS_DIR
from .evaluators.base import BaseEvaluator
from .exceptions import DuplicateCheckError, InvalidDefinitionError, RegistryFrozenError
from .models import CheckDefinition, Pillar, RemediationEffort, Severity, is_valid_check_id

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckFilter:
    """Include/exclude selection over pillars and check ids.

    A check is selected when it matches no exclusion and either no inclusion
    is configured or it matches at least one inclusion (by pillar **or** by
    id). Exclusion always wins over inclusion.
    """

    include_pillars: frozenset[Pillar] = frozenset()
    include_ids: frozenset[str] = frozenset()
    exclude_pillars: frozenset[Pillar] = frozenset()
    exclude_ids: frozenset[str] = frozenset()

    @property
    def has_inclusions(self) -> bool:
        return bool(self.include_pillars or self.include_ids)

    def matches(self, definition: CheckDefinition) -> bool:
        if definition.pillar in self.exclude_pillars or definition.id in self.exclude_ids:
            return False
        if not self.has_inclusions:
            return True
        return definition.pillar in self.include_pillars or definition.id in self.include_ids

    def combine(self, other: CheckFilter | None) -> CheckFilter:
        """Layer *other* on top of this filter.

        Exclusions accumulate. Inclusions from *other* replace ours when it
        declares any, so a narrower command-line selection overrides a
        policy-level one.
        """
        if other is None:
            return self
        if other.has_inclusions:
            include_pillars, include_ids = other.include_pillars, other.include_ids
        else:
            include_pillars, include_ids = self.include_pillars, self.include_ids
        return CheckFilter(
            include_pillars=include_pillars,
            include_ids=include_ids,
            exclude_pillars=self.exclude_pillars | other.exclude_pillars,
            exclude_ids=self.exclude_ids | other.exclude_ids,
        )

    @classmethod
    def from_strings(
        cls,
        include_pillars: Iterable[str] = (),
        include_ids: Iterable[str] = (),
        exclude_pillars: Iterable[str] = (),
        exclude_ids: Iterable[str] = (),
    ) -> CheckFilter:
        """Build a filter from user input (pillar names are case-insensitive).

        Raises:
            ValueError: On an unknown pillar name.
        """
        return cls(
            include_pillars=frozenset(parse_pillar(p) for p in include_pillars),
            include_ids=frozenset(i.strip().upper() for i in include_ids),
            exclude_pillars=frozenset(parse_pillar(p) for p in exclude_pillars),
            exclude_ids=frozenset(i.strip().upper() for i in exclude_ids),
        )


def parse_pillar(value: str | Pillar) -> Pillar:
    if isinstance(value, Pillar):
        return value
    try:
        return Pillar(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(p.value for p in Pillar)
        raise ValueError(f"Unknown pillar '{value}'. Valid pillars: {valid}") from None


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CheckRegistry:
    """Central catalog of check definitions.

    Built once at startup, then read-only. The first call to :meth:`list` or
    :meth:`get` seals it; later registrations raise
    :class:`RegistryFrozenError`.
    """

    def __init__(self) -> None:
        self._checks: dict[str, CheckDefinition] = {}
        self._packs: dict[str, CheckPack] = {}
        self._frozen = False

    @classmethod
    def from_definitions(cls, definitions: Iterable[CheckDefinition]) -> CheckRegistry:
        """Register *definitions* in order and seal the result."""
        registry = cls()
        for definition in definitions:
            registry.register(definition)
        registry.freeze()
        return registry

    # -- Mutation (used during startup) ------------------------------------

    def register(self, definition: CheckDefinition) -> None:
        """Register a single check.

        Raises:
            InvalidDefinitionError: If ``id``, ``pillar``, ``title`` or
                ``evaluator`` is missing or malformed.
            DuplicateCheckError: If the id is already registered. The
                first definition is kept.
            RegistryFrozenError: If lookups have already begun.
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register '{definition.id}': registry is read-only once lookups begin")
        validate_definition(definition)
        if definition.id in self._checks:
            raise DuplicateCheckError(definition.id)
        self._checks[definition.id] = definition

    def register_pack(self, pack: CheckPack) -> None:
        """Register every check of *pack* in manifest order."""
        for definition in pack.checks.values():
            self.register(definition)
        self._packs[pack.name] = pack

    def freeze(self) -> None:
        """Seal the registry explicitly."""
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # -- Read-only accessors ------------------------------------------------

    def get(self, check_id: str) -> CheckDefinition | None:
        """Look up a check by id."""
        self._frozen = True
        return self._checks.get(check_id)

    def list(self, check_filter: CheckFilter | None = None) -> list[CheckDefinition]:
        """Return checks in registration order, narrowed by *check_filter*."""
        self._frozen = True
        if check_filter is None:
            return list(self._checks.values())
        return [d for d in self._checks.values() if check_filter.matches(d)]

    def all_packs(self) -> dict[str, CheckPack]:
        """Return a shallow copy of the loaded packs."""
        return dict(self._packs)

    def check_ids(self) -> list[str]:
        """Return registered ids in registration order."""
        return list(self._checks)

    def __len__(self) -> int:
        return len(self._checks)

    def __contains__(self, check_id: object) -> bool:
        return check_id in self._checks


def validate_definition(definition: CheckDefinition) -> None:
    """Raise :class:`InvalidDefinitionError` unless the required fields are usable."""
    if not definition.id:
        raise InvalidDefinitionError("Check definition is missing an id")
    if not is_valid_check_id(definition.id):
        raise InvalidDefinitionError(
            f"Check id '{definition.id}' must be two capital letters followed by two digits (e.g. 'SE05')"
        )
    if not isinstance(definition.pillar, Pillar):
        raise InvalidDefinitionError(f"Check '{definition.id}' has no valid pillar (got {definition.pillar!r})")
    if not isinstance(definition.title, str) or not definition.title.strip():
        raise InvalidDefinitionError(f"Check '{definition.id}' is missing a title")
    if definition.evaluator is None or not callable(definition.evaluator):
        raise InvalidDefinitionError(f"Check '{definition.id}' has no callable evaluator")


# ---------------------------------------------------------------------------
# Pack loader
# ---------------------------------------------------------------------------


@dataclass
class CheckPack:
    """A collection of checks loaded from a single pack directory.

    Attributes:
        name: Pack name from ``pack.yaml`` (e.g. ``"core"``).
        version: Version string.
        description: Human-readable description.
        path: Filesystem path to the pack directory.
        checks: Mapping of check id → :class:`CheckDefinition`, in manifest order.
    """

    name: str
    version: str
    description: str
    path: Path
    checks: dict[str, CheckDefinition] = field(default_factory=dict)


class CatalogLoader:
    """Discovers and loads check packs from filesystem directories."""

    # Default location of the built-in packs
    _BUILT_IN_PACKS_DIR: Path = PACKS_DIR

    def load_pack(self, path: Path | str) -> CheckPack:
        """Load a single check pack from *path*.

        The directory must contain a ``pack.yaml`` manifest.

        Returns:
            A fully populated :class:`CheckPack`.

        Raises:
            FileNotFoundError: If the directory or ``pack.yaml`` is missing.
            InvalidDefinitionError: On malformed manifest data or an
                evaluator reference that cannot be imported.
        """
        path = Path(path)
        manifest_path = path / "pack.yaml"
        if not manifest_path.exists():
            raise FileNotFoundError(f"Pack manifest not found: {manifest_path}")

        try:
            with open(manifest_path, encoding="utf-8") as fh:
                raw: dict[str, Any] = yaml.safe_load(fh) or {}
        except yaml.YAMLError as e:
            raise InvalidDefinitionError(f"Malformed pack manifest {manifest_path}: {e}") from e

        pack_name = str(raw.get("name", path.name))
        checks: dict[str, CheckDefinition] = {}
        for check_id, data in (raw.get("checks") or {}).items():
            check_id = str(check_id)
            if not isinstance(data, dict):
                raise InvalidDefinitionError(f"Check '{check_id}' in pack '{pack_name}' must be a mapping")
            checks[check_id] = self._build_definition(check_id, data, path, pack_name)

        return CheckPack(
            name=pack_name,
            version=str(raw.get("version", "0.0")),
            description=raw.get("description", ""),
            path=path,
            checks=checks,
        )

    def discover_packs(
        self,
        built_in_dir: Path | None = None,
        extra_dirs: list[Path | str] | None = None,
    ) -> list[CheckPack]:
        """Discover and load all check packs.

        Packs are loaded in order:

        1. Built-in packs from *built_in_dir* (default:
           ``arch_review/data/packs/``).
        2. Extra packs from each directory in *extra_dirs*; a directory is
           either a pack itself or a parent of pack directories.

        Returns:
            Ordered list of loaded packs (built-in first).
        """
        packs: list[CheckPack] = []

        search_dir = built_in_dir or self._BUILT_IN_PACKS_DIR
        if search_dir.is_dir():
            for child in sorted(search_dir.iterdir()):
                if child.is_dir() and (child / "pack.yaml").exists():
                    packs.append(self.load_pack(child))

        for extra in extra_dirs or []:
            extra = Path(extra)
            if not extra.is_dir():
                logger.warning("Extra check-pack path is not a directory: %s", extra)
                continue
            if (extra / "pack.yaml").exists():
                packs.append(self.load_pack(extra))
            else:
                for child in sorted(extra.iterdir()):
                    if child.is_dir() and (child / "pack.yaml").exists():
                        packs.append(self.load_pack(child))

        return packs

    def build_registry(
        self,
        built_in_dir: Path | None = None,
        extra_dirs: list[Path | str] | None = None,
    ) -> CheckRegistry:
        """Convenience: discover packs and build a populated registry."""
        registry = CheckRegistry()
        for pack in self.discover_packs(built_in_dir=built_in_dir, extra_dirs=extra_dirs):
            registry.register_pack(pack)
            logger.debug("Loaded check pack '%s' (%d checks)", pack.name, len(pack.checks))
        return registry

    # -- Internals ---------------------------------------------------------

    def _build_definition(self, check_id: str, data: dict[str, Any], pack_dir: Path, pack_name: str) -> CheckDefinition:
        where = f"check '{check_id}' in pack '{pack_name}'"
        try:
            pillar = parse_pillar(data["pillar"]) if data.get("pillar") else None
            severity = Severity(data.get("severity", Severity.MEDIUM.value))
            effort = RemediationEffort(data.get("remediation_effort", RemediationEffort.MEDIUM.value))
        except ValueError as e:
            raise InvalidDefinitionError(f"Invalid {where}: {e}") from e

        evaluator_ref = data.get("evaluator")
        if not evaluator_ref:
            raise InvalidDefinitionError(f"Missing evaluator for {where}")
        evaluator = self._resolve_evaluator(str(evaluator_ref), pack_dir, data.get("options") or {}, where)

        return CheckDefinition(
            id=check_id,
            pillar=pillar,  # type: ignore[arg-type]  # validated at registration
            title=data.get("title", ""),
            evaluator=evaluator,
            description=data.get("description", ""),
            severity=severity,
            remediation_effort=effort,
            tags=frozenset(data.get("tags") or ()),
            documentation_url=data.get("documentation_url", ""),
        )

    @staticmethod
    def _resolve_evaluator(ref: str, pack_dir: Path, options: dict[str, Any], where: str):
        """Import ``"module.path:attr"`` or ``"relative/file.py:attr"``.

        Classes deriving from :class:`BaseEvaluator` are instantiated with the
        manifest ``options`` mapping as keyword arguments.
        """
        module_ref, sep, attr = ref.partition(":")
        if not sep or not attr:
            raise InvalidDefinitionError(f"Evaluator reference '{ref}' for {where} must look like 'module:attribute'")

        try:
            if module_ref.endswith(".py"):
                file_path = (pack_dir / module_ref).resolve()
                spec = importlib.util.spec_from_file_location(f"_arch_review_pack_{file_path.stem}", file_path)
                if spec is None or spec.loader is None:
                    raise ImportError(f"cannot load {file_path}")
                module = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(module)
            else:
                module = importlib.import_module(module_ref)
            target = getattr(module, attr)
        except (ImportError, AttributeError, OSError) as e:
            raise InvalidDefinitionError(f"Cannot import evaluator '{ref}' for {where}: {e}") from e

        if inspect.isclass(target) and issubclass(target, BaseEvaluator):
            return target(**options)
        return target
