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

"""Architecture Review Scanner exceptions.

This module defines custom exceptions for registry construction and check
evaluation. All exceptions inherit from ArchReviewError for easy catching.

Only :class:`RegistryError` subclasses are fatal to a run. Everything raised
by an evaluator is caught at the executor boundary and recorded as a
:class:`~arch_review.core.models.CheckResult`.

Example:
    >>> from arch_review.core.registry import CheckRegistry
    >>> from arch_review.core.exceptions import DuplicateCheckError
    >>>
    >>> registry = CheckRegistry()
    >>> try:
    ...     registry.register(definition)
    ... except DuplicateCheckError as e:
    ...     print(f"Check already registered: {e}")
"""

from __future__ import annotations

import re


class ArchReviewError(Exception):
    """Base exception for all Architecture Review Scanner errors."""

    pass


# ---------------------------------------------------------------------------
# Registry-time errors (fail fast, before any scanning begins)
# ---------------------------------------------------------------------------


class RegistryError(ArchReviewError):
    """Base class for errors raised while building the check registry."""

    pass


class DuplicateCheckError(RegistryError):
    """Raised when a check id is registered twice."""

    def __init__(self, check_id: str):
        super().__init__(f"Check '{check_id}' is already registered")
        self.check_id = check_id


class InvalidDefinitionError(RegistryError):
    """Raised when a check definition is missing required fields.

    This indicates:
    - Missing or malformed id (expected two capitals and two digits, e.g. ``SE05``)
    - Unknown pillar
    - Missing title
    - Evaluator that is neither callable nor an evaluator object
    """

    pass


class RegistryFrozenError(RegistryError):
    """Raised when registering after lookups have begun."""

    pass


# ---------------------------------------------------------------------------
# Evaluation errors (recovered per work unit)
# ---------------------------------------------------------------------------


class CheckEvaluationError(ArchReviewError):
    """Base class for errors an evaluator may raise on purpose."""

    pass


class TransientError(CheckEvaluationError):
    """Retryable failure: throttling, rate limiting, server-side 5xx."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(CheckEvaluationError):
    """The caller identity cannot read the data the check needs. Never retried."""

    pass


class MalformedQueryError(CheckEvaluationError):
    """The inventory service rejected the query text. Never retried."""

    pass


class CheckTimeoutError(CheckEvaluationError):
    """The evaluator did not finish within its time budget."""

    pass


class ScanCancelledError(CheckEvaluationError):
    """The scan was cancelled while the evaluator was running."""

    pass


# Message fragments providers use for throttling and server unavailability
_TRANSIENT_MESSAGE_RE = re.compile(
    r"rate limit|throttl|too many requests|\b429\b|\b50[0234]\b|server busy|temporarily unavailable|"
    r"service unavailable",
    re.IGNORECASE,
)

_NON_TRANSIENT_TYPES = (PermissionDeniedError, MalformedQueryError, CheckTimeoutError, ScanCancelledError)


def is_transient(exc: BaseException) -> bool:
    """Return True if *exc* should be retried.

    ``TransientError`` is always retryable. Other exceptions are classified
    by an HTTP status attribute (429 or any 5xx) and, failing that, by the
    wording cloud SDKs use for throttling.
    """
    if isinstance(exc, TransientError):
        return True
    if isinstance(exc, _NON_TRANSIENT_TYPES) or isinstance(exc, PermissionError):
        return False

    for attr in ("status_code", "status"):
        code = getattr(exc, attr, None)
        if isinstance(code, int) and not isinstance(code, bool):
            return code == 429 or code >= 500

    return bool(_TRANSIENT_MESSAGE_RE.search(str(exc)))


def error_kind(exc: BaseException) -> str:
    """Short classification used in result metadata."""
    if is_transient(exc):
        return "transient"
    if isinstance(exc, (PermissionDeniedError, PermissionError)):
        return "permission"
    if isinstance(exc, MalformedQueryError):
        return "malformed_query"
    if isinstance(exc, (CheckTimeoutError, TimeoutError)):
        return "timeout"
    if isinstance(exc, ScanCancelledError):
        return "cancelled"
    return "unexpected"
