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
Scan executor: fans (subscription, check) work units out over a bounded
worker pool.

Each unit runs its evaluator under a per-unit time budget with retry and
exponential backoff for transient failures. Every unit yields exactly one
:class:`~arch_review.core.models.CheckResult`, whatever happens inside the
evaluator, so the result count always equals the work-unit count.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import traceback
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from typing import Any

from ..config.config import Config
from ..config.constants import ArchReviewConstants
from .exceptions import CheckTimeoutError, ScanCancelledError, error_kind, is_transient
from .models import CheckDefinition, CheckResult, CheckStatus, coerce_results, status_rank

logger = logging.getLogger(__name__)

# (subscription_id, cancel_token) -> capability handed to the evaluator
CapabilityFactory = Callable[[str, "CancellationToken"], Any]
ResultCallback = Callable[[CheckResult], None]


class CancellationToken:
    """Scan-wide cancellation signal shared by every work unit."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason = ""

    def cancel(self, reason: str = "cancelled by caller") -> None:
        if not self._event.is_set():
            self.reason = reason
            logger.info("Scan cancellation requested: %s", reason)
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block up to *timeout* seconds; True if cancelled meanwhile."""
        return self._event.wait(timeout)


@dataclass
class ExecutorConfig:
    """Knobs for one executor run."""

    max_parallelism: int = ArchReviewConstants.DEFAULT_MAX_PARALLELISM
    timeout_seconds: float = ArchReviewConstants.DEFAULT_TIMEOUT_SECONDS
    max_attempts: int = ArchReviewConstants.DEFAULT_MAX_ATTEMPTS
    base_delay_seconds: float = ArchReviewConstants.DEFAULT_BASE_DELAY_SECONDS
    max_delay_seconds: float = ArchReviewConstants.DEFAULT_MAX_DELAY_SECONDS
    poll_interval_seconds: float = ArchReviewConstants.DEFAULT_POLL_INTERVAL_SECONDS

    def __post_init__(self):
        if self.max_parallelism < 1:
            raise ValueError("max_parallelism must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")

    @classmethod
    def from_config(cls, config: Config) -> ExecutorConfig:
        return cls(
            max_parallelism=config.max_parallelism,
            timeout_seconds=config.timeout_seconds,
            max_attempts=config.max_attempts,
            base_delay_seconds=config.base_delay_seconds,
            max_delay_seconds=config.max_delay_seconds,
            poll_interval_seconds=config.poll_interval_seconds,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number *attempt* (0-based): base * 2**attempt, capped."""
        return min(self.base_delay_seconds * (2**attempt), self.max_delay_seconds)


@dataclass(frozen=True)
class WorkUnit:
    subscription_id: str
    definition: CheckDefinition

    @property
    def check_id(self) -> str:
        return self.definition.id


class ScanExecutor:
    """Run work units in parallel and collect one result per unit."""

    def __init__(self, capability_factory: CapabilityFactory, config: ExecutorConfig | Config | None = None):
        """
        Args:
            capability_factory: Builds the per-invocation capability passed to
                evaluators, given the subscription id and the cancel token
            config: Executor settings; ``None`` uses the defaults
        """
        self.capability_factory = capability_factory
        self.config = self._resolve_config(config)

    @staticmethod
    def _resolve_config(config: ExecutorConfig | Config | None) -> ExecutorConfig:
        if config is None:
            return ExecutorConfig()
        if isinstance(config, Config):
            return ExecutorConfig.from_config(config)
        return config

    def run(
        self,
        subscriptions: Iterable[str],
        checks: Iterable[CheckDefinition],
        config: ExecutorConfig | Config | None = None,
        cancel_token: CancellationToken | None = None,
        on_result: ResultCallback | None = None,
    ) -> list[CheckResult]:
        """
        Evaluate every check against every subscription.

        Args:
            subscriptions: Subscription ids to scan
            checks: Check definitions to run
            config: Per-run override of the executor settings
            cancel_token: Scan-wide cancellation signal
            on_result: Called from the coordinating thread as each result lands

        Returns:
            One result per (subscription, check), in completion order
        """
        cfg = self._resolve_config(config) if config is not None else self.config
        token = cancel_token or CancellationToken()
        subscriptions = list(subscriptions)
        checks = list(checks)
        units = [WorkUnit(sub, definition) for sub in subscriptions for definition in checks]
        if not units:
            return []

        logger.info(
            "Executing %d work units (%d subscriptions x %d checks), parallelism %d",
            len(units),
            len(subscriptions),
            len(checks),
            cfg.max_parallelism,
        )

        results: list[CheckResult] = []
        with ThreadPoolExecutor(max_workers=cfg.max_parallelism, thread_name_prefix="arch-review") as pool:
            futures = {pool.submit(self._run_unit, unit, cfg, token): unit for unit in units}
            try:
                for future in as_completed(futures):
                    unit = futures[future]
                    try:
                        result = future.result()
                    except Exception as e:
                        logger.error("Work unit %s/%s crashed: %s", unit.subscription_id, unit.check_id, e)
                        result = _error_result(unit, e, attempts=0)
                    results.append(result)
                    if on_result is not None:
                        try:
                            on_result(result)
                        except Exception as e:
                            logger.warning("Result callback failed for %s: %s", unit.check_id, e)
            except KeyboardInterrupt:
                token.cancel("interrupted")
                raise

        logger.info("Executed %d work units", len(results))
        return results

    def _run_unit(self, unit: WorkUnit, cfg: ExecutorConfig, token: CancellationToken) -> CheckResult:
        if token.is_cancelled:
            return _cancelled_result(unit, token, attempts=0)

        deadline = time.monotonic() + cfg.timeout_seconds
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = self._attempt(unit, cfg, token, deadline)
            except ScanCancelledError:
                logger.info("Check %s on %s cancelled in flight", unit.check_id, unit.subscription_id)
                return _cancelled_result(unit, token, attempts=attempt)
            except CheckTimeoutError:
                logger.warning(
                    "Check %s on %s timed out after %.1fs (attempt %d)",
                    unit.check_id,
                    unit.subscription_id,
                    cfg.timeout_seconds,
                    attempt,
                )
                return _timeout_result(unit, cfg.timeout_seconds, attempts=attempt)
            except BaseException as e:
                # Evaluators may raise SystemExit and friends; they still become data
                if token.is_cancelled:
                    return _cancelled_result(unit, token, attempts=attempt)
                if is_transient(e) and attempt < cfg.max_attempts:
                    delay = cfg.backoff_delay(attempt - 1)
                    logger.warning(
                        "Transient error in %s on %s (attempt %d/%d): %s. Retrying in %.2fs",
                        unit.check_id,
                        unit.subscription_id,
                        attempt,
                        cfg.max_attempts,
                        e,
                        delay,
                    )
                    remaining = deadline - time.monotonic()
                    if token.wait(max(0.0, min(delay, remaining))):
                        return _cancelled_result(unit, token, attempts=attempt)
                    if time.monotonic() >= deadline:
                        return _timeout_result(unit, cfg.timeout_seconds, attempts=attempt)
                    continue

                if error_kind(e) == "unexpected":
                    logger.error("Check %s on %s failed: %s", unit.check_id, unit.subscription_id, e)
                else:
                    logger.warning("Check %s on %s failed: %s", unit.check_id, unit.subscription_id, e)
                return _error_result(unit, e, attempts=attempt)

            try:
                return fold_results(outcome, unit, attempts=attempt)
            except TypeError as e:
                logger.error("Check %s returned an invalid value: %s", unit.check_id, e)
                return _error_result(unit, e, attempts=attempt)

    def _attempt(self, unit: WorkUnit, cfg: ExecutorConfig, token: CancellationToken, deadline: float) -> Any:
        """Run the evaluator once in its own daemon thread.

        The thread is abandoned on timeout or cancellation; its eventual
        result is ignored.

        Raises:
            CheckTimeoutError: The unit deadline passed first
            ScanCancelledError: The scan was cancelled first
        """
        future: Future = Future()
        evaluator = unit.definition.evaluator

        def target():
            if not future.set_running_or_notify_cancel():
                return
            try:
                capability = self.capability_factory(unit.subscription_id, token)
                future.set_result(evaluator(unit.subscription_id, capability))
            except BaseException as e:
                future.set_exception(e)

        thread = threading.Thread(target=target, name=f"eval-{unit.check_id}-{unit.subscription_id}", daemon=True)
        thread.start()

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise CheckTimeoutError(f"exceeded {cfg.timeout_seconds:g}s budget")
            done, _ = wait([future], timeout=min(cfg.poll_interval_seconds, remaining), return_when=FIRST_COMPLETED)
            if done:
                return future.result()
            if token.is_cancelled:
                raise ScanCancelledError(token.reason or "cancelled")


def fold_results(outcome: Any, unit: WorkUnit, attempts: int = 1) -> CheckResult:
    """Reduce an evaluator's return value to the single result for *unit*.

    The worst status wins; affected resources are concatenated without
    duplicates and messages are joined. An empty outcome is NotApplicable.
    """
    results = coerce_results(outcome)
    definition = unit.definition

    if not results:
        base = CheckResult(
            check_id=definition.id,
            subscription_id=unit.subscription_id,
            status=CheckStatus.NOT_APPLICABLE,
            message="No applicable resources",
        )
        metadata: dict[str, Any] = {"findings": 0}
    elif len(results) == 1:
        base = results[0]
        metadata = dict(base.metadata)
    else:
        base = min(results, key=lambda r: status_rank(r.status))
        resources = list(dict.fromkeys(res for r in results for res in r.affected_resources))
        messages = list(dict.fromkeys(r.message for r in results if r.message))
        metadata = {}
        for r in results:
            metadata.update(r.metadata)
        metadata["findings"] = len(results)
        base = dataclasses.replace(base, affected_resources=tuple(resources), message="; ".join(messages))

    metadata["attempts"] = attempts
    return dataclasses.replace(
        base,
        check_id=definition.id,
        subscription_id=unit.subscription_id,
        pillar=definition.pillar,
        severity=definition.severity,
        metadata=metadata,
    )


def _synthetic_result(unit: WorkUnit, status: CheckStatus, message: str, metadata: dict[str, Any]) -> CheckResult:
    definition = unit.definition
    return CheckResult(
        check_id=definition.id,
        subscription_id=unit.subscription_id,
        status=status,
        message=message,
        severity=definition.severity,
        pillar=definition.pillar,
        metadata=metadata,
    )


def _error_result(unit: WorkUnit, exc: BaseException, attempts: int) -> CheckResult:
    return _synthetic_result(
        unit,
        CheckStatus.ERROR,
        f"Check failed: {exc}",
        {
            "attempts": attempts,
            "errorType": type(exc).__name__,
            "errorKind": error_kind(exc),
            "error": str(exc),
            "trace": "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        },
    )


def _timeout_result(unit: WorkUnit, timeout_seconds: float, attempts: int) -> CheckResult:
    return _synthetic_result(
        unit,
        CheckStatus.TIMEOUT,
        f"Check exceeded its {timeout_seconds:g}s budget",
        {"attempts": attempts, "timeoutSeconds": timeout_seconds},
    )


def _cancelled_result(unit: WorkUnit, token: CancellationToken, attempts: int) -> CheckResult:
    return _synthetic_result(
        unit,
        CheckStatus.CANCELLED,
        "Scan cancelled",
        {"attempts": attempts, "reason": token.reason},
    )

