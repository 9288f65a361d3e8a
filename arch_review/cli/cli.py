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

"""Command-line interface for the Architecture Review Scanner."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ..config.config import Config
from ..core.baseline import compare, load_results
from ..core.exceptions import RegistryError
from ..core.inventory import SnapshotInventoryClient
from ..core.models import BaselineDiff, CheckStatus, Pillar, ScanReport
from ..core.registry import CatalogLoader, CheckFilter, CheckRegistry, parse_pillar
from ..core.reporters.json_reporter import JSONReporter
from ..core.reporters.markdown_reporter import MarkdownReporter
from ..core.scan_policy import ScanPolicy
from ..core.scanner import ArchitectureScanner

logger = logging.getLogger("arch_review.cli")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_policy(args: argparse.Namespace) -> ScanPolicy:
    """Load scan policy from ``--policy`` (preset name or YAML path), or the default."""
    policy_value = getattr(args, "policy", None)
    if not policy_value:
        return ScanPolicy.default()

    policy = ScanPolicy.load(policy_value)
    logger.info("Using scan policy %s (%s)", policy_value, policy.policy_name)
    return policy


def _load_config(args: argparse.Namespace) -> Config:
    env_file = getattr(args, "env_file", None)
    config = Config.from_file(Path(env_file)) if env_file else Config.from_env()
    if getattr(args, "max_parallelism", None) is not None:
        config.max_parallelism = args.max_parallelism
    if getattr(args, "timeout", None) is not None:
        config.timeout_seconds = args.timeout
    config.validate()
    return config


def _load_registry(args: argparse.Namespace) -> CheckRegistry:
    return CatalogLoader().build_registry(extra_dirs=getattr(args, "pack_dir", None))


def _format_output(args: argparse.Namespace, data: ScanReport | BaselineDiff) -> str:
    """Generate the formatted output string for a report or a diff."""
    fmt = getattr(args, "format", "summary")
    if fmt == "json":
        return JSONReporter(pretty=not getattr(args, "compact", False)).generate_report(data)
    if fmt == "markdown":
        return MarkdownReporter(detailed=True).generate_report(data)
    if isinstance(data, BaselineDiff):
        return _generate_diff_summary(data)
    return _generate_summary(data)


def _write_output(args: argparse.Namespace, output: str) -> None:
    """Write *output* to a file or stdout."""
    if getattr(args, "output", None):
        with open(args.output, "w", encoding="utf-8") as fh:
            fh.write(output)
        print(f"Report saved to: {args.output}")
    else:
        print(output)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def scan_command(args: argparse.Namespace) -> int:
    """Handle the ``scan`` command."""
    inventory_path = Path(args.inventory)
    if not inventory_path.exists():
        print(f"Error: Inventory snapshot does not exist: {inventory_path}", file=sys.stderr)
        return 1

    try:
        config = _load_config(args)
        policy = _load_policy(args)
        check_filter = CheckFilter.from_strings(
            include_pillars=args.include_pillar or (),
            include_ids=args.include_check or (),
            exclude_pillars=args.exclude_pillar or (),
            exclude_ids=args.exclude_check or (),
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        registry = _load_registry(args)
    except (RegistryError, FileNotFoundError) as e:
        print(f"Error loading check packs: {e}", file=sys.stderr)
        return 1

    baseline = None
    if args.baseline:
        try:
            baseline = load_results(args.baseline)
        except (OSError, ValueError) as e:
            print(f"Error loading baseline: {e}", file=sys.stderr)
            return 1

    try:
        inventory = SnapshotInventoryClient.from_file(inventory_path)
        scanner = ArchitectureScanner(registry, inventory, config=config, policy=policy)
        report = scanner.scan(args.subscriptions, check_filter=check_filter, baseline=baseline)
    except KeyboardInterrupt:
        print("Scan interrupted", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1

    _write_output(args, _format_output(args, report))

    if args.fail_on_findings and report.has_failures:
        return 1
    return 0


def compare_command(args: argparse.Namespace) -> int:
    """Handle the ``compare`` command."""
    try:
        current = load_results(args.current)
        baseline = load_results(args.baseline)
    except (OSError, ValueError) as e:
        print(f"Error loading results: {e}", file=sys.stderr)
        return 1

    diff = compare(current, baseline)
    _write_output(args, _format_output(args, diff))

    if args.fail_on_regressions and diff.has_regressions:
        return 1
    return 0


def list_checks_command(args: argparse.Namespace) -> int:
    """Handle the ``list-checks`` command."""
    try:
        registry = _load_registry(args)
        check_filter = CheckFilter(include_pillars=frozenset({parse_pillar(args.pillar)})) if args.pillar else None
    except (RegistryError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    checks = registry.list(check_filter)
    print(f"{'ID':<6} {'Pillar':<12} {'Severity':<9} Title")
    print("-" * 72)
    for definition in checks:
        print(f"{definition.id:<6} {definition.pillar.value:<12} {definition.severity.value:<9} {definition.title}")
    print(f"\n{len(checks)} check(s)")
    return 0


def generate_policy_command(args: argparse.Namespace) -> int:
    """Handle the ``generate-policy`` command."""
    output_path = Path(args.output)
    preset = getattr(args, "preset", "balanced")
    try:
        policy = ScanPolicy.from_preset(preset)
        policy.to_yaml(output_path)
    except Exception as e:
        print(f"Error generating policy: {e}", file=sys.stderr)
        return 1

    print(f"Generated {preset} scan policy: {output_path}\n")
    print("Edit the file to customise, then use:")
    print(f"  arch-review scan <subscription> --inventory inventory.yaml --policy {output_path}\n")
    print(f"Available presets: {' | '.join(ScanPolicy.preset_names())}")
    return 0


# ---------------------------------------------------------------------------
# Summary formatters
# ---------------------------------------------------------------------------


def _fmt_score(score: float | None) -> str:
    return "n/a" if score is None else f"{score:.2f}"


def _generate_summary(report: ScanReport) -> str:
    summary = report.summary
    lines = [
        "=" * 60,
        f"Architecture Review: {', '.join(report.subscriptions)}",
        "=" * 60,
        f"Compliance Score: {_fmt_score(summary.compliance_score)}",
        f"Checks: {summary.total_checks} ({summary.passed} passed, {summary.failed} failed, "
        f"{summary.warnings} warnings, {summary.not_applicable} n/a, {summary.errors} errors)",
        f"Duration: {summary.duration:.2f}s",
        "",
    ]
    if summary.by_pillar:
        lines.append("By Pillar:")
        for p in summary.by_pillar:
            lines.append(
                f"  {p.pillar_name:<12} {_fmt_score(p.compliance_score):>7}  "
                f"(pass {p.passed} / fail {p.failed} / warn {p.warnings})"
            )
        lines.append("")

    tags = {CheckStatus.FAIL: "[FAIL]", CheckStatus.WARNING: "[WARN]"}
    flagged = [r for r in report.results if r.status in tags or r.status.is_error]
    if flagged:
        lines.append("Findings:")
        for r in sorted(flagged, key=lambda r: r.key):
            tag = tags.get(r.status, f"[{r.status.value.upper()}]")
            lines.append(f"  {tag} {r.check_id} {r.subscription_id} ({r.severity.value}) - {r.message}")
        lines.append("")

    if report.baseline_diff is not None:
        lines.append(_generate_diff_summary(report.baseline_diff))
    return "\n".join(lines)


def _generate_diff_summary(diff: BaselineDiff) -> str:
    lines = [
        "Baseline Comparison:",
        f"  New failures: {len(diff.new_failures)}",
        f"  Improvements: {len(diff.improvements)}",
        f"     Unchanged: {len(diff.unchanged)}",
        f"         Added: {len(diff.added)}",
        f"       Removed: {len(diff.removed)}",
    ]
    for entry in diff.new_failures:
        lines.append(f"  [REGRESSION] {entry.check_id} {entry.subscription_id}")
    for entry in diff.improvements:
        lines.append(f"  [FIXED] {entry.check_id} {entry.subscription_id}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    pillars = [p.value for p in Pillar]
    parser = argparse.ArgumentParser(
        prog="arch-review",
        description="Architecture Review Scanner - best-practice compliance checks for cloud subscriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  arch-review scan sub-1 --inventory inventory.yaml
  arch-review scan sub-1 sub-2 --inventory inventory.yaml --policy strict --format json -o report.json
  arch-review scan sub-1 --inventory inventory.yaml --include-pillar security --baseline last.json
  arch-review compare report.json last.json --fail-on-regressions
  arch-review list-checks --pillar reliability
  arch-review generate-policy -o my_policy.yaml --preset strict
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # -- scan --------------------------------------------------------------
    scan_p = subparsers.add_parser("scan", help="Scan one or more subscriptions")
    scan_p.add_argument("subscriptions", nargs="+", help="Subscription ids")
    scan_p.add_argument("--inventory", required=True, metavar="PATH", help="Inventory snapshot (YAML or JSON)")
    scan_p.add_argument(
        "--policy",
        metavar="PRESET_OR_PATH",
        help="Scan policy: preset name (strict, balanced, permissive) or path to custom YAML",
    )
    scan_p.add_argument("--include-pillar", action="append", choices=pillars, help="Only run checks of this pillar")
    scan_p.add_argument("--exclude-pillar", action="append", choices=pillars, help="Skip checks of this pillar")
    scan_p.add_argument("--include-check", action="append", metavar="ID", help="Only run this check id")
    scan_p.add_argument("--exclude-check", action="append", metavar="ID", help="Skip this check id")
    scan_p.add_argument("--pack-dir", action="append", metavar="PATH", help="Extra check-pack directory")
    scan_p.add_argument("--max-parallelism", type=int, metavar="N", help="Concurrent work units")
    scan_p.add_argument("--timeout", type=float, metavar="SECONDS", help="Per-check time budget")
    scan_p.add_argument("--env-file", metavar="PATH", help="Load ARCH_REVIEW_* settings from a .env file")
    scan_p.add_argument("--baseline", metavar="PATH", help="Earlier results or report to diff against")
    scan_p.add_argument("--format", choices=["summary", "json", "markdown"], default="summary", help="Output format")
    scan_p.add_argument("--output", "-o", help="Output file path")
    scan_p.add_argument("--compact", action="store_true", help="Compact JSON output")
    scan_p.add_argument("--fail-on-findings", action="store_true", help="Exit with error if any check failed")
    scan_p.add_argument("--verbose", "-v", action="store_true", help="Log progress, retries and timeouts")

    # -- compare -----------------------------------------------------------
    cmp_p = subparsers.add_parser("compare", help="Diff two saved result sets")
    cmp_p.add_argument("current", help="Current results or report (JSON)")
    cmp_p.add_argument("baseline", help="Baseline results or report (JSON)")
    cmp_p.add_argument("--format", choices=["summary", "json", "markdown"], default="summary", help="Output format")
    cmp_p.add_argument("--output", "-o", help="Output file path")
    cmp_p.add_argument("--fail-on-regressions", action="store_true", help="Exit with error on new failures")
    cmp_p.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    # -- list-checks -------------------------------------------------------
    lc_p = subparsers.add_parser("list-checks", help="List registered checks")
    lc_p.add_argument("--pillar", choices=pillars, help="Only list checks of this pillar")
    lc_p.add_argument("--pack-dir", action="append", metavar="PATH", help="Extra check-pack directory")

    # -- generate-policy ---------------------------------------------------
    gp_p = subparsers.add_parser("generate-policy", help="Generate a scan policy YAML")
    gp_p.add_argument("--output", "-o", default="scan_policy.yaml", help="Output file path")
    gp_p.add_argument("--preset", choices=ScanPolicy.preset_names(), default="balanced", help="Base preset")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(getattr(args, "verbose", False))

    dispatch = {
        "scan": scan_command,
        "compare": compare_command,
        "list-checks": list_checks_command,
        "generate-policy": generate_policy_command,
    }
    handler = dispatch.get(args.command)
    if handler:
        return handler(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
