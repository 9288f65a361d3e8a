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
Markdown format reporter for scan results.
"""

from ...core.models import BaselineDiff, CheckResult, CheckStatus, DiffEntry, ScanReport, Severity


def _score(value: float | None) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def _escape(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


class MarkdownReporter:
    """Generates Markdown format reports."""

    def __init__(self, detailed: bool = True):
        """
        Initialize Markdown reporter.

        Args:
            detailed: If True, include recommendations and remediation scripts
        """
        self.detailed = detailed

    def generate_report(self, data: ScanReport | BaselineDiff) -> str:
        """
        Generate Markdown report.

        Args:
            data: ScanReport, or a BaselineDiff on its own

        Returns:
            Markdown string
        """
        if isinstance(data, BaselineDiff):
            lines = ["# Baseline Comparison", ""]
            lines.extend(self._format_diff(data))
            return "\n".join(lines)
        return self._generate_scan_report(data)

    def _generate_scan_report(self, report: ScanReport) -> str:
        summary = report.summary
        lines = []

        # Header
        lines.append("# Architecture Review Report")
        lines.append("")
        lines.append(f"**Subscriptions:** {', '.join(report.subscriptions)}")
        lines.append(f"**Compliance Score:** {_score(summary.compliance_score)}")
        lines.append(f"**Started:** {report.started_at.isoformat()}")
        lines.append(f"**Duration:** {summary.duration:.2f}s")
        if policy := report.scan_metadata.get("policyName"):
            lines.append(f"**Policy:** {policy}")
        lines.append("")

        # Summary
        lines.append("## Summary")
        lines.append("")
        lines.append(f"- **Total Checks:** {summary.total_checks}")
        lines.append(f"- **Passed:** {summary.passed}")
        lines.append(f"- **Failed:** {summary.failed}")
        lines.append(f"- **Warnings:** {summary.warnings}")
        lines.append(f"- **Not Applicable:** {summary.not_applicable}")
        lines.append(f"- **Errors:** {summary.errors}")
        lines.append("")

        if summary.by_pillar:
            lines.append("## Pillars")
            lines.append("")
            lines.append("| Pillar | Score | Pass | Fail | Warning | N/A | Error |")
            lines.append("|--------|-------|------|------|---------|-----|-------|")
            for p in summary.by_pillar:
                lines.append(
                    f"| {p.pillar_name} | {_score(p.compliance_score)} | {p.passed} | {p.failed} "
                    f"| {p.warnings} | {p.not_applicable} | {p.errors} |"
                )
            lines.append("")

        failures = report.get_results_by_status(CheckStatus.FAIL)
        if failures:
            lines.append("## Failures")
            lines.append("")
            for severity in Severity:
                group = [r for r in failures if r.severity == severity]
                if not group:
                    continue
                lines.append(f"### {severity.value} Severity")
                lines.append("")
                for result in sorted(group, key=lambda r: r.key):
                    lines.extend(self._format_result(result))
                    lines.append("")
        else:
            lines.append("## [OK] No Failures")
            lines.append("")

        warnings = report.get_results_by_status(CheckStatus.WARNING)
        if warnings:
            lines.append("## Warnings")
            lines.append("")
            for result in sorted(warnings, key=lambda r: r.key):
                lines.extend(self._format_result(result))
                lines.append("")

        problems = [r for r in report.results if r.status.is_error]
        if problems:
            lines.append("## Errors")
            lines.append("")
            for r in sorted(problems, key=lambda r: r.key):
                lines.append(f"- **{r.check_id}** on `{r.subscription_id}`: {r.status.value}: {r.message}")
            lines.append("")

        if report.baseline_diff is not None:
            lines.append("## Baseline Comparison")
            lines.append("")
            lines.extend(self._format_diff(report.baseline_diff))

        return "\n".join(lines)

    def _format_result(self, result: CheckResult) -> list[str]:
        lines = [f"#### [{result.check_id}] {_escape(result.message) or result.status.value}"]
        lines.append("")
        lines.append(f"- **Subscription:** `{result.subscription_id}`")
        if result.pillar is not None:
            lines.append(f"- **Pillar:** {result.pillar.value}")
        if result.affected_resources:
            lines.append(f"- **Affected Resources:** {len(result.affected_resources)}")
            if self.detailed:
                for resource in result.affected_resources:
                    lines.append(f"  - `{resource}`")
        if self.detailed and result.recommendation:
            lines.append(f"- **Recommendation:** {result.recommendation}")
        if self.detailed and result.remediation_script:
            lines.append("")
            lines.append("```bash")
            lines.append(result.remediation_script)
            lines.append("```")
        return lines

    @staticmethod
    def _format_diff(diff: BaselineDiff) -> list[str]:
        lines = [
            f"- **New Failures:** {len(diff.new_failures)}",
            f"- **Improvements:** {len(diff.improvements)}",
            f"- **Unchanged:** {len(diff.unchanged)}",
            f"- **Added:** {len(diff.added)}",
            f"- **Removed:** {len(diff.removed)}",
            "",
        ]

        def table(title: str, entries: tuple[DiffEntry, ...]) -> None:
            if not entries:
                return
            lines.append(f"### {title}")
            lines.append("")
            lines.append("| Subscription | Check | Baseline | Current |")
            lines.append("|--------------|-------|----------|---------|")
            for e in entries:
                before = e.baseline_status.value if e.baseline_status else "-"
                after = e.current_status.value if e.current_status else "-"
                lines.append(f"| {e.subscription_id} | {e.check_id} | {before} | {after} |")
            lines.append("")

        table("New Failures", diff.new_failures)
        table("Improvements", diff.improvements)
        table("Added", diff.added)
        table("Removed", diff.removed)
        return lines
