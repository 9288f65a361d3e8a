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
JSON format reporter for scan results.
"""

import json
from pathlib import Path

from ...core.models import BaselineDiff, ScanReport


class JSONReporter:
    """Generates JSON format reports in the persisted document shape."""

    def __init__(self, pretty: bool = True):
        """
        Initialize JSON reporter.

        Args:
            pretty: If True, indent the output
        """
        self.pretty = pretty

    def generate_report(self, data: ScanReport | BaselineDiff) -> str:
        """
        Generate JSON report.

        Args:
            data: ScanReport, or a BaselineDiff on its own

        Returns:
            JSON string
        """
        payload = data.to_dict()
        if self.pretty:
            return json.dumps(payload, indent=2, default=str)
        return json.dumps(payload, separators=(",", ":"), default=str)

    def save_report(self, data: ScanReport | BaselineDiff, output_path: str | Path) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(self.generate_report(data))
