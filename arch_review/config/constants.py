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
Constants for the Architecture Review Scanner.
"""

from .._version import __version__ as PACKAGE_VERSION


class ArchReviewConstants:
    """Constants used throughout the scanner."""

    VERSION = PACKAGE_VERSION

    # Executor defaults
    DEFAULT_MAX_PARALLELISM = 5
    DEFAULT_TIMEOUT_SECONDS = 300
    DEFAULT_MAX_ATTEMPTS = 3
    DEFAULT_BASE_DELAY_SECONDS = 2.0
    DEFAULT_MAX_DELAY_SECONDS = 60.0
    DEFAULT_POLL_INTERVAL_SECONDS = 0.05

    # Cache defaults
    DEFAULT_CACHE_TTL_SECONDS = 30 * 60

    # Scoring defaults (Pass / Warning / Fail)
    DEFAULT_PASS_WEIGHT = 100.0
    DEFAULT_WARNING_WEIGHT = 60.0
    DEFAULT_FAIL_WEIGHT = 0.0

    # Environment variable prefix
    ENV_PREFIX = "ARCH_REVIEW_"
