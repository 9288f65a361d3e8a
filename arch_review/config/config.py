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
Runtime configuration for the Architecture Review Scanner.

Values come from constructor arguments first, then ``ARCH_REVIEW_*``
environment variables (applied only while a field still holds its default),
then the built-in defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .constants import ArchReviewConstants

logger = logging.getLogger(__name__)


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return None


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return None


@dataclass
class Config:
    """
    Configuration for the scan engine.
    """

    # Executor
    max_parallelism: int = ArchReviewConstants.DEFAULT_MAX_PARALLELISM
    timeout_seconds: float = ArchReviewConstants.DEFAULT_TIMEOUT_SECONDS
    max_attempts: int = ArchReviewConstants.DEFAULT_MAX_ATTEMPTS
    base_delay_seconds: float = ArchReviewConstants.DEFAULT_BASE_DELAY_SECONDS
    max_delay_seconds: float = ArchReviewConstants.DEFAULT_MAX_DELAY_SECONDS
    poll_interval_seconds: float = ArchReviewConstants.DEFAULT_POLL_INTERVAL_SECONDS

    # Query cache
    cache_ttl_seconds: float = ArchReviewConstants.DEFAULT_CACHE_TTL_SECONDS
    cache_max_entries: int | None = None
    cache_max_bytes: int | None = None

    # Output Options
    output_format: str = "summary"

    def __post_init__(self):
        """Load configuration from environment variables if not provided."""
        prefix = ArchReviewConstants.ENV_PREFIX

        int_fields = {
            "max_parallelism": ArchReviewConstants.DEFAULT_MAX_PARALLELISM,
            "max_attempts": ArchReviewConstants.DEFAULT_MAX_ATTEMPTS,
        }
        for name, default in int_fields.items():
            if getattr(self, name) == default:
                if (value := _env_int(prefix + name.upper())) is not None:
                    setattr(self, name, value)

        float_fields = {
            "timeout_seconds": ArchReviewConstants.DEFAULT_TIMEOUT_SECONDS,
            "base_delay_seconds": ArchReviewConstants.DEFAULT_BASE_DELAY_SECONDS,
            "max_delay_seconds": ArchReviewConstants.DEFAULT_MAX_DELAY_SECONDS,
            "poll_interval_seconds": ArchReviewConstants.DEFAULT_POLL_INTERVAL_SECONDS,
            "cache_ttl_seconds": ArchReviewConstants.DEFAULT_CACHE_TTL_SECONDS,
        }
        for name, default in float_fields.items():
            if getattr(self, name) == default:
                if (value := _env_float(prefix + name.upper())) is not None:
                    setattr(self, name, value)

        if self.cache_max_entries is None:
            self.cache_max_entries = _env_int(prefix + "CACHE_MAX_ENTRIES")
        if self.cache_max_bytes is None:
            self.cache_max_bytes = _env_int(prefix + "CACHE_MAX_BYTES")

        if self.output_format == "summary":
            if env_format := os.getenv(prefix + "OUTPUT_FORMAT"):
                self.output_format = env_format

        self.validate()

    def validate(self) -> None:
        """Reject values the executor cannot work with."""
        if self.max_parallelism < 1:
            raise ValueError("max_parallelism must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays cannot be negative")
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create configuration from environment variables.

        Returns:
            Config instance with values from environment
        """
        return cls()

    @classmethod
    def from_file(cls, config_file: Path) -> "Config":
        """
        Load configuration from a .env file.

        Variables already present in the process environment win over the
        file, matching python-dotenv's default.

        Args:
            config_file: Path to .env file

        Returns:
            Config instance
        """
        if config_file.exists():
            load_dotenv(config_file)
        else:
            logger.warning("Config file not found: %s", config_file)
        return cls.from_env()
