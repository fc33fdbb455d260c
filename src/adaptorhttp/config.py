"""
=============================================================================
ADAPTOR CONFIGURATION
=============================================================================

Everything the HTTP layer reads at startup, in one dataclass. Values are
read once and never change while the server runs.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m adaptorhttp --port 5678                         │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── ADAPTOR_PORT=5678 python -m adaptorhttp                   │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Tuple

from .filters.logging import TRACE


_LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class AdaptorConfig:
    """
    Configuration for the adaptor's HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port

    CONCURRENCY
    - max_workers

    FEED ARCHIVE
    - feed_archive_directory

    DIAGNOSTICS
    - sleep_path, sleep_duration_ms, log_level

    PLATFORM
    - supported_platforms

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind to. "0.0.0.0" for all interfaces."""

    port: int = 5678
    """Port to listen on. 0 lets the OS pick one (tests)."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    """
    Maximum number of requests processed at once. Requests beyond this
    are rejected by AbortImmediatelyFilter.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FEED ARCHIVE
    # ─────────────────────────────────────────────────────────────────────

    feed_archive_directory: str = ""
    """Where feed copies are archived. Empty disables archival."""

    # ─────────────────────────────────────────────────────────────────────
    # DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    sleep_path: str = "/sleep"
    """Mount path of the diagnostic SleepHandler."""

    sleep_duration_ms: int = 100
    """How long the SleepHandler blocks each request."""

    log_level: str = "INFO"
    """TRACE, DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    # ─────────────────────────────────────────────────────────────────────
    # PLATFORM
    # ─────────────────────────────────────────────────────────────────────

    supported_platforms: Tuple[str, ...] = ()
    """platform.system() names this adaptor runs on. Empty means any."""

    @classmethod
    def from_env(cls) -> "AdaptorConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        ADAPTOR_HOST                     Server host (default: 127.0.0.1)
        ADAPTOR_PORT                     Server port (default: 5678)
        ADAPTOR_MAX_WORKERS              Concurrent requests (default: 16)
        ADAPTOR_FEED_ARCHIVE_DIRECTORY   Archive directory (default: off)
        ADAPTOR_LOG_LEVEL                Logging level (default: INFO)
        ADAPTOR_SUPPORTED_PLATFORMS      Comma-separated OS names (default: any)

        =====================================================================
        """
        return cls(
            host=os.getenv("ADAPTOR_HOST", "127.0.0.1"),
            port=int(os.getenv("ADAPTOR_PORT", "5678")),
            max_workers=int(os.getenv("ADAPTOR_MAX_WORKERS", "16")),
            feed_archive_directory=os.getenv("ADAPTOR_FEED_ARCHIVE_DIRECTORY", ""),
            log_level=os.getenv("ADAPTOR_LOG_LEVEL", "INFO"),
            supported_platforms=parse_platforms(
                os.getenv("ADAPTOR_SUPPORTED_PLATFORMS", "")
            ),
        )

    def validate(self) -> None:
        """
        Validate configuration values. Called at startup, so a bad value
        stops the adaptor before it accepts any request.

        Raises:
            ValueError: On the first invalid value
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.sleep_duration_ms < 0:
            raise ValueError("sleep_duration_ms must be >= 0")

        if not self.sleep_path.startswith("/"):
            raise ValueError(f"sleep_path must start with '/': {self.sleep_path!r}")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

    @property
    def numeric_log_level(self) -> int:
        """log_level as a logging module level number."""
        name = self.log_level.upper()
        if name == "TRACE":
            return TRACE
        level = logging.getLevelName(name)
        return level if isinstance(level, int) else logging.INFO


def parse_platforms(value: str) -> Tuple[str, ...]:
    """
    Split a comma-separated platform list.

        >>> parse_platforms("Linux, Windows")
        ('Linux', 'Windows')
    """
    return tuple(name.strip() for name in value.split(",") if name.strip())
