# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Server configuration values and validation."""

import logging
from dataclasses import dataclass
from pathlib import Path

from wheelhouse.scanner import DEFAULT_EXTENSION

logger = logging.getLogger(__name__)

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 80
DEFAULT_REBUILD_INTERVAL_SECONDS: float = 30.0


class ConfigError(ValueError):
    """Represent an invalid server configuration."""


@dataclass(frozen=True)
class ServerConfig:
    """Describe one index server instance.

    Attributes:
        package_dir: Directory scanned for archives.
        host: Interface the HTTP server binds to.
        port: TCP port the HTTP server listens on.
        rebuild_interval_seconds: Delay between two timer triggers.
        extension: Archive file suffix, dot included.
    """

    package_dir: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    rebuild_interval_seconds: float = DEFAULT_REBUILD_INTERVAL_SECONDS
    extension: str = DEFAULT_EXTENSION

    def validate(self) -> "ServerConfig":
        """Check value ranges.

        Returns:
            This configuration, for chaining.

        Raises:
            ConfigError: If any value is out of range.
        """
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port must be within 1..65535, got {self.port}")
        if self.rebuild_interval_seconds <= 0:
            raise ConfigError(
                f"rebuild interval must be > 0, got {self.rebuild_interval_seconds}"
            )
        if not self.extension.startswith(".") or len(self.extension) < 2:
            raise ConfigError(f"extension must look like '.whl', got {self.extension!r}")
        if not self.host:
            raise ConfigError("host must not be empty")
        return self
