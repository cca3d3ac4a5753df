"""
KernelConfig schema.

Frozen dataclasses that the YAML configuration set is parsed into.  The
kernel reads these values; it never reads YAML or environment variables
itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_config``."""

    url: str
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class TreeConfig:
    """Read-side guards for tree building."""

    max_depth: int | None = None  # None = unlimited


@dataclass(frozen=True)
class KernelConfig:
    """Root configuration object returned by ``get_active_config()``."""

    config_id: str
    version: int
    database: DatabaseConfig
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
