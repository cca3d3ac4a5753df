"""
coa_config -- single public entrypoint for kernel configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration
    files or environment variables directly.

Architecture position:
    Configuration -- sits beside ``coa_kernel``.  The kernel MUST NEVER
    import from ``coa_config``; callers pass the returned ``KernelConfig``
    into ``coa_kernel.db.init_engine_from_config`` and the selectors.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Environment overrides are applied after YAML parsing, so the
      returned ``KernelConfig`` is the effective configuration.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or malformed values.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path

from coa_config.loader import load_kernel_config, parse_logging
from coa_config.schema import DatabaseConfig, KernelConfig, LoggingConfig, TreeConfig

__all__ = [
    "DatabaseConfig",
    "KernelConfig",
    "LoggingConfig",
    "TreeConfig",
    "get_active_config",
]

_logger = logging.getLogger("coa_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

ENV_DATABASE_URL = "COA_DATABASE_URL"
ENV_LOG_LEVEL = "COA_LOG_LEVEL"


def get_active_config(config_path: Path | str | None = None) -> KernelConfig:
    """
    The ONLY public configuration entrypoint.

    Loads the YAML configuration set, then applies the ``COA_DATABASE_URL``
    and ``COA_LOG_LEVEL`` environment overrides.  A ``COA_CONFIG_TRACE``
    log entry is emitted on every successful call.

    Args:
        config_path: Override path to the YAML file.  Defaults to
            coa_config/sets/default.yaml.

    Returns:
        The effective, frozen KernelConfig.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value is malformed.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_kernel_config(path)

    overrides: list[str] = []
    database_url = os.environ.get(ENV_DATABASE_URL)
    if database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=database_url),
        )
        overrides.append(ENV_DATABASE_URL)

    log_level = os.environ.get(ENV_LOG_LEVEL)
    if log_level:
        config = dataclasses.replace(
            config, logging=parse_logging({"level": log_level}),
        )
        overrides.append(ENV_LOG_LEVEL)

    _logger.info(
        "COA_CONFIG_TRACE",
        extra={
            "trace_type": "COA_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "config_path": str(path),
            "env_overrides": overrides,
            "max_depth": config.tree.max_depth,
        },
    )
    return config
