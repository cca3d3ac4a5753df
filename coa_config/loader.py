"""
Configuration Loader (``coa_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses
of ``coa_config.schema``.  Callers use ``coa_config.get_active_config()``
instead of calling this module directly.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly typed values  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from coa_config.schema import DatabaseConfig, KernelConfig, LoggingConfig, TreeConfig

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _non_negative_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse a DatabaseConfig from a dict."""
    return DatabaseConfig(
        url=data["url"],
        echo=bool(data.get("echo", False)),
        pool_size=_non_negative_int(data, "pool_size", 5),
        max_overflow=_non_negative_int(data, "max_overflow", 10),
        pool_timeout=_non_negative_int(data, "pool_timeout", 30),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return LoggingConfig(level=level)


def parse_tree(data: dict[str, Any]) -> TreeConfig:
    max_depth = data.get("max_depth")
    if max_depth is not None and (
        not isinstance(max_depth, int) or isinstance(max_depth, bool) or max_depth < 0
    ):
        raise ValueError(f"max_depth must be a non-negative integer or null, got {max_depth!r}")
    return TreeConfig(max_depth=max_depth)


def parse_kernel_config(data: dict[str, Any]) -> KernelConfig:
    """
    Parse a full KernelConfig from the top-level YAML dict.

    ``config_id``, ``version`` and ``database.url`` are required; the
    ``logging`` and ``tree`` sections fall back to their defaults.
    """
    return KernelConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"]),
        logging=parse_logging(data.get("logging") or {}),
        tree=parse_tree(data.get("tree") or {}),
    )


def load_kernel_config(path: Path) -> KernelConfig:
    return parse_kernel_config(load_yaml_file(path))
