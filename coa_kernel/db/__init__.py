"""Database infrastructure for the chart-of-accounts kernel."""

from coa_kernel.db.base import Base, SoftDeleteMixin, TrackedBase, UUIDString
from coa_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_config,
    init_engine_from_url,
    reset_engine,
)

__all__ = [
    "Base",
    "SoftDeleteMixin",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_config",
    "init_engine_from_url",
    "reset_engine",
]
