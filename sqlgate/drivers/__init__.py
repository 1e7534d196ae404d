"""Driver adapters and the factory that binds one to an engine."""

from __future__ import annotations

from ..models import ConnectionConfig, EngineKind
from .base import DriverAdapter
from .mysql import MySQLAdapter
from .postgres import PostgresAdapter


def create_adapter(config: ConnectionConfig) -> DriverAdapter:
    """Return the adapter for ``config.engine``."""

    if config.engine is EngineKind.POSTGRES:
        return PostgresAdapter(config)
    return MySQLAdapter(config)


__all__ = ["DriverAdapter", "MySQLAdapter", "PostgresAdapter", "create_adapter"]
