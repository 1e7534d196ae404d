"""Contract shared by the engine-specific driver adapters."""

from __future__ import annotations

import time
from typing import Any, Protocol, Sequence, runtime_checkable

from ..models import EngineKind, QueryResult, Row, WriteResult


@runtime_checkable
class DriverAdapter(Protocol):
    """Protocol implemented by the MySQL and PostgreSQL adapters."""

    engine: EngineKind

    async def get_pool(self) -> Any:
        """Return the engine pool, creating it on first use."""

    def placeholder(self, index: int) -> str:
        """Positional parameter marker for the 1-based ``index``."""

    async def execute_query(self, sql: str, params: Sequence[object] = ()) -> list[Row]:
        """Run a parameterised statement outside any permission gate."""

    async def execute_read_only(self, sql: str) -> QueryResult:
        """Run ``sql`` in a read-only transaction that is always rolled back."""

    async def execute_write(self, sql: str) -> WriteResult:
        """Run ``sql`` in a transaction committed on success."""

    async def close_pool(self) -> None:
        """Close the pool; a no-op when none was created."""


def elapsed_since(started: float) -> float:
    """Milliseconds elapsed since a ``time.perf_counter()`` reading."""

    return (time.perf_counter() - started) * 1000


__all__ = ["DriverAdapter", "elapsed_since"]
