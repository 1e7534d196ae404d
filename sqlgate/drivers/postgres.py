"""PostgreSQL adapter built on asyncpg."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Sequence

import asyncpg

from ..errors import DatabaseConnectionError, QueryExecutionError
from ..models import ConnectionConfig, EngineKind, QueryResult, Row, WriteResult
from .base import elapsed_since

LOG = logging.getLogger(__name__)


class PostgresAdapter:
    """Runs statements against PostgreSQL using `BEGIN READ ONLY` transactions."""

    engine = EngineKind.POSTGRES

    def __init__(self, config: ConnectionConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None

    async def get_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(**self._pool_kwargs())
            except Exception as exc:
                LOG.error("Error creating PostgreSQL pool: %s", exc)
                raise DatabaseConnectionError(str(exc)) from exc
            LOG.info("PostgreSQL pool created successfully")
        return self._pool

    def placeholder(self, index: int) -> str:
        return f"${index}"

    async def execute_query(self, sql: str, params: Sequence[object] = ()) -> list[Row]:
        async with self._connection() as conn:
            try:
                records = await conn.fetch(sql, *params)
            except Exception as exc:
                LOG.error("Error executing query: %s", exc)
                raise QueryExecutionError(str(exc)) from exc
        return list(_records_to_rows(records))

    async def execute_read_only(self, sql: str) -> QueryResult:
        async with self._connection() as conn:
            transaction = conn.transaction(readonly=True)
            try:
                await transaction.start()
                started = time.perf_counter()
                records = await conn.fetch(sql)
                elapsed_ms = elapsed_since(started)
                # Rolled back even on success so a misclassified write never persists.
                await transaction.rollback()
            except Exception as exc:
                LOG.error("Error in read-only query: %s", exc)
                await _rollback_quietly(transaction)
                raise QueryExecutionError(str(exc)) from exc
        return QueryResult(rows=tuple(_records_to_rows(records)), elapsed_ms=elapsed_ms)

    async def execute_write(self, sql: str) -> WriteResult:
        async with self._connection() as conn:
            transaction = conn.transaction()
            try:
                await transaction.start()
                started = time.perf_counter()
                status = await conn.execute(sql)
                elapsed_ms = elapsed_since(started)
                await transaction.commit()
            except Exception as exc:
                LOG.error("Error executing write query: %s", exc)
                await _rollback_quietly(transaction)
                raise QueryExecutionError(str(exc)) from exc
        return WriteResult(affected_rows=_status_count(status), elapsed_ms=elapsed_ms)

    async def close_pool(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        LOG.info("PostgreSQL pool closed")

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        pool = await self.get_pool()
        try:
            conn = await pool.acquire()
        except Exception as exc:
            LOG.error("Error acquiring PostgreSQL connection: %s", exc)
            raise DatabaseConnectionError(str(exc)) from exc
        try:
            yield conn
        finally:
            await pool.release(conn)
            LOG.debug("Connection released")

    def _pool_kwargs(self) -> dict[str, object]:
        config = self._config
        kwargs: dict[str, object] = {
            "host": config.host or "127.0.0.1",
            "port": config.port or 5432,
            "min_size": 1,
            "max_size": config.pool_size,
            "timeout": config.connect_timeout,
        }
        if config.user:
            kwargs["user"] = config.user
        if config.password:
            kwargs["password"] = config.password
        if config.database:
            kwargs["database"] = config.database
        if config.idle_timeout is not None:
            kwargs["max_inactive_connection_lifetime"] = config.idle_timeout
        return kwargs


async def _rollback_quietly(transaction: Any) -> None:
    try:
        await transaction.rollback()
    except Exception as cleanup_exc:  # pragma: no cover - best effort cleanup
        LOG.error("Error during cleanup: %s", cleanup_exc)


def _records_to_rows(records: Iterable[asyncpg.Record]) -> Iterable[Row]:
    for record in records:
        yield dict(record.items())


def _status_count(status: str) -> int:
    """Row count from a command tag such as ``INSERT 0 3`` or ``UPDATE 2``."""

    parts = (status or "").split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


__all__ = ["PostgresAdapter"]
