"""MySQL / MariaDB adapter built on aiomysql."""

from __future__ import annotations

import logging
import ssl
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence

import aiomysql
from pymysql.constants import CLIENT

from ..errors import DatabaseConnectionError, QueryExecutionError
from ..models import ConnectionConfig, EngineKind, QueryResult, Row, WriteResult
from .base import elapsed_since

LOG = logging.getLogger(__name__)


class MySQLAdapter:
    """Runs statements against MySQL with session-level read-only transactions."""

    engine = EngineKind.MYSQL

    def __init__(self, config: ConnectionConfig) -> None:
        self._config = config
        self._pool: aiomysql.Pool | None = None

    async def get_pool(self) -> aiomysql.Pool:
        if self._pool is None:
            try:
                self._pool = await aiomysql.create_pool(**self._pool_kwargs())
            except Exception as exc:
                LOG.error("Error creating MySQL pool: %s", exc)
                raise DatabaseConnectionError(str(exc)) from exc
            LOG.info("MySQL pool created successfully")
        return self._pool

    def placeholder(self, index: int) -> str:
        return "%s"

    async def execute_query(self, sql: str, params: Sequence[object] = ()) -> list[Row]:
        async with self._connection() as conn:
            try:
                async with conn.cursor(aiomysql.DictCursor) as cursor:
                    await cursor.execute(sql, tuple(params) or None)
                    rows, _, _ = await _drain(cursor)
            except Exception as exc:
                LOG.error("Error executing query: %s", exc)
                raise QueryExecutionError(str(exc)) from exc
        return list(rows)

    async def execute_read_only(self, sql: str) -> QueryResult:
        read_only = self._config.read_only_transactions
        if not read_only:
            LOG.info("Read-only transactions disabled via MYSQL_DISABLE_READ_ONLY_TRANSACTIONS=true")
        async with self._connection() as conn:
            LOG.debug("Read-only connection acquired")
            try:
                if read_only:
                    await _run(conn, "SET SESSION TRANSACTION READ ONLY")
                await conn.begin()
                started = time.perf_counter()
                async with conn.cursor(aiomysql.DictCursor) as cursor:
                    await cursor.execute(sql)
                    rows, _, _ = await _drain(cursor)
                elapsed_ms = elapsed_since(started)
                # Rolled back even on success so a misclassified write never persists.
                await conn.rollback()
                if read_only:
                    await _run(conn, "SET SESSION TRANSACTION READ WRITE")
            except Exception as exc:
                LOG.error("Error in read-only query transaction: %s", exc)
                await self._restore_session(conn, read_only)
                raise QueryExecutionError(str(exc)) from exc
        return QueryResult(rows=rows, elapsed_ms=elapsed_ms)

    async def execute_write(self, sql: str) -> WriteResult:
        async with self._connection() as conn:
            LOG.debug("Write connection acquired")
            try:
                await conn.begin()
                started = time.perf_counter()
                async with conn.cursor(aiomysql.DictCursor) as cursor:
                    await cursor.execute(sql)
                    _, affected, last_insert_id = await _drain(cursor)
                elapsed_ms = elapsed_since(started)
                await conn.commit()
            except Exception as exc:
                LOG.error("Error executing write query: %s", exc)
                await self._restore_session(conn, False)
                raise QueryExecutionError(str(exc)) from exc
        # Without CLIENT.FOUND_ROWS MySQL reports changed rows as the affected count.
        return WriteResult(
            affected_rows=max(affected, 0),
            changed_rows=max(affected, 0),
            last_insert_id=last_insert_id,
            elapsed_ms=elapsed_ms,
        )

    async def close_pool(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        pool.close()
        await pool.wait_closed()
        LOG.info("MySQL pool closed")

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Any]:
        pool = await self.get_pool()
        try:
            conn = await pool.acquire()
        except Exception as exc:
            LOG.error("Error acquiring MySQL connection: %s", exc)
            raise DatabaseConnectionError(str(exc)) from exc
        try:
            yield conn
        finally:
            pool.release(conn)
            LOG.debug("Connection released")

    async def _restore_session(self, conn: Any, read_only: bool) -> None:
        try:
            await conn.rollback()
            if read_only:
                await _run(conn, "SET SESSION TRANSACTION READ WRITE")
        except Exception as cleanup_exc:  # pragma: no cover - best effort cleanup
            LOG.error("Error during cleanup: %s", cleanup_exc)

    def _pool_kwargs(self) -> dict[str, object]:
        config = self._config
        kwargs: dict[str, object] = {
            "user": config.user,
            "password": config.password,
            "db": config.database,
            "minsize": 1,
            "maxsize": config.pool_size,
            "connect_timeout": config.connect_timeout,
            "autocommit": False,
            "client_flag": CLIENT.MULTI_STATEMENTS,
        }
        if config.socket_path:
            kwargs["unix_socket"] = config.socket_path
        else:
            kwargs["host"] = config.host or "127.0.0.1"
            kwargs["port"] = config.port or 3306
        if config.ssl:
            context = ssl.create_default_context()
            if not config.ssl_verify:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            kwargs["ssl"] = context
        return kwargs


async def _run(conn: Any, statement: str) -> None:
    async with conn.cursor() as cursor:
        await cursor.execute(statement)


async def _drain(cursor: Any) -> tuple[tuple[Row, ...], int, int | None]:
    """Consume every result set; rows and counts come from the last one."""

    rows: tuple[Row, ...] = ()
    while True:
        if cursor.description:
            rows = tuple(dict(row) for row in await cursor.fetchall())
        affected = cursor.rowcount
        last_insert_id = cursor.lastrowid
        if not await cursor.nextset():
            break
    return rows, affected, last_insert_id


__all__ = ["MySQLAdapter"]
