"""Table listing, table description and connection checks built on the router."""

from __future__ import annotations

import logging
import time

from . import __version__
from .drivers.base import elapsed_since
from .errors import SqlGateError
from .models import ConnectionConfig, EngineKind, QueryResponse
from .router import ExecutionRouter

LOG = logging.getLogger(__name__)

_MYSQL_SYSTEM_SCHEMAS = "'information_schema', 'mysql', 'performance_schema', 'sys'"

_PG_LIST_TABLES = """
    SELECT table_schema AS schema, table_name AS name, table_type AS type
    FROM information_schema.tables
    WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
    ORDER BY table_schema, table_name
"""

_MYSQL_LIST_TABLES = """
    SELECT table_schema AS `database`, table_name AS name, table_rows AS rowCount,
        ROUND(data_length / 1024 / 1024, 2) AS dataSizeMB, table_comment AS description
    FROM information_schema.tables
    WHERE {condition}
    ORDER BY table_schema, table_name
"""

_PG_DESCRIBE = """
    SELECT column_name AS name, data_type AS type, udt_name AS udt_type,
        is_nullable AS nullable, column_default AS default_value
    FROM information_schema.columns
    WHERE table_name = {first} AND table_schema = {second}
    ORDER BY ordinal_position
"""

_MYSQL_DESCRIBE = """
    SELECT {extra}column_name AS name, data_type AS type, column_type AS fullType,
        is_nullable AS nullable, column_key AS `key`, column_default AS `default`,
        extra, column_comment AS comment
    FROM information_schema.columns
    WHERE table_name = {first} AND {condition}
    ORDER BY table_schema, ordinal_position
"""


class Commands:
    """CLI-facing operations; each returns a :class:`QueryResponse`."""

    def __init__(self, router: ExecutionRouter, config: ConnectionConfig) -> None:
        self._router = router
        self._config = config

    @property
    def engine(self) -> EngineKind:
        return self._router.engine

    async def run_query(self, sql: str) -> QueryResponse:
        return await self._router.run(sql)

    async def test_connection(self) -> QueryResponse:
        try:
            await self._router.adapter.execute_query("SELECT 1 AS connected")
        except SqlGateError as exc:
            return QueryResponse.failure(f"Connection failed: {exc}")
        config = self._config
        return QueryResponse.ok(
            {
                "connected": True,
                "version": __version__,
                "dbType": self.engine.value,
                "host": config.address,
                "port": config.port,
                "database": config.database or "Not specified",
                "user": config.user,
            }
        )

    async def list_tables(self) -> QueryResponse:
        params: tuple[object, ...] = ()
        if self.engine is EngineKind.POSTGRES:
            sql = _PG_LIST_TABLES
        elif self._config.database:
            mark = self._router.adapter.placeholder
            sql = _MYSQL_LIST_TABLES.format(condition=f"table_schema = {mark(1)}")
            params = (self._config.database,)
        else:
            sql = _MYSQL_LIST_TABLES.format(condition=f"table_schema NOT IN ({_MYSQL_SYSTEM_SCHEMAS})")
        started = time.perf_counter()
        try:
            rows = await self._router.adapter.execute_query(sql, params)
        except SqlGateError as exc:
            return QueryResponse.failure(f"Failed to list tables: {exc}")
        return QueryResponse.ok(rows, elapsed_since(started))

    async def describe_table(self, table_name: str | None) -> QueryResponse:
        if not table_name:
            return QueryResponse.failure("Table name is required")
        sql, params = self._describe_statement(table_name)
        try:
            rows = await self._router.adapter.execute_query(sql, params)
        except SqlGateError as exc:
            return QueryResponse.failure(f"Failed to describe table: {exc}")
        if not rows:
            where = f" in database '{self._config.database}'" if self._config.database else ""
            return QueryResponse.failure(f"Table '{table_name}' not found{where}")
        return QueryResponse.ok(rows)

    def _describe_statement(self, table_name: str) -> tuple[str, tuple[object, ...]]:
        mark = self._router.adapter.placeholder
        if self.engine is EngineKind.POSTGRES:
            schema, _, table = table_name.rpartition(".")
            return _PG_DESCRIBE.format(first=mark(1), second=mark(2)), (table, schema or "public")
        if self._config.database:
            sql = _MYSQL_DESCRIBE.format(extra="", first=mark(1), condition=f"table_schema = {mark(2)}")
            return sql, (table_name, self._config.database)
        sql = _MYSQL_DESCRIBE.format(
            extra="table_schema AS `database`, ",
            first=mark(1),
            condition=f"table_schema NOT IN ({_MYSQL_SYSTEM_SCHEMAS})",
        )
        return sql, (table_name,)


__all__ = ["Commands"]
