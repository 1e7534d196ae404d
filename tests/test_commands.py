"""Tests for the table listing, description and connection commands."""

from __future__ import annotations

from typing import Any

import pytest

from conftest import FakeMySQLPool, FakePgPool, FakeResult
from sqlgate import __version__
from sqlgate.commands import Commands
from sqlgate.drivers import create_adapter
from sqlgate.models import ConnectionConfig, EngineKind
from sqlgate.permissions import PermissionTable
from sqlgate.router import ExecutionRouter


def _commands(config: ConnectionConfig) -> Commands:
    router = ExecutionRouter(create_adapter(config), PermissionTable(), fixed_schema=config.database)
    return Commands(router, config)


@pytest.mark.anyio
async def test_connection_check_reports_target(mysql_pool: FakeMySQLPool) -> None:
    config = ConnectionConfig(engine=EngineKind.MYSQL, host="db.internal", port=3306, user="app")

    response = await _commands(config).test_connection()

    assert response.success is True
    assert response.data == {
        "connected": True,
        "version": __version__,
        "dbType": "mysql",
        "host": "db.internal",
        "port": 3306,
        "database": "Not specified",
        "user": "app",
    }
    assert mysql_pool.conn.log == ["SELECT 1 AS connected"]


@pytest.mark.anyio
async def test_connection_check_failure(no_pool: list[dict[str, Any]]) -> None:
    config = ConnectionConfig(engine=EngineKind.POSTGRES)

    response = await _commands(config).test_connection()

    assert (response.error or "").startswith("Connection failed:")


@pytest.mark.anyio
async def test_list_tables_filters_by_configured_database(mysql_pool: FakeMySQLPool) -> None:
    config = ConnectionConfig(engine=EngineKind.MYSQL, database="shop")

    response = await _commands(config).list_tables()

    assert response.success is True
    assert response.elapsed_ms is not None
    assert "table_schema = %s" in mysql_pool.conn.log[0]
    assert mysql_pool.conn.params == [("shop",)]


@pytest.mark.anyio
async def test_list_tables_without_database_skips_system_schemas(mysql_pool: FakeMySQLPool) -> None:
    config = ConnectionConfig(engine=EngineKind.MYSQL)

    await _commands(config).list_tables()

    assert "NOT IN ('information_schema'" in mysql_pool.conn.log[0]
    assert mysql_pool.conn.params == [None]


@pytest.mark.anyio
async def test_list_tables_on_postgres(pg_pool: FakePgPool) -> None:
    pg_pool.conn.records = [{"schema": "public", "name": "users", "type": "BASE TABLE"}]

    response = await _commands(ConnectionConfig(engine=EngineKind.POSTGRES)).list_tables()

    assert response.data == [{"schema": "public", "name": "users", "type": "BASE TABLE"}]
    assert "pg_catalog" in pg_pool.conn.log[0]


@pytest.mark.anyio
async def test_describe_requires_a_table_name(no_pool: list[dict[str, Any]]) -> None:
    response = await _commands(ConnectionConfig(engine=EngineKind.MYSQL)).describe_table(None)

    assert response.error == "Table name is required"
    assert no_pool == []


@pytest.mark.anyio
async def test_describe_postgres_splits_schema(pg_pool: FakePgPool) -> None:
    pg_pool.conn.records = [{"name": "id", "type": "integer"}]
    commands = _commands(ConnectionConfig(engine=EngineKind.POSTGRES))

    await commands.describe_table("sales.orders")
    await commands.describe_table("users")

    assert pg_pool.conn.params == [("orders", "sales"), ("users", "public")]
    assert "table_name = $1 AND table_schema = $2" in pg_pool.conn.log[0]


@pytest.mark.anyio
async def test_describe_mysql_uses_configured_database(mysql_pool: FakeMySQLPool) -> None:
    config = ConnectionConfig(engine=EngineKind.MYSQL, database="shop")
    commands = _commands(config)
    sql, _ = commands._describe_statement("items")
    mysql_pool.conn.script[" ".join(sql.split())] = [FakeResult(rows=[{"name": "id", "type": "int"}])]

    response = await commands.describe_table("items")

    assert response.data == [{"name": "id", "type": "int"}]
    assert mysql_pool.conn.params == [("items", "shop")]


@pytest.mark.anyio
async def test_describe_missing_table(mysql_pool: FakeMySQLPool) -> None:
    config = ConnectionConfig(engine=EngineKind.MYSQL, database="shop")

    response = await _commands(config).describe_table("ghost")

    assert response.error == "Table 'ghost' not found in database 'shop'"


@pytest.mark.anyio
async def test_describe_without_database_reports_owning_schema(mysql_pool: FakeMySQLPool) -> None:
    response = await _commands(ConnectionConfig(engine=EngineKind.MYSQL)).describe_table("ghost")

    assert response.error == "Table 'ghost' not found"
    assert "table_schema AS `database`" in mysql_pool.conn.log[0]
    assert mysql_pool.conn.params == [("ghost",)]
