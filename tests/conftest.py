"""Fake aiomysql / asyncpg pools shared by the driver, router and CLI tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@dataclass
class FakeResult:
    """One MySQL result set; ``rows=None`` means the statement returned no rows."""

    rows: list[dict[str, Any]] | None = None
    rowcount: int = 0
    lastrowid: int | None = None


class FakeMySQLCursor:
    def __init__(self, conn: "FakeMySQLConnection") -> None:
        self._conn = conn
        self._pending: list[FakeResult] = []
        self._rows: list[dict[str, Any]] = []
        self.description: tuple[str, ...] | None = None
        self.rowcount = -1
        self.lastrowid: int | None = None

    async def __aenter__(self) -> "FakeMySQLCursor":
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def execute(self, sql: str, args: object = None) -> None:
        statement = " ".join(sql.split())
        self._conn.log.append(statement)
        self._conn.params.append(args)
        if self._conn.fail_on and self._conn.fail_on in statement:
            raise RuntimeError(f"failed: {statement}")
        self._pending = list(self._conn.script.get(statement, [FakeResult(rows=[])]))
        self._load()

    async def fetchall(self) -> list[dict[str, Any]]:
        return list(self._rows)

    async def nextset(self) -> bool | None:
        if not self._pending:
            return None
        self._load()
        return True

    def _load(self) -> None:
        result = self._pending.pop(0)
        self.description = ("column",) if result.rows is not None else None
        self._rows = list(result.rows or [])
        self.rowcount = result.rowcount
        self.lastrowid = result.lastrowid


class FakeMySQLConnection:
    def __init__(self) -> None:
        self.log: list[str] = []
        self.params: list[object] = []
        self.script: dict[str, list[FakeResult]] = {}
        self.fail_on: str | None = None

    def cursor(self, cursor_class: object = None) -> FakeMySQLCursor:
        return FakeMySQLCursor(self)

    async def begin(self) -> None:
        self.log.append("BEGIN")

    async def commit(self) -> None:
        self.log.append("COMMIT")

    async def rollback(self) -> None:
        self.log.append("ROLLBACK")


@dataclass
class FakeMySQLPool:
    conn: FakeMySQLConnection
    acquired: int = 0
    released: int = 0
    closed: bool = False
    kwargs: dict[str, Any] = field(default_factory=dict)

    async def acquire(self) -> FakeMySQLConnection:
        self.acquired += 1
        return self.conn

    def release(self, conn: FakeMySQLConnection) -> None:
        self.released += 1

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        return None


class FakeTransaction:
    def __init__(self, conn: "FakePgConnection", readonly: bool) -> None:
        self._conn = conn
        self._readonly = readonly

    async def start(self) -> None:
        self._conn.log.append("BEGIN READ ONLY" if self._readonly else "BEGIN")

    async def commit(self) -> None:
        self._conn.log.append("COMMIT")
        self._conn.committed.extend(self._conn.pending)
        self._conn.pending.clear()

    async def rollback(self) -> None:
        self._conn.log.append("ROLLBACK")
        self._conn.pending.clear()


class FakePgConnection:
    """Records statements; committed writes are echoed back by ``fetch``."""

    def __init__(self) -> None:
        self.log: list[str] = []
        self.params: list[tuple[object, ...]] = []
        self.records: list[dict[str, Any]] | None = None
        self.status = "INSERT 0 1"
        self.fail_on: str | None = None
        self.pending: list[str] = []
        self.committed: list[str] = []

    def transaction(self, readonly: bool = False) -> FakeTransaction:
        return FakeTransaction(self, readonly)

    async def fetch(self, sql: str, *args: object) -> list[dict[str, Any]]:
        statement = " ".join(sql.split())
        self.log.append(statement)
        self.params.append(args)
        self._maybe_fail(statement)
        if self.records is not None:
            return list(self.records)
        return [{"statement": entry} for entry in self.committed]

    async def execute(self, sql: str) -> str:
        statement = " ".join(sql.split())
        self.log.append(statement)
        self._maybe_fail(statement)
        self.pending.append(statement)
        return self.status

    def _maybe_fail(self, statement: str) -> None:
        if self.fail_on and self.fail_on in statement:
            raise RuntimeError(f"failed: {statement}")


@dataclass
class FakePgPool:
    conn: FakePgConnection
    acquired: int = 0
    released: int = 0
    closed: bool = False
    kwargs: dict[str, Any] = field(default_factory=dict)

    async def acquire(self) -> FakePgConnection:
        self.acquired += 1
        return self.conn

    async def release(self, conn: FakePgConnection) -> None:
        self.released += 1

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def mysql_pool(monkeypatch: pytest.MonkeyPatch) -> FakeMySQLPool:
    pool = FakeMySQLPool(FakeMySQLConnection())

    async def _create_pool(**kwargs: Any) -> FakeMySQLPool:
        pool.kwargs = kwargs
        return pool

    monkeypatch.setattr("sqlgate.drivers.mysql.aiomysql.create_pool", _create_pool)
    return pool


@pytest.fixture
def pg_pool(monkeypatch: pytest.MonkeyPatch) -> FakePgPool:
    pool = FakePgPool(FakePgConnection())

    async def _create_pool(**kwargs: Any) -> FakePgPool:
        pool.kwargs = kwargs
        return pool

    monkeypatch.setattr("sqlgate.drivers.postgres.asyncpg.create_pool", _create_pool)
    return pool


@pytest.fixture
def no_pool(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Record (and refuse) any attempt to open a pool."""

    attempts: list[dict[str, Any]] = []

    async def _create_pool(**kwargs: Any) -> None:
        attempts.append(kwargs)
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr("sqlgate.drivers.mysql.aiomysql.create_pool", _create_pool)
    monkeypatch.setattr("sqlgate.drivers.postgres.asyncpg.create_pool", _create_pool)
    return attempts
