"""Shared dataclasses used across the classifier, router and drivers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .errors import ConfigurationError

Row = dict[str, Any]

MUTATING_GATES: tuple[str, ...] = ("insert", "update", "delete", "ddl")

DDL_KINDS = frozenset({"create", "alter", "drop", "truncate", "rename"})

# MySQL spellings of a gated operation that sqlglot leaves as bare commands.
_KIND_ALIASES: Mapping[str, str] = {"replace": "insert"}

# Statements that end, open or reconfigure the surrounding transaction.
SESSION_CONTROL_KINDS = frozenset(
    {"begin", "start", "commit", "rollback", "set", "lock", "unlock"}
)


class EngineKind(str, Enum):
    """Database engines the drivers know how to talk to."""

    MYSQL = "mysql"
    POSTGRES = "postgres"

    @classmethod
    def parse(cls, value: str) -> EngineKind:
        """Resolve a user-supplied engine name, including aliases."""

        normalized = (value or "").strip().lower()
        engine = _ENGINE_ALIASES.get(normalized)
        if engine is None:
            raise ConfigurationError(
                f"Unsupported database type: {value}. Use 'mysql' or 'postgres'."
            )
        return engine

    @property
    def dialect(self) -> str:
        """sqlglot dialect name used when parsing statements for this engine."""

        return self.value


_ENGINE_ALIASES: Mapping[str, EngineKind] = {
    "mysql": EngineKind.MYSQL,
    "mariadb": EngineKind.MYSQL,
    "postgres": EngineKind.POSTGRES,
    "postgresql": EngineKind.POSTGRES,
    "pg": EngineKind.POSTGRES,
}


def gate_for(kind: str) -> str | None:
    """Return the permission gate guarding a statement kind, if any."""

    kind = _KIND_ALIASES.get(kind, kind)
    if kind in DDL_KINDS:
        return "ddl"
    if kind in MUTATING_GATES:
        return kind
    return None


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Resolved connection settings for one engine."""

    engine: EngineKind
    host: str | None = None
    port: int | None = None
    socket_path: str | None = None
    user: str | None = None
    password: str = ""
    database: str | None = None
    pool_size: int = 10
    connect_timeout: float = 10.0
    idle_timeout: float | None = None
    ssl: bool = False
    ssl_verify: bool = False
    read_only_transactions: bool = True

    @property
    def address(self) -> str | None:
        """Host name or socket path, whichever is configured."""

        return self.host or self.socket_path


@dataclass(frozen=True, slots=True)
class ParsedStatement:
    """Classifier output: statement kinds in order plus the inferred schema."""

    statements: tuple[tuple[str, str], ...]
    schema: str | None = None

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(kind for kind, _ in self.statements)

    @property
    def write_gates(self) -> tuple[str, ...]:
        """Distinct mutating gates present, in the order they are checked."""

        present = {gate_for(kind) for kind in self.kinds}
        return tuple(gate for gate in MUTATING_GATES if gate in present)

    @property
    def is_write(self) -> bool:
        return bool(self.write_gates)

    @property
    def session_controls(self) -> tuple[str, ...]:
        """Transaction or session control kinds present, in statement order."""

        return tuple(kind for kind in self.kinds if kind in SESSION_CONTROL_KINDS)

    @property
    def schema_label(self) -> str:
        return self.schema or "default"


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Rows returned by a read-only execution."""

    rows: tuple[Row, ...]
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Status of a committed write execution."""

    affected_rows: int
    elapsed_ms: float
    changed_rows: int | None = None
    last_insert_id: int | None = None


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """Structured outcome reported for every command."""

    success: bool
    data: Any = None
    error: str | None = None
    elapsed_ms: float | None = None

    @classmethod
    def ok(cls, data: Any, elapsed_ms: float | None = None) -> QueryResponse:
        return cls(success=True, data=data, elapsed_ms=elapsed_ms)

    @classmethod
    def failure(cls, error: str) -> QueryResponse:
        return cls(success=False, error=error)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
        if self.elapsed_ms is not None:
            payload["executionTimeMs"] = f"{self.elapsed_ms:.2f}"
        return payload


__all__ = [
    "ConnectionConfig",
    "DDL_KINDS",
    "EngineKind",
    "MUTATING_GATES",
    "ParsedStatement",
    "QueryResponse",
    "QueryResult",
    "Row",
    "SESSION_CONTROL_KINDS",
    "WriteResult",
    "gate_for",
]
