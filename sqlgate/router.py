"""Execution routing: classify, gate, then run on the bound driver adapter."""

from __future__ import annotations

import logging

from .classifier import classify
from .config import Settings
from .drivers import DriverAdapter, create_adapter
from .errors import DatabaseConnectionError, ParseError, PermissionDenied, QueryExecutionError, UnsafeBatch
from .models import EngineKind, ParsedStatement, QueryResponse, WriteResult
from .permissions import PermissionTable

LOG = logging.getLogger(__name__)


class ExecutionRouter:
    """Routes each SQL string to a read-only or a committed write execution.

    The adapter is bound at construction; an invocation never switches engines.
    Denied or unparseable SQL is answered without touching the pool.
    """

    def __init__(
        self,
        adapter: DriverAdapter,
        permissions: PermissionTable,
        *,
        fixed_schema: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._permissions = permissions
        self._fixed_schema = fixed_schema

    @property
    def engine(self) -> EngineKind:
        return self._adapter.engine

    @property
    def adapter(self) -> DriverAdapter:
        return self._adapter

    @property
    def permissions(self) -> PermissionTable:
        return self._permissions

    def classify(self, sql: str) -> ParsedStatement:
        """Classify ``sql`` with the bound engine's dialect."""

        return classify(sql, dialect=self.engine.dialect, fixed_schema=self._fixed_schema)

    def check(self, parsed: ParsedStatement) -> None:
        """Raise unless ``parsed`` may run.

        A multi-statement batch carrying transaction or session control could
        leave the transaction the adapter opened and is refused as
        :class:`UnsafeBatch`. Otherwise every write gate present must pass or
        :class:`PermissionDenied` is raised.
        """

        controls = parsed.session_controls
        if controls and len(parsed.statements) > 1:
            raise UnsafeBatch(controls)
        gate = self._permissions.denied(parsed)
        if gate is not None:
            raise PermissionDenied(gate, parsed.schema)

    async def run(self, sql: str) -> QueryResponse:
        statement = sql.strip()
        if not statement:
            return QueryResponse.failure("SQL query is required")
        try:
            parsed = self.classify(statement)
            self.check(parsed)
        except ParseError as exc:
            return QueryResponse.failure(f"Parsing failed: {exc}")
        except (PermissionDenied, UnsafeBatch) as exc:
            LOG.error("%s", exc)
            return QueryResponse.failure(f"Error: {exc}")
        LOG.info("Classified %s on schema '%s'", ", ".join(parsed.kinds), parsed.schema_label)
        if parsed.is_write:
            return await self._run_write(statement, parsed)
        return await self._run_read_only(statement)

    async def _run_read_only(self, sql: str) -> QueryResponse:
        try:
            result = await self._adapter.execute_read_only(sql)
        except DatabaseConnectionError as exc:
            return QueryResponse.failure(f"Database connection error: {exc}")
        except QueryExecutionError as exc:
            return QueryResponse.failure(f"Error: {exc}")
        return QueryResponse.ok(list(result.rows), result.elapsed_ms)

    async def _run_write(self, sql: str, parsed: ParsedStatement) -> QueryResponse:
        try:
            result = await self._adapter.execute_write(sql)
        except DatabaseConnectionError as exc:
            return QueryResponse.failure(f"Database connection error: {exc}")
        except QueryExecutionError as exc:
            return QueryResponse.failure(f"Error executing write operation: {exc}")
        return QueryResponse.ok(summarize_write(parsed, result), result.elapsed_ms)


def summarize_write(parsed: ParsedStatement, result: WriteResult) -> str:
    """Human-readable status for a committed write, keyed on the first gate present."""

    schema = parsed.schema_label
    gates = parsed.write_gates
    if "insert" in gates:
        text = f"Insert successful on schema '{schema}'. Affected rows: {result.affected_rows}"
        if result.last_insert_id is not None:
            text += f", Last insert ID: {result.last_insert_id}"
        return text
    if "update" in gates:
        text = f"Update successful on schema '{schema}'. Affected rows: {result.affected_rows}"
        if result.changed_rows is not None:
            text += f", Changed rows: {result.changed_rows}"
        return text
    if "delete" in gates:
        return f"Delete successful on schema '{schema}'. Affected rows: {result.affected_rows}"
    return f"DDL operation successful on schema '{schema}'."


def build_router(settings: Settings, engine: EngineKind) -> ExecutionRouter:
    """Bind the adapter for ``engine`` and the permission table from ``settings``."""

    LOG.info("Using database type: %s", engine.value)
    if engine is EngineKind.MYSQL and settings.mysql.multi_db_mode and not settings.mysql.multi_db_write_mode:
        LOG.warning("Multi-DB mode detected: write permissions are resolved from schemas named in the SQL text")
    adapter = create_adapter(settings.connection_config(engine))
    return ExecutionRouter(
        adapter,
        settings.permissions.table(),
        fixed_schema=settings.fixed_schema(engine),
    )


__all__ = ["ExecutionRouter", "build_router", "summarize_write"]
