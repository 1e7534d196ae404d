"""Error taxonomy shared by the classifier, router and drivers."""

from __future__ import annotations


class SqlGateError(RuntimeError):
    """Base class for failures surfaced as structured responses."""


class ConfigurationError(SqlGateError):
    """Raised when engine selection or permission settings are invalid."""


class ParseError(SqlGateError):
    """Raised when SQL cannot be parsed into statements."""


class PermissionDenied(SqlGateError):
    """Raised when a mutating operation is not allowed for a schema."""

    def __init__(self, gate: str, schema: str | None) -> None:
        self.gate = gate
        self.schema = schema
        label = schema or "default"
        super().__init__(
            f"{gate.upper()} operations are not allowed for schema '{label}'. "
            f"Ask the administrator to update SCHEMA_{gate.upper()}_PERMISSIONS."
        )


class UnsafeBatch(SqlGateError):
    """Raised when a multi-statement batch would end or reconfigure its own transaction."""

    def __init__(self, kinds: tuple[str, ...]) -> None:
        self.kinds = kinds
        super().__init__(
            f"Transaction and session control statements ({', '.join(dict.fromkeys(kinds))}) "
            "must be sent on their own, not inside a multi-statement batch."
        )


class UsageError(SqlGateError):
    """Raised when command-line arguments cannot be parsed."""


class DatabaseConnectionError(SqlGateError):
    """Raised when a pool cannot be created or a connection acquired."""


class QueryExecutionError(SqlGateError):
    """Raised when a statement fails after a connection was acquired."""


__all__ = [
    "ConfigurationError",
    "DatabaseConnectionError",
    "ParseError",
    "PermissionDenied",
    "QueryExecutionError",
    "SqlGateError",
    "UnsafeBatch",
    "UsageError",
]
